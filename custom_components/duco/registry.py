"""Persisted accessories of the Duco integration."""

from __future__ import annotations

import logging
from typing import Any, TypedDict

from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback
from homeassistant.helpers.storage import Store

from .const import DOMAIN, STORAGE_VERSION
from .fan import DucoVentilationFan
from .models import DucoAccessoryBundle, NodeIdentity

_LOGGER = logging.getLogger(__name__)

SAVE_DELAY = 10  # seconds


class DucoAccessoryRecord(TypedDict):
    """Last known location and state of a node, kept across restarts."""

    host: str
    node: int
    is_on: bool | None


class DucoAccessoryRegistry:
    """Materializes bundles as fan entities and remembers them."""

    def __init__(self, hass: HomeAssistant, entry_id: str) -> None:
        """Initialize the registry."""
        self.hass = hass
        self._store: Store[dict[str, Any]] = Store(
            hass, STORAGE_VERSION, f"{DOMAIN}.{entry_id}"
        )
        self._records: dict[NodeIdentity, DucoAccessoryRecord] = {}
        self._entities: dict[NodeIdentity, DucoVentilationFan] = {}
        self._pending: list[DucoVentilationFan] = []
        self._add_entities: AddConfigEntryEntitiesCallback | None = None

    async def async_load(self) -> None:
        """Load the accessories remembered from a previous run."""
        data = await self._store.async_load()
        if data:
            self._records = dict(data.get("accessories", {}))
        _LOGGER.debug("Loaded %s remembered Duco accessories", len(self._records))

    @callback
    def async_get_seed(self, identity: NodeIdentity) -> DucoAccessoryRecord | None:
        """Return what was remembered about a node, if anything."""
        return self._records.get(identity)

    @callback
    def async_set_add_entities(
        self, add_entities: AddConfigEntryEntitiesCallback
    ) -> None:
        """Attach the fan platform, adding entities registered before it."""
        self._add_entities = add_entities
        if self._pending:
            add_entities(self._pending)
            self._pending = []

    @callback
    def async_register(self, bundle: DucoAccessoryBundle) -> None:
        """Expose a newly discovered node as a fan entity."""
        _LOGGER.info("Adding Duco accessory %s at %s", bundle.name, bundle.location)
        entity = DucoVentilationFan(self, bundle)
        self._entities[bundle.identity] = entity
        if self._add_entities is None:
            self._pending.append(entity)
        else:
            self._add_entities([entity])
        self._async_record(bundle)

    @callback
    def async_relocate(self, bundle: DucoAccessoryBundle) -> None:
        """Point the entity of a node at its replacement controller."""
        self._async_record(bundle)
        if (entity := self._entities.get(bundle.identity)) is not None:
            entity.async_rebind()

    @callback
    def async_remember_state(self, identity: NodeIdentity, is_on: bool) -> None:
        """Remember the on/off state of a node for the next startup."""
        record = self._records.get(identity)
        if record is None or record["is_on"] == is_on:
            return
        record["is_on"] = is_on
        self._async_schedule_save()

    async def async_remove(self) -> None:
        """Forget every remembered accessory."""
        await self._store.async_remove()
        self._records = {}

    @callback
    def _async_record(self, bundle: DucoAccessoryBundle) -> None:
        previous = self._records.get(bundle.identity)
        self._records[bundle.identity] = DucoAccessoryRecord(
            host=bundle.location.host,
            node=bundle.location.node,
            is_on=previous["is_on"] if previous else None,
        )
        self._async_schedule_save()

    @callback
    def _async_schedule_save(self) -> None:
        self._store.async_delay_save(self._data_to_save, SAVE_DELAY)

    @callback
    def _data_to_save(self) -> dict[str, Any]:
        return {"accessories": self._records}
