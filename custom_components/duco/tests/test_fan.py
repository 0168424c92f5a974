"""Test the Duco ventilation fans."""

from collections.abc import AsyncGenerator
from datetime import timedelta
from typing import Any

import aiohttp
import pytest
from pytest_homeassistant_custom_component.common import (
    MockConfigEntry,
    async_fire_time_changed,
)
from pytest_homeassistant_custom_component.test_util.aiohttp import (
    AiohttpClientMocker,
)

from custom_components.duco.const import (
    ATTR_HOST,
    ATTR_NODE,
    ATTR_VENTILATION_LEVEL,
    DOMAIN,
)
from homeassistant.components.fan import (
    DOMAIN as FAN_DOMAIN,
    SERVICE_TURN_OFF,
    SERVICE_TURN_ON,
)
from homeassistant.const import ATTR_ENTITY_ID, STATE_OFF, STATE_ON, STATE_UNAVAILABLE
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import entity_registry as er
from homeassistant.util import dt as dt_util

from .const import MOCK_BOARD_INFO, MOCK_CONFIG, MOCK_HOST, mock_node_info

BASE_URL = f"http://{MOCK_HOST}"
ENTITY_ID = "fan.duco"


@pytest.fixture
async def setup_entry(
    hass: HomeAssistant, aioclient_mock: AiohttpClientMocker
) -> AsyncGenerator[MockConfigEntry]:
    """Set up the integration against a box with one node in auto mode."""
    aioclient_mock.get(f"{BASE_URL}/board_info", json=MOCK_BOARD_INFO)
    aioclient_mock.get(f"{BASE_URL}/nodelist", json={"nodelist": [1]})
    aioclient_mock.get(f"{BASE_URL}/nodeinfoget?node=1", json=mock_node_info(255))

    entry = MockConfigEntry(domain=DOMAIN, unique_id=DOMAIN, data=MOCK_CONFIG)
    entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(entry.entry_id)
    await hass.async_block_till_done(wait_background_tasks=True)
    yield entry
    await hass.config_entries.async_unload(entry.entry_id)


def mock_response(
    aioclient_mock: AiohttpClientMocker, url: str, **kwargs: Any
) -> None:
    """Replace the mocked responses for a URL."""
    aioclient_mock.clear_requests()
    aioclient_mock.get(f"{BASE_URL}/board_info", json=MOCK_BOARD_INFO)
    aioclient_mock.get(f"{BASE_URL}/nodelist", json={"nodelist": [1]})
    aioclient_mock.get(f"{BASE_URL}{url}", **kwargs)


async def test_fan_state(hass: HomeAssistant, setup_entry: MockConfigEntry) -> None:
    """Test the node is exposed with its serial as identity."""
    state = hass.states.get(ENTITY_ID)
    assert state is not None
    assert state.state == STATE_OFF
    assert state.attributes[ATTR_HOST] == MOCK_HOST
    assert state.attributes[ATTR_NODE] == 1
    assert state.attributes[ATTR_VENTILATION_LEVEL] == "auto"

    entity = er.async_get(hass).async_get(ENTITY_ID)
    assert entity is not None
    assert entity.unique_id == "rs0000000001"


async def test_turn_on_and_off(
    hass: HomeAssistant,
    setup_entry: MockConfigEntry,
    aioclient_mock: AiohttpClientMocker,
) -> None:
    """Test switching between forced high and automatic ventilation."""
    mock_response(aioclient_mock, "/nodesetoverrule?node=1&value=100", text="SUCCESS")
    await hass.services.async_call(
        FAN_DOMAIN, SERVICE_TURN_ON, {ATTR_ENTITY_ID: ENTITY_ID}, blocking=True
    )

    state = hass.states.get(ENTITY_ID)
    assert state.state == STATE_ON
    assert state.attributes[ATTR_VENTILATION_LEVEL] == "high"

    mock_response(aioclient_mock, "/nodesetoverrule?node=1&value=255", text="SUCCESS")
    await hass.services.async_call(
        FAN_DOMAIN, SERVICE_TURN_OFF, {ATTR_ENTITY_ID: ENTITY_ID}, blocking=True
    )

    assert hass.states.get(ENTITY_ID).state == STATE_OFF


async def test_turn_on_failure(
    hass: HomeAssistant,
    setup_entry: MockConfigEntry,
    aioclient_mock: AiohttpClientMocker,
) -> None:
    """Test a rejected write is reported and the state is kept."""
    mock_response(aioclient_mock, "/nodesetoverrule?node=1&value=100", text="FAILED")

    with pytest.raises(HomeAssistantError, match="Failed to turn on Duco"):
        await hass.services.async_call(
            FAN_DOMAIN, SERVICE_TURN_ON, {ATTR_ENTITY_ID: ENTITY_ID}, blocking=True
        )

    assert hass.states.get(ENTITY_ID).state == STATE_OFF


async def test_poll_updates_state(
    hass: HomeAssistant,
    setup_entry: MockConfigEntry,
    aioclient_mock: AiohttpClientMocker,
) -> None:
    """Test level changes made on the box show up without a service call."""
    mock_response(aioclient_mock, "/nodeinfoget?node=1", json=mock_node_info(100))
    async_fire_time_changed(hass, dt_util.utcnow() + timedelta(seconds=61))
    await hass.async_block_till_done()

    assert hass.states.get(ENTITY_ID).state == STATE_ON


async def test_unreachable_box(
    hass: HomeAssistant,
    setup_entry: MockConfigEntry,
    aioclient_mock: AiohttpClientMocker,
) -> None:
    """Test the entity is unavailable while polls fail and recovers after."""
    mock_response(aioclient_mock, "/nodeinfoget?node=1", exc=aiohttp.ClientError)
    async_fire_time_changed(hass, dt_util.utcnow() + timedelta(seconds=61))
    await hass.async_block_till_done()

    assert hass.states.get(ENTITY_ID).state == STATE_UNAVAILABLE

    mock_response(aioclient_mock, "/nodeinfoget?node=1", json=mock_node_info(255))
    async_fire_time_changed(hass, dt_util.utcnow() + timedelta(seconds=122))
    await hass.async_block_till_done()

    assert hass.states.get(ENTITY_ID).state == STATE_OFF
