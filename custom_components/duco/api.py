"""API client for Duco ventilation systems."""

from __future__ import annotations

import json
import logging
from typing import Any

import aiohttp
from aiohttp import ClientTimeout
from aiohttp.client_exceptions import ClientError
import voluptuous as vol

from homeassistant.exceptions import HomeAssistantError

from .const import REQUEST_TIMEOUT
from .models import DucoBoardInfo, DucoNodeInfo, VentilationLevel

_LOGGER = logging.getLogger(__name__)

# API endpoints
ENDPOINT_BOARD_INFO = "/board_info"
ENDPOINT_NODE_LIST = "/nodelist"
ENDPOINT_NODE_INFO = "/nodeinfoget"
ENDPOINT_SET_OVERRULE = "/nodesetoverrule"

RESPONSE_SUCCESS = "SUCCESS"

BOARD_INFO_SCHEMA = vol.Schema(
    {
        vol.Required("serial"): str,
        vol.Required("uptime"): int,
        vol.Required("swversion"): str,
        vol.Required("mac"): str,
        vol.Required("ip"): str,
    },
    extra=vol.ALLOW_EXTRA,
)

NODE_LIST_SCHEMA = vol.Schema(
    {vol.Required("nodelist"): [int]},
    extra=vol.ALLOW_EXTRA,
)

NODE_INFO_SCHEMA = vol.Schema(
    {
        vol.Required("devtype"): str,
        vol.Required("ovrl"): int,
        vol.Required("serialnb"): str,
    },
    extra=vol.ALLOW_EXTRA,
)


class DucoApiError(HomeAssistantError):
    """Exception to indicate an API error occurred."""


class DucoConnectionError(HomeAssistantError):
    """Exception to indicate a connection error occurred."""


class DucoUnknownLevelError(DucoApiError):
    """Exception to indicate the device reported an unknown overrule code."""


def decode_ventilation_level(node_info: DucoNodeInfo) -> VentilationLevel:
    """Return the ventilation level a node reports.

    Raises:
        DucoUnknownLevelError: If the overrule code has no known level

    """
    try:
        return VentilationLevel.from_overrule(node_info.overrule)
    except ValueError as err:
        raise DucoUnknownLevelError(
            f"Unknown ventilation value '{node_info.overrule}' in \"ovrl\" response"
            f" for node {node_info.node}. Please report this value"
        ) from err


class DucoApiClient:
    """API client for a Duco communication print."""

    def __init__(self, host: str, session: aiohttp.ClientSession) -> None:
        """Initialize the API client.

        Args:
            host: IP address or hostname of the Duco box
            session: Client session shared with Home Assistant

        """
        self.host = host
        self.base_url = f"http://{host}"
        self._session = session

    async def async_validate_connection(self) -> DucoBoardInfo:
        """Test if the host is a genuine Duco box.

        Returns:
            Board info of the communication print

        Raises:
            DucoConnectionError: If connection fails
            DucoApiError: If the host does not answer like a Duco box

        """
        try:
            return await self.async_get_board_info()
        except DucoConnectionError:
            _LOGGER.error("Failed to connect to Duco box at %s", self.host)
            raise

    async def async_get_board_info(self) -> DucoBoardInfo:
        """Get details of the communication print.

        Raises:
            DucoApiError: If API returns an invalid response
            DucoConnectionError: If connection fails

        """
        data = _validate(
            BOARD_INFO_SCHEMA, await self._async_get_json(ENDPOINT_BOARD_INFO)
        )
        return DucoBoardInfo(
            serial=data["serial"],
            uptime=data["uptime"],
            software_version=data["swversion"],
            mac=data["mac"],
            ip=data["ip"],
        )

    async def async_find_nodes(self) -> list[int]:
        """Get the indices of all nodes known to the box.

        Raises:
            DucoApiError: If API returns an invalid response
            DucoConnectionError: If connection fails

        """
        data = _validate(
            NODE_LIST_SCHEMA, await self._async_get_json(ENDPOINT_NODE_LIST)
        )
        return data["nodelist"]

    async def async_get_node_info(self, node: int) -> DucoNodeInfo:
        """Get type, overrule code and serial number of a node.

        Raises:
            DucoApiError: If API returns an invalid response
            DucoConnectionError: If connection fails

        """
        data = _validate(
            NODE_INFO_SCHEMA,
            await self._async_get_json(ENDPOINT_NODE_INFO, {"node": node}),
        )
        return DucoNodeInfo(
            node=node,
            node_type=data["devtype"],
            overrule=data["ovrl"],
            serial_number=data["serialnb"],
        )

    async def async_update_overrule(self, node: int, value: int) -> None:
        """Force the ventilation of a node to an overrule code.

        Args:
            node: Index of the node
            value: Overrule code (see VentilationLevel)

        Raises:
            DucoApiError: If the box does not confirm the change
            DucoConnectionError: If connection fails

        """
        text = await self._async_request(
            ENDPOINT_SET_OVERRULE, {"node": node, "value": value}
        )
        if text.strip() != RESPONSE_SUCCESS:
            raise DucoApiError(
                f"Setting overrule {value} on node {node} failed: {text!r}"
            )

    async def _async_get_json(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        text = await self._async_request(endpoint, params)
        try:
            return json.loads(text)
        except json.JSONDecodeError as err:
            raise DucoApiError(
                f"Invalid response from Duco box at {self.host}: {err}"
            ) from err

    async def _async_request(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> str:
        try:
            response = await self._session.get(
                f"{self.base_url}{endpoint}",
                params=params,
                timeout=ClientTimeout(total=REQUEST_TIMEOUT),
            )
            response.raise_for_status()
            return await response.text()
        except ClientError as err:
            raise DucoConnectionError(
                f"Failed to connect to Duco box at {self.host}: {err}"
            ) from err
        except TimeoutError as err:
            raise DucoConnectionError(
                f"Timeout while connecting to Duco box at {self.host}"
            ) from err


def _validate(schema: vol.Schema, data: Any) -> dict[str, Any]:
    try:
        return schema(data)
    except vol.Invalid as err:
        raise DucoApiError(f"Invalid response from Duco box: {err}") from err
