"""Global fixtures for Duco integration."""

from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock

import pytest

from custom_components.duco.api import DucoApiClient
from custom_components.duco.models import DucoNodeInfo

from .const import MOCK_BOARD_INFO_RECORD

pytest_plugins = "pytest_homeassistant_custom_component"


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> None:  # noqa: D103
    return


def make_api(host: str, nodes: dict[int, DucoNodeInfo | Exception]) -> AsyncMock:
    """Create an API client mock for a Duco box serving the given nodes."""
    api = AsyncMock(spec=DucoApiClient)
    api.host = host
    api.async_get_board_info.return_value = MOCK_BOARD_INFO_RECORD
    api.async_find_nodes.return_value = list(nodes)

    def _get_node_info(node: int) -> DucoNodeInfo:
        value = nodes[node]
        if isinstance(value, Exception):
            raise value
        return value

    api.async_get_node_info.side_effect = _get_node_info
    return api


@pytest.fixture
def mock_api() -> Generator[AsyncMock]:
    """Return an API client mock for a box with a single node in auto mode."""
    yield make_api(
        "192.168.1.10",
        {1: DucoNodeInfo(node=1, node_type="BOX", overrule=255, serial_number="S1")},
    )
