"""Constants for Duco tests."""

from homeassistant.const import CONF_HOST

from custom_components.duco.models import DucoBoardInfo

MOCK_HOST = "192.168.1.10"

MOCK_CONFIG: dict[str, str] = {CONF_HOST: MOCK_HOST}

MOCK_BOARD_INFO = {
    "serial": "RS1234567890",
    "uptime": 123456,
    "swversion": "16056.10.4.0",
    "mac": "00:11:22:33:44:55",
    "ip": MOCK_HOST,
}

MOCK_BOARD_INFO_RECORD = DucoBoardInfo(
    serial="RS1234567890",
    uptime=123456,
    software_version="16056.10.4.0",
    mac="00:11:22:33:44:55",
    ip=MOCK_HOST,
)


def mock_node_info(overrule: int = 255, serial: str = "RS0000000001") -> dict:
    """Return a /nodeinfoget payload."""
    return {
        "node": 1,
        "devtype": "BOX",
        "subtype": 1,
        "serialnb": serial,
        "state": "AUTO",
        "ovrl": overrule,
        "swversion": "16056.10.4.0",
    }
