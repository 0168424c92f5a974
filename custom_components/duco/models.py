"""Data models for Duco integration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from .controller import DucoVentilationController


@unique
class VentilationLevel(Enum):
    """Forced ventilation level, valued by the device's overrule code."""

    HIGH = 100
    MEDIUM = 50
    LOW = 0
    AUTO = 255

    @classmethod
    def from_overrule(cls, overrule: int) -> VentilationLevel:
        """Decode an overrule code, raising ValueError for unknown codes."""
        return cls(overrule)

    @property
    def overrule(self) -> int:
        """Return the overrule code understood by the device."""
        return self.value


# Stable external identifier of a node, derived from its serial number
NodeIdentity: TypeAlias = str


def node_identity(serial_number: str) -> NodeIdentity:
    """Derive the stable identity of a node from its hardware serial."""
    identity = serial_number.strip().lower()
    if not identity:
        raise ValueError("Node has an empty serial number")
    return identity


@dataclass(frozen=True)
class NodeLocation:
    """Where a node currently lives on the network."""

    host: str
    node: int

    def __str__(self) -> str:
        return f"{self.host} node {self.node}"


@dataclass(frozen=True)
class DucoBoardInfo:
    """Communication print details returned by /board_info."""

    serial: str
    uptime: int
    software_version: str
    mac: str
    ip: str


@dataclass(frozen=True)
class DucoNodeInfo:
    """Node details returned by /nodeinfoget."""

    node: int
    node_type: str
    overrule: int
    serial_number: str


@dataclass
class DucoAccessoryBundle:
    """A known node paired with its location and running controller."""

    identity: NodeIdentity
    location: NodeLocation
    name: str
    node_type: str
    controller: DucoVentilationController
