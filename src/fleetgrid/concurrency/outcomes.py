"""Tagged results of the store's compare-and-write primitive."""

from dataclasses import dataclass
from typing import Union

from ..vehicles.vehicle_models import VehicleRecord
from .tokens import VersionToken


@dataclass(frozen=True)
class Accepted:
    """The expected token matched; the write is in the unit of work."""
    record: VehicleRecord
    token: VersionToken


@dataclass(frozen=True)
class Rejected:
    """The stored token differs; nothing was written."""
    current_record: VehicleRecord
    current_token: VersionToken


WriteOutcome = Union[Accepted, Rejected]
