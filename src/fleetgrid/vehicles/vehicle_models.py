from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.time import parse_iso_date

# Fields a client may change through an update. id, last_updated and the
# audit metadata are owned by the store.
EDITABLE_FIELDS = (
    "license_number",
    "brand",
    "model",
    "registration_date",
    "mileage",
    "tank",
    "client_id",
)


class FuelLevel(str, Enum):
    EMPTY = "Empty"
    QUARTER = "Quarter"
    HALF = "Half"
    THREE_QUARTERS = "ThreeQuarters"
    FULL = "Full"


class VehicleRecord(BaseModel):
    """Detached snapshot of a fleet vehicle.

    Snapshots are frozen: an edit is a new snapshot built with
    ``model_copy(update=...)`` (or ``with_changes``), never an in-place change.
    Copying skips validation, so the write path re-validates before storing.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = Field(default=None, ge=1, le=1_000_000)
    license_number: str = Field(min_length=1, max_length=10)
    brand: str = Field(min_length=1, max_length=20)
    model: Optional[str] = Field(default=None, max_length=30)
    registration_date: Optional[str] = None  # YYYY-MM-DD
    mileage: int = Field(ge=1, le=1_000_000)
    tank: FuelLevel = FuelLevel.FULL
    client_id: Optional[int] = Field(default=None, ge=1, le=1_000_000)
    last_updated: Optional[str] = None  # ISO 8601 UTC, set by the store

    @field_validator("license_number", "brand")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("registration_date")
    @classmethod
    def _iso_date(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        try:
            return parse_iso_date(value)
        except ValueError:
            raise ValueError("must be an ISO date (YYYY-MM-DD)") from None

    def editable_values(self) -> Dict[str, Any]:
        """Column values an update is allowed to write."""
        values = {name: getattr(self, name) for name in EDITABLE_FIELDS}
        values["tank"] = self.tank.value
        return values

    def with_changes(self, **changes: Any) -> "VehicleRecord":
        """Return a validated copy with the given fields replaced."""
        data = self.model_dump()
        data.update(changes)
        return VehicleRecord.model_validate(data)
