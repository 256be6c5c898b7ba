"""Column registry: which vehicle columns can be filtered and sorted, and how.

Only columns registered here can reach the store, so a filter or sort column
coming from a request can never target an arbitrary attribute.

Text filters are substring containment. The default is case-sensitive
(SQLite ``instr``). The case-insensitive variant lowercases both sides, and
SQLite's ``lower`` folds ASCII letters only.
"""

import string
from enum import Enum
from typing import Any, Callable, Dict, Mapping

from sqlalchemy import func

from ..database.schema import Vehicle
from ..errors import UnknownColumn

# text -> SQL boolean expression
FilterBuilder = Callable[[str], Any]

# SQLite lower() folds ASCII only; the filter text must be folded the same way
_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


class VehicleColumn(str, Enum):
    LICENSE_NUMBER = "license_number"
    BRAND = "brand"
    MODEL = "model"
    MILEAGE = "mileage"
    REGISTRATION_DATE = "registration_date"

    @classmethod
    def parse(cls, value: Any) -> "VehicleColumn":
        """Resolve a column name (e.g. 'brand' or 'Brand') to a member."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip()
            for member in cls:
                if key == member.value or key.upper() == member.name or key == _camel(member.value):
                    return member
        raise UnknownColumn(value)


def _camel(snake: str) -> str:
    head, *rest = snake.split("_")
    return head[:1].upper() + head[1:] + "".join(part.title() for part in rest)


def contains_text(column, case_sensitive: bool = True) -> FilterBuilder:
    """Filter builder for substring containment on a text column."""
    if case_sensitive:
        return lambda text: func.instr(column, text) > 0
    return lambda text: func.lower(column).contains(text.translate(_ASCII_LOWER), autoescape=True)


class ColumnRegistry:
    """Static mapping from VehicleColumn to sort keys and filter builders.

    Every column must have a sort key; the registry refuses to build otherwise.
    Filters are optional per column.
    """

    def __init__(
        self,
        sort_keys: Mapping[VehicleColumn, Any],
        filters: Mapping[VehicleColumn, FilterBuilder],
    ):
        for mapping, kind in ((sort_keys, "sort"), (filters, "filter")):
            stray = [key for key in mapping if not isinstance(key, VehicleColumn)]
            if stray:
                raise ValueError(f"{kind} registry has non-column keys: {stray}")
        missing = [column.value for column in VehicleColumn if column not in sort_keys]
        if missing:
            raise ValueError(f"No sort key registered for: {', '.join(missing)}")

        self._sort_keys: Dict[VehicleColumn, Any] = dict(sort_keys)
        self._filters: Dict[VehicleColumn, FilterBuilder] = dict(filters)

    @property
    def sortable_columns(self) -> list[VehicleColumn]:
        return [column for column in VehicleColumn if column in self._sort_keys]

    @property
    def filterable_columns(self) -> list[VehicleColumn]:
        return [column for column in VehicleColumn if column in self._filters]

    def resolve_filter(self, column: Any) -> FilterBuilder:
        try:
            return self._filters[VehicleColumn.parse(column)]
        except KeyError:
            raise UnknownColumn(column, "filter column") from None

    def resolve_sort(self, column: Any):
        try:
            return self._sort_keys[VehicleColumn.parse(column)]
        except KeyError:
            raise UnknownColumn(column, "sort column") from None


def build_vehicle_registry(case_sensitive: bool = True) -> ColumnRegistry:
    """The registry used for the vehicle grid."""
    return ColumnRegistry(
        sort_keys={
            VehicleColumn.LICENSE_NUMBER: Vehicle.license_number,
            VehicleColumn.BRAND: Vehicle.brand,
            VehicleColumn.MODEL: Vehicle.model,
            VehicleColumn.MILEAGE: Vehicle.mileage,
            VehicleColumn.REGISTRATION_DATE: Vehicle.registration_date,
        },
        filters={
            VehicleColumn.LICENSE_NUMBER: contains_text(Vehicle.license_number, case_sensitive),
            VehicleColumn.BRAND: contains_text(Vehicle.brand, case_sensitive),
            VehicleColumn.MODEL: contains_text(Vehicle.model, case_sensitive),
        },
    )
