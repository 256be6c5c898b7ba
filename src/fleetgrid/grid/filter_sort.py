from dataclasses import dataclass
from typing import Any

from ..errors import UnknownColumn
from .columns import VehicleColumn


def _parse_column(value: Any, purpose: str) -> VehicleColumn:
    try:
        return VehicleColumn.parse(value)
    except UnknownColumn:
        raise UnknownColumn(value, purpose) from None


@dataclass(frozen=True)
class FilterSortSpec:
    """What to filter on and how to order a grid query.

    ``filter_column`` only matters when ``filter_text`` has non-whitespace
    content; blank text means no filter.
    """

    filter_column: VehicleColumn = VehicleColumn.LICENSE_NUMBER
    filter_text: str = ""
    sort_column: VehicleColumn = VehicleColumn.LICENSE_NUMBER
    sort_ascending: bool = True

    @property
    def has_filter(self) -> bool:
        return bool(self.filter_text and self.filter_text.strip())

    @classmethod
    def from_names(
        cls,
        filter_column: Any = VehicleColumn.LICENSE_NUMBER,
        filter_text: str | None = "",
        sort_column: Any = VehicleColumn.LICENSE_NUMBER,
        sort_ascending: bool = True,
    ) -> "FilterSortSpec":
        """
        Build a spec from untrusted column names.

        The sort column is always resolved. The filter column is only resolved
        when there is filter text, so an unused filter column never fails.

        Raises:
            UnknownColumn: If a column name is not a VehicleColumn
        """
        filter_text = filter_text or ""
        resolved_sort = _parse_column(sort_column, "sort column")
        resolved_filter = VehicleColumn.LICENSE_NUMBER
        if filter_text.strip():
            resolved_filter = _parse_column(filter_column, "filter column")
        return cls(
            filter_column=resolved_filter,
            filter_text=filter_text,
            sort_column=resolved_sort,
            sort_ascending=sort_ascending,
        )

    def describe(self) -> str:
        parts = []
        if self.has_filter:
            parts.append(f"Filter: '{self.filter_column.value}'")
        parts.append(f"Sort: '{self.sort_column.value}'")
        parts.append("ASC" if self.sort_ascending else "DESC")
        return " ".join(parts)
