import math
from dataclasses import dataclass

from ..errors import ValidationError

DEFAULT_PAGE_SIZE = 10

# SQLite LIMIT/OFFSET are signed 64-bit
MAX_WINDOW_VALUE = 2**63 - 1


@dataclass
class PageState:
    """
    Paging cursor for one caller.

    ``page`` and ``page_size`` are chosen by the caller; ``total_item_count``
    and ``page_items`` are written by the query adapter after each fetch. To
    move to another page, derive a new state with ``for_page`` rather than
    editing one that is in use.
    """

    page_size: int = DEFAULT_PAGE_SIZE
    page: int = 1
    total_item_count: int = 0
    page_items: int = 0

    def __post_init__(self) -> None:
        errors = []
        if isinstance(self.page_size, bool) or not isinstance(self.page_size, int) or self.page_size < 1:
            errors.append({"field": "page_size", "message": "must be a positive integer"})
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            errors.append({"field": "page", "message": "must be an integer >= 1"})
        if not errors:
            if self.page_size > MAX_WINDOW_VALUE:
                errors.append({"field": "page_size", "message": f"must be <= {MAX_WINDOW_VALUE}"})
            elif self.skip > MAX_WINDOW_VALUE:
                errors.append({"field": "page", "message": "is too large for the page size"})
        if self.total_item_count < 0:
            errors.append({"field": "total_item_count", "message": "must be >= 0"})
        if errors:
            raise ValidationError(errors)

    @property
    def skip(self) -> int:
        return self.page_size * (self.page - 1)

    @property
    def page_count(self) -> int:
        return math.ceil(self.total_item_count / self.page_size)

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.page_count

    def for_page(self, page: int) -> "PageState":
        """Fresh state for another page of the same size (counts reset)."""
        return PageState(page_size=self.page_size, page=page)

    def next_page(self) -> "PageState":
        return self.for_page(self.page + 1 if self.has_next else self.page)

    def prev_page(self) -> "PageState":
        return self.for_page(self.page - 1 if self.has_prev else 1)

    def refresh_from(self, other: "PageState") -> None:
        """Copy paging data received from the server into this state."""
        self.page_size = other.page_size
        self.page = other.page
        self.total_item_count = other.total_item_count
        self.page_items = other.page_items
