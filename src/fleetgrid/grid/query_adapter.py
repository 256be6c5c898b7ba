"""Turns a FilterSortSpec and a PageState into store queries."""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..database.vehicle_repo import count_vehicles, query_vehicles
from ..utils.logging import get_logger
from ..vehicles.vehicle_models import VehicleRecord
from .columns import ColumnRegistry, build_vehicle_registry
from .filter_sort import FilterSortSpec
from .page_state import PageState

logger = get_logger(__name__)


class QueryAdapter:
    """
    Filter, sort and page vehicles through a column registry.

    The adapter holds no per-caller state: the FilterSortSpec and PageState
    are passed into every call, and only ``fetch_and_update_paging`` writes to
    the page state. Errors are not retried here: ``UnknownColumn`` and
    ``StoreUnavailable`` reach the caller unchanged.
    """

    def __init__(self, registry: Optional[ColumnRegistry] = None):
        self.registry = registry or build_vehicle_registry()

    def _criterion(self, spec: FilterSortSpec):
        if not spec.has_filter:
            return None
        build = self.registry.resolve_filter(spec.filter_column)
        return build(spec.filter_text)

    def count(self, session: Session, spec: FilterSortSpec) -> int:
        """Number of vehicles matching the filter (sort and paging ignored)."""
        return count_vehicles(session, self._criterion(spec))

    def fetch_page(self, session: Session, spec: FilterSortSpec, page_state: PageState) -> List[VehicleRecord]:
        """
        One page of vehicles: filter, then sort, then the page window.

        Returned records are detached snapshots; changing them does not touch
        the store.
        """
        criterion = self._criterion(spec)
        sort_key = self.registry.resolve_sort(spec.sort_column)
        return query_vehicles(
            session,
            criterion,
            sort_key,
            spec.sort_ascending,
            skip=page_state.skip,
            take=page_state.page_size,
        )

    def fetch_and_update_paging(
        self,
        session: Session,
        spec: FilterSortSpec,
        page_state: PageState,
    ) -> List[VehicleRecord]:
        """
        Count, then fetch the page, and record both in ``page_state``.

        The count and the fetch are separate reads. A writer committing between
        them can leave ``total_item_count`` out of step with the page returned.
        """
        # resolve the sort column before touching the store
        self.registry.resolve_sort(spec.sort_column)

        page_state.total_item_count = self.count(session, spec)
        records = self.fetch_page(session, spec, page_state)
        page_state.page_items = len(records)

        logger.debug(
            f"{spec.describe()} page={page_state.page} size={page_state.page_size} "
            f"total={page_state.total_item_count} items={page_state.page_items}"
        )
        return records
