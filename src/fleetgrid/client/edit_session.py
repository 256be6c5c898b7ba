"""Client-side unit of work for editing one vehicle against a stale snapshot."""

from typing import Any, Optional

from ..api.models import (
    BadRequestResponse,
    ConflictResponse,
    MutationRequest,
    NotFoundResponse,
    QueryRequest,
    QueryResponse,
)
from ..concurrency.tokens import VersionToken
from ..errors import RecordNotFound, ValidationError
from ..grid.filter_sort import FilterSortSpec
from ..grid.page_state import PageState
from ..utils.logging import get_logger
from ..vehicles.vehicle_models import VehicleRecord

logger = get_logger(__name__)


class VehicleEditSession:
    """
    Holds the vehicle being edited and the token it was loaded with.

    ``commit`` never overwrites a newer server version. On a conflict the
    session keeps the server's vehicle in ``database_vehicle`` and adopts its
    token, so the caller can look at both versions and then either reload or
    call ``commit`` again to override deliberately.
    """

    def __init__(self, transport: Any):
        self._transport = transport
        self.original_vehicle: Optional[VehicleRecord] = None
        self.database_vehicle: Optional[VehicleRecord] = None
        self.token: Optional[VersionToken] = None

    @property
    def has_concurrency_conflict(self) -> bool:
        return self.database_vehicle is not None

    def load(self, vehicle_id: int) -> Optional[VehicleRecord]:
        """Load a vehicle for update. Returns None if it does not exist."""
        self.original_vehicle = None
        self.database_vehicle = None
        self.token = None

        response = self._transport.load_for_update(vehicle_id)
        if response is None:
            return None
        self.original_vehicle = response.record
        self.token = VersionToken.from_hex(response.token)
        return self.original_vehicle

    def commit(self, edited: VehicleRecord) -> bool:
        """
        Submit ``edited`` with the token currently held.

        Returns:
            True if committed, False on a concurrency conflict

        Raises:
            ValidationError: If the server rejected the payload
            RecordNotFound: If the vehicle was deleted meanwhile
        """
        if self.token is None:
            raise RuntimeError("Nothing loaded: call load() first")

        request = MutationRequest(record=edited.model_dump(mode="json"), token=self.token.hex())
        response = self._transport.update(edited.id, request)

        if isinstance(response, ConflictResponse):
            logger.info(f"Conflict committing vehicle {edited.id}; server version kept for review")
            self.database_vehicle = response.server_record
            self.token = VersionToken.from_hex(response.new_token)
            return False
        if isinstance(response, BadRequestResponse):
            raise ValidationError([issue.model_dump() for issue in response.validation_errors])
        if isinstance(response, NotFoundResponse):
            raise RecordNotFound(response.record_id)

        self.original_vehicle = edited
        self.database_vehicle = None
        if response.token:
            self.token = VersionToken.from_hex(response.token)
        return True


def fetch_grid_page(transport: Any, spec: FilterSortSpec, page_state: PageState) -> list[VehicleRecord]:
    """
    Query a page through the transport and refresh ``page_state`` from the reply.

    Raises:
        ValidationError: If the server rejected the query
    """
    request = QueryRequest(
        filter_column=spec.filter_column.value,
        filter_text=spec.filter_text,
        sort_column=spec.sort_column.value,
        sort_ascending=spec.sort_ascending,
        page=page_state.page,
        page_size=page_state.page_size,
    )
    response = transport.query(request)
    if not isinstance(response, QueryResponse):
        raise ValidationError([issue.model_dump() for issue in response.validation_errors])

    page_state.refresh_from(
        PageState(
            page_size=response.page_size,
            page=response.page,
            total_item_count=response.total_item_count,
            page_items=response.page_items,
        )
    )
    return response.records
