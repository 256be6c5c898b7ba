"""Vehicles API: grid queries, load-for-update, and token-checked mutations."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from ..concurrency.envelope import ConcurrencyEnvelope
from ..concurrency.protocol import ConflictResolutionProtocol, validate_vehicle
from ..concurrency.tokens import VersionToken
from ..config.loader import GridSettings
from ..database.audit_repo import load_changes, query_audit_for_vehicle
from ..database.vehicle_repo import find_vehicle_by_id, query_changed_since, row_to_record
from ..errors import RecordNotFound, UnknownColumn, ValidationError
from ..grid.columns import build_vehicle_registry
from ..grid.filter_sort import FilterSortSpec
from ..grid.page_state import PageState
from ..grid.query_adapter import QueryAdapter
from ..utils.time import to_utc_iso
from ..vehicles.vehicle_models import VehicleRecord
from .models import (
    AuditEntryDTO,
    BadRequestResponse,
    ConflictResponse,
    CreatedResponse,
    LoadForUpdateResponse,
    MutationRequest,
    NotFoundResponse,
    OkResponse,
    QueryRequest,
    QueryResponse,
    ValidationIssue,
)

_protocol = ConflictResolutionProtocol()

MutationResponse = Union[OkResponse, ConflictResponse, BadRequestResponse, NotFoundResponse]


def _bad_request(errors: List[Dict[str, str]]) -> BadRequestResponse:
    return BadRequestResponse(validation_errors=[ValidationIssue(**e) for e in errors])


def _adapter_for(settings: GridSettings) -> QueryAdapter:
    return QueryAdapter(build_vehicle_registry(case_sensitive=settings.case_sensitive_filter))


def list_vehicles(
    session: Session,
    request: QueryRequest | Dict[str, Any],
    settings: Optional[GridSettings] = None,
) -> Union[QueryResponse, BadRequestResponse]:
    """
    Run a grid query and return one page plus paging totals.

    Args:
        session: SQLAlchemy session
        request: QueryRequest or its payload dict
        settings: Grid settings (defaults if None)

    Returns:
        QueryResponse, or BadRequestResponse for unknown columns and bad paging
    """
    settings = settings or GridSettings()
    try:
        if not isinstance(request, QueryRequest):
            request = QueryRequest.model_validate(request)
    except PydanticValidationError as e:
        return _bad_request(ValidationError.from_pydantic(e).errors)

    page_size = settings.default_page_size if request.page_size is None else request.page_size
    if page_size > settings.max_page_size:
        return _bad_request([{"field": "page_size", "message": f"must be <= {settings.max_page_size}"}])

    try:
        spec = FilterSortSpec.from_names(
            filter_column=request.filter_column,
            filter_text=request.filter_text,
            sort_column=request.sort_column or settings.default_sort_column,
            sort_ascending=request.sort_ascending,
        )
        page_state = PageState(page_size=page_size, page=request.page)
        records = _adapter_for(settings).fetch_and_update_paging(session, spec, page_state)
    except UnknownColumn as e:
        return _bad_request([{"field": e.purpose.replace(" ", "_"), "message": str(e)}])
    except ValidationError as e:
        return _bad_request(e.errors)

    return QueryResponse(
        page=page_state.page,
        page_size=page_state.page_size,
        page_count=page_state.page_count,
        total_item_count=page_state.total_item_count,
        page_items=page_state.page_items,
        records=records,
    )


def get_vehicle(session: Session, vehicle_id: int) -> Optional[VehicleRecord]:
    """Plain read (no token). None if not found."""
    if vehicle_id < 1:
        return None
    row = find_vehicle_by_id(session, vehicle_id)
    return row_to_record(row) if row else None


def load_vehicle_for_update(session: Session, vehicle_id: int) -> Optional[LoadForUpdateResponse]:
    """Snapshot plus the token an update must send back. None if not found."""
    if vehicle_id < 1:
        return None
    loaded = _protocol.load_for_update(session, vehicle_id)
    if loaded is None:
        return None
    record, token = loaded
    return LoadForUpdateResponse(record=record, token=token.hex())


def create_vehicle(
    session: Session,
    payload: Dict[str, Any],
    acting_user: Optional[str] = None,
) -> Union[CreatedResponse, BadRequestResponse]:
    """Validate and store a new vehicle."""
    try:
        record, token = _protocol.create(session, payload, acting_user=acting_user)
    except ValidationError as e:
        return _bad_request(e.errors)
    return CreatedResponse(record=record, token=token.hex())


def update_vehicle(
    session: Session,
    vehicle_id: int,
    request: MutationRequest | Dict[str, Any],
    acting_user: Optional[str] = None,
) -> MutationResponse:
    """
    Submit an edited vehicle with the token it was loaded with.

    Returns:
        OkResponse with the committed token, ConflictResponse carrying the
        server's current vehicle and token, BadRequestResponse, or
        NotFoundResponse
    """
    try:
        if not isinstance(request, MutationRequest):
            request = MutationRequest.model_validate(request)
    except PydanticValidationError as e:
        return _bad_request(ValidationError.from_pydantic(e).errors)

    try:
        token = VersionToken.from_hex(request.token)
    except ValueError as e:
        return _bad_request([{"field": "token", "message": str(e)}])

    try:
        record = validate_vehicle(request.record)
    except ValidationError as e:
        return _bad_request(e.errors)
    if record.id != vehicle_id:
        return _bad_request([{"field": "id", "message": f"does not match path id {vehicle_id}"}])

    try:
        result = _protocol.submit(session, ConcurrencyEnvelope(record, token), acting_user=acting_user)
    except RecordNotFound:
        return NotFoundResponse(record_id=vehicle_id)

    if result.has_conflict:
        return ConflictResponse(
            submitted_record=record,
            server_record=result.server_record,
            new_token=result.new_token.hex(),
        )
    return OkResponse(token=result.committed_token.hex())


def delete_vehicle(
    session: Session,
    vehicle_id: int,
    acting_user: Optional[str] = None,
) -> Union[OkResponse, NotFoundResponse]:
    if vehicle_id >= 1 and _protocol.delete(session, vehicle_id, acting_user=acting_user):
        return OkResponse()
    return NotFoundResponse(record_id=vehicle_id)


def list_audit(session: Session, vehicle_id: int, limit: Optional[int] = None) -> List[AuditEntryDTO]:
    """Audit trail for a vehicle, newest first."""
    rows = query_audit_for_vehicle(session, vehicle_id, limit=limit)
    return [
        AuditEntryDTO(
            vehicle_id=row.vehicle_id,
            event_time_utc=row.event_time_utc,
            user=row.user,
            action=row.action,
            changes=load_changes(row),
        )
        for row in rows
    ]


def list_changed_since(session: Session, since: str) -> Union[List[VehicleRecord], BadRequestResponse]:
    """
    Vehicles written at or after ``since`` (ISO 8601; naive values are UTC).

    Returns:
        Records oldest first, or BadRequestResponse if ``since`` is not an
        ISO 8601 date or timestamp
    """
    try:
        parsed = datetime.fromisoformat(since.strip().replace("Z", "+00:00"))
    except ValueError:
        return _bad_request([{"field": "since", "message": f"not an ISO 8601 date or timestamp: {since!r}"}])
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return query_changed_since(session, to_utc_iso(parsed))
