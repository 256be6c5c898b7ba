"""Request/response DTOs for the API layer.

Tokens travel as hex strings. Records reuse VehicleRecord directly.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ..vehicles.vehicle_models import VehicleRecord


class QueryRequest(BaseModel):
    """Grid query. Column names are validated against the registry, not here."""
    filter_column: str = "license_number"
    filter_text: str = ""
    sort_column: Optional[str] = None  # None = configured default
    sort_ascending: bool = True
    page: int = 1
    page_size: Optional[int] = None  # None = configured default


class QueryResponse(BaseModel):
    page: int
    page_size: int
    page_count: int
    total_item_count: int
    page_items: int
    records: List[VehicleRecord]


class LoadForUpdateResponse(BaseModel):
    record: VehicleRecord
    token: str


class MutationRequest(BaseModel):
    """Edited vehicle (raw payload, validated by the handler) plus its token."""
    record: Dict[str, Any]
    token: str


class ValidationIssue(BaseModel):
    field: str
    message: str


class OkResponse(BaseModel):
    status: Literal["ok"] = "ok"
    token: Optional[str] = None  # token of the committed revision, if any


class CreatedResponse(BaseModel):
    status: Literal["created"] = "created"
    record: VehicleRecord
    token: str


class ConflictResponse(BaseModel):
    status: Literal["conflict"] = "conflict"
    submitted_record: VehicleRecord
    server_record: VehicleRecord
    new_token: str


class BadRequestResponse(BaseModel):
    status: Literal["bad_request"] = "bad_request"
    validation_errors: List[ValidationIssue] = Field(default_factory=list)


class NotFoundResponse(BaseModel):
    status: Literal["not_found"] = "not_found"
    record_id: int


class AuditEntryDTO(BaseModel):
    vehicle_id: int
    event_time_utc: str
    user: str
    action: str
    changes: Dict[str, Any]
