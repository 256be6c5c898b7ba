"""In-process transport: each call runs in its own store session.

This stands where an HTTP client would: requests and responses are the API
DTOs, and nothing (session, ORM rows) is shared between calls.
"""

from contextlib import AbstractContextManager
from typing import Any, Callable, Dict, Optional, Union

from sqlalchemy.orm import Session

from ..api import vehicles_api
from ..api.models import (
    BadRequestResponse,
    CreatedResponse,
    LoadForUpdateResponse,
    MutationRequest,
    NotFoundResponse,
    OkResponse,
    QueryRequest,
    QueryResponse,
)
from ..config.loader import GridSettings
from ..database.sqlite_client import session_context

SessionFactory = Callable[[], AbstractContextManager[Session]]


class LocalTransport:
    def __init__(
        self,
        session_factory: SessionFactory,
        settings: Optional[GridSettings] = None,
        acting_user: Optional[str] = None,
    ):
        self._session_factory = session_factory
        self.settings = settings or GridSettings()
        self.acting_user = acting_user

    @classmethod
    def for_sqlite(cls, sqlite_path: str, **kwargs: Any) -> "LocalTransport":
        return cls(lambda: session_context(sqlite_path), **kwargs)

    def query(self, request: QueryRequest) -> Union[QueryResponse, BadRequestResponse]:
        with self._session_factory() as session:
            return vehicles_api.list_vehicles(session, request, self.settings)

    def load_for_update(self, vehicle_id: int) -> Optional[LoadForUpdateResponse]:
        with self._session_factory() as session:
            return vehicles_api.load_vehicle_for_update(session, vehicle_id)

    def create(self, payload: Dict[str, Any]) -> Union[CreatedResponse, BadRequestResponse]:
        with self._session_factory() as session:
            return vehicles_api.create_vehicle(session, payload, acting_user=self.acting_user)

    def update(self, vehicle_id: int, request: MutationRequest) -> vehicles_api.MutationResponse:
        with self._session_factory() as session:
            return vehicles_api.update_vehicle(session, vehicle_id, request, acting_user=self.acting_user)

    def delete(self, vehicle_id: int) -> Union[OkResponse, NotFoundResponse]:
        with self._session_factory() as session:
            return vehicles_api.delete_vehicle(session, vehicle_id, acting_user=self.acting_user)
