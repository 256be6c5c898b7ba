"""Server side of the optimistic-concurrency write protocol.

A mutation attempt starts as a Proposed envelope (edited snapshot + the token
it was loaded with). The store's compare-and-write decides the outcome:

- Accepted: tokens matched, the new state and a fresh token are committed.
- Rejected: tokens differed, nothing is written, and the envelope comes back
  with the server's current snapshot and token.

Comparison is whole-record: any token mismatch rejects, whatever fields the
edit touched. Reconciling and resubmitting is left to the caller.
"""

from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from ..database.vehicle_repo import (
    create_vehicle,
    delete_vehicle,
    load_vehicle,
    write_if_token_matches,
)
from ..errors import ValidationError
from ..utils.logging import get_logger
from ..vehicles.vehicle_models import FuelLevel, VehicleRecord
from .envelope import ConcurrencyEnvelope
from .outcomes import Accepted
from .tokens import VersionToken

logger = get_logger(__name__)


def validate_vehicle(data: Any) -> VehicleRecord:
    """
    Validate a vehicle payload or re-validate an edited snapshot.

    Raises:
        ValidationError: With one entry per failing field
    """
    if isinstance(data, VehicleRecord):
        data = data.model_dump()
    try:
        return VehicleRecord.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e


class ConflictResolutionProtocol:
    """Commits or rejects mutations; one committed transaction per accepted call."""

    def load_for_update(self, session: Session, vehicle_id: int) -> Optional[Tuple[VehicleRecord, VersionToken]]:
        """Snapshot plus the token an update must present, or None."""
        return load_vehicle(session, vehicle_id)

    def submit(
        self,
        session: Session,
        envelope: ConcurrencyEnvelope,
        acting_user: Optional[str] = None,
    ) -> ConcurrencyEnvelope:
        """
        Run one mutation attempt.

        Args:
            session: SQLAlchemy session (this call commits or rolls it back)
            envelope: Proposed envelope
            acting_user: Opaque user token for audit metadata

        Returns:
            The envelope in state Accepted or Rejected

        Raises:
            ValidationError: If the edited snapshot is invalid or has no id
            RecordNotFound: If the vehicle does not exist
            StoreUnavailable: If the store failed; nothing was committed
        """
        record = validate_vehicle(envelope.submitted_record)
        if record.id is None:
            raise ValidationError([{"field": "id", "message": "required for update"}])

        try:
            outcome = write_if_token_matches(
                session,
                record.id,
                record,
                envelope.token,
                acting_user=acting_user,
            )
            if isinstance(outcome, Accepted):
                session.commit()
            else:
                session.rollback()
        except Exception:
            session.rollback()
            raise

        if isinstance(outcome, Accepted):
            return envelope.accept(outcome.record, outcome.token)
        return envelope.reject(outcome.current_record, outcome.current_token)

    def create(
        self,
        session: Session,
        data: Dict[str, Any] | VehicleRecord,
        acting_user: Optional[str] = None,
    ) -> Tuple[VehicleRecord, VersionToken]:
        """
        Validate and insert a new vehicle. No token is involved.

        New vehicles always start with a full tank.

        Returns:
            (stored snapshot with id, initial token)
        """
        if isinstance(data, VehicleRecord):
            data = data.model_dump()
        payload = dict(data)
        payload["id"] = None
        payload["tank"] = FuelLevel.FULL
        record = validate_vehicle(payload)
        try:
            stored, token = create_vehicle(session, record, acting_user=acting_user)
            session.commit()
        except Exception:
            session.rollback()
            raise
        return stored, token

    def delete(
        self,
        session: Session,
        vehicle_id: int,
        acting_user: Optional[str] = None,
    ) -> bool:
        """Remove a vehicle by id. False means not found, never a conflict."""
        try:
            found = delete_vehicle(session, vehicle_id, acting_user=acting_user)
            if found:
                session.commit()
        except Exception:
            session.rollback()
            raise
        return found
