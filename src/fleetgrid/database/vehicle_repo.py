"""Repository for vehicles table operations.

These functions are the store contract the grid and the write protocol rely
on. None of them commit: the caller owns the unit of work.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..concurrency.outcomes import Accepted, Rejected, WriteOutcome
from ..concurrency.tokens import VersionToken, new_version_token
from ..database.audit_repo import (
    ACTION_CREATED,
    ACTION_DELETED,
    ACTION_MODIFIED,
    diff_values,
    record_audit,
)
from ..database.schema import Vehicle
from ..database.sqlite_client import store_errors
from ..errors import RecordNotFound
from ..utils.logging import get_logger
from ..utils.time import utc_now_iso
from ..vehicles.vehicle_models import EDITABLE_FIELDS, FuelLevel, VehicleRecord

logger = get_logger(__name__)


def _snapshot(row: Vehicle) -> Dict[str, Any]:
    values = {name: getattr(row, name) for name in EDITABLE_FIELDS}
    values["id"] = row.id
    values["last_updated"] = row.last_updated
    return values


def row_to_record(row: Vehicle) -> VehicleRecord:
    """Copy an ORM row into a detached VehicleRecord."""
    return VehicleRecord(
        id=row.id,
        license_number=row.license_number,
        brand=row.brand,
        model=row.model,
        registration_date=row.registration_date,
        mileage=row.mileage,
        tank=FuelLevel(row.tank),
        client_id=row.client_id,
        last_updated=row.last_updated,
    )


def count_vehicles(session: Session, criterion=None) -> int:
    """
    Count vehicles matching an optional filter criterion.

    Args:
        session: SQLAlchemy session
        criterion: SQL boolean expression, or None for all vehicles

    Returns:
        Number of matching vehicles
    """
    query = session.query(Vehicle)
    if criterion is not None:
        query = query.filter(criterion)
    with store_errors("count"):
        return query.count()


def query_vehicles(
    session: Session,
    criterion,
    sort_key,
    ascending: bool,
    skip: int,
    take: int,
) -> List[VehicleRecord]:
    """
    Fetch one window of vehicles: filter, then order, then skip/take.

    Equal sort keys are ordered by vehicle id in the same direction, so a
    window is deterministic for a fixed filter and sort while no writer
    intervenes.

    Args:
        session: SQLAlchemy session
        criterion: SQL boolean expression, or None for no filter
        sort_key: Mapped column to order by
        ascending: Sort direction
        skip: Rows to skip (>= 0)
        take: Maximum rows to return (>= 1)

    Returns:
        Detached VehicleRecord snapshots in window order
    """
    if skip < 0:
        raise ValueError(f"skip must be >= 0, got {skip}")
    if take < 1:
        raise ValueError(f"take must be >= 1, got {take}")

    query = session.query(Vehicle)
    if criterion is not None:
        query = query.filter(criterion)

    if ascending:
        query = query.order_by(sort_key.asc(), Vehicle.id.asc())
    else:
        query = query.order_by(sort_key.desc(), Vehicle.id.desc())

    with store_errors("query"):
        rows = query.offset(skip).limit(take).all()
    return [row_to_record(row) for row in rows]


def find_vehicle_by_id(session: Session, vehicle_id: int) -> Optional[Vehicle]:
    """Vehicle row by id, always re-read from the database."""
    with store_errors("load"):
        return (
            session.query(Vehicle)
            .populate_existing()
            .filter(Vehicle.id == vehicle_id)
            .first()
        )


def load_vehicle(session: Session, vehicle_id: int) -> Optional[Tuple[VehicleRecord, VersionToken]]:
    """Snapshot of a vehicle together with its current version token."""
    row = find_vehicle_by_id(session, vehicle_id)
    if row is None:
        return None
    return row_to_record(row), VersionToken(row.row_version)


def get_current_token(session: Session, vehicle_id: int) -> Optional[VersionToken]:
    """Current version token, or None if the vehicle does not exist."""
    with store_errors("token lookup"):
        value = session.query(Vehicle.row_version).filter(Vehicle.id == vehicle_id).scalar()
    return VersionToken(value) if value is not None else None


def create_vehicle(
    session: Session,
    record: VehicleRecord,
    acting_user: Optional[str] = None,
) -> Tuple[VehicleRecord, VersionToken]:
    """
    Insert a vehicle and assign its id and initial token.

    Any id on the incoming record is ignored.

    Returns:
        (stored snapshot, initial token)
    """
    now = utc_now_iso()
    token = new_version_token()

    row = Vehicle(
        **record.editable_values(),
        last_updated=now,
        row_version=token.value,
        created_by=acting_user,
        created_on=now,
        modified_by=acting_user,
        modified_on=now,
    )
    session.add(row)
    with store_errors("create"):
        session.flush()  # assigns id

    record_audit(
        session,
        vehicle_id=row.id,
        action=ACTION_CREATED,
        changes=_snapshot(row),
        acting_user=acting_user,
        event_time_utc=now,
    )
    logger.debug(f"Created vehicle {row.id} ({row.license_number})")
    return row_to_record(row), token


def write_if_token_matches(
    session: Session,
    vehicle_id: int,
    submitted: VehicleRecord,
    expected_token: VersionToken,
    acting_user: Optional[str] = None,
) -> WriteOutcome:
    """
    Compare-and-write: update the vehicle only if its token is still expected.

    The write itself is a single conditional UPDATE keyed on id and token, so
    two writers holding the same token can never both succeed. When the token
    differs nothing is written and the current snapshot is returned instead.

    Args:
        session: SQLAlchemy session
        vehicle_id: Vehicle to update
        submitted: Edited snapshot; only editable fields are written
        expected_token: Token the submitter loaded
        acting_user: Opaque user token for audit metadata

    Returns:
        Accepted(stored record, new token) or Rejected(current record, current token)

    Raises:
        RecordNotFound: If the vehicle does not exist
    """
    row = find_vehicle_by_id(session, vehicle_id)
    if row is None:
        logger.warning(f"Vehicle not found for update: {vehicle_id}")
        raise RecordNotFound(vehicle_id)

    current_token = VersionToken(row.row_version)
    if current_token != expected_token:
        logger.info(f"Rejected stale write to vehicle {vehicle_id}")
        return Rejected(row_to_record(row), current_token)

    before = _snapshot(row)
    now = utc_now_iso()
    new_token = new_version_token()

    stmt = (
        update(Vehicle)
        .where(Vehicle.id == vehicle_id, Vehicle.row_version == expected_token.value)
        .values(
            **submitted.editable_values(),
            last_updated=now,
            row_version=new_token.value,
            modified_by=acting_user,
            modified_on=now,
        )
        .execution_options(synchronize_session=False)
    )
    with store_errors("write"):
        result = session.execute(stmt)

    if result.rowcount != 1:
        # Another writer committed between the read above and the UPDATE.
        row = find_vehicle_by_id(session, vehicle_id)
        if row is None:
            logger.warning(f"Vehicle deleted during update: {vehicle_id}")
            raise RecordNotFound(vehicle_id)
        logger.info(f"Rejected stale write to vehicle {vehicle_id} (lost race)")
        return Rejected(row_to_record(row), VersionToken(row.row_version))

    row = find_vehicle_by_id(session, vehicle_id)
    record_audit(
        session,
        vehicle_id=vehicle_id,
        action=ACTION_MODIFIED,
        changes=diff_values(before, _snapshot(row)),
        acting_user=acting_user,
        event_time_utc=now,
    )
    logger.debug(f"Updated vehicle {vehicle_id}")
    return Accepted(row_to_record(row), new_token)


def delete_vehicle(
    session: Session,
    vehicle_id: int,
    acting_user: Optional[str] = None,
) -> bool:
    """
    Delete a vehicle by id. No token check.

    Returns:
        True if a vehicle was removed, False if none existed
    """
    row = find_vehicle_by_id(session, vehicle_id)
    if row is None:
        logger.warning(f"Vehicle not found for delete: {vehicle_id}")
        return False

    snapshot = _snapshot(row)
    session.delete(row)
    record_audit(
        session,
        vehicle_id=vehicle_id,
        action=ACTION_DELETED,
        changes=snapshot,
        acting_user=acting_user,
    )
    with store_errors("delete"):
        session.flush()
    logger.debug(f"Deleted vehicle {vehicle_id}")
    return True


def query_changed_since(session: Session, since_utc: str) -> List[VehicleRecord]:
    """
    Vehicles written at or after the given timestamp, oldest first.

    Uses ISO 8601 string comparison (timestamps are stored as TEXT with a 'Z'
    suffix, which sorts lexicographically).
    """
    query = (
        session.query(Vehicle)
        .filter(Vehicle.last_updated >= since_utc)
        .order_by(Vehicle.last_updated.asc(), Vehicle.id.asc())
    )
    with store_errors("changed since"):
        rows = query.all()
    return [row_to_record(row) for row in rows]
