"""Repository functions for the vehicle audit trail."""

import json
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..database.schema import VehicleAudit
from ..utils.time import utc_now_iso

ANONYMOUS_USER = "anonymous"

ACTION_CREATED = "Created"
ACTION_MODIFIED = "Modified"
ACTION_DELETED = "Deleted"


def diff_values(before: Dict[str, Any], after: Dict[str, Any]) -> Dict[str, List[Any]]:
    """Return {field: [old, new]} for every field whose value changed."""
    changes = {}
    for key in sorted(set(before) | set(after)):
        old = before.get(key)
        new = after.get(key)
        if old != new:
            changes[key] = [old, new]
    return changes


def record_audit(
    session: Session,
    *,
    vehicle_id: int,
    action: str,
    changes: Dict[str, Any],
    acting_user: Optional[str] = None,
    event_time_utc: Optional[str] = None,
) -> VehicleAudit:
    """
    Add an audit row to the current unit of work.

    The row is committed (or rolled back) together with the change it
    describes; this function never commits.

    Args:
        session: SQLAlchemy session
        vehicle_id: Vehicle the change applies to
        action: Created, Modified or Deleted
        changes: Snapshot (create/delete) or field diff (modify)
        acting_user: Opaque user token, "anonymous" if None
        event_time_utc: Optional ISO 8601 timestamp. If None, uses current time.

    Returns:
        The pending VehicleAudit row
    """
    row = VehicleAudit(
        vehicle_id=vehicle_id,
        event_time_utc=event_time_utc or utc_now_iso(),
        user=acting_user or ANONYMOUS_USER,
        action=action,
        changes=json.dumps(changes, sort_keys=True, default=str),
    )
    session.add(row)
    return row


def load_changes(row: VehicleAudit) -> Dict[str, Any]:
    """Load the changes payload from JSON."""
    if not row.changes:
        return {}
    try:
        return json.loads(row.changes)
    except (json.JSONDecodeError, TypeError):
        return {}


def query_audit_for_vehicle(
    session: Session,
    vehicle_id: int,
    limit: Optional[int] = None,
) -> List[VehicleAudit]:
    """Audit rows for one vehicle, newest first."""
    query = session.query(VehicleAudit).filter(VehicleAudit.vehicle_id == vehicle_id)
    query = query.order_by(VehicleAudit.event_time_utc.desc(), VehicleAudit.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()
