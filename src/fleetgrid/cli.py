"""CLI entrypoint for fleetgrid."""

import argparse
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from fleetgrid.api.models import (
    BadRequestResponse,
    ConflictResponse,
    MutationRequest,
    NotFoundResponse,
    QueryRequest,
)
from fleetgrid.api.vehicles_api import (
    delete_vehicle,
    get_vehicle,
    list_audit,
    list_changed_since,
    list_vehicles,
    load_vehicle_for_update,
    update_vehicle,
)
from fleetgrid.config.loader import (
    get_grid_settings,
    get_log_level,
    get_sqlite_path,
    load_config_or_defaults,
)
from fleetgrid.database.sqlite_client import get_engine, session_context
from fleetgrid.runners.seed_fleet import seed_vehicles
from fleetgrid.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def _config(args: argparse.Namespace) -> Dict[str, Any]:
    path = Path(args.config) if getattr(args, "config", None) else None
    return load_config_or_defaults(path)


def _print_bad_request(response: BadRequestResponse) -> None:
    print("Error: request rejected")
    for issue in response.validation_errors:
        print(f"  - {issue.field}: {issue.message}")


def _parse_assignments(pairs: List[str]) -> Dict[str, Any]:
    """Turn ['mileage=1200', 'model=Golf'] into a dict (empty value -> None)."""
    changes: Dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Expected field=value, got: {pair}")
        field, value = pair.split("=", 1)
        changes[field.strip()] = value if value != "" else None
    return changes


def cmd_init(args: argparse.Namespace) -> None:
    """Create the database tables."""
    sqlite_path = get_sqlite_path(_config(args))
    get_engine(sqlite_path)
    print(f"Initialized database at {sqlite_path}")


def cmd_seed(args: argparse.Namespace) -> None:
    """Insert demo vehicles."""
    sqlite_path = get_sqlite_path(_config(args))
    with session_context(sqlite_path) as session:
        count = seed_vehicles(session, args.count, seed=args.seed)
    print(f"Seeded {count} vehicles into {sqlite_path}")


def cmd_list(args: argparse.Namespace) -> None:
    """Show one page of the vehicle grid."""
    config = _config(args)
    settings = get_grid_settings(config)
    request = QueryRequest(
        filter_column=args.filter_column,
        filter_text=args.filter_text or "",
        sort_column=args.sort_column,
        sort_ascending=not args.desc,
        page=args.page,
        page_size=args.page_size,
    )
    with session_context(get_sqlite_path(config)) as session:
        response = list_vehicles(session, request, settings)

    if isinstance(response, BadRequestResponse):
        _print_bad_request(response)
        return

    if args.format == "json":
        print(response.model_dump_json(indent=2))
        return

    print(f"{'ID':<6} {'License':<12} {'Brand':<20} {'Model':<16} {'Mileage':>9} {'Registered':<12}")
    print("-" * 80)
    for v in response.records:
        print(
            f"{v.id:<6} {v.license_number:<12} {v.brand:<20} {(v.model or ''):<16} "
            f"{v.mileage:>9} {(v.registration_date or ''):<12}"
        )
    print(
        f"\nPage {response.page} of {max(response.page_count, 1)} "
        f"({response.page_items} shown, {response.total_item_count} total)"
    )


def cmd_show(args: argparse.Namespace) -> None:
    """Show one vehicle (with its version token when --for-update)."""
    with session_context(get_sqlite_path(_config(args))) as session:
        if args.for_update:
            result = load_vehicle_for_update(session, args.vehicle_id)
        else:
            result = get_vehicle(session, args.vehicle_id)

    if result is None:
        print(f"Vehicle {args.vehicle_id} not found")
        return
    print(result.model_dump_json(indent=2))


def cmd_update(args: argparse.Namespace) -> None:
    """Apply field changes to a vehicle, checked against a version token."""
    changes = _parse_assignments(args.set or [])
    with session_context(get_sqlite_path(_config(args))) as session:
        current = get_vehicle(session, args.vehicle_id)
        if current is None:
            print(f"Vehicle {args.vehicle_id} not found")
            return
        payload = current.model_dump(mode="json")
        payload.update(changes)
        response = update_vehicle(
            session,
            args.vehicle_id,
            MutationRequest(record=payload, token=args.token),
            acting_user=args.user,
        )

    if isinstance(response, ConflictResponse):
        print("Conflict: the vehicle was changed by someone else.")
        print(f"Current token: {response.new_token}")
        print(response.server_record.model_dump_json(indent=2))
    elif isinstance(response, BadRequestResponse):
        _print_bad_request(response)
    elif isinstance(response, NotFoundResponse):
        print(f"Vehicle {args.vehicle_id} not found")
    else:
        print(f"Updated vehicle {args.vehicle_id}. New token: {response.token}")


def cmd_delete(args: argparse.Namespace) -> None:
    """Delete a vehicle by id."""
    with session_context(get_sqlite_path(_config(args))) as session:
        response = delete_vehicle(session, args.vehicle_id, acting_user=args.user)
    if isinstance(response, NotFoundResponse):
        print(f"Vehicle {args.vehicle_id} not found")
    else:
        print(f"Deleted vehicle {args.vehicle_id}")


def cmd_audit(args: argparse.Namespace) -> None:
    """Show the audit trail of a vehicle, newest first."""
    with session_context(get_sqlite_path(_config(args))) as session:
        entries = list_audit(session, args.vehicle_id, limit=args.limit)
    if not entries:
        print(f"No audit entries for vehicle {args.vehicle_id}")
        return
    for entry in entries:
        print(f"{entry.event_time_utc}  {entry.action:<9} {entry.user:<16} {json.dumps(entry.changes, sort_keys=True)}")


def cmd_changed(args: argparse.Namespace) -> None:
    """List vehicles written since a timestamp."""
    with session_context(get_sqlite_path(_config(args))) as session:
        records = list_changed_since(session, args.since)
    if isinstance(records, BadRequestResponse):
        _print_bad_request(records)
        return
    print(json.dumps([r.model_dump(mode="json") for r in records], indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="fleetgrid: paged vehicle grid with optimistic concurrency")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config YAML (default: fleetgrid.config.yaml, built-in defaults if missing)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    init_parser = subparsers.add_parser("init", help="Create database tables")
    init_parser.set_defaults(func=cmd_init)

    seed_parser = subparsers.add_parser("seed", help="Insert demo vehicles")
    seed_parser.add_argument("--count", type=int, default=50, help="Number of vehicles (default: 50)")
    seed_parser.add_argument("--seed", type=int, default=7, help="Random seed (default: 7)")
    seed_parser.set_defaults(func=cmd_seed)

    list_parser = subparsers.add_parser("list", help="Show a page of vehicles")
    list_parser.add_argument("--filter-column", type=str, default="license_number", help="Column to filter on")
    list_parser.add_argument("--filter-text", type=str, default="", help="Substring to match (empty: no filter)")
    list_parser.add_argument("--sort-column", type=str, default=None, help="Column to sort by")
    list_parser.add_argument("--desc", action="store_true", help="Sort descending")
    list_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    list_parser.add_argument("--page-size", type=int, default=None, help="Page size (default: from config)")
    list_parser.add_argument(
        "--format",
        type=str,
        choices=["table", "json"],
        default="table",
        help="Output format: table or json (default: table)",
    )
    list_parser.set_defaults(func=cmd_list)

    show_parser = subparsers.add_parser("show", help="Show one vehicle")
    show_parser.add_argument("vehicle_id", type=int)
    show_parser.add_argument("--for-update", action="store_true", help="Include the version token")
    show_parser.set_defaults(func=cmd_show)

    update_parser = subparsers.add_parser("update", help="Update a vehicle (token-checked)")
    update_parser.add_argument("vehicle_id", type=int)
    update_parser.add_argument("--token", type=str, required=True, help="Version token from 'show --for-update'")
    update_parser.add_argument("--set", action="append", metavar="FIELD=VALUE", help="Field change (repeatable)")
    update_parser.add_argument("--user", type=str, default=None, help="Acting user recorded in the audit trail")
    update_parser.set_defaults(func=cmd_update)

    delete_parser = subparsers.add_parser("delete", help="Delete a vehicle")
    delete_parser.add_argument("vehicle_id", type=int)
    delete_parser.add_argument("--user", type=str, default=None, help="Acting user recorded in the audit trail")
    delete_parser.set_defaults(func=cmd_delete)

    audit_parser = subparsers.add_parser("audit", help="Show a vehicle's audit trail")
    audit_parser.add_argument("vehicle_id", type=int)
    audit_parser.add_argument("--limit", type=int, default=None, help="Maximum entries")
    audit_parser.set_defaults(func=cmd_audit)

    changed_parser = subparsers.add_parser("changed", help="List vehicles changed since a time")
    changed_parser.add_argument("--since", type=str, required=True, help="ISO 8601 date or timestamp")
    changed_parser.set_defaults(func=cmd_changed)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    configure_logging(get_log_level(_config(args)))

    try:
        args.func(args)
    except Exception as e:
        logger.error(f"Error running command '{args.command}': {e}", exc_info=True)
        raise


if __name__ == "__main__":
    main()
