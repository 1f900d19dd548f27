#!/usr/bin/env python3
"""Touchline - Engagement cadence engine.

Single entry point for operators and schedulers.

Usage:
    python run_touchline.py --init-db         # Create or migrate the database
    python run_touchline.py --recompute 42    # Recompute one contact
    python run_touchline.py --show 42         # Show the decision without storing it
    python run_touchline.py --sweep           # Recompute stale contacts (--all for every one)
    python run_touchline.py --alerts          # List upcoming engagements (--digest for HTML)
    python run_touchline.py --status          # Show configuration and schema status
    python run_touchline.py --version         # Show version
"""

import argparse
import sys

from touchline import __version__
from touchline.core.config import get_config, validate_config
from touchline.core.exceptions import TouchlineError
from touchline.core.logging import get_logger, setup_logging


def main(argv=None) -> int:
    """Main entry point for Touchline.

    Returns:
        Exit code (0 = success, non-zero = error)
    """
    parser = argparse.ArgumentParser(description="Touchline - Engagement cadence engine")
    parser.add_argument("--init-db", action="store_true", help="Create or migrate the database")
    parser.add_argument("--recompute", type=int, metavar="ID", help="Recompute one contact")
    parser.add_argument(
        "--show", type=int, metavar="ID", help="Show a contact's cadence decision without storing it"
    )
    parser.add_argument("--sweep", action="store_true", help="Recompute stale contacts")
    parser.add_argument("--all", action="store_true", help="With --sweep, recompute every contact")
    parser.add_argument("--alerts", action="store_true", help="List upcoming engagements")
    parser.add_argument("--digest", action="store_true", help="With --alerts, print the HTML digest")
    parser.add_argument("--status", action="store_true", help="Show status report and exit")
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    if args.version:
        print(f"Touchline v{__version__}")
        return 0

    config = get_config()
    debug = args.debug or config.debug
    setup_logging(log_dir=config.log_path, debug=debug)
    logger = get_logger("main")
    logger.info(f"Touchline v{__version__} starting...")

    issues = validate_config(config)
    for issue in issues:
        if issue.startswith("CRITICAL:"):
            logger.error(f"Configuration: {issue}")
        else:
            logger.warning(f"Configuration issue: {issue}")

    from touchline.db.database import SCHEMA_VERSION, Database

    db = Database()
    try:
        if args.init_db:
            db.initialize()
            print(f"Database ready at {db.db_path} (schema v{db.get_schema_version()})")
            return 0

        version = db.get_schema_version()

        if args.status:
            print(f"\nTouchline v{__version__} - Status\n")
            print(f"  Database:       {db.db_path}")
            print(f"  Schema version: {version} (current: {SCHEMA_VERSION})")
            print(f"  Cadence:        {config.cadence_days} days")
            print(f"  History window: {config.history_window} sends")
            print(f"  Sweep workers:  {config.sweep_workers}")
            if version:
                print(f"  Contacts:       {len(db.list_contact_ids())}")
            if issues:
                print(f"\nConfiguration issues ({len(issues)}):")
                for issue in issues:
                    print(f"  ! {issue}")
            print()
            return 0

        if version == 0:
            print("Database not initialized. Run with --init-db first.", file=sys.stderr)
            return 1

        if any(issue.startswith("CRITICAL:") for issue in issues):
            print("Refusing to run with critical configuration issues.", file=sys.stderr)
            return 1

        if args.recompute is not None:
            return _recompute(db, args.recompute)
        if args.show is not None:
            return _show(db, args.show)
        if args.sweep:
            return _sweep(db, stale_only=not args.all)
        if args.alerts:
            return _alerts(db, digest=args.digest)

        parser.print_help()
        return 0
    except TouchlineError as e:
        logger.error(f"Command failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()


def _recompute(db, contact_id: int) -> int:  # type: ignore[no-untyped-def]
    from touchline.engine.recompute import recompute

    result = recompute(db, contact_id)
    stored = "" if result.skipped is None else f" [not stored: {result.skipped.value}]"
    print(
        f"Contact {contact_id}: next engagement {result.next_engagement_date or '-'} "
        f"({result.decision.rule.value}){stored}"
    )
    return 0


def _show(db, contact_id: int) -> int:  # type: ignore[no-untyped-def]
    from touchline.engine.cadence import evaluate

    decision = evaluate(db, contact_id)
    print(f"Contact {contact_id}")
    print(f"  Rule:          {decision.rule.value}")
    print(f"  Next date:     {decision.next_date or '-'}")
    print(f"  Purpose:       {decision.purpose.value if decision.purpose else '-'}")
    print(f"  Manual:        {'yes' if decision.is_manual_override else 'no'}")
    print(f"  Suppressed:    {'yes' if decision.is_suppressed else 'no'}")
    print(f"  Last send:     {decision.last_send_at.isoformat() if decision.last_send_at else '-'}")
    if decision.manual_follow_up_note:
        print(f"  Note:          {decision.manual_follow_up_note}")
    return 0


def _sweep(db, stale_only: bool) -> int:  # type: ignore[no-untyped-def]
    from touchline.autonomous.sweep import run_sweep

    result = run_sweep(db, stale_only=stale_only)
    print(
        f"Sweep: {result.contacts_checked} checked, {result.contacts_recomputed} recomputed, "
        f"{result.contacts_updated} updated, {result.skipped_schema} not stored, "
        f"{result.skipped_missing} gone"
    )
    for error in result.errors:
        print(f"  ! {error}")
    return 0 if result.success else 2


def _alerts(db, digest: bool) -> int:  # type: ignore[no-untyped-def]
    from touchline.engine.alerts import get_engagement_alerts, group_alerts_by_day, render_alert_digest

    alerts = get_engagement_alerts(db)
    if digest:
        print(render_alert_digest(alerts))
        return 0

    if not alerts:
        print("No upcoming engagements.")
        return 0
    for label, items in group_alerts_by_day(alerts):
        print(f"\n{label}")
        for alert in items:
            print(f"  {alert.due_date}  {alert.name:<30} {alert.purpose_label}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
