# eventkeeper/cli/retention.py
"""
CLI commands for event lifecycle and retention management.

Usage:
    python -m eventkeeper.cli.retention status
    python -m eventkeeper.cli.retention run --dry-run
    python -m eventkeeper.cli.retention run --confirm
    python -m eventkeeper.cli.retention sync-states
    python -m eventkeeper.cli.retention archive <event-id>
    python -m eventkeeper.cli.retention schedule-deletion <event-id> --grace-days 30
    python -m eventkeeper.cli.retention cancel-deletion <event-id>
    python -m eventkeeper.cli.retention set-retention <event-id> --data-months 12
"""

import argparse
import sys
import uuid

from dotenv import load_dotenv

load_dotenv()


def get_db_session():
    """Get a database session."""
    from eventkeeper.database import SessionLocal

    return SessionLocal()


def get_executor(db):
    from eventkeeper.constants import Initiators
    from eventkeeper.services.retention import RetentionExecutor

    return RetentionExecutor(db, initiated_by=Initiators.CLI)


def print_job_result(result):
    print(f"States synced: {result.states_synced}")
    print(f"Events notified: {result.notifications_sent} ({result.organizers_notified} organizers)")
    print(f"Events archived: {result.events_archived}")
    print(f"Events deleted: {result.events_deleted}")
    print(f"Wall posts deleted: {result.wall_posts_deleted}")

    if result.errors:
        print("\nErrors:")
        for error in result.errors:
            print(f"  - {error['event_id']}: {error['error']}")


def cmd_status(args):
    """Show what the next retention run would do."""
    from eventkeeper.services.retention import preview_retention

    db = get_db_session()
    try:
        preview = preview_retention(db, batch_size=args.batch_size)

        print("\n=== Retention Status ===\n")
        print(f"As of: {preview['as_of']}")
        print(f"\nEvents to mark completed: {preview['would_sync']}")
        print(f"Events to notify: {len(preview['would_notify'])}")
        for event_id in preview["would_notify"]:
            print(f"  {event_id}")
        print(f"Events to archive: {len(preview['would_archive'])}")
        for event_id in preview["would_archive"]:
            print(f"  {event_id}")
        print(f"Events to delete: {len(preview['would_delete'])}")
        for event_id in preview["would_delete"]:
            print(f"  {event_id}")
        print(f"Wall posts to delete: {preview['would_delete_wall_posts']}")
        print()
    finally:
        db.close()


def cmd_run(args):
    """Run the retention job."""
    from eventkeeper.constants import Initiators
    from eventkeeper.services.retention import run_retention_job

    # Safety check
    if not args.dry_run and not args.confirm:
        print("Error: Retention run requires --confirm flag for non-dry-run operations")
        print("Use --dry-run to preview what would be changed")
        sys.exit(1)

    db = get_db_session()
    try:
        print(f"\n{'DRY RUN - ' if args.dry_run else ''}Running retention job...\n")

        result = run_retention_job(
            db,
            batch_size=args.batch_size,
            initiated_by=Initiators.CLI,
            dry_run=args.dry_run,
        )
        print_job_result(result)

        if not result.success:
            sys.exit(1)
    finally:
        db.close()


def cmd_sync_states(args):
    """Persist COMPLETED for events that have ended."""
    from eventkeeper.constants import Initiators
    from eventkeeper.services.retention import sync_event_states

    db = get_db_session()
    try:
        print(f"\n{'DRY RUN - ' if args.dry_run else ''}Syncing event states...\n")

        result = sync_event_states(
            db,
            batch_size=args.batch_size,
            initiated_by=Initiators.CLI,
            dry_run=args.dry_run,
        )
        print(f"States synced: {result.states_synced}")

        if result.errors:
            print("\nErrors:")
            for error in result.errors:
                print(f"  - {error['event_id']}: {error['error']}")
            sys.exit(1)
    finally:
        db.close()


def cmd_archive(args):
    """Archive a completed event now."""
    from eventkeeper.services.retention import EventNotFoundError, RetentionActionError

    db = get_db_session()
    try:
        try:
            archived_at = get_executor(db).archive_event(args.event_id)
        except (EventNotFoundError, RetentionActionError) as e:
            print(f"Error: {e}")
            sys.exit(1)

        print(f"Archived event {args.event_id} at {archived_at.isoformat()}")
    finally:
        db.close()


def cmd_schedule_deletion(args):
    """Schedule permanent deletion of an event."""
    from eventkeeper.services.retention import EventNotFoundError, RetentionActionError

    db = get_db_session()
    try:
        try:
            scheduled_at = get_executor(db).schedule_deletion_after(args.event_id, args.grace_days)
        except (EventNotFoundError, RetentionActionError) as e:
            print(f"Error: {e}")
            sys.exit(1)

        print(f"Event {args.event_id} will be permanently deleted at {scheduled_at.isoformat()}")
    finally:
        db.close()


def cmd_cancel_deletion(args):
    """Cancel a scheduled deletion."""
    from eventkeeper.services.retention import EventNotFoundError

    db = get_db_session()
    try:
        try:
            cancelled = get_executor(db).cancel_scheduled_deletion(args.event_id)
        except EventNotFoundError as e:
            print(f"Error: {e}")
            sys.exit(1)

        if not cancelled:
            print(f"Error: Event {args.event_id} is not scheduled for deletion")
            sys.exit(1)

        print(f"Cancelled scheduled deletion of event {args.event_id}")
    finally:
        db.close()


def cmd_set_retention(args):
    """Update an event's retention settings."""
    from eventkeeper.services.retention import EventNotFoundError, RetentionActionError

    changes = {}
    if args.data_months is not None:
        changes["data_retention_months"] = args.data_months
    if args.clear_wall:
        changes["wall_retention_months"] = None
    elif args.wall_months is not None:
        changes["wall_retention_months"] = args.wall_months

    if not changes:
        print("Error: Provide --data-months, --wall-months or --clear-wall")
        sys.exit(1)

    db = get_db_session()
    try:
        try:
            get_executor(db).update_retention_settings(args.event_id, **changes)
        except (EventNotFoundError, RetentionActionError) as e:
            print(f"Error: {e}")
            sys.exit(1)

        print(f"Updated retention settings for event {args.event_id}:")
        for key, value in changes.items():
            print(f"  {key}: {value}")
    finally:
        db.close()


def main():
    from eventkeeper.config import get_settings
    from eventkeeper.logging_config import configure_logging

    parser = argparse.ArgumentParser(
        description="Eventkeeper Retention Management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check what the next run would do
  python -m eventkeeper.cli.retention status

  # Run the daily job (e.g. from cron)
  python -m eventkeeper.cli.retention run --confirm

  # Keep an event's data for 12 months instead of 24
  python -m eventkeeper.cli.retention set-retention <event-id> --data-months 12

  # Delete an event and all its data in 7 days
  python -m eventkeeper.cli.retention schedule-deletion <event-id> --grace-days 7
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # status command
    status_parser = subparsers.add_parser("status", help="Show what the next run would do")
    status_parser.add_argument("--batch-size", type=int, default=None, help="Rows loaded per query page")
    status_parser.set_defaults(func=cmd_status)

    # run command
    run_parser = subparsers.add_parser("run", help="Run the retention job")
    run_parser.add_argument("--batch-size", type=int, default=None, help="Rows loaded per query page")
    run_parser.add_argument("--dry-run", action="store_true", help="Preview only, don't write")
    run_parser.add_argument("--confirm", action="store_true", help="Confirm run (permanently deletes due events)")
    run_parser.set_defaults(func=cmd_run)

    # sync-states command
    sync_parser = subparsers.add_parser("sync-states", help="Persist COMPLETED for ended events")
    sync_parser.add_argument("--batch-size", type=int, default=None, help="Rows loaded per query page")
    sync_parser.add_argument("--dry-run", action="store_true", help="Preview only, don't write")
    sync_parser.set_defaults(func=cmd_sync_states)

    # archive command
    archive_parser = subparsers.add_parser("archive", help="Archive a completed event now")
    archive_parser.add_argument("event_id", type=uuid.UUID, help="Event id")
    archive_parser.set_defaults(func=cmd_archive)

    # schedule-deletion command
    schedule_parser = subparsers.add_parser("schedule-deletion", help="Schedule permanent deletion")
    schedule_parser.add_argument("event_id", type=uuid.UUID, help="Event id")
    schedule_parser.add_argument("--grace-days", type=int, default=30, help="Days until deletion (default: 30)")
    schedule_parser.set_defaults(func=cmd_schedule_deletion)

    # cancel-deletion command
    cancel_parser = subparsers.add_parser("cancel-deletion", help="Cancel scheduled deletion")
    cancel_parser.add_argument("event_id", type=uuid.UUID, help="Event id")
    cancel_parser.set_defaults(func=cmd_cancel_deletion)

    # set-retention command
    retention_parser = subparsers.add_parser("set-retention", help="Update retention settings")
    retention_parser.add_argument("event_id", type=uuid.UUID, help="Event id")
    retention_parser.add_argument("--data-months", type=int, help="Months to keep event data (1-120)")
    retention_parser.add_argument("--wall-months", type=int, help="Months to keep wall posts (1-120)")
    retention_parser.add_argument("--clear-wall", action="store_true", help="Stop sweeping wall posts")
    retention_parser.set_defaults(func=cmd_set_retention)

    args = parser.parse_args()

    settings = get_settings()
    configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)

    args.func(args)


if __name__ == "__main__":
    main()
