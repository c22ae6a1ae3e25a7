"""CLI entry point: manage tracked career pages and run refreshes."""

import argparse
import logging
import sys

from job_watch.config import AppConfig, load_config, validate_config
from job_watch.errors import JobWatchError, RefreshInProgressError
from job_watch.models import create_db_engine, create_session_factory, init_db
from job_watch.pipeline import RefreshEngine, RefreshOutcome
from job_watch.utils.logging_config import setup_logging

logger = logging.getLogger("job_watch")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="job-watch",
        description="Track career pages and detect newly posted jobs",
    )
    parser.add_argument(
        "--config", default="config.yaml",
        help="Path to config file (default: config.yaml)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Track a career page and run its first refresh")
    add.add_argument("url")

    refresh = sub.add_parser("refresh", help="Refresh one source, or all of them")
    refresh.add_argument("--source", type=int, help="Source id (default: all sources)")

    sub.add_parser("sources", help="List tracked sources")

    jobs = sub.add_parser("jobs", help="List tracked jobs")
    jobs.add_argument("--source", type=int, help="Only jobs from this source")
    jobs.add_argument("--new", action="store_true", help="Only jobs not yet marked seen")

    mark = sub.add_parser("mark-seen", help="Mark every job of a source as seen")
    mark.add_argument("source_id", type=int)

    exclude = sub.add_parser("exclude", help="Remove a job and never track it again")
    exclude.add_argument("job_id", type=int)

    delete = sub.add_parser("delete", help="Stop tracking a source and drop its history")
    delete.add_argument("source_id", type=int)

    sub.add_parser("stats", help="Print database statistics")
    sub.add_parser("serve", help="Run the daily refresh scheduler in the foreground")

    return parser.parse_args(argv)


def build_engine(config: AppConfig) -> RefreshEngine:
    engine = create_db_engine(config.database_url)
    init_db(engine)
    return RefreshEngine(config, create_session_factory(engine))


def print_outcome(outcome: RefreshOutcome):
    if outcome.status == "ok":
        print(f"Source {outcome.source_id}: {outcome.new_count} new / {outcome.total_count} jobs")
    else:
        print(f"Source {outcome.source_id}: FAILED - {outcome.error}")
    for warning in outcome.warnings:
        print(f"  warning: {warning}")


def print_sources(engine: RefreshEngine):
    sources = engine.list_sources()
    if not sources:
        print("No sources tracked yet. Add one with: job-watch add URL")
        return
    for source in sources:
        checked = source.last_checked_at.strftime("%Y-%m-%d %H:%M") if source.last_checked_at else "never"
        print(f"[{source.id}] {source.url}")
        print(f"    status: {source.last_status}  last checked: {checked}")
        if source.last_error:
            print(f"    error: {source.last_error}")


def print_jobs(engine: RefreshEngine, source_id: int | None, only_new: bool):
    jobs = engine.list_jobs(source_id=source_id, only_new=only_new)
    if not jobs:
        print("No jobs found.")
        return
    for job in jobs:
        marker = "*" if job.is_new else " "
        details = " | ".join(part for part in (job.company, job.location) if part)
        print(f"{marker} [{job.id}] {job.title}" + (f" ({details})" if details else ""))
        print(f"      {job.url}")


def print_stats(engine: RefreshEngine):
    """Print database statistics."""
    stats = engine.get_stats()
    print("\n=== Job Watch Statistics ===")
    print(f"Sources tracked: {stats['total_sources']}")
    print(f"Sources failing: {stats['failed_sources']}")
    print(f"Jobs tracked: {stats['total_jobs']}")
    print(f"New jobs: {stats['new_jobs']}")
    print(f"Excluded jobs: {stats['excluded_jobs']}")
    print(f"Total refresh runs: {stats['total_runs']}")

    if stats.get("last_run"):
        run = stats["last_run"]
        print(f"\nLast run: {run['ran_at']} (source {run['source_id']})")
        print(f"  Status: {run['status']}")
        print(f"  New: {run['new_count']} of {run['total_count']}")
        if run["error"]:
            print(f"  Error: {run['error']}")
    print()


def serve(engine: RefreshEngine, config: AppConfig):
    from job_watch.scheduler import init_scheduler

    if not config.schedule.enabled:
        print("Internal scheduler is disabled (schedule.enabled / ENABLE_INTERNAL_CRON).", file=sys.stderr)
        sys.exit(1)

    scheduler = init_scheduler(engine, config.schedule, blocking=True)
    logger.info("Starting scheduler in the foreground (Ctrl+C to stop)")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped")


def run_command(args: argparse.Namespace, config: AppConfig) -> None:
    engine = build_engine(config)

    if args.command == "add":
        source, outcome = engine.add_source(args.url)
        print(f"Tracking [{source.id}] {source.url}")
        print_outcome(outcome)
        if outcome.status != "ok":
            sys.exit(1)
    elif args.command == "refresh":
        if args.source is not None:
            print_outcome(engine.refresh_source(args.source))
        else:
            outcomes = engine.refresh_all()
            for outcome in outcomes:
                print_outcome(outcome)
            if not outcomes:
                print("No sources tracked yet.")
    elif args.command == "sources":
        print_sources(engine)
    elif args.command == "jobs":
        print_jobs(engine, args.source, args.new)
    elif args.command == "mark-seen":
        count = engine.mark_seen(args.source_id)
        print(f"Marked {count} jobs as seen.")
    elif args.command == "exclude":
        job = engine.exclude_job(args.job_id)
        print(f"Excluded: {job.title} ({job.url})")
    elif args.command == "delete":
        engine.delete_source(args.source_id)
        print(f"Deleted source {args.source_id}.")
    elif args.command == "stats":
        print_stats(engine)
    elif args.command == "serve":
        serve(engine, config)


def main(argv=None):
    args = parse_args(argv)

    # Load config
    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    setup_logging(config.log_dir, stage=config.stage)

    # Validate config and print warnings
    warnings = validate_config(config)
    for w in warnings:
        logger.warning("Config: %s", w)

    try:
        run_command(args, config)
    except RefreshInProgressError as e:
        print(f"Conflict: {e}", file=sys.stderr)
        sys.exit(1)
    except JobWatchError as e:
        logger.error("%s: %s", args.command, e)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
