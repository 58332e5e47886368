"""Command line interface for mdpublish.

Subcommands:

- ``index``   -- track markdown files that are not tracked yet.
- ``convert`` -- render tracked documents to HTML.
- ``sync``    -- publish tracked documents to the configured remote.
- ``all``     -- index, convert and sync in one run.

Exit status: 0 on success, 1 when any document failed (unless
``--ignore-errors``), 2 on a configuration error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from dotenv import load_dotenv

from . import __version__
from .config import resolve_remote_config
from .config_loader import DEFAULT_CONFIG_FILE, load_context, save_context
from .context import Context
from .converters import MarkdownConverter, convert_documents
from .exceptions import BatchProcessError, ConfigurationError
from .logger import setup_logging
from .remotes import Remote, create_remote
from .sync import format_sync_report, report_to_json
from .sync.engine import SyncEngine
from .sync.index import index_documents

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DOCUMENT_ERRORS = 1
EXIT_CONFIG_ERROR = 2

# Commands that talk to the remote; its settings are checked before any phase runs.
REMOTE_COMMANDS = ("sync", "all")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdpublish",
        description="Publish markdown documents to a remote content repository",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Track new markdown files under the configured search path
  mdpublish index

  # Preview what a sync would do
  mdpublish sync --dry-run

  # Index, convert and publish using credentials from the environment
  MDPUBLISH_USERNAME=me MDPUBLISH_PASSWORD=secret mdpublish all

  # Publish with a bearer token to a different instance
  mdpublish sync --url https://jive.example.com/api/core/v3 --token abc123
        """,
    )
    parser.add_argument(
        "command",
        choices=["index", "convert", "sync", "all"],
        help="Phase to run",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help=f"Project config file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "--url",
        help="Override remote base URL (takes precedence over MDPUBLISH_URL and the config file)",
    )
    parser.add_argument(
        "--username",
        help="Override remote username (takes precedence over MDPUBLISH_USERNAME)",
    )
    parser.add_argument(
        "--password",
        help="Override remote password (visible in process list -- prefer MDPUBLISH_PASSWORD)",
    )
    parser.add_argument(
        "--token",
        help="Bearer token used instead of username/password",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without calling the remote or saving",
    )
    parser.add_argument(
        "--ignore-errors",
        action="store_true",
        help="Exit 0 even when some documents failed",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log record format (default: text)",
    )
    parser.add_argument(
        "--log-file",
        help="Also append log records to this file",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the sync report as JSON",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"mdpublish version {__version__}",
    )
    return parser


def load_project(args: argparse.Namespace) -> Context:
    """Load the project config and apply connection overrides.

    Raises:
        ConfigurationError: Invalid config file or connection settings.
    """
    context = load_context(args.config)
    context.config.remote = resolve_remote_config(
        context.config.remote,
        url=args.url,
        username=args.username,
        password=args.password,
        token=args.token,
    )
    return context


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------


def cmd_index(
    args: argparse.Namespace, context: Context, remote: Remote | None = None
) -> int:
    summary = index_documents(context)
    if args.dry_run:
        for source_path in summary.indexed:
            print(f"[INDEX] {source_path}")
        return EXIT_OK
    save_context(context)
    print(
        f"Matched {len(summary.matched)} files "
        f"({len(summary.indexed)} indexed, {len(summary.missing)} missing)"
    )
    return EXIT_OK


def cmd_convert(
    args: argparse.Namespace, context: Context, remote: Remote | None = None
) -> int:
    if args.dry_run:
        logger.info("Dry run, skipping conversion")
        return EXIT_OK
    try:
        count = convert_documents(
            context, MarkdownConverter(context.output_path, context)
        )
    finally:
        save_context(context)
    print(f"Converted {count} documents")
    return EXIT_OK


def cmd_sync(
    args: argparse.Namespace, context: Context, remote: Remote | None = None
) -> int:
    """Publish tracked documents.

    *remote* is the adapter already validated by ``main``; one is built
    from the config when it is omitted.
    """
    engine = SyncEngine(context, remote=remote, save=not args.dry_run)
    report = engine.run(dry_run=args.dry_run, raise_on_error=False)

    if args.json:
        print(json.dumps(report_to_json(report), indent=2))
    else:
        print(format_sync_report(report))

    if report.errors and not args.ignore_errors:
        return EXIT_DOCUMENT_ERRORS
    return EXIT_OK


def cmd_all(
    args: argparse.Namespace, context: Context, remote: Remote | None = None
) -> int:
    if remote is None:
        remote = create_remote(context)
    status = cmd_index(args, context)
    try:
        cmd_convert(args, context)
    except BatchProcessError as exc:
        # Documents that failed to convert fail again, per item, in sync.
        logger.warning("%s", exc)
    return max(status, cmd_sync(args, context, remote))


COMMANDS = {
    "index": cmd_index,
    "convert": cmd_convert,
    "sync": cmd_sync,
    "all": cmd_all,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()

    try:
        context = load_project(args)
        remote = create_remote(context) if args.command in REMOTE_COMMANDS else None
    except ConfigurationError as exc:
        setup_logging(debug=args.debug, log_file=args.log_file, debug_format=args.log_format)
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR

    setup_logging(
        debug=args.debug,
        log_file=args.log_file or context.config.logging.file,
        debug_format=args.log_format,
        level=context.config.logging.level,
    )

    try:
        return COMMANDS[args.command](args, context, remote)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR
    except BatchProcessError as exc:
        logger.error("%s", exc)
        return EXIT_OK if args.ignore_errors else EXIT_DOCUMENT_ERRORS


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
