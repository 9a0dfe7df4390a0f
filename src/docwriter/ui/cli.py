# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING, NoReturn

from dotenv import load_dotenv

from docwriter.app import (
    StorageBackend,
    apply_change_set_file,
    init_database,
    parse_key,
    show_document,
)
from docwriter.config import ConfigurationError, configure_logging
from docwriter.domain.errors import ConcurrencyConflictError
from docwriter.domain.model import AutoTransactionBehavior

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_CONFLICT = 3


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        raise ValueError(message)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = _ArgumentParser(description="Persist change sets to a document store")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    apply = subparsers.add_parser("apply", help="Save the entries of a change-set file")
    apply.add_argument("path", help="Path to the JSON change-set file")
    apply.add_argument(
        "--backend",
        choices=[backend.value for backend in StorageBackend],
        default=StorageBackend.SQLALCHEMY.value,
        help="Storage engine to write to (default: %(default)s)",
    )
    apply.add_argument(
        "--auto-transaction",
        choices=[behavior.value for behavior in AutoTransactionBehavior],
        help="Transaction policy (defaults to DOCWRITER_AUTO_TRANSACTION or when_needed)",
    )
    apply.add_argument(
        "--async",
        dest="use_async",
        action="store_true",
        help="Use the asyncio storage client",
    )

    init_db = subparsers.add_parser("init-db", help="Create the document table")
    init_db.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to DOCWRITER_DATABASE_URI or the data dir)",
    )

    show = subparsers.add_parser("show", help="Print a stored document")
    show.add_argument("path", help="Change-set file declaring the entity model")
    show.add_argument("entity_type", help="Name of the document root entity type")
    show.add_argument("key", help="Key value; a JSON object for compound keys")
    show.add_argument(
        "--backend",
        choices=[backend.value for backend in StorageBackend],
        default=StorageBackend.SQLALCHEMY.value,
        help="Storage engine to read from (default: %(default)s)",
    )

    return parser.parse_args(list(argv))


def _run_command(args: argparse.Namespace) -> None:
    match args.command:
        case "apply":
            auto_transaction = (
                AutoTransactionBehavior(args.auto_transaction) if args.auto_transaction else None
            )
            affected = apply_change_set_file(
                args.path,
                backend=StorageBackend(args.backend),
                auto_transaction=auto_transaction,
                use_async=args.use_async,
            )
            print(affected)
        case "init-db":
            init_database(database_uri=args.database_uri)
        case "show":
            document = show_document(
                args.path,
                args.entity_type,
                parse_key(args.key),
                backend=StorageBackend(args.backend),
            )
            print(json.dumps(document, indent=2, default=str))
        case _:
            raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(EXIT_USAGE)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
    try:
        _run_command(parsed_args)
    except ConcurrencyConflictError:
        log.exception("Concurrency conflict while saving changes")
        sys.exit(EXIT_CONFLICT)
    except (ConfigurationError, ValueError):
        log.exception("Invalid input")
        sys.exit(EXIT_USAGE)
    except Exception:
        log.exception("Fatal error while saving changes")
        sys.exit(EXIT_FAILURE)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(130)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
