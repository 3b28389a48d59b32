#!/usr/bin/env python3
"""vocabsync - add foreign-language words to the vocabulary database."""

import argparse
import json
import sys
from pathlib import Path

import config
from vocabsync.batch_import import run_import
from vocabsync.checkpoint import CheckpointManager
from vocabsync.logger import setup_import_logger, setup_logger
from vocabsync.notion_client import NotionClient, StoreError
from vocabsync.reconciler import Reconciler, ReconciliationFailed
from vocabsync.schema_guard import SchemaGuard
from vocabsync.store_gateway import StoreGateway


def print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def cmd_add(args, logger) -> int:
    reconciler = Reconciler.from_env()
    try:
        result = reconciler.reconcile(args.word, args.hint)
    except ReconciliationFailed as e:
        print_json({"error": e.user_message, **e.to_dict()})
        return 1
    print_json(result.model_dump(mode="json"))
    return 0


def cmd_import(args, logger) -> int:
    csv_path = Path(args.csv)
    setup_import_logger(csv_path)
    checkpoint = CheckpointManager(config.IMPORT_CHECKPOINT)
    if not args.resume:
        checkpoint.reset()

    try:
        summary = run_import(
            csv_path,
            Reconciler.from_env(),
            checkpoint,
            resume=args.resume,
            dry_run=args.dry_run,
        )
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Cannot import {csv_path}: {e}")
        return 1
    print_json(summary.model_dump(mode="json"))
    return 1 if summary.aborted else 0


def cmd_check(args, logger) -> int:
    environment = config.check_environment()
    report = {"environment": environment}
    if all(environment.values()):
        with NotionClient.from_env() as client:
            outcome = SchemaGuard(StoreGateway(client)).ensure()
        report["schema"] = outcome.model_dump()
    print_json(report)
    return 0 if all(environment.values()) and report["schema"]["ok"] else 1


def cmd_show(args, logger) -> int:
    with NotionClient.from_env() as client:
        entry = StoreGateway(client).get_entry(args.entry_id)
    if entry is None:
        logger.error(f"Entry not found: {args.entry_id}")
        return 1
    print_json(entry.model_dump(mode="json"))
    return 0


def cmd_recent(args, logger) -> int:
    with NotionClient.from_env() as client:
        entries = StoreGateway(client).recent_entries(limit=args.limit)
    print_json([entry.model_dump(mode="json") for entry in entries])
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Add foreign-language words to the vocabulary database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Add one word (language detected automatically)
  python main.py add trabalhar

  # Russian input needs the target language
  python main.py add работать --hint pt

  # Import a CSV file with columns word[,hint], resuming after an interruption
  python main.py import words.csv --resume
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", help="Analyze and store one word")
    add.add_argument("word", help="Word as typed")
    add.add_argument("--hint", choices=["pt", "pt-BR", "en"], help="Target language")
    add.set_defaults(handler=cmd_add)

    batch = subparsers.add_parser("import", help="Reconcile every word of a CSV file")
    batch.add_argument("csv", help="CSV file with a 'word' column and an optional 'hint' column")
    batch.add_argument("--resume", action="store_true", help="Resume from checkpoint")
    batch.add_argument(
        "--dry-run",
        action="store_true",
        help=f"Import only {config.DRY_RUN_LIMIT} words for testing",
    )
    batch.set_defaults(handler=cmd_import)

    check = subparsers.add_parser("check", help="Check credentials and database schema")
    check.set_defaults(handler=cmd_check)

    show = subparsers.add_parser("show", help="Print one entry")
    show.add_argument("entry_id")
    show.set_defaults(handler=cmd_show)

    recent = subparsers.add_parser("recent", help="Print the newest entries")
    recent.add_argument("--limit", type=int, default=config.RECENT_ENTRIES_LIMIT)
    recent.set_defaults(handler=cmd_recent)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logger()

    try:
        return args.handler(args, logger)
    except config.MissingEnvironmentError as e:
        logger.error(f"Server configuration error: missing environment variable {e.name}")
        return 1
    except StoreError as e:
        logger.error(f"Vocabulary database error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        if args.command == "import":
            logger.info("Progress has been saved. Use --resume to continue.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
