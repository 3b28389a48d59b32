"""Batch import: reconcile every word of a CSV file through the engine."""

from pathlib import Path

import pandas as pd
from tqdm import tqdm

import config
from vocabsync.analysis_client import AnalysisUnavailable
from vocabsync.checkpoint import CheckpointManager, item_key
from vocabsync.logger import get_logger
from vocabsync.models import ImportFailure, ImportRow, ImportSummary, ReconcileStatus
from vocabsync.notion_client import StoreUnavailable
from vocabsync.reconciler import Reconciler, ReconciliationFailed

# Stop after this many failures in a row caused by an unreachable service
CONSECUTIVE_FAILURE_THRESHOLD = 3


def load_import_rows(path: Path) -> list[ImportRow]:
    """
    Load words from a CSV file with a ``word`` column and an optional ``hint`` column.

    Blank words are dropped; file order is kept.

    Raises:
        ValueError: If the file is empty or has no ``word`` column
    """
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"{path} is empty") from e
    if "word" not in df.columns:
        raise ValueError(f"{path} has no 'word' column")
    if "hint" not in df.columns:
        df["hint"] = ""

    df["word"] = df["word"].str.strip()
    df["hint"] = df["hint"].str.strip()
    df = df[df["word"] != ""]

    return [
        ImportRow(word=row["word"], hint=row["hint"] or None)
        for _, row in df.iterrows()
    ]


def _is_outage(failure: ReconciliationFailed) -> bool:
    return isinstance(failure.cause, (AnalysisUnavailable, StoreUnavailable))


def run_import(
    csv_path: Path,
    reconciler: Reconciler,
    checkpoint: CheckpointManager,
    resume: bool = False,
    dry_run: bool = False,
) -> ImportSummary:
    """
    Reconcile each row of ``csv_path`` in order.

    Args:
        csv_path: CSV file to import
        reconciler: Engine used for every row
        checkpoint: Progress tracker
        resume: Skip rows the checkpoint already records as processed
        dry_run: If True, only import the first few rows

    Returns:
        ImportSummary with per-status counts and failures
    """
    logger = get_logger()
    logger.info(f"Importing words from {csv_path}...")

    rows = load_import_rows(csv_path)
    logger.info(f"  Loaded {len(rows)} words")

    if dry_run:
        rows = rows[: config.DRY_RUN_LIMIT]
        logger.info(f"  Dry run: importing {len(rows)} words")

    summary = ImportSummary(total=len(rows))
    consecutive_outages = 0

    for i, row in enumerate(tqdm(rows, desc="  Importing")):
        key = item_key(row.word, row.hint)
        if resume and checkpoint.is_processed(key):
            summary.skipped += 1
            continue

        try:
            result = reconciler.reconcile(row.word, row.hint)
        except ReconciliationFailed as e:
            checkpoint.mark_failed(key, e.step.value)
            summary.failures.append(
                ImportFailure(
                    word=row.word,
                    step=e.step.value,
                    error_kind=e.error_kind,
                    message=str(e.cause),
                )
            )
            logger.error(f"  [{i+1}/{len(rows)}] Failed: {row.word} at {e.step.value} ({e.error_kind})")

            if _is_outage(e):
                consecutive_outages += 1
                if consecutive_outages >= CONSECUTIVE_FAILURE_THRESHOLD:
                    logger.error(
                        f"  Stopping after {consecutive_outages} consecutive outages. "
                        "Use --resume to continue later."
                    )
                    summary.aborted = True
                    break
            else:
                consecutive_outages = 0
            continue

        consecutive_outages = 0
        checkpoint.mark_processed(key, i, result.status.value)
        if result.status is ReconcileStatus.ADDED:
            summary.added += 1
        elif result.status is ReconcileStatus.UPDATED:
            summary.updated += 1
        else:
            summary.unchanged += 1
        logger.info(f"  [{i+1}/{len(rows)}] {result.status.value}: {result.dedup_key}")

    logger.info(
        f"  Added: {summary.added}, updated: {summary.updated}, "
        f"unchanged: {summary.unchanged}, skipped: {summary.skipped}, failed: {summary.failed}"
    )
    return summary
