"""
Tests for CSV batch import and its checkpoint.
"""
import json

import pytest

import config
from fakes import FakeAnalysisClient, make_analysis
from vocabsync.analysis_client import AnalysisIncomplete, AnalysisUnavailable
from vocabsync.batch_import import load_import_rows, run_import
from vocabsync.checkpoint import CheckpointManager, item_key
from vocabsync.notion_client import StoreUnavailable
from vocabsync.reconciler import Reconciler

CASA = make_analysis(pos="noun", lemma="casa", translation="дом")


def write_csv(tmp_path, text, name="words.csv"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def checkpoint(tmp_path) -> CheckpointManager:
    return CheckpointManager(tmp_path / "checkpoints" / "import.json")


def reconciler_for(gateway, *results) -> Reconciler:
    return Reconciler(FakeAnalysisClient(*results), gateway)


@pytest.mark.unit
class TestLoadImportRows:
    def test_reads_words_and_hints(self, tmp_path):
        path = write_csv(tmp_path, "word,hint\n trabalhar ,\nдом, pt-BR\n,en\n   ,\nNA,\n")

        rows = load_import_rows(path)

        assert [(row.word, row.hint) for row in rows] == [
            ("trabalhar", None),
            ("дом", "pt-BR"),
            ("NA", None),
        ]

    def test_hint_column_is_optional(self, tmp_path):
        rows = load_import_rows(write_csv(tmp_path, "word\ncasa\nmesa\n"))
        assert [row.hint for row in rows] == [None, None]

    def test_word_column_is_required(self, tmp_path):
        with pytest.raises(ValueError, match="word"):
            load_import_rows(write_csv(tmp_path, "term\ncasa\n"))

    def test_empty_file_is_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="empty"):
            load_import_rows(write_csv(tmp_path, ""))


@pytest.mark.integration
class TestRunImport:
    def test_counts_each_status(self, tmp_path, gateway, checkpoint):
        notion_page = gateway.client.add_page(
            Word="mesa", Key="pt|mesa", Language="Portuguese", Typo="substantivo", Translation=""
        )
        mesa = make_analysis(pos="noun", lemma="mesa", translation="стол")
        path = write_csv(tmp_path, "word\ncasa\nCasa.\nmesa\n")

        summary = run_import(path, reconciler_for(gateway, CASA, CASA, mesa), checkpoint)

        assert summary.total == 3
        assert (summary.added, summary.unchanged, summary.updated) == (1, 1, 1)
        assert summary.failed == 0
        assert not summary.aborted
        assert gateway.client.text(notion_page, "Translation") == "стол"
        assert checkpoint.processed_count == 3

    def test_failures_are_recorded_and_import_continues(self, tmp_path, gateway, checkpoint):
        path = write_csv(tmp_path, "word\nxyzzy\ncasa\n")

        summary = run_import(path, reconciler_for(gateway, AnalysisIncomplete("pos missing"), CASA), checkpoint)

        assert summary.added == 1
        assert summary.failed == 1
        failure = summary.failures[0]
        assert (failure.word, failure.step, failure.error_kind) == ("xyzzy", "analyze", "AnalysisIncomplete")
        assert checkpoint.get_failed_items() == {item_key("xyzzy"): "analyze"}

    def test_ambiguous_rows_fail_without_hint(self, tmp_path, gateway, checkpoint):
        russian = make_analysis(detected_language="ru", lemma="casa", translation="дом")
        path = write_csv(tmp_path, "word,hint\nдом,\nдом,pt\n")

        summary = run_import(path, reconciler_for(gateway, russian), checkpoint)

        assert summary.added == 1
        assert summary.failures[0].error_kind == "AmbiguousLanguageRequiresHint"
        assert summary.failures[0].step == "compute_key"

    def test_consecutive_outages_abort(self, tmp_path, gateway, checkpoint):
        path = write_csv(tmp_path, "word\num\ndois\ntres\nquatro\n")
        reconciler = reconciler_for(gateway, AnalysisUnavailable("down"))

        summary = run_import(path, reconciler, checkpoint)

        assert summary.aborted
        assert summary.failed == 3
        assert len(reconciler.analysis_client.calls) == 3

    def test_store_outages_count_too(self, tmp_path, gateway, checkpoint, sleeps):
        gateway.client.failures = [StoreUnavailable("down")] * 9
        path = write_csv(tmp_path, "word\num\ndois\ntres\nquatro\n")

        summary = run_import(path, reconciler_for(gateway, CASA), checkpoint)

        assert summary.aborted
        assert {failure.step for failure in summary.failures} == {"lookup"}

    def test_other_failures_reset_the_outage_count(self, tmp_path, gateway, checkpoint):
        results = [
            AnalysisUnavailable("down"),
            AnalysisUnavailable("down"),
            AnalysisIncomplete("pos missing"),
            AnalysisUnavailable("down"),
            AnalysisUnavailable("down"),
            CASA,
        ]
        path = write_csv(tmp_path, "word\na\nb\nc\nd\ne\ncasa\n")

        summary = run_import(path, reconciler_for(gateway, *results), checkpoint)

        assert not summary.aborted
        assert summary.failed == 5
        assert summary.added == 1

    def test_resume_skips_processed_rows(self, tmp_path, gateway, checkpoint):
        path = write_csv(tmp_path, "word\ncasa\nmesa\n")
        checkpoint.mark_processed(item_key("casa"), 0, "added")
        reconciler = reconciler_for(gateway, make_analysis(pos="noun", lemma="mesa"))

        summary = run_import(path, reconciler, checkpoint, resume=True)

        assert summary.skipped == 1
        assert summary.added == 1
        assert reconciler.analysis_client.calls == [("mesa", None)]

    def test_dry_run_limits_rows(self, tmp_path, gateway, checkpoint, monkeypatch):
        monkeypatch.setattr(config, "DRY_RUN_LIMIT", 2)
        path = write_csv(tmp_path, "word\num\ndois\ntres\n")

        summary = run_import(path, reconciler_for(gateway, CASA), checkpoint, dry_run=True)

        assert summary.total == 2


@pytest.mark.unit
class TestCheckpoint:
    def test_progress_survives_a_new_manager(self, tmp_path):
        path = tmp_path / "progress.json"
        CheckpointManager(path).mark_processed(item_key("casa", "pt"), 4, "added")

        reloaded = CheckpointManager(path)

        assert reloaded.is_processed("pt|casa")
        assert reloaded.load().last_index == 4
        assert json.loads(path.read_text(encoding="utf-8"))["processed"] == {"pt|casa": "added"}

    def test_success_clears_an_earlier_failure(self, checkpoint):
        checkpoint.mark_failed("|casa", "lookup")
        assert checkpoint.failed_count == 1

        checkpoint.mark_processed("|casa", 0, "added")

        assert checkpoint.failed_count == 0
        assert checkpoint.processed_count == 1

    def test_reset_removes_the_file(self, checkpoint):
        checkpoint.mark_processed("|casa", 0, "added")
        assert checkpoint.checkpoint_path.exists()

        checkpoint.reset()

        assert not checkpoint.checkpoint_path.exists()
        assert checkpoint.processed_count == 0

    def test_item_key_separates_hints(self):
        assert item_key(" дом ", "PT") == "pt|дом"
        assert item_key("дом", "en") != item_key("дом", "pt")
        assert item_key("casa") == "|casa"
