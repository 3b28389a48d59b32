"""Vocabulary entry reconciliation: analyze a word and merge it into the store exactly once."""

import logging
import threading
import uuid
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional

import config
from vocabsync.analysis_client import (
    AnalysisClient,
    AnalysisMalformed,
    AnalysisIncomplete,
    AnalysisRequestError,
    AnalysisUnavailable,
)
from vocabsync.logger import format_event, get_logger
from vocabsync.models import (
    DetectedLanguage,
    Language,
    LexicalAnalysis,
    PartOfSpeech,
    ReconcileStatus,
    ReconciliationResult,
)
from vocabsync.normalizer import build_key, normalize
from vocabsync.notion_client import (
    NotionClient,
    StoreNotFound,
    StoreRequestError,
    StoreUnavailable,
)
from vocabsync.schema_guard import SchemaGuard
from vocabsync.store_gateway import DataCorruption, SchemaMismatch, StoreGateway


class Step(str, Enum):
    START = "start"
    ANALYZE = "analyze"
    COMPUTE_KEY = "compute_key"
    LOOKUP = "lookup"
    WRITE_DECISION = "write_decision"
    WRITE_APPLY = "write_apply"
    DONE = "done"


class WriteAction(str, Enum):
    CREATE = "create"
    FILL = "fill"


class ReconciliationError(Exception):
    """Base class for reconciliation errors."""

    pass


class InvalidInput(ReconciliationError):
    """Raised when the headword or language hint is unusable."""

    pass


class AmbiguousLanguageRequiresHint(ReconciliationError):
    """Raised when a Russian word arrives without a target language."""

    pass


class ReconciliationFailed(ReconciliationError):
    """A failure tagged with the pipeline step it occurred in."""

    def __init__(self, step: Step, cause: BaseException):
        self.step = step
        self.cause = cause
        super().__init__(f"Reconciliation failed at step {step.value!r}: {self.error_kind}: {cause}")

    @property
    def error_kind(self) -> str:
        return type(self.cause).__name__

    @property
    def user_message(self) -> str:
        return describe_failure(self)

    def to_dict(self) -> dict[str, str]:
        return {
            "step": self.step.value,
            "error_kind": self.error_kind,
            "message": str(self.cause),
        }


def describe_failure(failure: ReconciliationFailed) -> str:
    """Turn a tagged failure into a message fit for the person adding the word."""
    cause = failure.cause
    if isinstance(cause, InvalidInput):
        return str(cause)
    if isinstance(cause, AmbiguousLanguageRequiresHint):
        return "This word looks Russian. Choose Portuguese or English as the target language and try again."
    if isinstance(cause, AnalysisUnavailable):
        return "Network error: unable to reach the analysis service. Please try again in a moment."
    if isinstance(cause, (AnalysisMalformed, AnalysisIncomplete)):
        return "The word could not be analyzed. Please check the spelling and try again."
    if isinstance(cause, AnalysisRequestError):
        return "The analysis service rejected the request. Please check the API key and quota."
    if isinstance(cause, StoreUnavailable):
        return "Network error: unable to reach the vocabulary database. Please try again in a moment."
    if isinstance(cause, DataCorruption):
        return f"Several entries share the key {cause.dedup_key!r}. Merge them in the database and try again."
    if isinstance(cause, SchemaMismatch):
        return f"The vocabulary database is missing the property {cause.missing_property!r}."
    if isinstance(cause, StoreNotFound):
        return "Vocabulary database not found. Please check the database ID."
    if isinstance(cause, StoreRequestError):
        if cause.status == 401:
            return "Authentication error: please check the Notion token."
        if cause.status == 429:
            return "Rate limit exceeded. Please wait a moment and try again."
        return "The vocabulary database rejected the update."
    if isinstance(cause, config.MissingEnvironmentError):
        return f"Server configuration error: missing environment variable {cause.name}."
    return f"Internal error while adding the word (step {failure.step.value})."


LANGUAGE_HINT_ALIASES = {
    "pt": Language.PORTUGUESE,
    "pt-br": Language.PORTUGUESE,
    "en": Language.ENGLISH,
}


def parse_language_hint(hint: object) -> Optional[Language]:
    """
    Accept a hint as a Language, a code ("pt", "en") or the "pt-BR" learning-language value.

    Raises:
        InvalidInput: For anything else
    """
    if hint is None or isinstance(hint, Language):
        return hint
    if not isinstance(hint, str):
        raise InvalidInput(f"Language hint must be a string, got {type(hint).__name__}")
    if not hint.strip():
        return None
    language = LANGUAGE_HINT_ALIASES.get(hint.strip().lower())
    if language is None:
        raise InvalidInput(f"Unsupported language hint {hint!r}; use 'pt' or 'en'")
    return language


def resolve_language(analysis: LexicalAnalysis, hint: Optional[Language]) -> Language:
    """
    Decide which language the entry belongs to.

    A directly supported detected language wins over the hint. Russian input
    only says what the learner's own language is, so the hint is mandatory.
    """
    if analysis.detected_language is DetectedLanguage.RUSSIAN:
        if hint is None:
            raise AmbiguousLanguageRequiresHint(
                "Russian input needs a target language (pt or en)"
            )
        return hint
    return Language(analysis.detected_language.value)


def choose_headword(analysis: LexicalAnalysis, original_input: str) -> str:
    """Infinitive for verbs, else lemma, else what the user typed."""
    infinitive = analysis.normalized.infinitive.strip()
    lemma = analysis.normalized.lemma.strip()
    if analysis.part_of_speech is PartOfSpeech.VERB and infinitive:
        return infinitive
    if lemma:
        return lemma
    return original_input


class KeyedLock:
    """In-process mutual exclusion per dedup key."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # key -> [lock, holders]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class Reconciler:
    """
    Runs one word through analyze -> compute key -> lookup -> write.

    Existing entries are only ever filled, never overwritten. Lookup and
    write for the same key are serialized within this process; two processes
    writing the same new word can still both create it.
    """

    def __init__(
        self,
        analysis_client: AnalysisClient,
        gateway: StoreGateway,
        schema_guard: Optional[SchemaGuard] = None,
        key_locks: Optional[KeyedLock] = None,
    ):
        self.analysis_client = analysis_client
        self.gateway = gateway
        self.schema_guard = schema_guard
        self.key_locks = key_locks if key_locks is not None else KeyedLock()
        self.logger = get_logger()

    @classmethod
    def from_env(cls) -> "Reconciler":
        """Wire the engine to the services named by environment variables."""
        gateway = StoreGateway(NotionClient.from_env())
        return cls(
            analysis_client=AnalysisClient.from_env(),
            gateway=gateway,
            schema_guard=SchemaGuard(gateway),
        )

    def _log(self, message: str, **meta) -> None:
        self.logger.info(format_event("RECONCILE", message, **meta))

    def reconcile(self, headword: object, language_hint: object = None) -> ReconciliationResult:
        """
        Analyze ``headword`` and create or fill its vocabulary entry.

        Args:
            headword: The word as typed
            language_hint: Target language ("pt" or "en"); required for Russian input

        Returns:
            ReconciliationResult with status added, updated or unchanged

        Raises:
            ReconciliationFailed: Wrapping the original error with the step it occurred in
        """
        trace_id = uuid.uuid4().hex
        step = Step.START
        try:
            if not isinstance(headword, str) or not headword.strip():
                raise InvalidInput("Word is required")
            original_input = headword.strip()
            hint = parse_language_hint(language_hint)
            self._log(
                "Start",
                trace_id=trace_id,
                word=original_input,
                hint=hint.value if hint else None,
            )
            if self.schema_guard is not None:
                self.schema_guard.ensure()

            step = Step.ANALYZE
            analysis = self.analysis_client.analyze(original_input, hint)
            self._log(
                "Analysis",
                trace_id=trace_id,
                detected_language=analysis.detected_language.value,
                pos=analysis.part_of_speech.value,
                lemma=analysis.normalized.lemma,
                infinitive=analysis.normalized.infinitive,
                confidence=analysis.confidence,
            )

            step = Step.COMPUTE_KEY
            final_language = resolve_language(analysis, hint)
            final_headword = choose_headword(analysis, original_input)
            dedup_key = build_key(final_language, final_headword)
            self._log(
                "Compute dedupKey",
                trace_id=trace_id,
                final_language=final_language.value,
                final_headword=final_headword,
                corrected=final_headword.lower() != original_input.lower(),
                dedup_key=dedup_key,
            )

            with self.key_locks.hold(dedup_key):
                step = Step.LOOKUP
                existing = self.gateway.find_by_key(dedup_key)
                if existing is None:
                    existing = self.gateway.find_by_fallback(final_language, normalize(final_headword))
                self._log(
                    "Lookup",
                    trace_id=trace_id,
                    dedup_key=dedup_key,
                    found=existing is not None,
                    entry_id=existing.id if existing else None,
                )

                step = Step.WRITE_DECISION
                action = WriteAction.CREATE if existing is None else WriteAction.FILL

                step = Step.WRITE_APPLY
                updated_fields: list[str] = []
                if action is WriteAction.CREATE:
                    entry_id = self.gateway.create(dedup_key, final_headword, final_language, analysis)
                    status = ReconcileStatus.ADDED
                    message = "Word added"
                else:
                    entry_id = existing.id
                    updated_fields = self.gateway.fill_empty_fields(
                        entry_id,
                        final_language,
                        analysis,
                        dedup_key=dedup_key,
                        headword=final_headword,
                    )
                    if updated_fields:
                        status = ReconcileStatus.UPDATED
                        message = "Word exists, missing fields were updated"
                    else:
                        status = ReconcileStatus.UNCHANGED
                        message = "Word already exists"

            step = Step.DONE
            result = ReconciliationResult(
                status=status,
                dedup_key=dedup_key,
                final_headword=final_headword,
                final_language=final_language,
                part_of_speech=analysis.part_of_speech,
                entry_id=entry_id,
                updated_fields=updated_fields,
                message=message,
            )
            self._log(
                "Success",
                trace_id=trace_id,
                action=action.value,
                status=status.value,
                dedup_key=dedup_key,
                entry_id=entry_id,
                updated_fields=updated_fields or None,
            )
            return result

        except Exception as e:
            failure = ReconciliationFailed(step, e)
            level = logging.CRITICAL if isinstance(e, DataCorruption) else logging.ERROR
            self.logger.log(
                level,
                format_event(
                    "RECONCILE",
                    f"Error at step {step.value!r}",
                    trace_id=trace_id,
                    error_kind=failure.error_kind,
                    error=str(e)[:500],
                )
            )
            raise failure from e
