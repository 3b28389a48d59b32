"""Typed gateway over the Notion vocabulary database.

The database offers no uniqueness constraint, so the dedup key lives in a
plain rich-text property and the gateway enforces "one entry per key" by
lookup. Every call to the store goes through the retry envelope.
"""

from typing import Any, Callable, Optional, TypeVar

import config
from vocabsync import properties as props
from vocabsync.logger import get_logger
from vocabsync.models import Language, LexicalAnalysis, PartOfSpeech, VocabularyEntry
from vocabsync.normalizer import normalize
from vocabsync.notion_client import (
    NotionClient,
    StoreError,
    StoreNotFound,
    is_transient_store_error,
)
from vocabsync.properties import SlotKind
from vocabsync.retry import RetryPolicy

T = TypeVar("T")

# Property names in the vocabulary database
WORD = "Word"
KEY = "Key"
TRANSLATION = "Translation"
CONTEXT = "Context"
LANGUAGE = "Language"
TYPO = "Typo"
LEARNED = "Learned"
DECKS = "Decks"

# Conjugation cell name -> (tense, person) in VerbConjugation
CONJUGATION_CELLS = {
    "Eu": ("presente", "eu"),
    "Voce": ("presente", "voce"),
    "ele/ela": ("presente", "ele_ela"),
    "eles/elas": ("presente", "eles_elas"),
    "Nos": ("presente", "nos"),
    "Perfeito_eu": ("preterito_perfeito", "eu"),
    "Perfeito_voce": ("preterito_perfeito", "voce"),
    "Perfeito_ele/ela": ("preterito_perfeito", "ele_ela"),
    "Perfeito_eles/elas": ("preterito_perfeito", "eles_elas"),
    "Perfeito_nos": ("preterito_perfeito", "nos"),
    "Imperfeito_eu": ("preterito_imperfeito", "eu"),
    "Imperfeito_voce": ("preterito_imperfeito", "voce"),
    "Imperfeito_ele/ela": ("preterito_imperfeito", "ele_ela"),
    "Imperfeito_eles/elas": ("preterito_imperfeito", "eles_elas"),
    "Imperfeito_nos": ("preterito_imperfeito", "nos"),
}

REQUIRED_PROPERTIES = {
    WORD: SlotKind.TITLE,
    TRANSLATION: SlotKind.RICH_TEXT,
    TYPO: SlotKind.SELECT,
    LANGUAGE: SlotKind.SELECT,
    KEY: SlotKind.RICH_TEXT,
    "Voce": SlotKind.RICH_TEXT,
    "ele/ela": SlotKind.RICH_TEXT,
    "eles/elas": SlotKind.RICH_TEXT,
    "Nos": SlotKind.RICH_TEXT,
}


class SchemaMismatch(StoreError):
    """Raised when the database lacks a property the engine writes."""

    def __init__(self, missing_property: str, missing: list[str] | None = None):
        self.missing_property = missing_property
        self.missing = missing or [missing_property]
        super().__init__(
            f"Database schema is missing required properties: {', '.join(self.missing)}"
        )


class DataCorruption(StoreError):
    """Raised when more than one entry carries the same dedup key."""

    def __init__(self, dedup_key: str, count: int = 2):
        self.dedup_key = dedup_key
        self.count = count
        super().__init__(
            f"Multiple records found with key {dedup_key!r} ({count}). Data corruption detected."
        )


def is_conjugated(language: Language, part_of_speech: Optional[PartOfSpeech]) -> bool:
    """Only Portuguese verbs carry conjugation cells."""
    return language is Language.PORTUGUESE and part_of_speech is PartOfSpeech.VERB


def conjugation_values(analysis: LexicalAnalysis) -> dict[str, str]:
    """Flatten the analysis' verb block into non-empty cell values."""
    values = {}
    if analysis.verb is None:
        return values
    for cell, (tense, person) in CONJUGATION_CELLS.items():
        forms = getattr(analysis.verb, tense)
        value = (getattr(forms, person) or "").strip() if forms else ""
        if value:
            values[cell] = value
    return values


def _live_pages(response: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        page
        for page in response.get("results") or []
        if not page.get("archived") and not page.get("in_trash")
    ]


def entry_from_page(page: dict[str, Any]) -> VocabularyEntry:
    """Map a store page onto a VocabularyEntry."""
    values = page.get("properties") or {}
    cells = {}
    for cell in CONJUGATION_CELLS:
        text = props.plain_text(values.get(cell))
        if text:
            cells[cell] = text
    return VocabularyEntry(
        id=page["id"],
        headword=props.plain_text(values.get(WORD)),
        dedup_key=props.plain_text(values.get(KEY)),
        language=Language.from_display_name(props.select_name(values.get(LANGUAGE))),
        part_of_speech=PartOfSpeech.from_display_name(props.select_name(values.get(TYPO))),
        translation=props.plain_text(values.get(TRANSLATION)),
        context=props.plain_text(values.get(CONTEXT)),
        conjugation_cells=cells,
        learned=props.checkbox_value(values.get(LEARNED)),
        decks=props.multi_select_names(values.get(DECKS)),
    )


class StoreGateway:
    """Lookup and write operations on vocabulary entries."""

    def __init__(
        self,
        client: NotionClient,
        retry: Optional[RetryPolicy] = None,
        fallback_page_size: int = config.FALLBACK_SCAN_PAGE_SIZE,
    ):
        self.client = client
        self.retry = retry or RetryPolicy()
        self.fallback_page_size = fallback_page_size
        # Property name -> slot kind, known once validate_schema has run
        self.schema: Optional[dict[str, Optional[SlotKind]]] = None
        self.logger = get_logger()

    def _call(self, op: Callable[[], T]) -> T:
        return self.retry.call(op, is_transient_store_error)

    def _writable(self, name: str) -> bool:
        if name in REQUIRED_PROPERTIES:
            return True
        return self.schema is not None and self.schema.get(name) is SlotKind.RICH_TEXT

    def validate_schema(self) -> None:
        """
        Check the database exposes every required property with the right type.

        Raises:
            SchemaMismatch: If any required property is missing or mistyped
        """
        database = self._call(self.client.retrieve_database)
        schema = {
            name: props.slot_kind(definition)
            for name, definition in (database.get("properties") or {}).items()
        }
        self.schema = schema

        missing = [
            name for name, kind in REQUIRED_PROPERTIES.items() if schema.get(name) is not kind
        ]
        if missing:
            raise SchemaMismatch(missing[0], missing)
        self.logger.debug(f"Schema validated: {len(schema)} properties")

    def find_by_key(self, dedup_key: str) -> Optional[VocabularyEntry]:
        """
        Find the entry carrying ``dedup_key``.

        Raises:
            DataCorruption: If more than one entry carries the key
        """
        response = self._call(
            lambda: self.client.query_database(
                filter={"property": KEY, "rich_text": {"equals": dedup_key}},
                page_size=2,
            )
        )
        pages = _live_pages(response)
        if len(pages) > 1:
            raise DataCorruption(dedup_key, len(pages))
        return entry_from_page(pages[0]) if pages else None

    def find_by_fallback(
        self, language: Language, normalized_headword: str
    ) -> Optional[VocabularyEntry]:
        """
        Scan entries of ``language`` for a headword that normalizes to the same form.

        Covers legacy entries whose Key property was never populated or was
        written with an older normalization. Only the oldest
        ``fallback_page_size`` entries are scanned.
        """
        response = self._call(
            lambda: self.client.query_database(
                filter={"property": LANGUAGE, "select": {"equals": language.display_name}},
                sorts=[{"timestamp": "created_time", "direction": "ascending"}],
                page_size=self.fallback_page_size,
            )
        )
        target = normalize(normalized_headword)
        for page in _live_pages(response):
            headword = props.plain_text((page.get("properties") or {}).get(WORD))
            if normalize(headword) == target:
                return entry_from_page(page)

        if response.get("has_more"):
            self.logger.debug(
                f"Fallback scan for {target!r} stopped after {self.fallback_page_size} entries"
            )
        return None

    def create(
        self,
        dedup_key: str,
        headword: str,
        language: Language,
        analysis: LexicalAnalysis,
    ) -> str:
        """
        Create a new entry with the full property set.

        Returns:
            The new entry's id
        """
        properties = {
            WORD: props.title(headword),
            KEY: props.rich_text(dedup_key),
            LANGUAGE: props.select(language.display_name),
            TYPO: props.select(analysis.part_of_speech.display_name),
            TRANSLATION: props.rich_text(analysis.translation.strip()),
        }
        if is_conjugated(language, analysis.part_of_speech):
            for cell, value in conjugation_values(analysis).items():
                if self._writable(cell):
                    properties[cell] = props.rich_text(value)

        page = self._call(lambda: self.client.create_page(properties))
        return page["id"]

    def fill_empty_fields(
        self,
        entry_id: str,
        language: Language,
        analysis: LexicalAnalysis,
        dedup_key: str | None = None,
        headword: str | None = None,
    ) -> list[str]:
        """
        Write analysis values into the entry's empty fields only.

        Populated fields are never touched, neither are Learned and Decks. No
        write is issued when nothing is empty.

        Args:
            entry_id: Entry to fill
            language: Language the entry belongs to
            analysis: Source of candidate values
            dedup_key: Candidate for an empty Key property (legacy entries)
            headword: Candidate for an empty Word property

        Returns:
            Names of the fields written, in write order
        """
        page = self._call(lambda: self.client.retrieve_page(entry_id))
        current = page.get("properties") or {}

        candidates: dict[str, dict[str, Any]] = {}
        if headword and headword.strip():
            candidates[WORD] = props.title(headword.strip())
        if dedup_key:
            candidates[KEY] = props.rich_text(dedup_key)
        candidates[LANGUAGE] = props.select(language.display_name)
        candidates[TYPO] = props.select(analysis.part_of_speech.display_name)
        if analysis.translation.strip():
            candidates[TRANSLATION] = props.rich_text(analysis.translation.strip())

        # The stored part of speech wins over the new analysis when deciding on cells
        stored_pos = PartOfSpeech.from_display_name(props.select_name(current.get(TYPO)))
        if is_conjugated(language, stored_pos or analysis.part_of_speech):
            for cell, value in conjugation_values(analysis).items():
                candidates[cell] = props.rich_text(value)

        patch = {
            name: value
            for name, value in candidates.items()
            if name in current and props.is_empty(current[name])
        }
        if patch:
            self.patch_properties(entry_id, patch)
        return list(patch)

    def patch_properties(self, entry_id: str, properties: dict[str, Any]) -> None:
        """Write a partial property set; properties not named are left as they are."""
        self._call(lambda: self.client.update_page(entry_id, properties))

    def get_entry(self, entry_id: str) -> Optional[VocabularyEntry]:
        try:
            page = self._call(lambda: self.client.retrieve_page(entry_id))
        except StoreNotFound:
            return None
        if page.get("archived") or page.get("in_trash"):
            return None
        return entry_from_page(page)

    def recent_entries(self, limit: int = config.RECENT_ENTRIES_LIMIT) -> list[VocabularyEntry]:
        """Newest entries first."""
        response = self._call(
            lambda: self.client.query_database(
                sorts=[{"timestamp": "created_time", "direction": "descending"}],
                page_size=limit,
            )
        )
        return [entry_from_page(page) for page in _live_pages(response)]
