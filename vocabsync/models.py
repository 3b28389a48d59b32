"""Pydantic data models for the vocabsync reconciliation engine."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Language(str, Enum):
    """Languages an entry can be stored under."""

    PORTUGUESE = "pt"
    ENGLISH = "en"

    @property
    def display_name(self) -> str:
        return LANGUAGE_DISPLAY_NAMES[self]

    @classmethod
    def from_display_name(cls, name: str | None) -> Optional["Language"]:
        for language, display in LANGUAGE_DISPLAY_NAMES.items():
            if display == name:
                return language
        return None


class DetectedLanguage(str, Enum):
    """Languages the analysis service can report.

    Russian is the learner's own language: it is never stored, the
    caller's hint decides which language the entry belongs to.
    """

    PORTUGUESE = "pt"
    ENGLISH = "en"
    RUSSIAN = "ru"


class PartOfSpeech(str, Enum):
    VERB = "verb"
    NOUN = "noun"
    ADJECTIVE = "adjective"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return PART_OF_SPEECH_DISPLAY_NAMES[self]

    @classmethod
    def from_display_name(cls, name: str | None) -> Optional["PartOfSpeech"]:
        # "other" shares the noun option, so the reverse lookup stops at the first match
        for pos, display in PART_OF_SPEECH_DISPLAY_NAMES.items():
            if display == name:
                return pos
        return None


class ReconcileStatus(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


LANGUAGE_DISPLAY_NAMES = {
    Language.PORTUGUESE: "Portuguese",
    Language.ENGLISH: "English",
}

PART_OF_SPEECH_DISPLAY_NAMES = {
    PartOfSpeech.VERB: "Verbo",
    PartOfSpeech.NOUN: "substantivo",
    PartOfSpeech.ADJECTIVE: "Adjetivo",
    PartOfSpeech.OTHER: "substantivo",
}


class PersonForms(BaseModel):
    """One tense of a conjugated verb, one optional form per grammatical person."""

    eu: Optional[str] = None
    voce: Optional[str] = None
    ele_ela: Optional[str] = None
    eles_elas: Optional[str] = None
    nos: Optional[str] = None


class VerbConjugation(BaseModel):
    presente: Optional[PersonForms] = None
    preterito_perfeito: Optional[PersonForms] = None
    preterito_imperfeito: Optional[PersonForms] = None

    @field_validator("presente", "preterito_perfeito", "preterito_imperfeito", mode="before")
    @classmethod
    def _blank_tense_is_missing(cls, value):
        return value or None


class NormalizedForms(BaseModel):
    lemma: str = ""
    infinitive: str = ""

    @field_validator("lemma", "infinitive", mode="before")
    @classmethod
    def _null_is_empty(cls, value):
        return "" if value is None else value


class LexicalAnalysis(BaseModel):
    """Structured result returned by the analysis service for one word."""

    model_config = ConfigDict(populate_by_name=True)

    detected_language: DetectedLanguage
    part_of_speech: PartOfSpeech = Field(alias="pos")
    normalized: NormalizedForms = Field(default_factory=NormalizedForms)
    translation: str = ""
    verb: Optional[VerbConjugation] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    # Models answer "no value" with null, "" or {} depending on the field
    @field_validator("normalized", mode="before")
    @classmethod
    def _null_normalized_is_empty(cls, value):
        return {} if value is None else value

    @field_validator("translation", mode="before")
    @classmethod
    def _null_translation_is_empty(cls, value):
        return "" if value is None else value

    @field_validator("verb", mode="before")
    @classmethod
    def _blank_verb_is_missing(cls, value):
        return value or None


class VocabularyEntry(BaseModel):
    """A vocabulary entry as currently stored in the document store."""

    id: str
    headword: str = ""
    dedup_key: str = ""
    language: Optional[Language] = None
    part_of_speech: Optional[PartOfSpeech] = None
    translation: str = ""
    context: str = ""
    conjugation_cells: dict[str, str] = Field(default_factory=dict)
    learned: bool = False
    decks: list[str] = Field(default_factory=list)


class ReconciliationResult(BaseModel):
    """Terminal outcome of a successful reconciliation."""

    status: ReconcileStatus
    dedup_key: str
    final_headword: str
    final_language: Language
    part_of_speech: PartOfSpeech
    entry_id: str
    updated_fields: list[str] = Field(default_factory=list)
    message: str = ""


class CheckpointData(BaseModel):
    """Checkpoint data for tracking batch import progress."""

    # item -> reconcile status, item -> failing step
    processed: dict[str, str] = Field(default_factory=dict)
    failed: dict[str, str] = Field(default_factory=dict)
    last_index: int = 0


class ImportRow(BaseModel):
    """One word to import, with its optional target-language hint."""

    word: str
    hint: Optional[str] = None


class ImportFailure(BaseModel):
    word: str
    step: str
    error_kind: str
    message: str


class ImportSummary(BaseModel):
    """Outcome counts of a batch import."""

    total: int = 0
    added: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    failures: list[ImportFailure] = Field(default_factory=list)
    aborted: bool = False

    @property
    def failed(self) -> int:
        return len(self.failures)
