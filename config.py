"""Configuration settings for the vocabsync reconciliation engine."""

import os
from pathlib import Path

# Base paths
PROJECT_ROOT = Path(__file__).parent
CHECKPOINTS_DIR = PROJECT_ROOT / "checkpoints"
PROMPTS_DIR = PROJECT_ROOT / "prompts"
LOGS_DIR = PROJECT_ROOT / "logs"

# Checkpoint files
IMPORT_CHECKPOINT = CHECKPOINTS_DIR / "import_progress.json"

# Prompt templates
LEXICAL_ANALYSIS_PROMPT = PROMPTS_DIR / "lexical_analysis.txt"

# Analysis service settings (OpenAI-compatible chat completions)
ANALYSIS_API_URL = os.environ.get(
    "ANALYSIS_API_URL", "https://api.openai.com/v1/chat/completions"
)
ANALYSIS_MODEL = os.environ.get("ANALYSIS_MODEL", "gpt-4o-mini")
ANALYSIS_TEMPERATURE = 0.3
ANALYSIS_TIMEOUT = 30  # seconds

# Document store settings
NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
NOTION_TIMEOUT = 15  # seconds
FALLBACK_SCAN_PAGE_SIZE = 100
RECENT_ENTRIES_LIMIT = 50

# Retry policy shared by every external call
RETRY_MAX_ATTEMPTS = 3
RETRY_BASE_DELAY = 1.0  # seconds, doubled after each failed attempt

# Processing settings
DRY_RUN_LIMIT = 10

# Environment variable names
OPENAI_API_KEY_ENV = "OPENAI_API_KEY"
NOTION_TOKEN_ENV = "NOTION_TOKEN"
NOTION_DATABASE_ID_ENV = "NOTION_DATABASE_ID"


class MissingEnvironmentError(RuntimeError):
    """Raised when a required environment variable is not set."""

    def __init__(self, name: str):
        super().__init__(f"MISSING_ENV:{name}")
        self.name = name


def get_env(name: str) -> str | None:
    """Return an environment variable, or None if it is missing or empty."""
    return os.environ.get(name) or None


def require_env(name: str) -> str:
    """
    Return a required environment variable.

    Raises:
        MissingEnvironmentError: If the variable is missing or empty
    """
    value = get_env(name)
    if value is None:
        raise MissingEnvironmentError(name)
    return value


def check_environment() -> dict[str, bool]:
    """Report which credentials are configured, without exposing their values."""
    return {
        "openai": get_env(OPENAI_API_KEY_ENV) is not None,
        "notion": get_env(NOTION_TOKEN_ENV) is not None,
        "database": get_env(NOTION_DATABASE_ID_ENV) is not None,
    }
