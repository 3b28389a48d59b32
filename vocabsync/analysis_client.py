"""Lexical analysis client backed by an OpenAI-compatible chat completions API."""

import json
import re
from pathlib import Path
from typing import Optional

import httpx
from pydantic import ValidationError

import config
from vocabsync.models import Language, LexicalAnalysis
from vocabsync.retry import RetryPolicy, is_transient_http_error


class AnalysisError(Exception):
    """Raised when lexical analysis fails."""

    pass


class AnalysisUnavailable(AnalysisError):
    """Raised on network failures, timeouts and 5xx responses."""

    pass


class AnalysisRequestError(AnalysisError):
    """Raised when the service rejects the request (bad key, quota, 4xx)."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class AnalysisMalformed(AnalysisError):
    """Raised when the response is empty, not JSON, or has the wrong shape."""

    pass


class AnalysisIncomplete(AnalysisError):
    """Raised when the response lacks the detected language or part of speech."""

    pass


SYSTEM_PROMPT = (
    "You are a linguistic analysis tool. Analyze the input word and return ONLY a valid "
    "JSON object with the exact structure specified. Do not include any explanations, "
    "markdown formatting, or additional text. Return pure JSON only."
)

TARGET_LANGUAGE_NAMES = {
    Language.PORTUGUESE: "Brazilian Portuguese",
    Language.ENGLISH: "English",
}
DEFAULT_TARGET_LANGUAGE = "Brazilian Portuguese or English"

REQUIRED_KEYS = ("detected_language", "pos")


def is_transient_analysis_error(exc: BaseException) -> bool:
    return isinstance(exc, AnalysisUnavailable)


def load_prompt_template(path: Path = config.LEXICAL_ANALYSIS_PROMPT) -> str:
    """Load the prompt template from file."""
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def extract_json_from_response(content: str) -> dict:
    """
    Extract a JSON object from the model's reply.

    The reply might contain markdown code blocks or other text.

    Args:
        content: Raw message content

    Returns:
        Parsed JSON dictionary

    Raises:
        AnalysisMalformed: If no JSON object can be recovered
    """
    try:
        data = json.loads(content)
        if isinstance(data, dict):
            return data
    except (json.JSONDecodeError, TypeError):
        pass

    # Look for ```json ... ``` blocks
    json_match = re.search(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", content)
    if json_match:
        try:
            return json.loads(json_match.group(1))
        except json.JSONDecodeError:
            pass

    # Look for raw JSON object
    json_match = re.search(r"\{[\s\S]*\}", content)
    if json_match:
        try:
            return json.loads(json_match.group(0))
        except json.JSONDecodeError:
            pass

    raise AnalysisMalformed(f"Could not extract JSON from response: {content[:500]}")


def parse_analysis(data: dict) -> LexicalAnalysis:
    """
    Validate a decoded response into a LexicalAnalysis.

    Raises:
        AnalysisIncomplete: If detected_language or pos is missing or empty
        AnalysisMalformed: If any field has the wrong shape or value
    """
    missing = [key for key in REQUIRED_KEYS if not data.get(key)]
    if missing:
        raise AnalysisIncomplete(f"Response missing required keys: {', '.join(missing)}")

    try:
        return LexicalAnalysis.model_validate(data)
    except ValidationError as e:
        raise AnalysisMalformed(f"Response failed validation: {e}") from e


class AnalysisClient:
    """Sends one word per request and returns its structured analysis."""

    def __init__(
        self,
        api_key: str,
        http_client: Optional[httpx.Client] = None,
        api_url: str = config.ANALYSIS_API_URL,
        model: str = config.ANALYSIS_MODEL,
        temperature: float = config.ANALYSIS_TEMPERATURE,
        timeout: float = config.ANALYSIS_TIMEOUT,
        retry: Optional[RetryPolicy] = None,
        prompt_template: Optional[str] = None,
    ):
        self.api_url = api_url
        self.model = model
        self.temperature = temperature
        self.retry = retry or RetryPolicy()
        self.prompt_template = prompt_template or load_prompt_template()
        self._client = http_client or httpx.Client(timeout=timeout)
        self._headers = {"Authorization": f"Bearer {api_key}"}

    @classmethod
    def from_env(cls) -> "AnalysisClient":
        """Build a client from OPENAI_API_KEY."""
        return cls(api_key=config.require_env(config.OPENAI_API_KEY_ENV))

    def close(self) -> None:
        self._client.close()

    def build_prompt(self, word: str, language_hint: Optional[Language] = None) -> str:
        target = TARGET_LANGUAGE_NAMES.get(language_hint, DEFAULT_TARGET_LANGUAGE)
        return self.prompt_template.format(word=word, target_language=target)

    def analyze(self, word: str, language_hint: Optional[Language] = None) -> LexicalAnalysis:
        """
        Analyze a single word.

        Args:
            word: The word as typed by the user
            language_hint: Language the user is learning, used for Russian input

        Returns:
            Validated LexicalAnalysis

        Raises:
            AnalysisUnavailable: If the service stays unreachable after retries
            AnalysisRequestError: If the service rejects the request
            AnalysisMalformed: If the reply cannot be parsed or validated
            AnalysisIncomplete: If required fields are missing
        """
        prompt = self.build_prompt(word, language_hint)
        content = self.retry.call(lambda: self._complete(prompt), is_transient_analysis_error)
        return parse_analysis(extract_json_from_response(content))

    def _complete(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "response_format": {"type": "json_object"},
            "temperature": self.temperature,
        }
        try:
            response = self._client.post(self.api_url, json=payload, headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            if is_transient_http_error(e):
                raise AnalysisUnavailable(f"Analysis service unavailable: {e}") from e
            if isinstance(e, httpx.HTTPStatusError):
                raise AnalysisRequestError(
                    f"Analysis service rejected the request: {e.response.status_code}",
                    status=e.response.status_code,
                ) from e
            raise AnalysisError(f"Analysis request failed: {e}") from e

        try:
            body = response.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AnalysisMalformed(f"Unexpected response format: {response.text[:500]}") from e

        if not content:
            raise AnalysisMalformed("Analysis service returned an empty response")
        return content
