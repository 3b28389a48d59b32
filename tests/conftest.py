"""
Shared pytest fixtures.
"""
import pytest

from fakes import FakeNotion
from vocabsync.retry import RetryPolicy
from vocabsync.store_gateway import StoreGateway


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by retry policies built from the ``retry`` fixture."""
    return []


@pytest.fixture
def retry(sleeps) -> RetryPolicy:
    """Default retry policy on a fake clock."""
    return RetryPolicy(sleep=sleeps.append)


@pytest.fixture
def notion() -> FakeNotion:
    return FakeNotion()


@pytest.fixture
def gateway(notion, retry) -> StoreGateway:
    return StoreGateway(notion, retry=retry)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep real credentials out of the tests."""
    for name in ("OPENAI_API_KEY", "NOTION_TOKEN", "NOTION_DATABASE_ID"):
        monkeypatch.delenv(name, raising=False)
