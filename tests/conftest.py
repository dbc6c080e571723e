import asyncio
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from cropgen.core.config import Settings
from cropgen.main import create_app
from cropgen.models.schemas import ContentBundle, QuestionRecord, TipRecord
from cropgen.repositories.memory_repo import MemoryContentRepository, MemorySessionRepository
from cropgen.services.content_store import ContentStore
from cropgen.services.game_service import GameService
from cropgen.services.session_tracker import SessionTracker

DAY = "2026-03-01"
NOW = datetime(2026, 3, 1, 6, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend():
    return "asyncio"


class ScriptedClient:
    """Stands in for GeminiClient: returns queued texts, raising queued exceptions."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    async def generate(self, prompt, timeout=None):
        self.prompts.append(prompt)
        if not self.responses:
            raise RuntimeError("no scripted response left")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class CountingGenerator:
    """ContentGenerator double that records how often each half ran."""

    def __init__(self, tips_failures=0, mcqs_failures=0):
        self.tips_calls = 0
        self.mcqs_calls = 0
        self.tips_failures = tips_failures
        self.mcqs_failures = mcqs_failures

    async def generate_tips(self, crop, language="en"):
        self.tips_calls += 1
        await asyncio.sleep(0)
        if self.tips_calls <= self.tips_failures:
            raise RuntimeError("tips backend down")
        return [TipRecord(text=f"{crop} tip {i} ({language})") for i in range(12)]

    async def generate_mcqs(self, crop, language="en"):
        self.mcqs_calls += 1
        await asyncio.sleep(0)
        if self.mcqs_calls <= self.mcqs_failures:
            raise RuntimeError("mcqs backend down")
        return [
            QuestionRecord(
                question=f"{crop} question {i}?",
                options=["a", "b", "c", "d"],
                correct_answer=2 if i == 3 else 0,
                explanation=f"Because {i}.",
            )
            for i in range(12)
        ]


def make_bundle(day=DAY, crop="Rice", language="en"):
    return ContentBundle(
        date=day,
        crop=crop,
        language=language,
        tips=[TipRecord(text=f"Tip {i}") for i in range(12)],
        questions=[
            QuestionRecord(
                question=f"Question {i}?",
                options=["w", "x", "y", "z"],
                correct_answer=2 if i == 3 else 0,
                explanation=f"Explanation {i}",
            )
            for i in range(12)
        ],
        generated_at=NOW,
    )


@pytest.fixture
def bundle():
    return make_bundle()


@pytest.fixture
def content_repo():
    return MemoryContentRepository()


@pytest.fixture
def sessions_repo():
    return MemorySessionRepository()


@pytest.fixture
def generator():
    return CountingGenerator()


@pytest.fixture
def store(content_repo, generator):
    return ContentStore(content_repo, generator, max_retries=3, retry_delay=0)


@pytest.fixture
def tracker(sessions_repo):
    return SessionTracker(sessions_repo)


@pytest.fixture
def game(store, tracker):
    return GameService(store, tracker, timezone="Asia/Kolkata")


def make_settings(**overrides):
    values = dict(
        ENV="development",
        STORAGE_BACKEND="memory",
        GEMINI_API_KEY="",
        CONTENT_RETRY_DELAY=0,
        _env_file=None,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def client():
    with TestClient(create_app(make_settings())) as c:
        yield c
