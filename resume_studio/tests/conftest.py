import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from resume_studio import settings as settings_module
from resume_studio.compiler import base as compiler_base
from resume_studio.compiler.mock import MockLatexCompiler
from resume_studio.core.handles import HandleRegistry
from resume_studio.core.repository import DocumentVersion, PersistenceError
from resume_studio.llm.adapter import reset_llm_adapter


class _ManualTimer:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Timer source driven by the test instead of the wall clock."""

    def __init__(self):
        self.now = 0.0
        self._timers = []

    def call_later(self, delay, callback):
        timer = _ManualTimer(self.now + delay, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self):
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, seconds):
        self.now += seconds
        due = sorted(
            (t for t in self._timers if not t.cancelled and t.when <= self.now),
            key=lambda t: t.when,
        )
        self._timers = [t for t in self._timers if not t.cancelled and t not in due]
        for timer in due:
            if not timer.cancelled:
                timer.callback()


class InMemoryDocumentRepository:
    def __init__(self):
        self.versions = {}
        self.fail = False
        self.append_calls = 0
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def seed(self, document_id, *contents, title="Resume"):
        for content in contents:
            self._add(document_id, title, content, "resume")

    def _add(self, document_id, title, content, kind):
        self._clock += timedelta(seconds=1)
        version = DocumentVersion(
            id=document_id, title=title, kind=kind, content=content, created_at=self._clock
        )
        self.versions.setdefault(document_id, []).append(version)
        return version

    async def list_versions(self, document_id):
        if self.fail:
            raise PersistenceError("database is locked")
        return list(self.versions.get(document_id, []))

    async def append_version(self, document_id, *, title, content, kind="resume"):
        self.append_calls += 1
        if self.fail:
            raise PersistenceError("database is locked")
        history = self.versions.get(document_id, [])
        if history and history[-1].content == content:
            return None
        return self._add(document_id, title, content, kind)


class GatedCompiler(compiler_base.BaseLatexCompiler):
    """Compiler whose results are released by the test, in any order."""

    def __init__(self):
        self.calls = []
        self.gates = {}

    async def compile(self, source):
        self.calls.append(source)
        gate = self.gates.setdefault(source, asyncio.Event())
        await gate.wait()
        return b"%PDF-" + source.encode("utf-8")

    def release(self, source):
        self.gates.setdefault(source, asyncio.Event()).set()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def repository():
    return InMemoryDocumentRepository()


@pytest.fixture
def registry():
    return HandleRegistry()


@pytest.fixture
def mock_compiler():
    return MockLatexCompiler()


@pytest.fixture
def gated_compiler():
    return GatedCompiler()


@pytest.fixture
def test_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_ROOT", str(tmp_path / "data"))
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("COMPILER_MODE", "mock")
    monkeypatch.setenv("LLM_MODE", "mock")
    monkeypatch.delenv("ADMIN_API_KEY", raising=False)
    settings_module.get_settings.cache_clear()
    asyncio.run(compiler_base.reset_compiler())
    reset_llm_adapter()
    yield
    settings_module.get_settings.cache_clear()
    asyncio.run(compiler_base.reset_compiler())
    reset_llm_adapter()
