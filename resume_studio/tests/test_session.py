import asyncio

import pytest

from resume_studio.core.repository import PersistenceError
from resume_studio.core.session import ArtifactSession
from resume_studio.core.session_manager import SessionManager
from resume_studio.llm.mock_adapter import MOCK_RESUME, MockLLMAdapter


def _session(repository, compiler, registry, scheduler, **kwargs):
    kwargs.setdefault("document_id", "doc-1")
    return ArtifactSession(
        "session-1",
        repository=repository,
        compiler=compiler,
        registry=registry,
        scheduler=scheduler,
        llm_adapter=MockLLMAdapter(),
        **kwargs,
    )


def test_chat_streams_latex_into_artifact_and_persists(repository, mock_compiler, registry, scheduler):
    async def inner():
        session = _session(repository, mock_compiler, registry, scheduler)

        answer = await session.chat("Write me a resume")

        state = session.store.get()
        assert state.content == MOCK_RESUME
        assert state.status == "idle"
        assert state.is_visible is True
        assert [v.content for v in repository.versions["doc-1"]] == [MOCK_RESUME]
        assert session.navigator.total == 1
        assert session.editor.buffer == MOCK_RESUME
        assert "```latex" not in answer.display
        assert [m.role for m in session.messages] == ["user", "assistant"]

        scheduler.advance(1.0)
        await session.preview.wait_idle()
        assert session.preview.state.artifact_handle is not None
        assert mock_compiler.calls == [MOCK_RESUME]

        await session.aclose()
        assert registry.live_count == 0

    asyncio.run(inner())


def test_events_reach_listener(repository, mock_compiler, registry, scheduler):
    async def inner():
        seen = []
        session = _session(
            repository, mock_compiler, registry, scheduler,
            on_event=lambda sid, kind, data: seen.append(kind),
        )
        await session.run_stream([{"type": "latex-delta", "content": "x"}, {"type": "finish"}])

        assert "artifact" in seen
        assert "metadata" in seen

    asyncio.run(inner())


def test_generate_uses_document_handler(repository, mock_compiler, registry, scheduler):
    async def inner():
        session = _session(repository, mock_compiler, registry, scheduler)

        state = await session.generate("Senior Engineer")

        assert state.content == MOCK_RESUME
        assert state.title == "Senior Engineer"
        assert repository.versions["doc-1"][-1].content == MOCK_RESUME
        assert session.navigator.is_current_version

    asyncio.run(inner())


def test_revise_sends_current_document_to_model(repository, mock_compiler, registry, scheduler):
    async def inner():
        repository.seed("doc-1", "\\section{Old}")
        session = _session(repository, mock_compiler, registry, scheduler)
        await session.refresh_history()

        state = await session.revise("Rewrite it")

        assert state.content == MOCK_RESUME
        assert [v.content for v in repository.versions["doc-1"]] == ["\\section{Old}", MOCK_RESUME]
        assert session.navigator.total == 2

    asyncio.run(inner())


def test_refresh_history_loads_latest_snapshot(repository, mock_compiler, registry, scheduler):
    async def inner():
        repository.seed("doc-1", "v1", "v2")
        session = _session(repository, mock_compiler, registry, scheduler)

        await session.refresh_history()

        assert session.store.get().content == "v2"
        assert session.navigator.cursor.index == 1
        assert session.editor.last_persisted == "v2"

    asyncio.run(inner())


def test_navigate_and_restore_appends_old_content(repository, mock_compiler, registry, scheduler):
    async def inner():
        repository.seed("doc-1", "v1", "v2")
        session = _session(repository, mock_compiler, registry, scheduler)
        await session.refresh_history()

        await session.navigate("prev")
        assert session.copy() == "v1"
        assert session.editor.read_only
        assert session.edit("nope") is False

        version = await session.restore_version()

        assert version is not None and version.content == "v1"
        assert [v.content for v in repository.versions["doc-1"]] == ["v1", "v2", "v1"]
        assert session.navigator.is_current_version
        assert session.store.get().content == "v1"
        assert await session.restore_version() is None

    asyncio.run(inner())


def test_edit_flows_to_store_preview_and_history(repository, mock_compiler, registry, scheduler):
    async def inner():
        session = _session(repository, mock_compiler, registry, scheduler)
        assert session.edit(MOCK_RESUME)

        scheduler.advance(2.0)
        await session.editor.flush()
        assert session.store.get().content == MOCK_RESUME
        assert repository.versions["doc-1"][-1].content == MOCK_RESUME

        scheduler.advance(1.0)
        await session.preview.wait_idle()
        assert mock_compiler.calls == [MOCK_RESUME]

    asyncio.run(inner())


def test_close_hides_and_resets_synced_content(repository, mock_compiler, registry, scheduler):
    session = _session(repository, mock_compiler, registry, scheduler)
    synced = []
    session.store.set_sync_callback(synced.append)
    session.show()

    state = session.close()

    assert state.is_visible is False
    assert synced == [""]


def test_toolbar_actions_update_metadata(repository, mock_compiler, registry, scheduler):
    session = _session(repository, mock_compiler, registry, scheduler)

    assert session.toggle_fullscreen().is_fullscreen is True
    assert session.set_active_tab("preview").active_tab == "preview"
    assert session.snapshot()["metadata"]["is_fullscreen"] is True


def test_export_reuses_compiled_preview(repository, mock_compiler, registry, scheduler):
    async def inner():
        session = _session(repository, mock_compiler, registry, scheduler)
        await session.run_stream([{"type": "latex-delta", "content": MOCK_RESUME}])
        await session.preview.compile_now(MOCK_RESUME)

        data, media_type, filename = await session.export("pdf")
        assert data.startswith(b"%PDF")
        assert (media_type, filename) == ("application/pdf", "resume.pdf")
        assert len(mock_compiler.calls) == 1

        tex, media_type, filename = await session.export("tex")
        assert tex.decode("utf-8") == MOCK_RESUME
        assert filename == "resume.tex"

    asyncio.run(inner())


def test_export_compiles_when_preview_is_stale(repository, mock_compiler, registry, scheduler):
    async def inner():
        session = _session(repository, mock_compiler, registry, scheduler)
        await session.run_stream([{"type": "latex-delta", "content": MOCK_RESUME}])

        data, _, _ = await session.export("pdf")

        assert data.startswith(b"%PDF")
        assert mock_compiler.calls == [MOCK_RESUME]
        assert session.preview.handle is None

    asyncio.run(inner())


def test_unknown_kind_is_rejected(repository, mock_compiler, registry, scheduler):
    with pytest.raises(KeyError):
        _session(repository, mock_compiler, registry, scheduler, kind="spreadsheet")


def test_manager_forgets_session_when_history_load_fails(test_env, repository, mock_compiler, registry, scheduler):
    async def inner():
        manager = SessionManager()
        repository.seed("doc-1", "v1")
        repository.fail = True

        with pytest.raises(PersistenceError):
            await manager.create(
                repository=repository,
                document_id="doc-1",
                compiler=mock_compiler,
                registry=registry,
                scheduler=scheduler,
            )

        assert manager.list() == []
        assert registry.live_count == 0

        repository.fail = False
        session = await manager.create(
            repository=repository,
            document_id="doc-1",
            compiler=mock_compiler,
            registry=registry,
            scheduler=scheduler,
        )
        assert manager.list() == [session]
        assert session.store.get().content == "v1"
        await manager.shutdown()

    asyncio.run(inner())
