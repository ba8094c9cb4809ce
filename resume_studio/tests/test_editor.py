import asyncio

from resume_studio.core.artifact_state import ArtifactState, ArtifactStore
from resume_studio.core.editor import EditorSurface
from resume_studio.core.versions import VersionNavigator


def _editor(repository, scheduler, content="", document_id="doc-1"):
    store = ArtifactStore(ArtifactState(document_id=document_id, content=content))
    navigator = VersionNavigator(store)
    editor = EditorSurface(store, navigator, repository, debounce_seconds=2.0, scheduler=scheduler)
    return store, navigator, editor


def test_edits_are_debounced_into_one_snapshot(repository, scheduler):
    async def inner():
        store, navigator, editor = _editor(repository, scheduler)
        for text in ["\\sec", "\\section", "\\section{Skills}"]:
            assert editor.edit(text)
            scheduler.advance(1.0)
        assert editor.dirty
        assert repository.append_calls == 0

        scheduler.advance(2.0)
        await editor.flush()

        assert [v.content for v in repository.versions["doc-1"]] == ["\\section{Skills}"]
        assert store.get().content == "\\section{Skills}"
        assert editor.dirty is False
        assert editor.last_persisted == "\\section{Skills}"
        assert navigator.total == 1

    asyncio.run(inner())


def test_flush_persists_pending_edit_immediately(repository, scheduler):
    async def inner():
        _, _, editor = _editor(repository, scheduler)
        editor.edit("draft")
        await editor.flush()

        assert repository.versions["doc-1"][-1].content == "draft"
        assert scheduler.pending == 0

    asyncio.run(inner())


def test_unchanged_content_is_not_persisted_twice(repository, scheduler):
    async def inner():
        _, _, editor = _editor(repository, scheduler)
        editor.edit("same")
        await editor.flush()
        editor.edit("other")
        editor.edit("same")
        await editor.flush()

        assert len(repository.versions["doc-1"]) == 1

    asyncio.run(inner())


def test_edits_rejected_while_streaming(repository, scheduler):
    store, _, editor = _editor(repository, scheduler, content="streamed")
    store.patch(status="streaming")

    assert editor.read_only
    assert editor.edit("mine") is False
    assert editor.buffer == "streamed"


def test_historical_version_is_read_only(repository, scheduler):
    async def inner():
        repository.seed("doc-1", "v1", "v2")
        store, navigator, editor = _editor(repository, scheduler, content="v2")
        navigator.load(await repository.list_versions("doc-1"))
        navigator.advance("prev")

        assert editor.read_only
        assert editor.content == "v1"
        assert editor.edit("changed") is False

        navigator.advance("latest")
        assert editor.content == "v2"
        assert editor.edit("changed") is True

    asyncio.run(inner())


def test_stream_overrides_unsaved_edits(repository, scheduler):
    async def inner():
        store, _, editor = _editor(repository, scheduler)
        editor.edit("local")
        assert editor.dirty

        store.patch(status="streaming", content="from model")
        editor.on_external_update("from model")

        assert editor.dirty is False
        assert editor.buffer == "from model"
        assert scheduler.pending == 0
        await editor.flush()
        assert repository.append_calls == 0

    asyncio.run(inner())


def test_external_update_does_not_clobber_dirty_buffer(repository, scheduler):
    _, _, editor = _editor(repository, scheduler)
    editor.edit("typing")

    editor.on_external_update("older server copy")

    assert editor.buffer == "typing"


def test_persist_failure_keeps_edit_dirty(repository, scheduler):
    async def inner():
        repository.fail = True
        store, _, editor = _editor(repository, scheduler)
        editor.edit("unsaved")
        await editor.flush()

        assert editor.dirty is True
        assert editor.last_error == "database is locked"
        assert store.get().content == "unsaved"
        assert repository.append_calls == 1

        repository.fail = False
        editor.edit("unsaved!")
        await editor.flush()
        assert editor.dirty is False
        assert editor.last_error is None

    asyncio.run(inner())


def test_edit_without_document_id_stays_in_memory(repository, scheduler):
    async def inner():
        store, _, editor = _editor(repository, scheduler, document_id=None)
        editor.edit("scratch")
        await editor.flush()

        assert store.get().content == "scratch"
        assert repository.append_calls == 0

    asyncio.run(inner())
