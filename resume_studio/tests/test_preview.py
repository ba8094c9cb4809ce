import asyncio
import json

import httpx

from resume_studio.compiler.remote import RemoteLatexCompiler
from resume_studio.core.preview import NO_CONTENT_ERROR, CompilePreviewController

HELLO = "\\documentclass{article}\\begin{document}Hello\\end{document}"


def _controller(compiler, registry, scheduler, **kwargs):
    return CompilePreviewController(
        compiler, registry=registry, debounce_seconds=1.0, scheduler=scheduler, **kwargs
    )


def test_hello_document_compiles_to_a_live_handle(mock_compiler, registry, scheduler):
    async def inner():
        preview = _controller(mock_compiler, registry, scheduler)
        preview.schedule(HELLO)
        assert preview.pending

        scheduler.advance(1.0)
        await preview.wait_idle()

        state = preview.state
        assert state.loading is False
        assert state.error is None
        assert state.artifact_handle is not None
        assert state.pdf_url == f"/api/previews/{state.artifact_handle}"
        assert registry.get(state.artifact_handle).startswith(b"%PDF")
        assert preview.compiled_source == HELLO

        await preview.aclose()

    asyncio.run(inner())


def test_empty_content_short_circuits_without_compiling(mock_compiler, registry, scheduler):
    async def inner():
        preview = _controller(mock_compiler, registry, scheduler)
        preview.schedule("")
        scheduler.advance(1.0)
        await preview.wait_idle()

        assert preview.state.error == NO_CONTENT_ERROR
        assert preview.state.artifact_handle is None
        assert preview.state.loading is False
        assert mock_compiler.calls == []

    asyncio.run(inner())


def test_rapid_edits_compile_once_with_latest_content(mock_compiler, registry, scheduler):
    async def inner():
        preview = _controller(mock_compiler, registry, scheduler)
        for i in range(5):
            preview.schedule(HELLO.replace("Hello", f"Hello {i}"))
            scheduler.advance(0.5)
        assert mock_compiler.calls == []

        scheduler.advance(0.5)
        await preview.wait_idle()

        assert mock_compiler.calls == [HELLO.replace("Hello", "Hello 4")]

    asyncio.run(inner())


def test_unchanged_content_is_not_recompiled(mock_compiler, registry, scheduler):
    async def inner():
        preview = _controller(mock_compiler, registry, scheduler)
        for _ in range(2):
            preview.schedule(HELLO)
            scheduler.advance(1.0)
            await preview.wait_idle()

        assert len(mock_compiler.calls) == 1

    asyncio.run(inner())


def test_late_result_from_older_compile_is_discarded(gated_compiler, registry, scheduler):
    async def inner():
        preview = _controller(gated_compiler, registry, scheduler)
        first = asyncio.create_task(preview.compile_now("t1"))
        await asyncio.sleep(0)
        second = asyncio.create_task(preview.compile_now("t2"))
        await asyncio.sleep(0)
        assert gated_compiler.calls == ["t1", "t2"]

        gated_compiler.release("t2")
        await second
        gated_compiler.release("t1")
        await first

        assert registry.get(preview.state.artifact_handle) == b"%PDF-t2"
        assert registry.live_count == 1
        assert preview.compiled_source == "t2"

    asyncio.run(inner())


def test_successive_compiles_hold_exactly_one_handle(mock_compiler, registry, scheduler):
    async def inner():
        preview = _controller(mock_compiler, registry, scheduler)
        handles = []
        for i in range(4):
            state = await preview.compile_now(HELLO.replace("Hello", f"v{i}"))
            handles.append(state.artifact_handle)

        assert len(set(handles)) == 4
        assert registry.live_count == 1
        assert registry.get(handles[0]) is None

        await preview.aclose()
        assert registry.live_count == 0

    asyncio.run(inner())


def test_compile_failure_releases_previous_handle(mock_compiler, registry, scheduler):
    async def inner():
        preview = _controller(mock_compiler, registry, scheduler)
        await preview.compile_now(HELLO)
        assert registry.live_count == 1

        state = await preview.compile_now("\\section{no document environment}")

        assert state.error == "Missing \\begin{document}"
        assert state.log == "! LaTeX Error: Missing \\begin{document}."
        assert state.artifact_handle is None
        assert registry.live_count == 0

    asyncio.run(inner())


def test_remote_error_message_is_surfaced(registry, scheduler):
    async def inner():
        def handler(request):
            assert json.loads(request.content) == {"source": HELLO}
            return httpx.Response(500, json={"message": "tex error"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        compiler = RemoteLatexCompiler("http://compile.test", client=client)
        preview = _controller(compiler, registry, scheduler)

        preview.schedule(HELLO)
        scheduler.advance(1.0)
        await preview.wait_idle()

        assert preview.state.error == "tex error"
        assert preview.state.artifact_handle is None
        assert json.loads(preview.state.log) == {"message": "tex error"}
        await client.aclose()

    asyncio.run(inner())


def test_failed_source_can_be_retried_without_edits(mock_compiler, registry, scheduler):
    async def inner():
        preview = _controller(mock_compiler, registry, scheduler)
        broken = "\\section{A}"
        for _ in range(2):
            preview.schedule(broken)
            scheduler.advance(1.0)
            await preview.wait_idle()

        assert mock_compiler.calls == [broken, broken]

    asyncio.run(inner())


def test_renderer_callbacks_track_pages(mock_compiler, registry, scheduler):
    async def inner():
        preview = _controller(mock_compiler, registry, scheduler)
        await preview.compile_now(HELLO)

        assert preview.on_document_loaded(3).total_pages == 3
        assert preview.set_page(2).page_number == 2
        assert preview.set_page(10).page_number == 3
        assert preview.set_page(0).page_number == 1

        state = preview.on_document_load_error("bad xref")
        assert state.error == "Failed to load PDF: bad xref"
        assert state.artifact_handle is None
        assert registry.live_count == 0

    asyncio.run(inner())


def test_closed_controller_ignores_schedules(mock_compiler, registry, scheduler):
    async def inner():
        preview = _controller(mock_compiler, registry, scheduler)
        preview.schedule(HELLO)
        await preview.aclose()

        scheduler.advance(5.0)
        preview.schedule(HELLO)
        await preview.wait_idle()

        assert mock_compiler.calls == []
        assert preview.closed

    asyncio.run(inner())


def test_close_during_compile_clears_loading_and_drops_result(gated_compiler, registry, scheduler):
    async def inner():
        preview = _controller(gated_compiler, registry, scheduler)
        running = asyncio.create_task(preview.compile_now(HELLO))
        await asyncio.sleep(0)
        assert preview.state.loading is True

        await preview.aclose()
        assert preview.state.loading is False

        gated_compiler.release(HELLO)
        await running

        assert preview.state.loading is False
        assert preview.state.artifact_handle is None
        assert registry.live_count == 0

    asyncio.run(inner())


def test_change_listener_sees_loading_then_result(mock_compiler, registry, scheduler):
    async def inner():
        seen = []
        preview = _controller(mock_compiler, registry, scheduler, on_change=lambda s: seen.append(s.loading))
        await preview.compile_now(HELLO)
        assert seen == [True, False]

    asyncio.run(inner())
