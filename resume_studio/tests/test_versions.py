from datetime import datetime, timezone

from resume_studio.core.artifact_state import ArtifactState, ArtifactStore
from resume_studio.core.repository import DocumentVersion
from resume_studio.core.versions import VersionNavigator


def _versions(*contents):
    return [
        DocumentVersion(
            id="doc-1",
            title="Resume",
            content=content,
            created_at=datetime(2024, 1, i + 1, tzinfo=timezone.utc),
        )
        for i, content in enumerate(contents)
    ]


def _navigator(*contents, is_latex=True):
    store = ArtifactStore(ArtifactState(document_id="doc-1", content=contents[-1] if contents else ""))
    navigator = VersionNavigator(store, is_latex=is_latex)
    navigator.load(_versions(*contents))
    return store, navigator


def test_load_points_at_latest_snapshot():
    _, navigator = _navigator("v1", "v2", "v3")
    assert navigator.index == 2
    assert navigator.total == 3
    assert navigator.is_current_version


def test_prev_and_next_clamp_at_boundaries():
    _, navigator = _navigator("v1", "v2", "v3")

    for _ in range(5):
        navigator.advance("prev")
    assert navigator.index == 0
    assert not navigator.is_current_version

    navigator.advance("next")
    assert navigator.index == 1
    for _ in range(5):
        navigator.advance("next")
    assert navigator.index == 2
    assert navigator.is_current_version


def test_latest_jumps_to_end_and_resets_mode():
    store, navigator = _navigator("v1", "v2", "v3")
    navigator.advance("prev")
    navigator.advance("prev")
    navigator.advance("toggle")
    assert store.metadata.mode == "latex"

    cursor = navigator.advance("latest")

    assert cursor.index == 2
    assert store.metadata.mode == "edit"


def test_toggle_switches_between_edit_and_latex_for_latex_documents():
    store, navigator = _navigator("v1")
    navigator.advance("toggle")
    assert navigator.mode == "latex"
    navigator.advance("toggle")
    assert navigator.mode == "edit"
    assert navigator.index == 0


def test_toggle_switches_between_edit_and_diff_for_other_documents():
    store, navigator = _navigator("v1", is_latex=False)
    navigator.advance("toggle")
    assert store.metadata.mode == "diff"
    navigator.advance("toggle")
    assert store.metadata.mode == "edit"


def test_empty_history_counts_as_current():
    store = ArtifactStore(ArtifactState(content="draft"))
    navigator = VersionNavigator(store)

    assert navigator.is_current_version
    assert navigator.advance("prev").index == -1
    assert navigator.advance("next").index == -1
    assert navigator.effective_content() == "draft"


def test_effective_content_follows_cursor():
    store, navigator = _navigator("v1", "v2")
    store.patch(content="v2 live edit")

    assert navigator.effective_content() == "v2 live edit"
    navigator.advance("prev")
    assert navigator.effective_content() == "v1"
    assert navigator.effective_content(live="ignored") == "v1"


def test_diff_between_neighbouring_snapshots():
    _, navigator = _navigator("\\section{A}\n", "\\section{B}\n")

    diff = navigator.diff()

    assert "-\\section{A}" in diff
    assert "+\\section{B}" in diff
    navigator.advance("prev")
    assert navigator.diff() == ""


def test_reload_moves_cursor_to_new_latest():
    _, navigator = _navigator("v1", "v2")
    navigator.advance("prev")

    navigator.load(_versions("v1", "v2", "v3"))

    assert navigator.index == 2
    assert navigator.is_current_version
