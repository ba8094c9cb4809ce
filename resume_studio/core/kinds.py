from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from resume_studio.core.artifact_state import ArtifactMetadata
from resume_studio.core.extractor import extract_latex


@dataclass(frozen=True)
class ArtifactKind:
    """Per-kind behaviour the engine dispatches on."""

    kind: str
    description: str
    title: str
    # Event type carrying explicit document content for this kind
    delta_type: str
    extract: Callable[[str], Optional[str]]
    is_latex: bool = False
    preview_filename: str = "document.pdf"
    source_filename: str = "document.txt"
    initial_metadata: ArtifactMetadata = field(default_factory=ArtifactMetadata)


_REGISTRY: Dict[str, ArtifactKind] = {}


def register_kind(kind: ArtifactKind) -> ArtifactKind:
    _REGISTRY[kind.kind] = kind
    return kind


def get_kind(kind: str) -> ArtifactKind:
    try:
        return _REGISTRY[kind]
    except KeyError:
        raise KeyError(f"Unknown artifact kind: {kind}") from None


RESUME_KIND = register_kind(
    ArtifactKind(
        kind="resume",
        description="LaTeX resume editor and PDF preview",
        title="Resume Builder",
        delta_type="latex-delta",
        extract=extract_latex,
        is_latex=True,
        preview_filename="resume.pdf",
        source_filename="resume.tex",
        initial_metadata=ArtifactMetadata(is_read_only=False, active_tab="latex"),
    )
)
