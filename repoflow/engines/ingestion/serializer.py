"""Artifact serializer — walk a checkout and render one XML-like document.

The inclusion policy below is part of the artifact format: changing any of
these sets changes what downstream prompts see, so keep them in sync with
stored artifacts.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from xml.sax.saxutils import escape, unescape

import structlog

from repoflow.engines.ingestion.models import (
    MAX_FILE_SIZE,
    Artifact,
    SkipReason,
    Skipped,
    SourceFile,
    WalkReport,
)

log = structlog.get_logger("repoflow.engine")

EXCLUDED_DIRS = frozenset(
    {
        # version control
        ".git", ".svn", ".hg",
        # dependency / package caches
        "node_modules", "bower_components", "vendor", ".gradle", ".terraform",
        "venv", ".venv", "env", ".tox",
        # build output
        "dist", "build", "out", "target", ".next", ".nuxt", "coverage",
        # caches
        "__pycache__", ".pytest_cache", ".mypy_cache", ".cache", "tmp", "temp",
        # editor / OS
        ".idea", ".vscode", ".DS_Store",
    }
)

EXCLUDED_FILES = frozenset(
    {
        "package-lock.json", "yarn.lock", "pnpm-lock.yaml", "bun.lockb",
        "Cargo.lock", "poetry.lock", "Pipfile.lock", "composer.lock",
        "Gemfile.lock", "go.sum",
        ".DS_Store", "Thumbs.db", "desktop.ini",
    }
)

# Extension-less dotfiles that are still worth showing.
ALLOWED_DOTFILES = frozenset(
    {".gitignore", ".dockerignore", ".editorconfig", ".gitattributes", ".nvmrc"}
)

BUILD_FILES = frozenset({"Dockerfile", "Makefile", "Procfile", "Gemfile", "Rakefile"})

INCLUDED_EXTENSIONS = frozenset(
    {
        # source
        ".py", ".pyi", ".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx", ".java",
        ".kt", ".kts", ".scala", ".go", ".rs", ".rb", ".php", ".cs", ".fs",
        ".swift", ".m", ".mm", ".c", ".h", ".cc", ".cpp", ".cxx", ".hpp",
        ".hh", ".dart", ".lua", ".pl", ".pm", ".r", ".jl", ".ex", ".exs",
        ".erl", ".hs", ".clj", ".elm", ".vue", ".svelte", ".sol", ".zig",
        ".sh", ".bash", ".zsh", ".ps1", ".bat", ".sql", ".graphql", ".gql",
        ".proto",
        # markup / styles
        ".html", ".htm", ".css", ".scss", ".sass", ".less", ".xml", ".svg",
        # config
        ".json", ".jsonc", ".yaml", ".yml", ".toml", ".ini", ".cfg", ".conf",
        ".properties", ".gradle", ".tf", ".hcl", ".env",
        # documentation
        ".md", ".mdx", ".rst", ".txt", ".adoc",
    }
)


def classify_name(name: str) -> SkipReason | None:
    """Apply the name-based part of the inclusion policy to a file basename.

    Returns ``None`` when the file is eligible (size and encoding are checked
    separately), otherwise the reason it is skipped.
    """
    if name in EXCLUDED_FILES:
        return SkipReason.EXCLUDED_NAME
    if name in BUILD_FILES or name in ALLOWED_DOTFILES:
        return None

    _, ext = os.path.splitext(name)
    # splitext(".env") == (".env", ""): a dotfile with nothing after the dot-name
    if name.startswith(".") and not ext:
        return SkipReason.DOTFILE
    if ext.lower() not in INCLUDED_EXTENSIONS:
        return SkipReason.EXTENSION
    return None


def collect_files(root: Path) -> WalkReport:
    """Walk *root* depth-first and collect every file that passes the policy.

    Never raises for filesystem problems: an unreadable directory is recorded
    as a :class:`Skipped` entry and contributes zero files.
    """
    report = WalkReport()
    _walk(Path(root), "", report)
    report.files.sort(key=lambda f: f.relative_path)
    return report


def _walk(directory: Path, prefix: str, report: WalkReport) -> None:
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as exc:
        report.skipped.append(
            Skipped(prefix.rstrip("/") or ".", SkipReason.UNREADABLE, str(exc))
        )
        return

    for entry in entries:
        rel = f"{prefix}{entry.name}"
        if entry.is_symlink():
            report.skipped.append(Skipped(rel, SkipReason.SYMLINK))
            continue
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError as exc:
            report.skipped.append(Skipped(rel, SkipReason.UNREADABLE, str(exc)))
            continue
        if is_dir:
            if entry.name in EXCLUDED_DIRS:
                report.skipped.append(Skipped(rel, SkipReason.EXCLUDED_DIR))
            else:
                _walk(Path(entry.path), f"{rel}/", report)
            continue

        reason = classify_name(entry.name)
        if reason is not None:
            report.skipped.append(Skipped(rel, reason))
            continue

        outcome = read_source_file(Path(entry.path), rel)
        if isinstance(outcome, Skipped):
            report.skipped.append(outcome)
        else:
            report.files.append(outcome)


def read_source_file(path: Path, relative_path: str) -> SourceFile | Skipped:
    """Read one candidate file, returning either the file or why it was skipped."""
    try:
        size = path.stat().st_size
        if size > MAX_FILE_SIZE:
            return Skipped(relative_path, SkipReason.TOO_LARGE, f"{size} bytes")
        raw = path.read_bytes()
    except OSError as exc:
        return Skipped(relative_path, SkipReason.UNREADABLE, str(exc))

    # The file may have grown between stat() and read.
    if len(raw) > MAX_FILE_SIZE:
        return Skipped(relative_path, SkipReason.TOO_LARGE, f"{len(raw)} bytes")
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError:
        return Skipped(relative_path, SkipReason.UNDECODABLE)
    return SourceFile(relative_path=relative_path, content=content, size_bytes=len(raw))


def build_artifact(
    report: WalkReport,
    repository_name: str,
    generated_at: datetime | None = None,
) -> Artifact:
    """Wrap the collected files with metadata, ordered by relative path."""
    return Artifact(
        repository_name=repository_name,
        generated_at=generated_at or datetime.now(timezone.utc),
        files=tuple(sorted(report.files, key=lambda f: f.relative_path)),
    )


# ── XML-like rendering ──────────────────────────────────────────────────────

_ATTR_ENTITIES = {'"': "&quot;", "'": "&apos;"}
_ATTR_ENTITIES_REVERSE = {v: k for k, v in _ATTR_ENTITIES.items()}


def escape_attr(value: str) -> str:
    """Entity-escape ``& < > " '`` for use inside a double-quoted attribute."""
    return escape(value, _ATTR_ENTITIES)


def unescape_attr(value: str) -> str:
    """Reverse :func:`escape_attr`."""
    return unescape(value, _ATTR_ENTITIES_REVERSE)


def _cdata(content: str) -> str:
    # "]]>" would end the section early; split it across two sections.
    return "<![CDATA[" + content.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def render_artifact(artifact: Artifact) -> str:
    """Render *artifact* as text.

    Layout::

        <repository name=".." generated_at=".." file_count="N" total_size="B">
        <directory_structure>
        src/app.py
        </directory_structure>
        <file path="src/app.py">
        <![CDATA[...raw content...]]>
        </file>
        </repository>

    Byte-identical for identical inputs except for ``generated_at``.
    """
    parts = [
        "<repository"
        f' name="{escape_attr(artifact.repository_name)}"'
        f' generated_at="{escape_attr(artifact.generated_at.isoformat())}"'
        f' file_count="{artifact.file_count}"'
        f' total_size="{artifact.total_size_bytes}">\n',
        "<directory_structure>\n",
    ]
    parts.extend(f"{escape(f.relative_path)}\n" for f in artifact.files)
    parts.append("</directory_structure>\n")
    for f in artifact.files:
        parts.append(f'<file path="{escape_attr(f.relative_path)}">\n')
        parts.append(_cdata(f.content))
        parts.append("\n</file>\n")
    parts.append("</repository>\n")
    return "".join(parts)


def serialize_repository(
    root: Path,
    repository_name: str,
    *,
    generated_at: datetime | None = None,
    verbose: bool = False,
) -> tuple[str, Artifact, WalkReport]:
    """Walk *root*, build the artifact and render it. Returns ``(text, artifact, report)``."""
    report = collect_files(root)
    artifact = build_artifact(report, repository_name, generated_at)
    if verbose:
        for skipped in report.skipped:
            log.info(
                "serializer.skipped",
                path=skipped.relative_path,
                reason=skipped.reason.value,
                detail=skipped.detail,
            )
    log.info(
        "serializer.done",
        repo=repository_name,
        files=artifact.file_count,
        total_size=artifact.total_size_bytes,
        skipped=len(report.skipped),
    )
    return render_artifact(artifact), artifact, report
