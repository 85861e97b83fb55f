"""Repository locator — GitHub URL / ``owner/name`` shorthand → RepositoryIdentity."""

from __future__ import annotations

from urllib.parse import unquote, urlsplit

from repoflow.engines.ingestion.models import RepositoryIdentity
from repoflow.services import InvalidRepositoryUrl

GITHUB_HOSTS = frozenset({"github.com", "www.github.com"})


def parse_github_url(repo_url: str) -> RepositoryIdentity:
    """Parse *repo_url* into a :class:`RepositoryIdentity`.

    Handles:
      - https://github.com/owner/repo (any extra path such as ``/tree/main`` is ignored)
      - https://github.com/owner/repo.git
      - github.com/owner/repo
      - git@github.com:owner/repo.git
      - owner/repo

    Raises :class:`InvalidRepositoryUrl` when the host is not GitHub or fewer
    than two path segments are present.
    """
    raw = (repo_url or "").strip()
    if not raw:
        raise InvalidRepositoryUrl("repository URL is required")

    segments = _path_segments(raw)
    if len(segments) < 2:
        raise InvalidRepositoryUrl(
            f"Invalid GitHub URL: must include owner and repository name: {repo_url!r}"
        )

    owner = _decode_segment(segments[0], repo_url)
    name = _decode_segment(segments[1], repo_url)
    if name.endswith(".git"):
        name = name[:-4]
    if not owner or not name:
        raise InvalidRepositoryUrl(f"Invalid repository URL: {repo_url!r}")

    return RepositoryIdentity(owner=owner, name=name)


def normalize_repo_url(repo_url: str) -> str:
    """Return the canonical ``https://github.com/owner/name`` form of *repo_url*."""
    return parse_github_url(repo_url).url


def _path_segments(raw: str) -> list[str]:
    """Split *raw* into owner/name path segments after checking the host."""
    # SSH format: git@github.com:owner/repo
    if raw.startswith("git@"):
        host, sep, path = raw[len("git@") :].partition(":")
        if not sep:
            raise InvalidRepositoryUrl(f"Invalid repository URL: {raw!r}")
        _check_host(host, raw)
        return [s for s in path.split("/") if s]

    parts = urlsplit(raw)
    if parts.scheme and parts.netloc:
        if parts.scheme not in ("http", "https"):
            raise InvalidRepositoryUrl(f"Invalid repository URL: {raw!r}")
        _check_host(parts.hostname or "", raw)
        return [s for s in parts.path.split("/") if s]

    # No scheme: either "github.com/owner/repo" or the "owner/repo" shorthand.
    segments = [s for s in raw.split("/") if s]
    if segments and "." in segments[0]:
        _check_host(segments[0], raw)
        return segments[1:]
    return segments


def _check_host(host: str, raw: str) -> None:
    if host.lower() not in GITHUB_HOSTS:
        raise InvalidRepositoryUrl(f"Only GitHub repositories are supported: {raw!r}")


def _decode_segment(segment: str, raw: str) -> str:
    value = unquote(segment)
    if "/" in value or "\\" in value or value in (".", ".."):
        raise InvalidRepositoryUrl(f"Invalid repository URL: {raw!r}")
    return value
