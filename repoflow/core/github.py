"""GitHub API utilities."""

import os
from typing import Any

import httpx

API_BASE = "https://api.github.com"


def _headers(token: str | None) -> dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    if token:
        headers["Authorization"] = f"token {token}"
    return headers


async def fetch_repo_info(
    owner: str,
    repo: str,
    token: str | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> dict[str, Any] | None:
    """Return the GitHub repository record for ``owner/repo``.

    Returns None when GitHub answers 404 (missing, or private and not visible
    to *token*). Other non-2xx answers raise ``httpx.HTTPStatusError``.
    """
    token = token or os.environ.get("GITHUB_TOKEN")
    url = f"{API_BASE}/repos/{owner}/{repo}"

    if client is None:
        async with httpx.AsyncClient(timeout=10) as owned:
            resp = await owned.get(url, headers=_headers(token))
    else:
        resp = await client.get(url, headers=_headers(token))

    if resp.status_code == 404:
        return None
    resp.raise_for_status()
    return resp.json()
