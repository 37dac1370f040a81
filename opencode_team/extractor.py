from __future__ import annotations
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import requests

from .common import (
    DiffFetchFailed, EmptyDiff, Err, Ok, Result, Settings,
    gh_headers, gl_headers, log_info, with_retry
)

GITHUB_BASE = "https://github.com"
GITLAB_API_BASE = "https://gitlab.com/api/v4"


class Provider(Enum):
    GITHUB = "github"
    GITLAB = "gitlab"


@dataclass(frozen=True)
class DiffRequest:
    provider: Provider
    repo: str
    number: int
    token: Optional[str] = None

# ----------------------------- helpers --------------------------------------

def diff_url(req: DiffRequest) -> str:
    if req.provider is Provider.GITHUB:
        return f"{GITHUB_BASE}/{req.repo}/pull/{req.number}.diff"
    # GitLab wants "group/project" path-encoded; numeric ids pass through
    project = quote(req.repo, safe="")
    return f"{GITLAB_API_BASE}/projects/{project}/merge_requests/{req.number}/raw_diffs"

def diff_headers(req: DiffRequest) -> Dict[str, str]:
    if req.provider is Provider.GITHUB:
        return gh_headers(req.token)
    return gl_headers(req.token)

def _decode(r: requests.Response) -> str:
    # without an explicit charset requests falls back to ISO-8859-1 for text/*
    if "charset" not in r.headers.get("Content-Type", "").lower():
        r.encoding = "utf-8"
    return r.text

def request_for(provider: Provider, repo: str, number: int, settings: Settings) -> DiffRequest:
    token = settings.github_token if provider is Provider.GITHUB else settings.gitlab_token
    return DiffRequest(provider=provider, repo=repo, number=number, token=token)

# ----------------------------- main fetcher --------------------------------------

def fetch_diff(req: DiffRequest, settings: Settings, sleep: Callable[[float], Any] = time.sleep) -> str:
    """
    Download the diff text for a PR/MR.
    Transport errors and non-2xx statuses are retried per settings.retry_policy;
    an empty body is rejected straight away.
    """
    url = diff_url(req)
    headers = diff_headers(req)
    auth = "authenticated" if req.token else "unauthenticated"
    log_info(f"Fetching {url} ({auth})")

    def _attempt() -> Result:
        try:
            r = requests.get(url, headers=headers, timeout=settings.http_timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            return Err(e)
        return Ok(_decode(r))

    result = with_retry(_attempt, settings.retry_policy, sleep=sleep, label=f"GET {url}")
    if isinstance(result, Err):
        raise DiffFetchFailed(
            f"Failed to fetch diff from {url} after "
            f"{settings.retry_policy.max_attempts} attempt(s): {result.error}"
        ) from result.error

    text = result.value or ""
    if not text.strip():
        raise EmptyDiff(f"Empty diff returned from {url}")
    return text

if __name__ == "__main__":
    from .common import load_settings
    if len(sys.argv) != 4 or sys.argv[1] not in ("github", "gitlab"):
        print("Usage: python -m opencode_team.extractor <github|gitlab> <repo> <number>")
        sys.exit(1)
    settings = load_settings()
    req = request_for(Provider(sys.argv[1]), sys.argv[2], int(sys.argv[3]), settings)
    sys.stdout.write(fetch_diff(req, settings))
