from __future__ import annotations

import subprocess
from typing import Any, Dict, List

import pytest
import requests

CATALOG = ["github-copilot/gpt-5-mini", "github-copilot/gpt-5", "anthropic/claude-sonnet-4"]


class FakeOpencode:
    """Stands in for subprocess.run: answers `models`, records `run` calls."""

    def __init__(self, catalog: List[str], run_returncode: int = 0):
        self.catalog_output = "\n".join(catalog) + "\n"
        self.catalog_returncode = 0
        self.run_returncode = run_returncode
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, cmd, **kwargs):
        self.calls.append({"cmd": list(cmd), **kwargs})
        if cmd[1] == "models":
            return subprocess.CompletedProcess(cmd, self.catalog_returncode, stdout=self.catalog_output, stderr="")
        return subprocess.CompletedProcess(cmd, self.run_returncode)

    @property
    def run_calls(self) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["cmd"][1] == "run"]


class FakeResponse:
    def __init__(self, text: str = "", status_code: int = 200):
        self.text = text
        self.status_code = status_code
        self.headers = {}
        self.encoding = None

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeGet:
    """Replays a list of responses/exceptions for requests.get."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, url, headers=None, timeout=None):
        self.calls.append({"url": url, "headers": dict(headers or {}), "timeout": timeout})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeTTY:
    def isatty(self) -> bool:
        return True

    def read(self) -> str:
        raise AssertionError("terminal stdin must not be read")


@pytest.fixture
def fake_opencode(monkeypatch):
    fake = FakeOpencode(CATALOG)
    monkeypatch.setattr(subprocess, "run", fake)
    monkeypatch.setattr("shutil.which", lambda name: f"/usr/local/bin/{name}")
    return fake


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("GITHUB_TOKEN", "GITLAB_TOKEN", "OPENCODE_BIN", "OPENCODE_DEFAULT_MODEL", "OPENCODE_HTTP_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
