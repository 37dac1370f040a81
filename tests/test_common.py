from __future__ import annotations

import json
from pathlib import Path

import pytest

from opencode_team.common import (
    GITHUB_PROMPT, GITLAB_PROMPT, Err, ExitCode, ModelAmbiguous, Ok,
    PromptFileMissing, RetryPolicy, UsageError, load_prompt, load_settings,
    with_retry
)


def _flaky(failures: int, value: str = "done"):
    state = {"calls": 0}

    def action():
        state["calls"] += 1
        if state["calls"] <= failures:
            return Err(ConnectionError(f"fail {state['calls']}"))
        return Ok(value)

    return action, state


def test_retry_succeeds_after_k_failures_with_exponential_delay() -> None:
    sleeps = []
    action, state = _flaky(2)
    result = with_retry(action, RetryPolicy(max_attempts=3, base_delay=1.0), sleep=sleeps.append)
    assert result == Ok("done")
    assert state["calls"] == 3
    assert sleeps == [1.0, 2.0]


def test_retry_returns_last_failure_unchanged() -> None:
    sleeps = []
    action, state = _flaky(10)
    result = with_retry(action, RetryPolicy(max_attempts=4, base_delay=0.5), sleep=sleeps.append)
    assert isinstance(result, Err)
    assert str(result.error) == "fail 4"
    assert state["calls"] == 4
    assert sleeps == [0.5, 1.0, 2.0]


def test_single_attempt_never_sleeps() -> None:
    sleeps = []
    action, _ = _flaky(1)
    assert isinstance(with_retry(action, RetryPolicy(max_attempts=1), sleep=sleeps.append), Err)
    assert sleeps == []


def test_load_settings_reads_environment_once() -> None:
    s = load_settings({
        "GITHUB_TOKEN": " ghp_x ",
        "GITLAB_TOKEN": "",
        "OPENCODE_BIN": "/opt/opencode",
        "OPENCODE_HTTP_TIMEOUT": "12.5",
    })
    assert s.github_token == "ghp_x"
    assert s.gitlab_token is None
    assert s.opencode_bin == "/opt/opencode"
    assert s.http_timeout == 12.5
    assert s.default_model == "github-copilot/gpt-5-mini"
    assert s.retry_policy == RetryPolicy(max_attempts=3, base_delay=1.0)


def test_bundled_prompts_load() -> None:
    for name in (GITHUB_PROMPT, GITLAB_PROMPT):
        assert "GIT_DIFF" in load_prompt(name)


def test_missing_or_malformed_prompt_file(tmp_path: Path) -> None:
    with pytest.raises(PromptFileMissing):
        load_prompt("nope.json", tmp_path)
    (tmp_path / "bad.json").write_text(json.dumps({"text": "x"}), encoding="utf-8")
    with pytest.raises(PromptFileMissing):
        load_prompt("bad.json", tmp_path)
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(PromptFileMissing):
        load_prompt("broken.json", tmp_path)


def test_exit_codes_are_distinct() -> None:
    values = [c.value for c in ExitCode]
    assert len(values) == len(set(values))
    assert UsageError.exit_code == ExitCode.USAGE_ERROR
    assert ModelAmbiguous.exit_code == ExitCode.MODEL_RESOLUTION_FAILED
