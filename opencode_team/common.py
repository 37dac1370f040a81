from __future__ import annotations

import os
import json
import sys
import time
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Optional, TypeVar, Union

# =========================
# Package-relative paths
# =========================

# <repo_root>/opencode_team/common.py  -> opencode_team/
PACKAGE_DIR = Path(__file__).resolve().parent
PROMPTS_DIR = PACKAGE_DIR / "prompts"

GITHUB_PROMPT = "github_pr_summary.json"
GITLAB_PROMPT = "gitlab_mr_summary.json"


# =========================
# Exit codes & errors
# =========================

class ExitCode(IntEnum):
    SUCCESS = 0
    USAGE_ERROR = 2
    TOOL_NOT_FOUND = 3
    CATALOG_FETCH_FAILED = 4
    MODEL_RESOLUTION_FAILED = 5
    EXECUTION_ERROR = 6
    PROMPT_ACQUISITION_ERROR = 7
    PROMPT_FILE_MISSING = 8
    NETWORK_ERROR = 9


class WrapperError(RuntimeError):
    """Base for every failure that ends a wrapper invocation."""

    exit_code = ExitCode.EXECUTION_ERROR


class UsageError(WrapperError):
    exit_code = ExitCode.USAGE_ERROR


class ToolUnavailable(WrapperError):
    exit_code = ExitCode.TOOL_NOT_FOUND


class CatalogUnavailable(WrapperError):
    exit_code = ExitCode.CATALOG_FETCH_FAILED


class ModelResolutionError(WrapperError):
    exit_code = ExitCode.MODEL_RESOLUTION_FAILED

    def __init__(self, message: str, candidates: list[str]):
        super().__init__(message)
        self.candidates = list(candidates)


class ModelNotFound(ModelResolutionError):
    pass


class ModelAmbiguous(ModelResolutionError):
    pass


class PromptAcquisitionError(WrapperError):
    exit_code = ExitCode.PROMPT_ACQUISITION_ERROR


class PromptFileMissing(WrapperError):
    exit_code = ExitCode.PROMPT_FILE_MISSING


class NetworkError(WrapperError):
    exit_code = ExitCode.NETWORK_ERROR


class DiffFetchFailed(NetworkError):
    pass


class EmptyDiff(NetworkError):
    pass


class ExecutionError(WrapperError):
    exit_code = ExitCode.EXECUTION_ERROR


# =========================
# Settings
# =========================

OPENCODE_BIN_DEFAULT = "opencode"
DEFAULT_MODEL = "github-copilot/gpt-5-mini"
HTTP_TIMEOUT_DEFAULT = 30.0


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0

    def delay_for(self, attempt: int) -> float:
        # attempt is 1-indexed
        return self.base_delay * (2 ** (attempt - 1))


DIFF_RETRY_POLICY = RetryPolicy(max_attempts=3, base_delay=1.0)


@dataclass(frozen=True)
class Settings:
    opencode_bin: str = OPENCODE_BIN_DEFAULT
    default_model: str = DEFAULT_MODEL
    github_token: Optional[str] = None
    gitlab_token: Optional[str] = None
    http_timeout: float = HTTP_TIMEOUT_DEFAULT
    retry_policy: RetryPolicy = DIFF_RETRY_POLICY
    prompts_dir: Path = PROMPTS_DIR


def load_settings(environ: Optional[Dict[str, str]] = None) -> Settings:
    """
    Read every environment-driven value once. Tokens are optional;
    an unset or blank token means unauthenticated requests.
    """
    env = os.environ if environ is None else environ

    def get(name: str) -> Optional[str]:
        val = env.get(name)
        if val is None or not val.strip():
            return None
        return val.strip()

    timeout = HTTP_TIMEOUT_DEFAULT
    raw_timeout = get("OPENCODE_HTTP_TIMEOUT")
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            log_warn(f"Ignoring invalid OPENCODE_HTTP_TIMEOUT={raw_timeout!r}")

    return Settings(
        opencode_bin=get("OPENCODE_BIN") or OPENCODE_BIN_DEFAULT,
        default_model=get("OPENCODE_DEFAULT_MODEL") or DEFAULT_MODEL,
        github_token=get("GITHUB_TOKEN"),
        gitlab_token=get("GITLAB_TOKEN"),
        http_timeout=timeout,
    )


# =========================
# Prompts
# =========================

def load_prompt(name: str, prompts_dir: Path = PROMPTS_DIR) -> str:
    """
    name ∈ {"github_pr_summary.json", "gitlab_mr_summary.json"} or a custom filename in prompts/.
    Returns the prompt string from {"prompt": "..."} JSON.
    """
    p = Path(prompts_dir) / name
    try:
        with p.open("r", encoding="utf-8") as f:
            obj = json.load(f)
    except FileNotFoundError:
        raise PromptFileMissing(f"Prompt file not found: {p}") from None
    except (OSError, ValueError) as e:
        raise PromptFileMissing(f"Prompt file unreadable: {p} ({e})") from e
    if isinstance(obj, dict) and "prompt" in obj and isinstance(obj["prompt"], str):
        return obj["prompt"]
    raise PromptFileMissing(f"Prompt file must be an object with key 'prompt': {p}")


# =========================
# Results & retry
# =========================

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: Exception


Result = Union[Ok[T], Err]


def with_retry(
    action: Callable[[], Result],
    policy: RetryPolicy = DIFF_RETRY_POLICY,
    sleep: Callable[[float], Any] = time.sleep,
    label: str = "request",
) -> Result:
    """
    Run *action* until it returns Ok or policy.max_attempts is reached.
    The final Err is returned as-is; nothing is wrapped.
    """
    attempt = 1
    while True:
        result = action()
        if isinstance(result, Ok):
            return result
        if attempt >= policy.max_attempts:
            return result
        delay = policy.delay_for(attempt)
        log_warn(
            f"{label} failed (attempt {attempt}/{policy.max_attempts}): "
            f"{result.error}; retrying in {delay:g}s"
        )
        sleep(delay)
        attempt += 1


# =========================
# Provider helpers
# =========================

def gh_headers(token: Optional[str]) -> Dict[str, str]:
    h = {"User-Agent": "opencode-team/1.0"}
    if token:
        h["Authorization"] = f"token {token}"
    return h


def gl_headers(token: Optional[str]) -> Dict[str, str]:
    h = {"User-Agent": "opencode-team/1.0"}
    if token:
        h["PRIVATE-TOKEN"] = token
    return h


# =========================
# Lightweight logger
# =========================

# Everything goes to stderr; stdout belongs to the opencode child.
_LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}
_threshold = _LEVELS.get(os.getenv("OPENCODE_LOG_LEVEL", "INFO").upper(), 20)


def set_log_level(level: str) -> None:
    global _threshold
    _threshold = _LEVELS.get(level.upper(), _threshold)


def _log(level: str, msg: str) -> None:
    if _LEVELS[level] >= _threshold:
        print(f"[{level}] {msg}", file=sys.stderr, flush=True)


def log_debug(msg: str) -> None:
    _log("DEBUG", msg)

def log_info(msg: str) -> None:
    _log("INFO", msg)

def log_warn(msg: str) -> None:
    _log("WARN", msg)

def log_err(msg: str) -> None:
    _log("ERROR", msg)
