from __future__ import annotations
import shutil
import subprocess
from typing import Optional, Sequence, TextIO

from .common import (
    ExecutionError, PromptAcquisitionError, Settings, ToolUnavailable,
    UsageError, log_debug, log_info
)

DIFF_OPEN = "<GIT_DIFF>"
DIFF_CLOSE = "</GIT_DIFF>"

SHOW_PROMPT_PREFIX = 200         # how much of prompt to echo at DEBUG


def assemble_prompt(template: str, diff: str) -> str:
    return f"{template.rstrip()}\n\n{DIFF_OPEN}\n{diff.rstrip()}\n{DIFF_CLOSE}"


def acquire_prompt(prompt: Optional[str], stdin: TextIO) -> str:
    """
    --prompt wins; otherwise read piped stdin. An interactive terminal
    with no --prompt is a usage error, blank text is an acquisition error.
    """
    if prompt is not None:
        text = prompt
    elif stdin is None or stdin.isatty():
        raise UsageError("No prompt given: pass --prompt/-p TEXT or pipe the prompt on stdin")
    else:
        try:
            text = stdin.read()
        except (OSError, UnicodeDecodeError) as e:
            raise PromptAcquisitionError(f"Could not read prompt from stdin: {e}") from e
    text = text.strip()
    if not text:
        raise PromptAcquisitionError("Prompt is empty")
    return text


def ensure_opencode(settings: Settings) -> str:
    path = shutil.which(settings.opencode_bin)
    if path is None:
        raise ToolUnavailable(f"'{settings.opencode_bin}' not found on PATH")
    return path


def build_command(model: str, passthrough: Sequence[str], settings: Settings) -> list:
    return [settings.opencode_bin, "run", "--model", model, *passthrough]


def invoke_opencode(model: str, prompt: str, passthrough: Sequence[str], settings: Settings) -> int:
    """
    Run `opencode run --model <model> [passthrough...]` with the prompt on stdin.
    stdout/stderr are inherited so the child's output streams through untouched.
    Returns the child's exit code, or 128 + signal number when a signal killed it.
    """
    cmd = build_command(model, passthrough, settings)
    log_info(f"Running {' '.join(cmd[:4])} with {len(passthrough)} passthrough arg(s)")
    log_debug(f"Prompt preview: {prompt[:SHOW_PROMPT_PREFIX].replace(chr(10), ' ')} ... [len={len(prompt)}]")
    try:
        proc = subprocess.run(cmd, input=prompt, text=True)
    except OSError as e:
        raise ExecutionError(f"Could not start {settings.opencode_bin}: {e}") from e
    if proc.returncode < 0:
        # killed by a signal: report it the way a shell would
        return 128 - proc.returncode
    return proc.returncode
