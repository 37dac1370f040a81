from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .common import UsageError


@dataclass(frozen=True)
class ParsedArguments:
    model: Optional[str] = None
    prompt: Optional[str] = None
    repo: Optional[str] = None
    number: Optional[str] = None
    help: bool = False
    passthrough: Tuple[str, ...] = ()


# flag -> ParsedArguments field
_VALUE_FLAGS = {
    "--model": "model",
    "--prompt": "prompt",
    "-p": "prompt",
    "--repo": "repo",
    "--pr": "number",
    "--mr": "number",
}
_HELP_FLAGS = ("--help", "-h")


def parse_args(argv: Sequence[str], prog: str = "opencode-chat") -> ParsedArguments:
    """
    Split argv into the wrapper's own flags and an ordered passthrough list.
    Only `--flag=value` and `--flag value` are recognized; in the second form the
    next token is the value whatever it looks like. Repeated flags: last one wins.
    A value flag at the end of argv is a UsageError.
    """
    tokens = list(argv)
    values: Dict[str, str] = {}
    want_help = False
    passthrough: List[str] = []

    i = 0
    while i < len(tokens):
        tok = tokens[i]
        name, sep, val = tok.partition("=")
        if sep and name in _VALUE_FLAGS:
            values[_VALUE_FLAGS[name]] = val
        elif tok in _VALUE_FLAGS:
            if i + 1 >= len(tokens):
                raise UsageError(f"{prog}: {tok} requires a value")
            values[_VALUE_FLAGS[tok]] = tokens[i + 1]
            i += 1
        elif tok in _HELP_FLAGS:
            want_help = True
        else:
            passthrough.append(tok)
        i += 1

    return ParsedArguments(help=want_help, passthrough=tuple(passthrough), **values)


def parse_change_number(raw: Optional[str], flag: str) -> int:
    if raw is None:
        raise UsageError(f"missing required {flag} NUMBER")
    try:
        n = int(raw)
    except ValueError:
        raise UsageError(f"{flag} expects a positive integer, got {raw!r}") from None
    if n <= 0:
        raise UsageError(f"{flag} expects a positive integer, got {raw!r}")
    return n


CHAT_USAGE = """\
Usage: opencode-chat [--model NAME] [--prompt|-p TEXT] [--help|-h] [opencode flags...]

Resolve NAME against `opencode models` (exact, then case-insensitive, then
unique substring match) and send the prompt to `opencode run`.
When --prompt is omitted the prompt is read from piped standard input.
Unrecognized flags are forwarded to opencode unchanged.
"""

GITHUB_USAGE = """\
Usage: opencode-gh-summary --repo OWNER/NAME --pr NUMBER [--model NAME] [opencode flags...]

Fetch the pull request diff from GitHub (GITHUB_TOKEN is used when set)
and ask opencode to summarize it.
"""

GITLAB_USAGE = """\
Usage: opencode-gl-summary --repo PROJECT_ID --mr NUMBER [--model NAME] [opencode flags...]

Fetch the merge request diff from GitLab (GITLAB_TOKEN is used when set)
and ask opencode to summarize it.
"""

