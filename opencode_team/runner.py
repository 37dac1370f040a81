from __future__ import annotations
import sys
from typing import Callable, Optional, Sequence, TextIO

from .arguments import (
    CHAT_USAGE, GITHUB_USAGE, GITLAB_USAGE, parse_args, parse_change_number
)
from .common import (
    GITHUB_PROMPT, GITLAB_PROMPT, ExitCode, Settings, UsageError, WrapperError,
    load_prompt, load_settings, log_err, log_info
)
from .extractor import Provider, fetch_diff, request_for
from .generator import acquire_prompt, assemble_prompt, ensure_opencode, invoke_opencode
from .models import fetch_model_catalog, resolve_model


def _resolve(requested: Optional[str], settings: Settings) -> str:
    catalog = fetch_model_catalog(settings)
    model = resolve_model(requested, catalog, default=settings.default_model)
    log_info(f"Using model {model}")
    return model


def run_chat(argv: Sequence[str], settings: Settings, stdin: Optional[TextIO] = None) -> int:
    args = parse_args(argv, prog="opencode-chat")
    if args.help:
        print(CHAT_USAGE)
        return ExitCode.SUCCESS
    ensure_opencode(settings)
    model = _resolve(args.model, settings)
    prompt = acquire_prompt(args.prompt, sys.stdin if stdin is None else stdin)
    return invoke_opencode(model, prompt, args.passthrough, settings)


_SUMMARY = {
    Provider.GITHUB: ("opencode-gh-summary", "--pr", GITHUB_USAGE, GITHUB_PROMPT),
    Provider.GITLAB: ("opencode-gl-summary", "--mr", GITLAB_USAGE, GITLAB_PROMPT),
}


def run_summary(provider: Provider, argv: Sequence[str], settings: Settings) -> int:
    """
    Fetch a PR/MR diff, wrap it in the provider's template and hand it to opencode.
    --prompt TEXT replaces the template text.
    """
    prog, flag, usage, prompt_name = _SUMMARY[provider]
    args = parse_args(argv, prog=prog)
    if args.help:
        print(usage)
        return ExitCode.SUCCESS
    if not args.repo:
        raise UsageError(f"missing required --repo\n\n{usage}")
    number = parse_change_number(args.number, flag)

    ensure_opencode(settings)
    model = _resolve(args.model, settings)

    template = args.prompt if args.prompt is not None else load_prompt(prompt_name, settings.prompts_dir)
    diff = fetch_diff(request_for(provider, args.repo, number, settings), settings)
    log_info(f"Fetched diff for {args.repo}#{number} ({len(diff)} chars)")
    prompt = assemble_prompt(template, diff)
    return invoke_opencode(model, prompt, args.passthrough, settings)


def _main(run: Callable[[Sequence[str], Settings], int], argv: Optional[Sequence[str]]) -> None:
    argv = sys.argv[1:] if argv is None else argv
    try:
        code = run(argv, load_settings())
    except WrapperError as e:
        log_err(str(e))
        code = e.exit_code
    sys.exit(int(code))


def chat_main(argv: Optional[Sequence[str]] = None) -> None:
    _main(run_chat, argv)

def github_main(argv: Optional[Sequence[str]] = None) -> None:
    _main(lambda a, s: run_summary(Provider.GITHUB, a, s), argv)

def gitlab_main(argv: Optional[Sequence[str]] = None) -> None:
    _main(lambda a, s: run_summary(Provider.GITLAB, a, s), argv)


if __name__ == "__main__":
    chat_main()
