"""Command-line entry point: one prompt in, one completion out."""
from __future__ import annotations
import argparse
import functools
import logging
import sys
from typing import Sequence

from llm_prompt import __author__, __version__
from llm_prompt.common.logging_setup import setup_logging
from llm_prompt.config import DEFAULT_ENDPOINT, DEFAULT_MODEL, build_configuration, resolve_prompt
from llm_prompt.dispatcher import dispatch
from llm_prompt.errors import LlmPromptError, UsageError

LOGGER = logging.getLogger("llm_prompt.cli")


class _AuthorAction(argparse.Action):
    """Print the author and exit, like ``--version``."""

    def __init__(self, option_strings, dest=argparse.SUPPRESS, default=argparse.SUPPRESS, help=None):  # noqa: A002
        super().__init__(option_strings=option_strings, dest=dest, default=default, nargs=0, help=help)

    def __call__(self, parser, namespace, values, option_string=None):  # noqa: ANN001
        print(__author__)
        parser.exit()


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="llm-prompt",
        description="Send a prompt to a local LLM completion endpoint and print the reply.",
    )
    ap.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("-a", "--author", action=_AuthorAction, help="show the author and exit")
    ap.add_argument("-m", "--model", default=DEFAULT_MODEL, help="Model identifier")
    ap.add_argument("-e", "--endpoint", default=DEFAULT_ENDPOINT, help="Completion endpoint URL")
    ap.add_argument("-s", "--system", default=None, help="System prompt")
    ap.add_argument("-d", "--debug", action="store_true", help="Trace request/response bodies to stderr")
    ap.add_argument("-c", "--stdin", action="store_true", help="Read the prompt from standard input")
    ap.add_argument("--config", default=None, metavar="PATH", help="YAML file with sampling and prompt-format settings")
    ap.add_argument("prompt", nargs="*", metavar="PROMPT", help="User prompt (words are joined with spaces)")
    return ap


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.debug else logging.WARNING)

    try:
        config = build_configuration(
            model=args.model,
            endpoint=args.endpoint,
            prompt=functools.partial(resolve_prompt, args.prompt, args.stdin, sys.stdin),
            system_prompt=args.system,
            debug=args.debug,
            config_path=args.config,
        )
        text = dispatch(config)
    except UsageError as e:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {e.message}", file=sys.stderr)
        return e.exit_code
    except LlmPromptError as e:
        LOGGER.error("%s", e.message)
        return e.exit_code

    print(text)
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
