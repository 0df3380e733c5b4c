"""
Command-line entry point.

Usage:
  python main.py ask "What does this error mean?" --history "them: it crashed"
  python main.py validate-key sk-...

The ask command reads the model selection from ASK_PROVIDER / ASK_MODEL /
OPENAI_API_KEY and streams the answer to stdout.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Any, Dict

from askstream.logging_config import setup_logging
from askstream.models import ModelInfo
from askstream.provider.client import validate_api_key
from askstream.services.ask_service import AskService
from askstream.services.session_repository import InMemorySessionRepository
from askstream.services.settings_service import SettingsService

# Configure logging once for the whole process.
setup_logging()


class ConsoleSurface:
    """Prints the growing response; the console is always visible."""

    def __init__(self) -> None:
        self._printed = 0

    def is_visible(self) -> bool:
        return True

    def request_visibility(self, visible: bool) -> None:
        pass

    def publish_state(self, state: Dict[str, Any]) -> None:
        response = state.get("currentResponse") or ""
        if len(response) > self._printed:
            sys.stdout.write(response[self._printed :])
            sys.stdout.flush()
        self._printed = len(response)

    def publish_stream_error(self, message: str) -> None:
        print(f"\nerror: {message}", file=sys.stderr)


def _model_info_from_env() -> ModelInfo | None:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        return None
    return ModelInfo(
        provider=os.getenv("ASK_PROVIDER", "openai"),
        model=os.getenv("ASK_MODEL", "gpt-4.1"),
        api_key=api_key,
    )


async def _ask(args: argparse.Namespace) -> int:
    resolver = SettingsService(model_info=_model_info_from_env())
    if args.reasoning_effort:
        await resolver.set_reasoning_effort(args.reasoning_effort)
    if args.max_tokens:
        await resolver.save_settings({"maxTokens": args.max_tokens})

    service = AskService(
        resolver=resolver,
        surface=ConsoleSurface(),
        repository=InMemorySessionRepository(),
    )
    try:
        result = await service.send_message(args.prompt, args.history)
    finally:
        await service.aclose()
    print()
    return 0 if result.success else 1


async def _validate(args: argparse.Namespace) -> int:
    result = await validate_api_key(args.key)
    if result.success:
        print("API key is valid.")
        return 0
    print(f"API key rejected: {result.error}", file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Streamed screen-aware ask assistant.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ask = subparsers.add_parser("ask", help="send one ask request and stream the answer")
    ask.add_argument("prompt", nargs="?", default="", help="question; empty asks about the screen")
    ask.add_argument(
        "--history",
        action="append",
        default=[],
        help="conversation line to include as context (repeatable)",
    )
    ask.add_argument("--reasoning-effort", help="none, low, medium, high or xhigh")
    ask.add_argument("--max-tokens", type=int, help="configured output-token ceiling")
    ask.set_defaults(handler=_ask)

    validate = subparsers.add_parser("validate-key", help="check an API key against the provider")
    validate.add_argument("key")
    validate.set_defaults(handler=_validate)

    args = parser.parse_args(argv)
    return asyncio.run(args.handler(args))


if __name__ == "__main__":
    raise SystemExit(main())
