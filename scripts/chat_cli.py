#!/usr/bin/env python3
"""Interactive terminal chat against the DuckDuckGo AI chat service.

Usage:
  python scripts/chat_cli.py [--model gpt-4o-mini] [--news] [--local] [--web] [--verbose]

Commands inside the prompt:
  /clear          start a new conversation
  /model <id>     switch model
  /models         list known models
  /history        show the conversation so far
  /quit           exit
"""

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path

# Add project root to sys.path so the script runs from a source checkout
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

from duckchat.core.config import SessionConfig
from duckchat.core.errors import DuckChatError
from duckchat.core.log_setup import configure_logging
from duckchat.core.models import DEFAULT_MODEL, available_models
from duckchat.core.session import ChatSession


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with DuckDuckGo AI from the terminal.")
    parser.add_argument("--model", default=DEFAULT_MODEL, help="Model identifier")
    parser.add_argument("--web", action="store_true", help="Enable web search (gpt-4o-mini only)")
    parser.add_argument("--news", action="store_true", help="Enable news search")
    parser.add_argument("--local", action="store_true", help="Enable local search and weather")
    parser.add_argument("--verbose", action="store_true", help="Log session events to stderr")
    return parser.parse_args(argv)


def print_history(chat: ChatSession) -> None:
    history = chat.get_history()
    if not history:
        print("  (empty)")
        return
    for index, msg in enumerate(history, start=1):
        preview = msg.text().replace("\n", " ")
        print(f"  {index}. [{msg.role}] {preview[:70]}")


async def handle_command(chat: ChatSession, line: str) -> bool:
    """Run a slash command. Returns False when the loop should stop."""
    command, _, arg = line.partition(" ")
    if command in ("/quit", "/exit"):
        return False
    if command == "/clear":
        await chat.clear()
        print("🧹 History cleared.")
    elif command == "/model":
        if not arg:
            print(f"Current model: {chat.model_id}")
        else:
            chat.set_model(arg.strip())
            print(f"Model switched to {chat.model_id}")
    elif command == "/models":
        for model in available_models():
            print(f"  {model}")
    elif command == "/history":
        print_history(chat)
    else:
        print(f"Unknown command: {command}")
    return True


async def run(args: argparse.Namespace) -> int:
    config = SessionConfig.from_env()
    if args.verbose:
        config = replace(config, logging_enabled=True)

    async with ChatSession(args.model, config) as chat:
        if args.web and not chat.enable_web_search():
            print(f"⚠️  Web search is not available for {chat.model_id}")
        if args.news:
            chat.enable_news_search()
        if args.local:
            chat.enable_local_features()

        try:
            await chat.initialize()
        except DuckChatError as e:
            print(f"❌ {e}")
            return 1

        print(f"🦆 Connected ({chat.model_id}). Type /quit to exit.")
        while True:
            try:
                line = (await asyncio.to_thread(input, "> ")).strip()
            except (EOFError, KeyboardInterrupt):
                print()
                return 0

            if not line:
                continue
            if line.startswith("/"):
                if not await handle_command(chat, line):
                    return 0
                continue

            try:
                await chat.send_message_stream(
                    line,
                    lambda fragment: print(fragment, end="", flush=True),
                )
                print()
            except DuckChatError as e:
                print(f"\n❌ {e}")


def main(argv: list[str] | None = None) -> int:
    load_dotenv(project_root / ".env")
    args = parse_args(argv)
    configure_logging("DEBUG" if args.verbose else "WARNING")
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
