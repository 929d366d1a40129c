#!/usr/bin/env python3
"""Personal Assistant CLI chat."""

import argparse
import asyncio
import logging
import sys

from config.settings import Settings
from errors import ConfigurationError
from assistant import Assistant


async def chat_loop(assistant: Assistant, user_id: int):
    """Read messages from stdin until /exit or EOF."""
    print("Type a message, /compact to summarize history, /exit to quit.\n")
    while True:
        try:
            text = await asyncio.to_thread(input, "you> ")
        except EOFError:
            break

        text = text.strip()
        if not text:
            continue
        if text == "/exit":
            break

        if text == "/compact":
            status = await assistant.compact(user_id)
            if status:
                print(f"\n{status}\n")
            continue

        for chunk in await assistant.handle_message(user_id, text):
            print(f"\n{chunk}\n")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Personal Assistant - chat with an AI agent that can use tools"
    )
    parser.add_argument(
        "--user-id",
        type=int,
        help="Sender identity (default: first entry of ALLOWED_USER_IDS)"
    )
    parser.add_argument(
        "--provider",
        type=str,
        choices=["anthropic", "openai"],
        default="anthropic",
        help="LLM provider (default: anthropic)"
    )
    parser.add_argument(
        "--model",
        type=str,
        help="Override the provider's default model"
    )
    parser.add_argument(
        "--db-path",
        type=str,
        default="data/assistant.db",
        help="SQLite database path (default: data/assistant.db)"
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        help="Maximum agent iterations per message"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    overrides = {
        "llm_provider": args.provider,
        "llm_model": args.model,
        "db_path": args.db_path,
        "verbose": args.verbose,
    }
    if args.max_iterations is not None:
        overrides["max_agent_iterations"] = args.max_iterations

    try:
        settings = Settings(**overrides)
        if args.user_id is not None and not settings.allowed_user_ids:
            settings.allowed_user_ids = [args.user_id]
        settings.validate_required()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    user_id = args.user_id if args.user_id is not None else settings.allowed_user_ids[0]
    if user_id not in settings.allowed_user_ids:
        print(f"User {user_id} is not in ALLOWED_USER_IDS.", file=sys.stderr)
        sys.exit(1)

    assistant = Assistant(settings=settings)

    try:
        asyncio.run(chat_loop(assistant, user_id))
    except KeyboardInterrupt:
        pass
    print("Bye.")


if __name__ == "__main__":
    main()
