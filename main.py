#!/usr/bin/env python3
"""Group Chat Assistant CLI."""

import argparse
import asyncio
import logging
import sys
from config.settings import Settings
from orchestrator import ChatOrchestrator

HELP_TEXT = """Commands:
  /reset      forget this conversation's context (history log is kept)
  /reset-all  forget every conversation's context
  /memories   list what the assistant remembers here
  /quit       exit"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Group Chat Assistant - LLM replies with conversation memory"
    )
    parser.add_argument("--db-path", type=str, default="data/chat.db", help="SQLite database path")
    parser.add_argument(
        "--provider",
        type=str,
        choices=["openai", "anthropic"],
        default="openai",
        help="LLM provider (default: openai-compatible, Moonshot endpoint)"
    )
    parser.add_argument("--model", type=str, help="Model override")
    parser.add_argument(
        "--no-persistence",
        action="store_true",
        help="Keep conversations in memory only"
    )
    parser.add_argument(
        "--no-memory",
        action="store_true",
        help="Disable long-term memories and the memory tool"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    chat = subparsers.add_parser("chat", help="Chat interactively in a conversation")
    chat.add_argument("--room", "-r", type=str, default="cli", help="Conversation id (default: cli)")
    chat.add_argument("--name", "-n", type=str, default="me", help="Speaker name (default: me)")

    memories = subparsers.add_parser("memories", help="Inspect or edit remembered facts")
    memories.add_argument(
        "action",
        choices=["list", "search", "forget", "clear", "stats"],
    )
    memories.add_argument("--room", "-r", type=str, required=True, help="Conversation id")
    memories.add_argument("text", nargs="?", help="Keyword for search, memory text for forget")

    history = subparsers.add_parser("history", help="Inspect or prune the history log")
    history.add_argument("action", choices=["stats", "clear", "cleanup"])
    history.add_argument("--room", "-r", type=str, help="Conversation id (clear all when omitted)")
    history.add_argument("--days", type=int, help="Retention for cleanup (default: 30)")

    return parser


async def run_chat(orchestrator: ChatOrchestrator, room: str, name: str):
    """Read lines from stdin and print the assistant's replies."""
    print(HELP_TEXT)
    while True:
        try:
            line = await asyncio.to_thread(input, f"{name}> ")
        except EOFError:
            break

        line = line.strip()
        if not line:
            continue
        if line == "/quit":
            break
        if line == "/reset":
            await orchestrator.reset_conversation(room)
            print("Conversation context cleared.")
            continue
        if line == "/reset-all":
            await orchestrator.reset_all_conversations()
            print("All conversation contexts cleared.")
            continue
        if line == "/memories":
            for i, text in enumerate(await orchestrator.list_memories(room), 1):
                print(f"{i}. {text}")
            continue

        try:
            reply = await orchestrator.chat(f"{name}: {line}", room)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            continue
        print(f"assistant> {reply or '(no reply)'}")


async def run_memories(orchestrator: ChatOrchestrator, args):
    if args.action == "list":
        for i, text in enumerate(await orchestrator.list_memories(args.room), 1):
            print(f"{i}. {text}")
    elif args.action == "search":
        if not args.text:
            raise ValueError("search needs a keyword")
        for text in await orchestrator.search_memories(args.room, args.text):
            print(text)
    elif args.action == "forget":
        if not args.text:
            raise ValueError("forget needs the memory text")
        await orchestrator.forget_memory(args.room, args.text)
        print("Forgotten.")
    elif args.action == "clear":
        await orchestrator.clear_memories(args.room)
        print("All memories cleared.")
    elif args.action == "stats":
        stats = await orchestrator.memory_stats(args.room)
        print(f"{stats.conversation_id}: {stats.count} memories")


async def run_history(orchestrator: ChatOrchestrator, args):
    if args.action == "stats":
        if not args.room:
            raise ValueError("stats needs --room")
        stats = await orchestrator.history_stats(args.room)
        print(f"{stats.conversation_id}: {stats.message_count} messages")
    elif args.action == "clear":
        if args.room:
            await orchestrator.reset_conversation(args.room, clear_history=True)
        else:
            await orchestrator.reset_all_conversations(clear_history=True)
        print("History cleared.")
    elif args.action == "cleanup":
        deleted = await orchestrator.cleanup_history(args.days)
        print(f"Removed {deleted} messages.")


async def run(args):
    settings = Settings(
        llm_provider=args.provider,
        llm_model=args.model,
        db_path=args.db_path,
        use_persistence=not args.no_persistence,
        use_memory=not args.no_memory,
        verbose=args.verbose,
    )
    orchestrator = ChatOrchestrator(settings=settings)

    if args.command == "chat":
        await run_chat(orchestrator, args.room, args.name)
    elif args.command == "memories":
        await run_memories(orchestrator, args)
    elif args.command == "history":
        await run_history(orchestrator, args)


def main():
    """Main CLI entry point."""
    args = build_parser().parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
