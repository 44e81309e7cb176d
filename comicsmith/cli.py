# comicsmith/cli.py
"""
Terminal front-end.

    comicsmith                 interactive session (exit/quit, memory, clear)
    comicsmith chat "<idea>"   one turn, then exit
"""
import argparse
import asyncio
import json
import sys
from typing import List, Optional

from comicsmith import __version__
from comicsmith.agent.controller import ComicAgent, build_agent
from comicsmith.logger import get_logger

log = get_logger(__name__)

PROMPT = "you> "
BANNER = "Comicsmith: describe a story and I'll turn it into a comic. Commands: memory, clear, exit."


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog="comicsmith", description="Turn story ideas into comics.")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", parser_class=_Parser)
    chat = sub.add_parser("chat", help="Send one message and print the reply")
    chat.add_argument("prompt", nargs="*", help="What to ask for")
    return parser


def _print_outputs(session) -> None:
    urls = session.page_urls or session.panel_urls
    label = "Pages" if session.page_urls else "Panels"
    if urls:
        print(f"\n{label}:")
        for url in urls:
            print(f"  {url}")


async def run_once(agent: ComicAgent, prompt: str) -> int:
    session = agent.new_session()
    reply = await agent.respond(prompt, session)
    print(reply)
    _print_outputs(session)
    return 0


async def run_interactive(agent: ComicAgent) -> int:
    session = agent.new_session()
    print(BANNER)
    while True:
        try:
            line = await asyncio.to_thread(input, PROMPT)
        except (EOFError, KeyboardInterrupt):
            print()
            return 0
        text = line.strip()
        if not text:
            continue
        command = text.lower()
        if command in ("exit", "quit"):
            return 0
        if command == "memory":
            print(json.dumps(agent.memory.summary(), indent=2))
            continue
        if command == "clear":
            agent.memory.clear_session()
            session = agent.new_session()
            print("Conversation cleared.")
            continue
        try:
            reply = await agent.respond(text, session)
        except Exception as e:
            log.exception("turn failed")
            print(f"Error: {e}")
            continue
        print(reply)
        _print_outputs(session)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "chat" and not " ".join(args.prompt).strip():
        print("comicsmith: chat needs a prompt", file=sys.stderr)
        return 1

    try:
        agent = build_agent()
    except Exception as e:
        log.exception("startup failed")
        print(f"comicsmith: failed to start: {e}", file=sys.stderr)
        return 1

    if args.command == "chat":
        return asyncio.run(run_once(agent, " ".join(args.prompt).strip()))
    return asyncio.run(run_interactive(agent))


if __name__ == "__main__":
    sys.exit(main())
