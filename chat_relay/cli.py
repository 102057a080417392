"""Command-line entrypoint: run the relay server or send a prompt through it."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import requests
from dotenv import load_dotenv
from pydantic import ValidationError

from .client import DEFAULT_RELAY_URL, ChatPreferences, RelayClient, RelayClientError, extract_reply
from .config import Settings
from .persisted import JsonFileStorage

LOG_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def load_environment() -> None:
    """Load environment variables from common .env locations."""

    candidates = [
        Path.cwd() / ".env",
        Path(__file__).resolve().parent.parent / ".env",
    ]
    for candidate in candidates:
        if candidate.is_file():
            load_dotenv(candidate, override=False, encoding="utf-8-sig")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="chat-relay",
        description="Relay chat completion requests to an upstream API.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the relay HTTP server.")
    serve.add_argument("--host", help="Interface to bind (default from settings).")
    serve.add_argument("--port", type=int, help="Port to listen on (default from settings).")
    serve.add_argument("--log-level", help="Logging level (default from settings).")

    ask = commands.add_parser("ask", help="Send one prompt through a running relay.")
    ask.add_argument("prompt", nargs="+", help="Prompt text.")
    ask.add_argument("--relay-url", default=DEFAULT_RELAY_URL, help="Relay endpoint URL.")
    ask.add_argument("--api-key", help="Upstream API key; remembered for later runs.")
    ask.add_argument("--model", help="Model identifier; remembered for later runs.")
    ask.add_argument("--state-file", type=Path, help="Where remembered preferences are stored.")
    ask.add_argument("--timeout", type=float, default=60.0, help="Request timeout in seconds.")
    ask.add_argument(
        "--no-history",
        action="store_true",
        help="Send only this prompt, without earlier exchanges.",
    )
    ask.add_argument("--reset-history", action="store_true", help="Forget earlier exchanges first.")
    return parser.parse_args(argv)


def _serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    from .web_app import create_app

    level = args.log_level or settings.log_level
    configure_logging(level)
    host = args.host or settings.host
    port = args.port or settings.port
    logger.info("Relaying to %s (env=%s)", settings.upstream_url, settings.app_env)
    uvicorn.run(create_app(settings), host=host, port=port, log_level=level.lower())
    return 0


def _ask(args: argparse.Namespace, settings: Settings) -> int:
    configure_logging(settings.log_level)
    storage = JsonFileStorage(args.state_file or settings.state_file)
    preferences = ChatPreferences(storage)
    if args.api_key:
        preferences.api_key.set(args.api_key)
    if args.model:
        preferences.model.set(args.model)
    if args.reset_history:
        preferences.clear_history()

    if not preferences.api_key.value:
        sys.stderr.write("Error: no API key given; pass --api-key once to remember it.\n")
        return 2

    prompt = " ".join(args.prompt)
    payload = {
        "model": preferences.model.value,
        "messages": preferences.messages_for(prompt, include_history=not args.no_history),
    }
    client = RelayClient(args.relay_url, preferences.api_key.value, timeout=args.timeout)
    try:
        body = client.complete(payload)
    except RelayClientError as exc:
        sys.stderr.write(f"Error: relay answered {exc}\n")
        return 1
    except requests.RequestException as exc:
        sys.stderr.write(f"Error: network error: {exc}\n")
        return 1

    reply = extract_reply(body)
    if not args.no_history:
        preferences.record_exchange(prompt, reply)
    print(reply)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""

    load_environment()
    args = parse_args(argv)
    try:
        settings = Settings()
    except ValidationError as exc:
        sys.stderr.write(f"Error: invalid configuration: {exc}\n")
        return 2

    if args.command == "serve":
        return _serve(args, settings)
    return _ask(args, settings)


if __name__ == "__main__":
    raise SystemExit(main())
