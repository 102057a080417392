#!/usr/bin/env python3
"""Repository entrypoint for the chat relay."""

from __future__ import annotations

from chat_relay.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
