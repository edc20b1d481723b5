#!/usr/bin/env python3
"""
Call relay CLI

Small operator entry point around the runtime server.

Commands:

1) serve
   - Run the HTTP API with uvicorn (port defaults to PORT / 3005).

2) characters
   - Print the public character roster as JSON, e.g. to check which ids
     the frontend may send to /api/select_character.

Examples:

    python cli/main.py serve --port 3005
    python cli/main.py characters
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

# Ensure project root is on sys.path when running as a script
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from configs.settings import settings
from core.characters.registry import list_characters


def cmd_serve(host: str, port: int, reload: bool) -> None:
    """Run the FastAPI app under uvicorn."""
    import uvicorn

    from runtime.logging_setup import configure_logging

    configure_logging(settings.log_level)
    uvicorn.run(
        "runtime.api.server:app",
        host=host,
        port=port,
        reload=reload,
    )


def cmd_characters() -> None:
    roster = [c.public() for c in list_characters()]
    print(json.dumps(roster, indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="callrelay",
        description="Persona call relay: serve the API or inspect the roster.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Run the HTTP API server.")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=settings.port)
    p_serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes.")

    sub.add_parser("characters", help="Print the character roster as JSON.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        cmd_serve(args.host, args.port, args.reload)
    elif args.command == "characters":
        cmd_characters()
    return 0


if __name__ == "__main__":
    sys.exit(main())
