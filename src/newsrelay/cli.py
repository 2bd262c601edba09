"""CLI entry point for NewsRelay."""

import argparse
import asyncio
import sys

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(description="NewsRelay")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--host", default="0.0.0.0", help="Bind host")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    parser.add_argument(
        "--once", action="store_true", help="Run the pipeline once and exit (no server)"
    )
    args = parser.parse_args()

    if args.once:
        from newsrelay.agent import run_once
        from newsrelay.config import get_settings
        from newsrelay.core.logging import setup_logging

        settings = get_settings()
        setup_logging(settings)
        sys.exit(asyncio.run(run_once(settings)))

    uvicorn.run(
        "newsrelay.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
