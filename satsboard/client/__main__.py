# satsboard/client/__main__.py
# Usage:
#   python -m satsboard.client                       # poll the local proxy
#   python -m satsboard.client --mode stream         # Binance ticker, fixed LKR rate
#   python -m satsboard.client --still --no-color    # deterministic, plain output

from __future__ import annotations

import argparse
import asyncio
import contextlib
import sys
from dataclasses import replace

import httpx

from satsboard.client.dashboard import Dashboard
from satsboard.client.refresh import PollingRefresher, StreamingRefresher
from satsboard.client.render import TerminalRenderer
from satsboard.client.simulation import NoiseSimulator, StillSimulator
from satsboard.logging_conf import setup_logging
from satsboard.settings import ClientSettings


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="satsboard.client", description="Terminal Bitcoin dashboard")
    ap.add_argument("--mode", choices=("poll", "stream"), default="poll")
    ap.add_argument("--proxy-url", help="snapshot endpoint (poll mode)")
    ap.add_argument("--stream-url", help="ticker websocket (stream mode)")
    ap.add_argument("--fetch-probability", type=float, help="chance of a real fetch per tick")
    ap.add_argument("--still", action="store_true", help="disable simulated fluctuations")
    ap.add_argument("--no-color", action="store_true")
    ap.add_argument("--log-file", default="satsboard-client.log")
    return ap


def settings_from_args(args: argparse.Namespace) -> ClientSettings:
    settings = ClientSettings()
    overrides = {
        "proxy_url": args.proxy_url,
        "stream_url": args.stream_url,
        "fetch_probability": args.fetch_probability,
    }
    return replace(settings, **{k: v for k, v in overrides.items() if v is not None})


def build_refresher(args: argparse.Namespace, settings: ClientSettings):
    sim = StillSimulator() if args.still else NoiseSimulator()
    if args.mode == "stream":
        return StreamingRefresher(settings, sim)
    http = httpx.AsyncClient(timeout=httpx.Timeout(settings.request_timeout_sec))
    return PollingRefresher(settings, http, sim)


async def run(args: argparse.Namespace) -> None:
    settings = settings_from_args(args)
    renderer = TerminalRenderer(sys.stdout, color=not args.no_color)
    dashboard = Dashboard(
        build_refresher(args, settings), renderer, highlight_sec=settings.highlight_sec
    )
    async with dashboard:
        await dashboard.wait()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    # stdout is the screen; logs go to a file
    setup_logging(log_file=args.log_file)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run(args))
    return 0


if __name__ == "__main__":
    sys.exit(main())
