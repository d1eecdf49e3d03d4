"""
Open a page in a running Chrome, wait for it and read results back.

Chrome must be started with remote debugging enabled, e.g.:
    google-chrome --headless=new --remote-debugging-port=9222

Usage:
    pagebridge-run https://example.com
    pagebridge-run https://example.com --wait "#app" --content
    pagebridge-run https://example.com --evaluate "() => document.title"
    pagebridge-run https://example.com --wait event:dom --screenshot page.jpg
    pagebridge-run https://example.com --wait 1500 --chrome-port 9223 --verbose
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from rich.console import Console

from pagebridge.config import Config
from pagebridge.data_models.session_options import SessionOptions, WaitSettings
from pagebridge.host.cdp_host import CDPBrowser
from pagebridge.session import PageSession
from pagebridge.utils.exceptions import PageBridgeError
from pagebridge.utils.logger import get_logger, set_log_level

logger = get_logger(__name__)


def parse_wait_target(value: str | None) -> Any:
    """Numbers on the command line are delays in ms; anything else is a token or selector."""
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return value


async def run(args: argparse.Namespace, console: Console) -> None:
    browser = CDPBrowser(host=args.chrome_host, port=args.chrome_port)
    options = SessionOptions(wait=WaitSettings(global_timeout_ms=args.timeout_ms))

    try:
        session = await PageSession.create(options, host_factory=browser)
        async with session:
            session.on_console(lambda lines: console.print(f"[dim]console:[/dim] {' '.join(lines)}"))

            await session.goto(args.url)
            await session.wait(parse_wait_target(args.wait))
            console.print(f"[bold green]Loaded[/bold green] {session.url()}")

            if args.evaluate:
                result = await session.evaluate(args.evaluate)
                console.print_json(json.dumps(result))
            if args.content:
                console.print(await session.content(), markup=False, highlight=False)
            if args.screenshot:
                await session.screenshot(args.screenshot)
                console.print(f"Screenshot written to [bold]{args.screenshot}[/bold]")
    finally:
        await browser.close()


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="pagebridge-run",
        description="Navigate a Chrome page over the DevTools protocol and read results back.",
    )
    parser.add_argument("url", help="URL to open")
    parser.add_argument(
        "--wait", "-w",
        default=None,
        help="Delay in ms, lifecycle token (event:dom, event:loaded, event:all) or CSS selector "
             "(default: event:all)",
    )
    parser.add_argument("--evaluate", "-e", default=None, help="Page function to run, e.g. \"() => document.title\"")
    parser.add_argument("--content", action="store_true", help="Print the page markup")
    parser.add_argument("--screenshot", "-s", default=None, help="Write a JPEG screenshot to this path")
    parser.add_argument("--chrome-host", default=Config.CHROME_HOST, help=f"DevTools host (default: {Config.CHROME_HOST})")
    parser.add_argument(
        "--chrome-port",
        type=int,
        default=Config.CHROME_PORT,
        help=f"DevTools port (default: {Config.CHROME_PORT})",
    )
    parser.add_argument(
        "--timeout-ms",
        type=float,
        default=Config.WAIT_GLOBAL_TIMEOUT_MS,
        help=f"Global wait timeout in ms (default: {Config.WAIT_GLOBAL_TIMEOUT_MS})",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args()
    if args.verbose:
        set_log_level(logging.DEBUG)

    console = Console()
    try:
        asyncio.run(run(args, console))
    except PageBridgeError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\nStopped by user.")
        sys.exit(130)


if __name__ == "__main__":
    main()
