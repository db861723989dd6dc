#!/usr/bin/env python3
"""relaycmd - Signed remote command distribution through an HTTP relay."""

import argparse
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from rich.console import Console
from rich.markup import escape

from config import (
    DEFAULT_POLL_INTERVAL,
    HTTP_TIMEOUT,
    KEY_ENV_VAR,
    LOG_FILE,
    MODES,
    RELAY_SERVER_HOST,
    RELAY_SERVER_PORT,
)
from relay.agent.agent import AgentConfig, RelayAgent
from relay.errors import TransportError
from relay.sender import CommandSender
from relay.server.protocol import LogEntry
from relay.server.relay_server import RelayServer
from security.authenticator import Authenticator
from utils.logger import log_exception, setup_logger

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="relaycmd - Signed remote command distribution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  python main.py -k s3cret -m serve                                  # Run the relay on :{RELAY_SERVER_PORT}
  python main.py -k s3cret -m obey -t http://relay:{RELAY_SERVER_PORT} -p 5    # Poll every 5s
  python main.py -k s3cret -t http://relay:{RELAY_SERVER_PORT} echo hi         # Send a command

The key may also be supplied through ${KEY_ENV_VAR}.
        """,
    )

    parser.add_argument(
        "-k", "--key",
        default=os.environ.get(KEY_ENV_VAR, ""),
        help="Shared authentication secret",
    )
    parser.add_argument(
        "-m", "--mode",
        default="send",
        type=str.lower,
        choices=MODES,
        help="Operating mode (default: send)",
    )
    parser.add_argument(
        "-t", "--target",
        default="",
        help="Relay base URL for send and obey modes",
    )
    parser.add_argument(
        "-p", "--poll",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help=f"Polling interval in seconds for obey mode (default: {DEFAULT_POLL_INTERVAL:g})",
    )
    parser.add_argument(
        "--bind",
        default=RELAY_SERVER_HOST,
        help=f"Listen address for serve mode (default: {RELAY_SERVER_HOST})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=RELAY_SERVER_PORT,
        help=f"Listen port for serve mode (default: {RELAY_SERVER_PORT})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=HTTP_TIMEOUT,
        help=f"HTTP request timeout in seconds (default: {HTTP_TIMEOUT:g})",
    )
    parser.add_argument(
        "--log-file",
        default=LOG_FILE,
        help="Log file path, empty to disable",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging on stderr",
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Program and arguments to run (send mode)",
    )
    return parser


def run_send(authenticator: Authenticator, args) -> int:
    if not args.command:
        console.print("[bold red]Error:[/bold red] too few arguments to send command")
        return 2

    sender = CommandSender(authenticator, args.target, timeout=args.timeout)
    try:
        response = sender.send(args.command[0], args.command[1:])
    except TransportError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        return 1

    console.print(escape(response.text), highlight=False)
    return 0 if response.status_code == 200 else 1


def run_serve(authenticator: Authenticator, args) -> int:
    def show_log(entry: LogEntry) -> None:
        console.print(f"[cyan]agent log[/cyan] {escape(entry.message.rstrip())}", highlight=False)

    server = RelayServer(authenticator, host=args.bind, port=args.port, on_log=show_log)
    console.print(f"[green]Relay listening on {args.bind}:{server.port}[/green]")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
    return 0


def run_obey(authenticator: Authenticator, args) -> int:
    config = AgentConfig(target=args.target, poll_interval=args.poll, timeout=args.timeout)
    agent = RelayAgent(authenticator, config)
    console.print(f"[green]Polling {agent.client.target} every {args.poll:g}s[/green]")
    agent.run()
    return 0


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    if not args.key:
        console.print("[bold red]Error:[/bold red] missing key")
        return 2

    if args.mode in ("send", "obey") and not args.target:
        console.print(f"[bold red]Error:[/bold red] --target is required for {args.mode} mode")
        return 2

    if args.mode == "obey" and args.poll <= 0:
        console.print("[bold red]Error:[/bold red] --poll must be positive")
        return 2

    setup_logger(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=args.log_file or None,
        console=args.verbose or args.mode != "send",
    )

    authenticator = Authenticator(args.key)
    runners = {
        "send": run_send,
        "serve": run_serve,
        "obey": run_obey,
    }

    try:
        return runners[args.mode](authenticator, args)
    except Exception as e:
        log_exception(f"{args.mode} failed")
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", style="red")
        return 1


if __name__ == "__main__":
    sys.exit(main())
