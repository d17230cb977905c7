"""CLI entry point for tsbots."""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

from tsbots.app import BotServiceApp, resolve_bot_class
from tsbots.config import AppConfig, load_config
from tsbots.log import get_logger, setup_logging
from tsbots.service.client import ControlClient

logger = get_logger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="tsbots",
        description="Bot service for TeamSpeak 3 servers",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    for name, help_text in (
        ("start", "Start the bot service"),
        ("config-check", "Validate configuration"),
        ("query", "Send a control request to a running service"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("-c", "--config", default="config.yaml", help="Path to config file")
        sub.add_argument("-e", "--env", default=".env", help="Path to .env file")
        if name == "query":
            sub.add_argument(
                "request",
                nargs="+",
                help="Request, e.g. 'status', 'stop' or 'botadd ChatBot 7'",
            )

    args = parser.parse_args()

    if args.command is None:
        args.command = "start"
        args.config = "config.yaml"
        args.env = ".env"

    if args.command == "config-check":
        _check_config(args.config, args.env)
    elif args.command == "query":
        _query(args.config, args.env, " ".join(args.request))
    elif args.command == "start":
        _run(args.config, args.env)


def _load(config_path: str, env_path: str) -> AppConfig:
    try:
        return load_config(config_path, env_path)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Run 'python install.py' first or copy config.example.yaml to config.yaml")
        sys.exit(1)
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)


def _check_config(config_path: str, env_path: str) -> None:
    """Validate configuration and print summary."""
    config = _load(config_path, env_path)
    try:
        for name in config.bot_types:
            resolve_bot_class(name)
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Configuration valid: {config_path}")
    print(f"  Query server: {config.query.host}:{config.query.port} "
          f"(virtual server port {config.query.virtual_server_port})")
    print(f"  Nickname: {config.query.nickname}")
    print(f"  Control socket: {config.service.host}:{config.service.port}")
    print(f"  Storage: {config.storage.db_path}")
    print(f"  Bot types: {', '.join(config.bot_types) or '(none)'}")


def _query(config_path: str, env_path: str, request: str) -> None:
    config = _load(config_path, env_path)
    client = ControlClient(
        config.service.host, config.service.port, timeout=config.service.request_timeout
    )
    response = asyncio.run(client.request(request))
    if response is None:
        print("No response from bot service", file=sys.stderr)
        sys.exit(1)
    print(response)


def _run(config_path: str, env_path: str) -> None:
    """Load config and run the service, restarting it after unexpected errors."""
    config = _load(config_path, env_path)
    setup_logging(config.log_level, config.log_format)

    async def _async_main() -> None:
        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()
        current: list[BotServiceApp] = []

        def _signal_handler() -> None:
            stop_event.set()
            for app in current:
                app.request_stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, _signal_handler)
            except NotImplementedError:
                # Windows doesn't support add_signal_handler
                signal.signal(sig, lambda s, f: _signal_handler())

        while not stop_event.is_set():
            app = BotServiceApp(config)
            current[:] = [app]
            try:
                await app.start()
                await app.run()
                await app.stop()
                break
            except Exception as e:
                logger.error("bot_service_failed", error=str(e), exc_info=True)
                try:
                    await app.stop()
                except Exception as stop_error:
                    logger.warning("bot_service_stop_failed", error=str(stop_error))
                if stop_event.is_set():
                    break
                logger.info("bot_service_restarting", delay=config.restart_delay)
                try:
                    await asyncio.wait_for(stop_event.wait(), config.restart_delay)
                except asyncio.TimeoutError:
                    pass

    asyncio.run(_async_main())


if __name__ == "__main__":
    main()
