"""
Command-line entry point for the button board host.

Commands:
    run          Start messaging, reset the board, run setup, then poll the panel
    scene KEY    Run a single scenario asset and exit
    list         List scenario asset keys
    init-config  Write a default configuration file
"""

import argparse
import asyncio
import logging
import signal
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from buttonboard import __version__
from buttonboard.cancellation import CancellationSource
from buttonboard.config import (
    Config,
    LoggingConfig,
    OperationMode,
    get_config_path,
    load_config,
    save_config,
)
from buttonboard.scenarios import ScenarioState
from buttonboard.services import Services, build_services

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)-8s] %(name)-28s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(config: LoggingConfig, console: Optional[bool] = None) -> Path:
    """
    Configure root logging for one process run.

    Args:
        config: Logging section of the configuration.
        console: Override ``config.console`` (the TUI disables console output).

    Returns:
        Path of the log file for this run.
    """
    log_dir = Path(config.log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"buttonboard_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    handlers: List[logging.Handler] = [logging.FileHandler(log_file)]
    if config.console if console is None else console:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=getattr(logging, config.level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        handlers=handlers,
        force=True,
    )
    return log_file


def _install_signal_handlers(source: CancellationSource) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, source.cancel)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform; Ctrl+C falls back to KeyboardInterrupt
            pass


async def run_board(services: Services) -> int:
    """Run the panel until Ctrl+C or the termination combo."""
    source = CancellationSource()
    _install_signal_handlers(source)
    services.start()
    try:
        await services.panel.reset(source.token)
        if await services.panel.setup(source.token):
            await services.runtime.wait()
        await services.panel.run(source.token)
    finally:
        await services.close()
    return 0


async def run_scene(services: Services, key: str) -> int:
    """Run one scenario asset to completion."""
    source = CancellationSource()
    _install_signal_handlers(source)
    services.start()
    try:
        if not await services.runtime.start(key, source.token):
            print(f"Error: scenario '{key}' could not be started", file=sys.stderr)
            return 1
        await services.runtime.wait()
        state = services.runtime.state
        print(f"Scenario {key}: {state.value}")
        return 0 if state is ScenarioState.COMPLETED else 1
    finally:
        await services.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buttonboard", description="Scenario host for the physical button board"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, default=None, help="Configuration file (TOML)")
    parser.add_argument(
        "--simulate", action="store_true", help="Use simulated GPIO, MQTT, VLC and Lyrion"
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("run", help="Run the button board")
    scene = sub.add_parser("scene", help="Run one scenario asset and exit")
    scene.add_argument("key", help="Asset key (file name without extension)")
    sub.add_parser("list", help="List scenario asset keys")
    init = sub.add_parser("init-config", help="Write a default configuration file")
    init.add_argument("--force", action="store_true", help="Overwrite an existing file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the buttonboard command."""
    args = build_parser().parse_args(argv)
    config_path = args.config or get_config_path()

    if args.command == "init-config":
        if config_path.exists() and not args.force:
            print(f"Error: {config_path} exists (use --force to overwrite)", file=sys.stderr)
            return 1
        save_config(Config(), config_path)
        print(f"Wrote default configuration to {config_path}")
        return 0

    try:
        config = load_config(config_path)
    except Exception as e:
        print(f"Error: invalid configuration {config_path}: {e}", file=sys.stderr)
        return 1
    if args.simulate:
        config.application.operation_mode = OperationMode.SIMULATED

    log_file = setup_logging(config.logging)
    logger.info(f"buttonboard {__version__} starting ({config.application.operation_mode.value} mode)")
    logger.info(f"Log file: {log_file}")

    services = build_services(config)

    if args.command == "list":
        for key in services.loader.keys():
            print(f"{key:<24} {services.loader.kind_of(key).value}")
        return 0

    try:
        if args.command == "scene":
            return asyncio.run(run_scene(services, args.key))
        return asyncio.run(run_board(services))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except Exception as e:
        logger.critical(f"buttonboard crashed: {e}", exc_info=True)
        raise
    finally:
        logger.info("buttonboard exiting")


if __name__ == "__main__":
    sys.exit(main())
