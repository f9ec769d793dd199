"""
Console driver for ProtoCom scripts.

Usage:
    python -m protocom SCRIPT [--config CONFIG_PATH] [--port PORT] [--simulator]
    python -m protocom --list-ports
"""

import argparse
import sys
import logging

from protocom import __version__
from protocom.config.loader import load_config, ConfigurationError
from protocom.protocol.interface import TransportInterface
from protocom.protocol.port_scanner import list_available_ports
from protocom.protocol.serial_transport import SerialTransport
from protocom.script.engine import ScriptEngine, Severity, TerminationReason
from protocom.simulator.mock_serial import MockSerialTransport
from protocom.storage.file_store import LocalFileStore
from protocom.utils.exceptions import ProtoComException
from protocom.utils.logging_setup import setup_logging


logger = logging.getLogger(__name__)

PROMPT = "> "


def console_info(message: str, requires_input: bool = False, severity: Severity = Severity.INFO) -> None:
    """Info channel printing to the console; prompts are answered in main()."""
    if severity is Severity.ERROR:
        print(message, file=sys.stderr)
    elif severity is Severity.WARNING:
        print(f"! {message}")
    else:
        print(message)


def command_trace(raw_command: str, last_row: str, last_data: bytes) -> None:
    logger.debug(f"Command {raw_command!r} -> row={last_row!r} data={last_data.hex()}")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="ProtoCom script runner")
    parser.add_argument("script", nargs="?", help="Script file to run")
    parser.add_argument(
        "--config",
        type=str,
        default="protocom.json",
        help="Path to configuration file (default: protocom.json)"
    )
    parser.add_argument("--port", type=str, help="Serial port (overrides config)")
    parser.add_argument("--simulator", action="store_true", help="Use the simulated device")
    parser.add_argument("--routine", type=str, default="", help="Routine to start (default: entry routine)")
    parser.add_argument("--list-ports", action="store_true", help="List serial ports and exit")
    parser.add_argument("--usb-only", action="store_true", help="With --list-ports, show USB ports only")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main application entry point."""
    args = parse_args(argv)

    try:
        config = load_config(args.config, create_missing=False)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging)

    if args.list_ports:
        for port in list_available_ports(usb_only=args.usb_only):
            print(port.describe())
        return 0

    if not args.script:
        print("No script given (see --help)", file=sys.stderr)
        return 2

    logger.info(f"ProtoCom v{__version__}")

    transport: TransportInterface
    if args.simulator or config.simulator.enabled:
        logger.info("Using SIMULATOR mode")
        transport = MockSerialTransport(config.simulator)
    else:
        if args.port:
            config.serial.port = args.port
        if not config.serial.port:
            logger.error("No serial port specified (use --port or set 'serial.port' in the config)")
            return 1
        transport = SerialTransport(config.serial)

    engine = ScriptEngine(
        transport,
        console_info,
        command_callback=command_trace,
        config=config.engine,
        file_store=LocalFileStore(),
    )

    print("-Console starts-")
    try:
        transport.open()
        outcome = engine.run_file(args.script, routine=args.routine)
        while outcome.awaiting_input:
            try:
                value = input(PROMPT)
            except EOFError:
                outcome = engine.cancel()
                break
            outcome = engine.resume(value)
    except ProtoComException as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        engine.cancel()
        return 130
    finally:
        transport.close()
        print("-Console ends-")

    logger.info(f"Finished: {outcome.reason.value if outcome.reason else outcome.status.value}")
    return 0 if outcome.reason in (TerminationReason.COMPLETED, TerminationReason.QUIT) else 1


if __name__ == "__main__":
    sys.exit(main())
