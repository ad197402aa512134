"""Command-line interface for keybridge.

Usage::

    keybridge PORT [BAUDRATE [DATA_BITS [PARITY [STOP_BITS [FLOW_CONTROL]]]]]

Positional values override the YAML configuration and environment.
Every value is validated before the serial port is opened or the
terminal is touched.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from keybridge import __version__

logger = logging.getLogger(__name__)

EXIT_USAGE = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="keybridge",
        description="Relay a serial device to the terminal and forward key events to it",
    )
    parser.add_argument("port", nargs="?", default=None, help="Serial port to use")
    parser.add_argument(
        "baudrate", nargs="?", default=None,
        help="Baudrate to use (default: 115200)",
    )
    parser.add_argument(
        "data_bits", nargs="?", default=None,
        help="Data bits: 5, 6, 7 or 8 (default: 8)",
    )
    parser.add_argument(
        "parity", nargs="?", default=None,
        help="Parity: none, even or odd (default: none)",
    )
    parser.add_argument(
        "stop_bits", nargs="?", default=None,
        help="Stop bits: 1 or 2 (default: 1)",
    )
    parser.add_argument(
        "flow_control", nargs="?", default=None,
        help="Flow control: none, hardware or software (default: none)",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/keybridge.yaml)",
    )
    parser.add_argument(
        "-t", "--timeout",
        type=float,
        default=None,
        help="Serial read timeout in seconds (default: 0.01)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def _format_validation_error(error: ValidationError) -> str:
    lines = []
    for detail in error.errors():
        field = ".".join(str(part) for part in detail["loc"]) or "value"
        lines.append(f"  {field}: {detail['msg']} (got {detail.get('input')!r})")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the keybridge CLI. Returns the exit status."""
    args = parse_args(argv)

    from keybridge.config.settings import ConfigError, load_settings, resolve_config_path
    from keybridge.utils.logging import setup_logging

    try:
        settings = load_settings(args.config)
        settings = settings.with_serial_overrides(
            port=args.port,
            baudrate=args.baudrate,
            data_bits=args.data_bits,
            parity=args.parity,
            stop_bits=args.stop_bits,
            flow_control=args.flow_control,
            timeout=args.timeout,
        )
    except ValidationError as e:
        print(f"Invalid configuration:\n{_format_validation_error(e)}", file=sys.stderr)
        return EXIT_USAGE
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_USAGE

    if not settings.serial.port:
        print("No serial port given (pass PORT or set serial.port in the config)", file=sys.stderr)
        return EXIT_USAGE

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    config_path = resolve_config_path(args.config)
    if config_path.exists():
        logger.info("Loaded configuration from %s", config_path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", config_path)

    from keybridge.bridge.runner import run_bridge

    logger.info("Bridging %s", settings.serial.port)
    return run_bridge(settings)


if __name__ == "__main__":
    sys.exit(main())
