from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from .config import load_config, resolve_config_path
from .errors import EXIT_INPUT_VALIDATION, EXIT_INTERNAL, EXIT_SUCCESS, SpecToolError
from .parser import SpecParser
from .serialize import write_output
from .versions import registry

LOGGER = logging.getLogger(__name__)


def configure_logging(verbosity: int) -> None:
    level = logging.DEBUG if verbosity > 0 else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mqspec",
        description="Convert spreadsheet message specifications into a canonical JSON field tree.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    parse_cmd = sub.add_parser("parse", help="Parse a spec workbook and write the JSON IR.")
    parse_cmd.add_argument("-i", "--input", type=Path, required=True, help="Spec workbook (.xlsx/.xlsm).")
    parse_cmd.add_argument(
        "-s",
        "--shared-header",
        type=Path,
        default=None,
        help="Optional workbook holding the shared header fields.",
    )
    parse_cmd.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Destination JSON file (defaults to output.path from the config).",
    )
    parse_cmd.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (falls back to $MQSPEC_CONFIG).",
    )
    parse_cmd.add_argument(
        "--max-nesting-depth",
        type=int,
        default=None,
        help="Depth above which a warning is logged.",
    )
    parse_cmd.add_argument("-v", "--verbose", action="count", default=0, help="Enable debug logging.")

    sub.add_parser("version", help="Print tool, parser and rules versions.")
    return parser


def _run_parse(args: argparse.Namespace) -> int:
    config = load_config(resolve_config_path(args.config))
    settings = config.parser
    if args.max_nesting_depth is not None and args.max_nesting_depth > 0:
        settings = replace(settings, max_nesting_depth=args.max_nesting_depth)

    output_path = args.output or config.output.path
    if output_path is None:
        LOGGER.error("No output path given (use -o or output.path in the config)")
        return EXIT_INPUT_VALIDATION

    model = SpecParser(settings).parse(args.input, args.shared_header)
    write_output(model, output_path, indent=config.output.indent)
    return EXIT_SUCCESS


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    if args.command == "version":
        for name, value in registry().items():
            print(f"{name}: {value}")
        return EXIT_SUCCESS

    configure_logging(args.verbose)
    try:
        return _run_parse(args)
    except SpecToolError as exc:
        LOGGER.error("%s", exc)
        return exc.exit_code
    except Exception:
        LOGGER.exception("Unexpected error")
        return EXIT_INTERNAL


if __name__ == "__main__":
    sys.exit(main())
