"""Command line front-end.

Usage::

    luabundle main.lua
    luabundle main.lua -o build/game.lua -D DEBUG=false --mangle manual
    luabundle main.lua --config bundle.json --log-level DEBUG

Options given on the command line override those read from ``--config``.
Exit status is 0 on success and 1 on any failure.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from luabundle import __version__
from luabundle.core.config import BundleConfig, MangleMode, parse_define
from luabundle.core.identifiers import NAMING_SCHEMES
from luabundle.core.orchestrator import BundleOrchestrator
from luabundle.utils.logger import VALID_LOG_LEVELS, setup_logger


def define_argument(value: str) -> tuple[str, str]:
    try:
        return parse_define(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="luabundle",
        description="Bundle a multi-file Lua program into one file, "
                    "optionally mangling table property names.",
    )
    parser.add_argument("entry", type=Path, help="entry Lua file")
    parser.add_argument(
        "-o", "--output", type=Path, default=None,
        help="output file (default: ENTRY with .lua replaced by .min.lua)",
    )
    parser.add_argument(
        "-D", "--define", dest="defines", action="append", type=define_argument,
        default=[], metavar="PATTERN=REPLACEMENT",
        help="literal text substitution in the entry file; may be repeated",
    )
    parser.add_argument(
        "--mangle", choices=[mode.value for mode in MangleMode], default=None,
        help="property mangling mode (default: off)",
    )
    parser.add_argument(
        "--naming-scheme", choices=sorted(NAMING_SCHEMES), default=None,
        help="alphabet for mangled names (default: compact)",
    )
    parser.add_argument(
        "--no-sentinel-protection", action="store_true",
        help="also mangle names starting with '__' such as __index",
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="seed for the module table name, for reproducible output",
    )
    parser.add_argument(
        "--validate-modules", action="store_true",
        help="syntax-check each inlined module and leave broken ones empty",
    )
    parser.add_argument(
        "--no-minify", action="store_true",
        help="keep comments and line structure in the generated bundle",
    )
    parser.add_argument("--config", type=Path, default=None, help="JSON configuration file")
    parser.add_argument(
        "--log-level", default="INFO", type=str.upper, choices=VALID_LOG_LEVELS,
        help="console log level (default: INFO)",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="also log to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_config(args: argparse.Namespace) -> BundleConfig:
    """Merge the optional config file with command line overrides.

    Raises:
        ValueError: If the config file is invalid.
        FileNotFoundError: If the config file does not exist.
    """
    config = BundleConfig.load(args.config) if args.config is not None else BundleConfig()

    if args.defines:
        merged = dict(config.defines)
        merged.update(args.defines)
        config.defines = merged
    if args.mangle is not None:
        config.mangle_mode = MangleMode.parse(args.mangle)
    if args.naming_scheme is not None:
        config.naming_scheme = args.naming_scheme
    if args.no_sentinel_protection:
        config.protect_sentinel = False
    if args.seed is not None:
        config.random_seed = args.seed
    if args.validate_modules:
        config.validate_modules = True
    if args.no_minify:
        config.minify = False

    config.validate()
    return config


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # --help and --version exit 0; usage errors map to 1
        return 0 if e.code == 0 else 1

    logger = setup_logger("luabundle", level=args.log_level, log_file=args.log_file)

    try:
        config = build_config(args)
    except (ValueError, FileNotFoundError) as e:
        logger.error(str(e))
        return 1

    result = BundleOrchestrator(config).bundle_file(args.entry, args.output)

    for warning in result.warnings:
        logger.warning(warning)
    if not result.success:
        for error in result.errors:
            logger.debug(f"Bundle failed: {error}")
        return 1

    logger.info(
        f"Bundled {result.metadata.get('module_count', 0)} module(s) into {result.output_path}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
