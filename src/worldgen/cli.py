"""Command-line interface for world generation."""

import argparse
import json
import logging
import sys
import time
from pathlib import Path

import structlog


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        # Keep stdout clean for --json / --digest output
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a deterministic procedural world"
    )
    parser.add_argument(
        "--config", "-c", type=Path, default=None, help="TOML config file"
    )
    parser.add_argument("--width", type=int, default=None, help="World width (overrides config)")
    parser.add_argument("--height", type=int, default=None, help="World height (overrides config)")
    parser.add_argument("--seed", type=int, default=None, help="World seed (overrides config)")
    parser.add_argument(
        "--json", action="store_true", help="Print a JSON summary of every feature"
    )
    parser.add_argument(
        "--digest", action="store_true", help="Print only the determinism digest"
    )
    parser.add_argument(
        "--validate", action="store_true", help="Validate the world after generation"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Verbose logging"
    )
    return parser


def _print_statistics(stats: dict, elapsed: float) -> None:
    print(f"World {stats['width']}x{stats['height']} (seed {stats['seed']}) in {elapsed:.1f}s")
    print(f"  land {stats['land_fraction']:.1%}, water {stats['water_fraction']:.1%}")
    print(
        f"  continents {stats['continents']}, islands {stats['islands']}, "
        f"rivers {stats['rivers']}, lakes {stats['lakes']}, caves {stats['caves']}"
    )
    print(
        f"  civilizations {stats['civilizations']}, settlements {stats['settlements']}, "
        f"roads {stats['roads']}"
    )
    print(
        f"  resource deposits {stats['resource_deposits']}, "
        f"historical events {stats['historical_events']}"
    )
    print("  biomes:")
    for name, count in sorted(stats["biomes"].items(), key=lambda kv: -kv[1]):
        print(f"    {name:<22} {count}")


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for world generation."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    logger = structlog.get_logger()

    # Import here to avoid slow startup for --help
    from .config import build_config, load_config
    from .exceptions import ConfigurationError
    from .generator import generate_world
    from .validation import validate_world

    overrides = {
        key: value
        for key, value in (("width", args.width), ("height", args.height), ("seed", args.seed))
        if value is not None
    }
    try:
        base = load_config(args.config).model_dump() if args.config else {}
        config = build_config(base, **overrides)
    except FileNotFoundError:
        logger.error("config_not_found", path=str(args.config))
        return 2
    except ConfigurationError as e:
        logger.error("invalid_config", error=str(e))
        return 2

    start_time = time.time()
    world = generate_world(config)
    elapsed = time.time() - start_time

    if args.digest:
        print(world.digest())
    elif args.json:
        print(json.dumps(world.summary(), indent=2))
    else:
        _print_statistics(world.statistics(), elapsed)

    if args.validate:
        result = validate_world(world)
        if not result.passed:
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
