"""
hc11sdb — command-line entry point for the HC11 SDB monitor.

Usage:
    hc11sdb [image] [--base 0x8000] [--format bin|s19] [--batch cmds.txt]
            [--capacity 32] [-v | -q] [--log-file sdb.log]

Examples:
    hc11sdb                              # empty 64K target, interactive
    hc11sdb ECU.bin --base 0x8000        # load a raw image, PC = $8000
    hc11sdb main.s19 --batch watch.txt   # run monitor commands from a file
"""

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .config import DEFAULT_LOAD_ADDR, NR_WP
from .monitor import Monitor
from .target import Target

logger = logging.getLogger(__name__)


def parse_int_arg(value: str) -> int:
    """Parse an integer argument that may be hex (0x...), $ prefix, or decimal."""
    value = value.strip()
    if value.startswith("$"):
        return int(value[1:], 16)  # Motorola hex convention
    return int(value, 0)


def setup_logging(args):
    """Configure logging from -v / -q / --log-file."""
    if args.quiet:
        level = logging.ERROR
    elif args.verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handlers = []
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    handlers.append(console)

    if args.log_file:
        log_path = Path(args.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if args.log_file else level,
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hc11sdb",
        description="HC11 SDB — expression / watchpoint monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Monitor commands: " + ", ".join(Monitor.COMMANDS),
    )
    parser.add_argument("image", nargs="?", help="Image to load (.bin or .s19)")
    parser.add_argument("--base", default=None,
                        help=f"Load address for raw images (default 0x{DEFAULT_LOAD_ADDR:04X})")
    parser.add_argument("--format", choices=["bin", "s19"], default=None,
                        help="Image format (auto-detected from extension if not set)")
    parser.add_argument("-b", "--batch", help="Read monitor commands from this file")
    parser.add_argument("--capacity", type=int, default=NR_WP,
                        help=f"Watchpoint pool size (default {NR_WP})")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging (token streams, evaluation results)")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Log errors only")
    parser.add_argument("--log-file", help="Also write a full debug log to this file")
    parser.add_argument("--version", action="version",
                        version=f"hc11sdb {__version__}")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args)

    target = Target()
    if args.image:
        try:
            base = parse_int_arg(args.base) if args.base else DEFAULT_LOAD_ADDR
            entry = target.load_image(args.image, base_addr=base, fmt=args.format)
        except (OSError, ValueError) as e:
            print(f"Error: cannot load {args.image}: {e}", file=sys.stderr)
            return 1
        logger.info("loaded %s, PC=$%04X", args.image, entry)

    try:
        monitor = Monitor(target, capacity=args.capacity)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.batch:
        try:
            with open(args.batch, "r", encoding="utf-8") as f:
                lines = f.read().splitlines()
        except OSError as e:
            print(f"Error reading {args.batch}: {e}", file=sys.stderr)
            return 1
        monitor.run(lines)
    else:
        monitor.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
