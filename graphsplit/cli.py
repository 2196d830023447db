"""
cli.py
======
Command line front end: ``graphsplit [options] MATRIX`` or
``python -m graphsplit [options] MATRIX``.

The final tree text goes to stdout; the banner, settings block and progress
go to stderr through logging, and are suppressed by ``-s``.
"""

import argparse
import logging
import sys
from typing import List, Optional

from graphsplit import __version__
from graphsplit._backend import get_available_backends
from graphsplit._errors import GraphSplitError
from graphsplit._graphsplit import GraphSplit
from graphsplit._perturb import DEFAULT_NOISE


logger = logging.getLogger("graphsplit.cli")

BANNER = f"""\
+------------------------------------------+
| Graph Splitting method  v{__version__:<16}|
|                                          |
|  GS tree + edge perturbation (EP) support|
+------------------------------------------+"""

EPILOG = """\
Examples:
  graphsplit matrix.txt                  # GS tree only
  graphsplit -e 100 matrix.txt           # GS tree with EP support
  graphsplit -e 100 -r 12345 matrix.txt  # reproducible EP
  graphsplit -s -e 100 --labels m.txt    # silent, leaves named by row
"""


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"requires an integer argument, got {text!r}")
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be non-negative, got {value}")
    return value


def _noise_level(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"requires a number, got {text!r}")
    if not 0.0 <= value <= 1.0:
        raise argparse.ArgumentTypeError(f"must be in [0, 1], got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="graphsplit",
        description="Build a GS tree from a sequence similarity matrix, "
        "optionally with EP branch support.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument("matrix", help="Similarity matrix file")
    parser.add_argument(
        "-e",
        "--ep",
        dest="ep_num",
        type=_non_negative_int,
        default=0,
        metavar="N",
        help="Number of edge-perturbation iterations (default: 0, no EP)",
    )
    parser.add_argument(
        "-r",
        "--seed",
        type=_non_negative_int,
        default=0,
        metavar="SEED",
        help="Random seed for EP (default: 0, a random seed)",
    )
    parser.add_argument(
        "-s",
        "--silent",
        action="store_true",
        help="Print only the tree",
    )
    parser.add_argument(
        "--noise",
        type=_noise_level,
        default=DEFAULT_NOISE,
        help=f"EP jitter amplitude in [0, 1] (default: {DEFAULT_NOISE})",
    )
    parser.add_argument(
        "--labels",
        action="store_true",
        help="Name leaves by matrix row names instead of row numbers",
    )
    parser.add_argument(
        "--backend",
        choices=["best"] + get_available_backends(),
        default="best",
        help="Numeric backend (default: best)",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=BANNER,
    )
    return parser


def configure_logging(silent: bool) -> None:
    """Send graphsplit logging to stderr; INFO normally, WARNING when silent."""
    root = logging.getLogger("graphsplit")
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.handlers[:] = [handler]
    root.setLevel(logging.WARNING if silent else logging.INFO)
    root.propagate = False


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point; returns the process exit status."""
    args = build_parser().parse_args(argv)
    configure_logging(args.silent)

    if not args.silent:
        logger.info(BANNER)

    try:
        gs = GraphSplit.from_file(args.matrix, backend=args.backend)
        text = gs.run(
            ep_num=args.ep_num,
            seed=args.seed,
            noise=args.noise,
            labels=args.labels,
        )
    except OSError as e:
        logger.error("Cannot access %s! (%s)", args.matrix, e.strerror or e)
        return 1
    except GraphSplitError as e:
        logger.error("graphsplit: %s", e)
        return 1

    if not args.silent:
        logger.info("------------------------------------------")
    print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
