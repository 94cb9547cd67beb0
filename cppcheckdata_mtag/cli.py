#!/usr/bin/env python3
"""cppcheckdata_mtag/cli.py: command-line driver for the memory-tag analysis.

Usage examples
--------------
    # Tag two translation units, default allocators (kmalloc, kzalloc)
    cppcheckdata-mtag drv.c.dump core.c.dump

    # Extra allocator, three passes, keep the summaries for later runs
    cppcheckdata-mtag --alloc-fn devm_kzalloc --passes 3 \\
        --db out/mtag.json drv.c.dump core.c.dump

    # Continue from summaries saved by an earlier run, JSON lines output
    cppcheckdata-mtag --seed out/mtag.json --output json drv.c.dump

Exit codes
----------
    0   Success.
    2   Infrastructure failure (missing dependency, bad file, bad config).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

from termcolor import colored

from cppcheckdata_mtag import __version__
from cppcheckdata_mtag.config import MtagConfig
from cppcheckdata_mtag.engine import AnalysisSession, DumpUnit
from cppcheckdata_mtag.errors import MtagError
from cppcheckdata_mtag.summary_db import SummaryStore
from cppcheckdata_mtag.tag import format_tag

_log = logging.getLogger("cppcheckdata_mtag")

EXIT_OK: int = 0
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``cppcheckdata_mtag`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("cppcheckdata_mtag")
    root.setLevel(level)
    root.addHandler(handler)


def _import_cppcheckdata():
    """Import ``cppcheckdata`` with a friendly error on failure."""
    try:
        import cppcheckdata  # type: ignore[import-untyped]
        return cppcheckdata
    except ImportError:
        _log.error(
            "cppcheckdata is not installed.  "
            "Install cppcheck or add its Python path."
        )
        raise SystemExit(EXIT_INFRA)


def _load_config(args: argparse.Namespace) -> MtagConfig:
    config = MtagConfig.from_file(args.config) if args.config else MtagConfig()
    return config.with_overrides(
        extra_alloc_functions=args.alloc_fn,
        passes=args.passes,
    )


def _load_units(paths: Sequence[str]) -> list:
    cppcheckdata = _import_cppcheckdata()
    units = []
    for raw in paths:
        path = Path(raw)
        if not path.is_file():
            raise MtagError(f"dump file not found: {path}",
                            hint="run cppcheck --dump on the source first")
        _log.info("Parsing %s", path)
        try:
            data = cppcheckdata.parsedump(str(path))
        except Exception as exc:
            raise MtagError(f"cannot parse {path}: {exc}") from exc
        units.append(DumpUnit.from_path(str(path), data))
    return units


def _emit_report(store: SummaryStore, fmt: str, stream: TextIO) -> None:
    """Write the tag table of *store* to *stream*."""
    rows = store.metadata()
    for row in rows:
        if fmt == "json":
            stream.write(json.dumps({
                "tag": format_tag(row.tag),
                "label": row.label,
                "origin": row.origin,
            }) + "\n")
        else:
            stream.write(f"{colored(format_tag(row.tag), 'cyan')}  "
                         f"{colored(row.label, 'green', attrs=['bold'])}  "
                         f"{row.origin}\n")
    if fmt == "text":
        stream.write(f"\n--- {len(rows)} tag(s), "
                     f"{len(store.caller_info())} caller summary row(s) ---\n")


# ===========================================================================
# Command
# ===========================================================================

def cmd_run(args: argparse.Namespace) -> int:
    config = _load_config(args)
    seed = SummaryStore.load(args.seed) if args.seed else None
    units = _load_units(args.dumps)

    store = AnalysisSession(config).run(units, seed=seed)

    if args.db:
        store.save(args.db)
    _emit_report(store, args.output, sys.stdout)
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cppcheckdata-mtag",
        description="Assign memory tags to globals and allocation sites "
                    "in Cppcheck dump files and follow them across calls.",
    )
    parser.add_argument(
        "--version", action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Increase log verbosity (-v INFO, -vv DEBUG).",
    )
    parser.add_argument(
        "dumps", nargs="+", metavar="DUMP",
        help="Cppcheck .dump files, one per translation unit.",
    )
    parser.add_argument(
        "--config", metavar="FILE",
        help="JSON configuration file.",
    )
    parser.add_argument(
        "--alloc-fn", action="append", default=[], metavar="NAME",
        help="Additional allocation function to tag (repeatable).",
    )
    parser.add_argument(
        "--passes", type=int, default=None, metavar="N",
        help="Number of passes over all dumps (default: 2).",
    )
    parser.add_argument(
        "--seed", metavar="FILE",
        help="Summary store from an earlier run, read by the first pass.",
    )
    parser.add_argument(
        "--db", metavar="OUT",
        help="Save the final summary store as JSON.",
    )
    parser.add_argument(
        "--output", choices=("text", "json"), default="text",
        help="Report format (default: text).",
    )
    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI and return its exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        return cmd_run(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except (MtagError, OSError) as exc:
        _log.error("%s", exc)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
