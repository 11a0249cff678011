"""
Command line runner.

Usage:
  bfvm hello.bf
  bfvm loop.b --step
  bfvm prog.bf --config bfvm.yaml --tape-length 100 --skip-scan legacy

Exit status: 0 when the program ran to completion, 2 when it stopped on an
unclosed '[', 1 for anything that prevented it from starting.
"""

import argparse
import os
import sys
from typing import List, Optional

from .config import SKIP_SCAN_MODES, ConfigError, load_config
from .debugger import Debugger
from .engine import Engine

STANDARD_EXTENSIONS = (".bf", ".br", ".b")
EXTENDED_EXTENSIONS = (".bpp", ".b++", ".bfpp", ".bf++", ".brpp", ".br++")

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_HALTED = 2


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="bfvm", description="Run a brainfuck program on a circular tape.")
    ap.add_argument("program", help="Path to a .bf/.br/.b program")
    ap.add_argument("--step", action="store_true", help="Step through the program interactively")
    ap.add_argument("--useful", action="store_true", help="Extended dialect switch (not applicable to standard programs)")
    ap.add_argument("--config", default=None, help="YAML file with VM settings")
    ap.add_argument("--tape-length", type=int, default=None, help="Number of cells on the tape")
    ap.add_argument("--cell-max", type=int, default=None, help="Largest value a cell can hold")
    ap.add_argument("--step-limit", type=int, default=None, help="Stop after this many instructions")
    ap.add_argument("--skip-scan", choices=SKIP_SCAN_MODES, default=None,
                    help="How '[' over a zero cell finds its ']'")
    ap.add_argument("--precompile", action="store_true", default=None,
                    help="Decode the program once and jump straight over skipped loops")
    ap.add_argument("--quiet", action="store_true", help="Do not echo warnings and errors")
    return ap


def select_mode(path: str) -> Optional[str]:
    """Return 'standard' or 'extended' from the file extension, None if unknown."""
    lowered = path.lower()
    if lowered.endswith(EXTENDED_EXTENSIONS):
        return "extended"
    if lowered.endswith(STANDARD_EXTENSIONS):
        return "standard"
    return None


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    path = args.program

    if not os.path.isfile(path):
        print(f"fatal: file does not exist at {path}")
        return EXIT_FATAL

    mode = select_mode(path)
    if mode is None:
        ext = os.path.splitext(path)[1] or path
        print(f"fatal: unsupported file type {ext}.")
        return EXIT_FATAL
    if mode == "extended":
        print(f"fatal: the extended dialect of {os.path.basename(path)} is not supported.")
        return EXIT_FATAL
    if args.useful:
        print("warn: --useful flag is not applicable to standard brainfuck.")

    try:
        config = load_config(args.config, overrides={
            "tape_length": args.tape_length,
            "cell_max": args.cell_max,
            "step_limit": args.step_limit,
            "skip_scan": args.skip_scan,
            "precompile": args.precompile,
        })
    except (ConfigError, OSError) as e:
        print(f"fatal: {e}")
        return EXIT_FATAL

    engine = Engine.from_path(path, config=config)
    engine.diagnostics.echo = not args.quiet
    if args.step:
        Debugger(engine)

    result = engine.run()
    sys.stdout.flush()
    if result.hit_step_limit:
        print(f"\nwarn: stopped after {result.steps} steps (step limit)", file=sys.stderr)
    return EXIT_HALTED if result.halted else EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
