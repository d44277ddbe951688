import argparse
import logging
import os
import sys
import time

import pandas as pd

from .config import DEFAULT_SCOPE, SCOPES
from .exceptions import InternalInconsistencyError, ModelScriptError
from .session import ModelScriptSession
from .utils import TerminalColors, describe_value

# The stages whose artifacts can be written next to the script with --dump.
STAGE_MAP = {
    "ast": "Statement AST",
    "model": "Interpreted values",
}


def print_scopes(session: ModelScriptSession):
    for scope in session.model.scopes.values():
        print(f"\n{TerminalColors.CYAN}{scope.name} {{{TerminalColors.RESET}")
        for value in scope:
            print(f"  {describe_value(value)}")
        print(f"{TerminalColors.CYAN}}}{TerminalColors.RESET}")


def main(argv=None):
    start_time = time.perf_counter()

    dump_help_text = "Save an intermediate artifact as JSON next to the script: "
    dump_help_text += ", ".join(f"'{key}' for the {desc}" for key, desc in STAGE_MAP.items()) + "."

    parser = argparse.ArgumentParser(description="Interpret a ModelScript file and sample its graphical model.")
    parser.add_argument(
        "input_file",
        nargs="?",
        default=None,
        help="The path to the input script. Omit to read from stdin.",
    )
    parser.add_argument("-n", "--samples", type=int, default=0, help="Run this many sampling passes and print a summary of the numeric sinks.")
    parser.add_argument("--seed", type=int, default=None, help="Seed the random source for a reproducible run.")
    parser.add_argument(
        "--context",
        choices=SCOPES,
        default=DEFAULT_SCOPE,
        help="The scope of statements written outside a data { } or model { } block.",
    )
    parser.add_argument("--dump", action="append", choices=STAGE_MAP.keys(), default=[], help=dump_help_text)
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every binding and sampling pass.")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # --- Input Validation ---
    if not args.input_file and sys.stdin.isatty():
        parser.error("input_file is required when not reading from a pipe.")
    if args.samples < 0:
        parser.error("--samples must be zero or a positive number.")

    script_path_for_display = args.input_file or "stdin"
    print(f"--- Interpreting {script_path_for_display} ---")

    try:
        # --- Read Input ---
        if not args.input_file:
            script_content = sys.stdin.read()
            input_file_path_abs = None
        else:
            input_file_path_abs = os.path.abspath(args.input_file)
            with open(input_file_path_abs, "r", encoding="utf-8") as f:
                script_content = f.read()

        session = ModelScriptSession(default_scope=args.context, seed=args.seed, dump_stages=args.dump)
        session.run(script_content, input_file_path_abs)
        print_scopes(session)

        if args.samples:
            summary = session.summarize(args.samples)
            print(f"\n{TerminalColors.GREEN}--- Summary of {args.samples} sampling passes ---{TerminalColors.RESET}")
            if summary.empty:
                print("The model has no numeric sinks to summarize.")
            else:
                with pd.option_context("display.max_rows", None, "display.width", 120):
                    print(summary)

        print(f"\n{TerminalColors.GREEN}--- Interpretation Successful ---{TerminalColors.RESET}")

    # --- Error Handling ---
    except ModelScriptError as e:
        print(
            f"\n{TerminalColors.RED}--- MODELSCRIPT ERROR ---\n{e}{TerminalColors.RESET}",
            file=sys.stderr,
        )
        sys.exit(1)
    except FileNotFoundError:
        print(
            f"{TerminalColors.RED}ERROR: Script file '{script_path_for_display}' not found.{TerminalColors.RESET}",
            file=sys.stderr,
        )
        sys.exit(1)
    except InternalInconsistencyError as e:
        print(
            f"\n{TerminalColors.RED}--- INTERNAL INTERPRETER ERROR ---{TerminalColors.RESET}",
            file=sys.stderr,
        )
        print("This is a bug in the interpreter. Please report it.", file=sys.stderr)
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)

    finally:
        # --- Execution Time ---
        duration = time.perf_counter() - start_time
        print(f"\n{TerminalColors.CYAN}--- Total Execution Time: {duration:.4f} seconds ---{TerminalColors.RESET}")


if __name__ == "__main__":
    main()
