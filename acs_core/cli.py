# acs_core/cli.py
"""
Command line entry point, normally installed as an SSH forced command:

    command="acs-keyholder \"$SSH_ORIGINAL_COMMAND\"" ssh-ed25519 AAAA... alice@laptop

With one argument the argument is the whole command line. With several
arguments they are taken as already-split tokens. Without arguments the
command is taken from SSH_ORIGINAL_COMMAND, or read from an interactive
prompt when that is unset.
"""
from __future__ import annotations
from typing import List, Optional
import argparse, logging, os, sys

from acs_core.commands import parse_command, parse_tokens, usage
from acs_core.config import load_settings
from acs_core.engine import KeyholderEngine
from acs_core.errors import AccessControlError
from acs_core.logger import configure_logging

log = logging.getLogger("ACS.CLI")

PROMPT = "acs> "
QUIT_WORDS = {"quit", "exit"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="acs-keyholder",
        description="Set the space status or open a door as an authenticated keyholder.",
        epilog=usage(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", default=None,
                        help="config file (default: $ACS_CONFIG or /etc/access-control-system.conf)")
    parser.add_argument("command", nargs=argparse.REMAINDER,
                        help="command line, e.g. 'set-status open \"see you there\"'")
    return parser


def report(err: AccessControlError) -> None:
    print(f"{err.kind}: {err}", file=sys.stderr)
    log.error(f"[CLI] {err.kind}: {err}")


def run_once(engine: KeyholderEngine, line: Optional[str] = None, tokens: Optional[List[str]] = None) -> int:
    try:
        command = parse_tokens(tokens) if tokens is not None else parse_command(line)
        result = engine.run(command)
    except AccessControlError as e:
        report(e)
        return 1
    print(result.summary())
    return 0


def interactive(engine: KeyholderEngine, stdin=None) -> int:
    stdin = stdin or sys.stdin
    status = 0
    while True:
        sys.stdout.write(PROMPT)
        sys.stdout.flush()
        line = stdin.readline()
        if not line:
            print()
            break
        line = line.strip()
        if not line:
            continue
        if line in QUIT_WORDS:
            break
        if line == "help":
            print(usage())
            continue
        status |= run_once(engine, line=line)
    return status


def main(argv: Optional[List[str]] = None, stdin=None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args.config)
    configure_logging(settings.log_level, settings.log_file)

    engine = KeyholderEngine(settings)
    try:
        if len(args.command) == 1:
            return run_once(engine, line=args.command[0])
        if args.command:
            return run_once(engine, tokens=args.command)
        original = os.environ.get("SSH_ORIGINAL_COMMAND")
        if original:
            return run_once(engine, line=original)
        return interactive(engine, stdin=stdin)
    finally:
        engine.close()


if __name__ == "__main__":
    sys.exit(main())
