"""
pwgen - Command-Line Interface

    pwgen generate --site example.com --master-prompt
    pwgen generate --site example.com --master-stdin --length 20 --force lower,digit --json

Exit codes:
    0  password printed
    2  invalid input (site, secret, policy, length, version)
    4  key stretching or internal failure
"""

import argparse
import getpass
import json
import logging
import sys
from typing import List, Optional

from . import __version__, crypto
from .errors import InvalidInput, KdfFailure, PwgenError, StreamExhausted
from .generator import Context, generate
from .policy import (
    CANONICAL_ORDER,
    DEFAULT_MAX,
    DEFAULT_MIN,
    ExactLength,
    LengthRange,
    Policy,
    encode,
    parse_charsets,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID = 2
EXIT_FAILURE = 4


# =============================================================================
# Argument Parsing
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pwgen",
        description="Deterministic password generator using Argon2id and HKDF",
    )
    parser.add_argument("-V", "--program-version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a password")
    gen.add_argument("--site", required=True, metavar="STRING",
                     help="Site identifier (trimmed and lowercased)")

    master = gen.add_mutually_exclusive_group(required=True)
    master.add_argument("--master", metavar="STRING",
                        help="Master secret provided directly (dangerous: visible in shell history)")
    master.add_argument("--master-prompt", action="store_true",
                        help="Prompt for master secret on the terminal (preferred)")
    master.add_argument("--master-stdin", action="store_true",
                        help="Read entire stdin as master secret")

    gen.add_argument("--username", default="", metavar="STRING",
                     help="Optional username to include in context")
    gen.add_argument("--length", type=int, metavar="INT", help="Fixed length")
    gen.add_argument("--min", type=int, default=DEFAULT_MIN, metavar="INT",
                     help=f"Minimum length (default {DEFAULT_MIN})")
    gen.add_argument("--max", type=int, default=DEFAULT_MAX, metavar="INT",
                     help=f"Maximum length (default {DEFAULT_MAX})")
    gen.add_argument("--allow", metavar="CSV",
                     help="Allowed character sets, comma-separated (lower,upper,digit,symbol)")
    gen.add_argument("--force", metavar="CSV",
                     help="Character sets that must appear (subset of allowed)")
    for charset in CANONICAL_ORDER:
        gen.add_argument(f"--no-{charset.value}", action="store_true",
                         help=f"Disallow {charset.value} characters")
    gen.add_argument("--version", type=int, default=1, metavar="UINT",
                     help="Rotation/version number (default 1)")
    gen.add_argument("--json", action="store_true",
                     help="Print a JSON object with details instead of plain password")
    gen.add_argument("--verbose", action="store_true",
                     help="Print extra info (to stderr)")
    return parser


def build_policy(args: argparse.Namespace) -> Policy:
    """
    Turn CLI flags into a validated Policy.

    --allow replaces the default (all classes); an empty --allow keeps the
    default. Then --no-* flags remove classes from whatever is left.
    """
    allowed = set(CANONICAL_ORDER)
    if args.allow is not None:
        allowed = set(parse_charsets(args.allow.split(","))) or allowed

    for charset in CANONICAL_ORDER:
        if getattr(args, f"no_{charset.value}"):
            allowed.discard(charset)

    forced = parse_charsets(args.force.split(",")) if args.force else frozenset()

    if args.length is not None:
        length = ExactLength(args.length)
    else:
        length = LengthRange(args.min, args.max)

    return Policy(allowed=allowed, forced=forced, length=length)


# =============================================================================
# Master Secret
# =============================================================================

def read_master_stdin(stream=None) -> str:
    """
    Read all of stdin. Kept as provided, except that a trailing newline
    (LF or CRLF) is dropped when the input ends with one.
    """
    data = (stream or sys.stdin).read()
    if data.endswith("\n"):
        data = data.rstrip("\r\n")
    return data


def read_master(args: argparse.Namespace) -> bytearray:
    """Return the master secret as a wipeable buffer."""
    if args.master is not None:
        secret = args.master
    elif args.master_prompt:
        secret = getpass.getpass("Master: ")
    else:
        secret = read_master_stdin()

    if not secret:
        raise InvalidInput("master secret must be nonempty")
    return bytearray(secret.encode("utf-8"))


# =============================================================================
# Commands
# =============================================================================

def cmd_generate(args: argparse.Namespace) -> int:
    site = args.site.strip().lower()
    if not site:
        raise InvalidInput("--site must be nonempty after trim")

    policy = build_policy(args)
    context = Context.create(site, username=args.username, policy=policy, version=args.version)

    if args.verbose:
        print(
            "Generating password...\n"
            f"  site: {context.site}\n"
            f"  username: {context.username or '<empty>'}\n"
            f"  version: {context.version}\n"
            f"  policy: {encode(policy)}",
            file=sys.stderr,
        )

    master = read_master(args)
    try:
        result = generate(master, context)
    finally:
        crypto.wipe(master)

    if args.json:
        print(json.dumps(result.as_dict(), separators=(",", ":"), ensure_ascii=False))
    else:
        print(result.password)
    return EXIT_OK


COMMANDS = {
    "generate": cmd_generate,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return COMMANDS[args.command](args)
    except (KdfFailure, StreamExhausted) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except PwgenError as e:
        print(f"invalid input: {e}", file=sys.stderr)
        return EXIT_INVALID
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        return EXIT_INVALID
    except Exception as e:
        logger.debug("Unexpected failure", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
