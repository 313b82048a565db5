"""Off-line Merkle distribution tool.

Usage:
    claimportal-merkle generate snapshot.json [-o distribution.json] [--hash-alg poseidon]
    claimportal-merkle verify distribution.json [--account 0x...]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from .application.distribution import (
    build_distribution,
    find_invalid_entries,
    load_distribution,
    load_snapshot,
    save_distribution,
)
from .crypto.field import felt_from_hex, felt_to_hex
from .crypto.merkle import SHA256, SUPPORTED_HASH_ALGS

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


def generate_cmd(args: argparse.Namespace) -> int:
    try:
        entries = load_snapshot(args.snapshot)
        distribution = build_distribution(entries, args.hash_alg)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    if args.output:
        save_distribution(distribution, args.output)
        logger.info("Wrote %d entries to %s", len(distribution.entries), args.output)
    else:
        print(json.dumps(distribution.model_dump(mode="json"), indent=2))
    print(f"Merkle root: {felt_to_hex(distribution.root)}", file=sys.stderr)
    return EXIT_SUCCESS


def verify_cmd(args: argparse.Namespace) -> int:
    try:
        distribution = load_distribution(args.distribution)
        account = felt_from_hex(args.account) if args.account else None
        invalid = find_invalid_entries(distribution, account)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    if invalid:
        for entry in invalid:
            print(f"INVALID {felt_to_hex(entry.account)} amount={entry.amount}")
        return EXIT_VERIFICATION_FAILED

    checked = 1 if account is not None else len(distribution.entries)
    print(f"OK: {checked} proof(s) verify against {felt_to_hex(distribution.root)}")
    return EXIT_SUCCESS


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claimportal-merkle",
        description="Build and check Merkle claim distributions",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate", help="Build a distribution from a snapshot"
    )
    generate_parser.add_argument(
        "snapshot", help="JSON list of {account|address, amount} entries"
    )
    generate_parser.add_argument(
        "-o", "--output", help="Write the distribution here instead of stdout"
    )
    generate_parser.add_argument(
        "--hash-alg",
        choices=sorted(SUPPORTED_HASH_ALGS),
        default=SHA256,
        help="Leaf and node hash (default: sha256)",
    )
    generate_parser.set_defaults(func=generate_cmd)

    verify_parser = subparsers.add_parser(
        "verify", help="Re-verify proofs against the distribution root"
    )
    verify_parser.add_argument("distribution", help="Distribution JSON file")
    verify_parser.add_argument("--account", help="Only verify this account (hex)")
    verify_parser.set_defaults(func=verify_cmd)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
