"""
FaceLedger Command Line Tool

Runs the enrollment and verification flows against the local ledger and
sends operator overrides through the relay API.

Usage:
    # Enroll the face seen by the webcam for an account
    python scripts/faceledger_cli.py enroll --account 0xabc

    # Enroll / verify from image files instead of the webcam
    python scripts/faceledger_cli.py enroll --account 0xabc --image face.jpg
    python scripts/faceledger_cli.py verify --account 0xabc --image probe.jpg

    # Show the ledger record of an account
    python scripts/faceledger_cli.py show --account 0xabc

    # Operator override through the relay (key read from FACELEDGER_RELAY_KEY)
    python scripts/faceledger_cli.py override --account 0xabc --verified
    python scripts/faceledger_cli.py override --account 0xabc --unverified

Exit codes:
    0 - success (verify: faces match)
    1 - error (no face, not enrolled, relay rejected, ...)
    2 - verify ran but faces do not match
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from client.relay_client import RelayClient
from core.camera import ImageFileSource
from core.config import get_api_config, get_relay_config
from core.exceptions import FaceLedgerError
from core.flows import enroll_face, verify_face
from core.ledger import get_ledger
from core.session import FaceAuthSession
from core.signature_codec import to_hex

logger = logging.getLogger("faceledger")


def build_session(args: argparse.Namespace) -> FaceAuthSession:
    """Create a session for the account, using image files when given."""
    source = ImageFileSource(args.image) if args.image else None
    return FaceAuthSession.from_config(account=args.account, source=source)


async def run_enroll(args: argparse.Namespace) -> int:
    async with build_session(args) as session:
        result = await enroll_face(session)

    print(f"Enrolled {result.account}: {len(result.signature)} byte signature committed")
    return 0


async def run_verify(args: argparse.Namespace) -> int:
    async with build_session(args) as session:
        result = await verify_face(session)

    print(json.dumps({"account": args.account, **result.to_dict()}, indent=2))
    if result.is_match:
        print("Identity verified successfully!")
        return 0

    print("Verification failed. Please try again.")
    return 2


def run_show(args: argparse.Namespace) -> int:
    record = get_ledger().get_record(args.account)
    print(json.dumps({
        "account": record.account,
        "enrolled": record.is_enrolled,
        "verified": record.verified,
        "enrolled_at": record.enrolled_at,
        "signature": to_hex(record.signature) if record.is_enrolled else None,
    }, indent=2))
    return 0


def run_override(args: argparse.Namespace) -> int:
    relay_url = args.relay_url or get_api_config().get("base_url", "http://localhost:3001")
    api_key = args.api_key or os.environ.get(
        get_relay_config().get("api_key_env", "FACELEDGER_RELAY_KEY")
    )

    with RelayClient(relay_url, api_key=api_key) as client:
        client.verify_user(args.account, args.verified)

    print(f"Override accepted: {args.account} verified={args.verified}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="FaceLedger: face enrollment, verification and operator overrides",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("enroll", "Capture a face and commit its signature to the ledger"),
        ("verify", "Capture a face and compare it with the committed signature"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--account", required=True, help="Account identifier")
        sub.add_argument(
            "--image",
            nargs="+",
            default=None,
            help="Image file(s) to use instead of the webcam",
        )

    show = subparsers.add_parser("show", help="Print an account's ledger record")
    show.add_argument("--account", required=True, help="Account identifier")

    override = subparsers.add_parser("override", help="Set the verified flag via the relay")
    override.add_argument("--account", required=True, help="Account identifier")
    flag = override.add_mutually_exclusive_group(required=True)
    flag.add_argument("--verified", dest="verified", action="store_true")
    flag.add_argument("--unverified", dest="verified", action="store_false")
    override.add_argument("--relay-url", default=None, help="Relay base URL (default: api.base_url)")
    override.add_argument("--api-key", default=None, help="Relay key (default: from environment)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        if args.command == "enroll":
            return asyncio.run(run_enroll(args))
        if args.command == "verify":
            return asyncio.run(run_verify(args))
        if args.command == "show":
            return run_show(args)
        if args.command == "override":
            return run_override(args)
    except FaceLedgerError as e:
        print(f"ERROR [{e.error_code}]: {e.message}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    parser.error(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
