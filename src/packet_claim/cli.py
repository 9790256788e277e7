# -*- coding: utf-8 -*-
"""Command line interface for the claim service."""
from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, Optional, Sequence

from . import claim, get_settings
from .errors import ClaimServiceError
from .persistence.models import Base
from .persistence.session import make_engine
from .types import Record


def record_payload(record: Record) -> Dict[str, Any]:
    return {
        "id": record.id,
        "claimant_id": record.claimant_id,
        "packet_id": record.packet_id,
        "amount": str(record.amount),
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


def _run_init_db(args: argparse.Namespace) -> int:
    db_url = args.db_url or get_settings().db_url
    engine = make_engine(db_url)
    try:
        Base.metadata.create_all(engine)
    finally:
        engine.dispose()
    print(json.dumps({"initialized": db_url}, ensure_ascii=False))
    return 0


def _run_claim(args: argparse.Namespace) -> int:
    try:
        record = claim(args.packet_id, args.claimant_id, timeout=args.timeout)
    except ClaimServiceError as exc:  # CLI boundary
        payload = {"code": exc.detail.code, "message": exc.detail.message, "details": exc.detail.details}
        print(json.dumps(payload, ensure_ascii=False), file=sys.stderr)
        return 1
    print(json.dumps(record_payload(record), ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Packet claim service CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    init_cmd = sub.add_parser("init-db", help="Create the packets and packet_records tables")
    init_cmd.add_argument("--db-url", help="Override PACKET_CLAIM_DB_URL")
    init_cmd.set_defaults(func=_run_init_db)

    claim_cmd = sub.add_parser("claim", help="Claim one share of a packet")
    claim_cmd.add_argument("--packet-id", type=int, required=True)
    claim_cmd.add_argument("--claimant-id", type=int, required=True)
    claim_cmd.add_argument("--timeout", type=float, help="Give up after this many seconds")
    claim_cmd.set_defaults(func=_run_claim)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    result = args.func(args)
    return int(result)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
