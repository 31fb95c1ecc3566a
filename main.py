#!/usr/bin/env python3
"""
K8sNode API -- credential verification and health service.

Usage:
  python main.py serve
  python main.py serve --host 127.0.0.1 --port 8080
  python main.py serve --reload
  python main.py hash-password
  python main.py hash-password 's3cret'

Environment variables (see core/config.py for the full list):
  JWT_SECRET     Token signing key, at least 32 characters. Required unless DEBUG=true.
  LOG_LEVEL      error | warn | info | debug (default info).
  ENVIRONMENT    Reported by GET /health (default development).
  BCRYPT_ROUNDS  bcrypt cost factor for hash-password and the seed roster (default 10).
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from auth.hashing import PasswordHasher
from core.config import get_settings

logger = logging.getLogger("k8snode.cli")


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


def _hash_password(args: argparse.Namespace) -> int:
    plain: Optional[str] = args.password
    if plain is None:
        plain = getpass.getpass("Password: ")
        if plain != getpass.getpass("Confirm:  "):
            print("  [!] Passwords do not match.", file=sys.stderr)
            return 1
    if not plain:
        print("  [!] Password must not be empty.", file=sys.stderr)
        return 1

    hasher = PasswordHasher(rounds=get_settings().bcrypt_rounds)
    try:
        print(hasher.hash(plain))
    except ValueError as e:
        print(f"  [!] {e}", file=sys.stderr)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="k8snode",
        description="K8sNode API -- credential verification and health service.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server under uvicorn")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT setting)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=_serve)

    hash_cmd = sub.add_parser("hash-password", help="Print a bcrypt hash for a password")
    hash_cmd.add_argument("password", nargs="?", default=None, help="Password to hash (prompted if omitted)")
    hash_cmd.set_defaults(func=_hash_password)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)-5s %(name)s %(message)s")
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ValueError as e:
        # pydantic-settings raises ValidationError (a ValueError) for bad env config
        logger.error("Configuration error: %s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
