#!/usr/bin/env python3
"""
DatingApp -- command-line helpers for the bearer token setup.

Usage:
  python main.py token alice
  python main.py verify eyJhbGciOiJIUzUxMiIs...
  python main.py create-user alice --password s3cret

All commands read the same settings as the API (TOKEN_KEY, DATABASE_URL,
TOKEN_EXPIRE_DAYS, VALIDATE_ISSUER, ... from the environment or .env), so a
token minted here validates against a running server with the same config.

Exit status is 0 on success and 1 on any failure.
"""

import argparse
import sys
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.store import UserStore
from auth.tokens import (
    TokenConfigurationError,
    TokenService,
    build_validation_parameters,
    decode_access_token,
    hash_password,
)
from core.config import Settings, get_settings


def _cmd_token(args: argparse.Namespace, settings: Settings) -> int:
    service = TokenService(
        settings.token_key,
        expire_days=settings.token_expire_days,
        issuer=settings.token_issuer if settings.validate_issuer else None,
        audience=settings.token_audience if settings.validate_audience else None,
    )
    # Stored usernames are lowercase; the token subject must match one.
    print(service.create_token(User(username=args.username.lower())))
    return 0


def _cmd_verify(args: argparse.Namespace, settings: Settings) -> int:
    params = build_validation_parameters(
        settings.token_key,
        validate_issuer=settings.validate_issuer,
        valid_issuer=settings.token_issuer,
        validate_audience=settings.validate_audience,
        valid_audience=settings.token_audience,
    )
    claims = decode_access_token(args.token, params)
    if claims is None:
        print("  [!] Token is invalid or expired.", file=sys.stderr)
        return 1
    expires = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
    print(f"subject: {claims['sub']}")
    print(f"expires: {expires.isoformat()}")
    return 0


def _cmd_create_user(args: argparse.Namespace, settings: Settings) -> int:
    store = UserStore(settings.database_url)
    try:
        user_id = store.create_user(User(username=args.username.lower(), hashed_password=hash_password(args.password)))
    except IntegrityError:
        print(f"  [!] User '{args.username}' already exists.", file=sys.stderr)
        return 1
    finally:
        store.close()
    print(f"Created user {args.username.lower()} (id={user_id})")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="datingapp",
        description="DatingApp token and user helpers",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    token_p = sub.add_parser("token", help="Issue a bearer token for a username")
    token_p.add_argument("username")
    token_p.set_defaults(func=_cmd_token)

    verify_p = sub.add_parser("verify", help="Validate a bearer token and print its subject")
    verify_p.add_argument("token")
    verify_p.set_defaults(func=_cmd_verify)

    user_p = sub.add_parser("create-user", help="Add a user to the database")
    user_p.add_argument("username")
    user_p.add_argument("--password", required=True)
    user_p.set_defaults(func=_cmd_create_user)

    args = parser.parse_args(argv)
    try:
        return args.func(args, get_settings())
    except (TokenConfigurationError, ValueError) as e:
        print(f"  [!] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
