import secrets
from datetime import datetime, timedelta
from enum import Enum

from database import Database
from .accounts import parse_timestamp

LINK_TTL = timedelta(minutes=15)


class VerifyStatus(str, Enum):
    OK = "ok"
    INVALID = "invalid"
    EXPIRED = "expired"


def new_token() -> str:
    return secrets.token_hex(32)


def issue_magic_link(db: Database, user: dict, now: datetime) -> str:
    """Store a fresh single-use token for `user` and return it."""
    token = new_token()
    db.insert_magic_link(user["id"], token, now + LINK_TTL)
    return token


def verify_magic_link(db: Database, token: str | None, now: datetime) -> tuple[VerifyStatus, dict | None]:
    """
    Consume a magic link.

    Returns (OK, user) the first time a live token is verified. A used or
    unknown token is INVALID; a token past its expiry is EXPIRED and stays
    unusable regardless of whether it was ever used.
    """
    if not token:
        return VerifyStatus.INVALID, None

    link = db.get_unused_magic_link(token)
    if not link:
        return VerifyStatus.INVALID, None

    if parse_timestamp(link["expires_at"]) <= now:
        return VerifyStatus.EXPIRED, None

    if not db.consume_magic_link(link["id"]):
        return VerifyStatus.INVALID, None

    return VerifyStatus.OK, link.get("users")
