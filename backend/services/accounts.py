import re
import secrets
from datetime import datetime, timedelta, timezone

from database import Database

TRIAL_DAYS = 14
MAX_ALIAS_ATTEMPTS = 100
ALIAS_BASE_CHARS = 20

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
ACTIVE_PLANS = ["monthly", "annual", "lifetime", "trial"]


class AccountExistsError(Exception):
    """Raised when signing up with an email that already has an account."""
    pass


def normalize_email(email: str) -> str:
    return email.strip().lower()


def alias_base(name: str) -> str:
    """'Ann Lee!' -> 'annlee'."""
    base = re.sub(r"[^a-z0-9]", "", name.lower())[:ALIAS_BASE_CHARS]
    return base or "user"


def generate_unique_alias(db: Database, name: str, domain: str) -> str:
    """
    Pick an inbound alias that no other user holds.

    Tries base@domain, then base1@domain, base2@domain, ... and finally a
    random suffix once the numbered candidates run out.
    """
    base = alias_base(name)
    candidate = f"{base}@{domain}"
    counter = 0

    while db.inbound_email_exists(candidate):
        counter += 1
        if counter > MAX_ALIAS_ATTEMPTS:
            return f"{base}{secrets.token_hex(2)}@{domain}"
        candidate = f"{base}{counter}@{domain}"

    return candidate


def create_account(db: Database, email: str, name: str, domain: str, now: datetime) -> dict:
    """Create a trial user with a fresh inbound alias."""
    email = normalize_email(email)
    if db.get_user_by_email(email):
        raise AccountExistsError(email)

    return db.insert_user({
        "email": email,
        "name": name.strip(),
        "inbound_email": generate_unique_alias(db, name, domain),
        "plan": "trial",
        "plan_expires_at": (now + timedelta(days=TRIAL_DAYS)).isoformat(),
        "digest_day": "saturday",
    })


def parse_timestamp(value) -> datetime | None:
    """Parse a Postgres timestamp as returned by Supabase."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def is_plan_active(user: dict, now: datetime) -> bool:
    """Paid plans are always active; a trial is active until it expires."""
    plan = user.get("plan")
    if plan not in ACTIVE_PLANS:
        return False
    if plan == "trial":
        expires_at = parse_timestamp(user.get("plan_expires_at"))
        return expires_at is None or expires_at > now
    return True
