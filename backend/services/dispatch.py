"""
Weekly digest dispatch.

Runs once a day: every active user whose delivery day is today gets their
digest generated and emailed. Users are processed one after another and a
failure for one user is recorded without stopping the batch. A digest that
was already sent this week is never sent again, so overlapping triggers
(scheduler, cron endpoint, retries) are harmless.
"""

import logging
from datetime import datetime

import pytz

from database import Database
from .accounts import ACTIVE_PLANS, WEEKDAYS, is_plan_active
from .digest_generator import create_digest_for_user, digest_week_start
from .email_sender import build_digest_email, digest_subject

logger = logging.getLogger(__name__)


def digest_day_name(now: datetime, tz_name: str) -> str:
    """Weekday name ('monday', ...) of `now` in the dispatch timezone."""
    return WEEKDAYS[now.astimezone(pytz.timezone(tz_name)).weekday()]


def send_user_digest(db: Database, llm, mailer, user: dict, now: datetime, sender: str) -> dict:
    """Generate, send and mark one user's digest. Returns the per-user result."""
    existing = db.get_digest_for_week(user["id"], digest_week_start(now))
    if existing and existing.get("sent_at"):
        return {"user": user["email"], "status": "skipped", "reason": "already sent"}

    digest = create_digest_for_user(db, llm, user, now)

    if digest["post_count"] == 0:
        return {"user": user["email"], "status": "skipped", "reason": "no posts this week"}

    mailer.send(
        sender=sender,
        to=user["email"],
        subject=digest_subject(digest["post_count"]),
        html_body=build_digest_email(digest["digest_content"]),
    )
    db.mark_digest_sent(digest["id"], now)

    return {"user": user["email"], "status": "sent", "post_count": digest["post_count"]}


def dispatch_weekly_digests(db: Database, llm, mailer, now: datetime, tz_name: str, sender: str) -> dict:
    """
    Send today's digests.

    Returns {"processed", "day", "results"} or, when nobody is due,
    {"message", "day"}.
    """
    day = digest_day_name(now, tz_name)
    logger.info(f"Running digest dispatch for {day}")

    results = []
    for user in db.get_users_for_digest_day(day, ACTIVE_PLANS):
        try:
            if not is_plan_active(user, now):
                continue
            results.append(send_user_digest(db, llm, mailer, user, now, sender))
        except Exception as e:
            logger.exception(f"Digest failed for {user.get('email')}")
            results.append({"user": user.get("email"), "status": "error", "reason": str(e)})

    if not results:
        return {"message": "No digests to send today", "day": day}

    sent = sum(1 for r in results if r["status"] == "sent")
    logger.info(f"Digest dispatch done: {sent}/{len(results)} sent")

    return {"processed": len(results), "day": day, "results": results}
