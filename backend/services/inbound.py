"""
Inbound email webhook handling.

Maps a provider payload (Postmark PascalCase or generic lower-case fields)
onto InboundEmail, finds the owner of the inbound alias and stores the
extracted post. Every outcome is reported as a result dict; the webhook
always answers 200 so the provider never retries.
"""

import logging
from datetime import datetime
from email.utils import getaddresses

from database import Database
from models import InboundEmail
from .post_extractor import extract_post

logger = logging.getLogger(__name__)

RECIPIENT_KEYS = ("To", "OriginalRecipient", "recipient", "to")
SENDER_KEYS = ("From", "sender", "from")
SUBJECT_KEYS = ("Subject", "subject")
TEXT_KEYS = ("TextBody", "text", "body-plain", "stripped-text")
HTML_KEYS = ("HtmlBody", "html", "body-html")


def _pick(payload: dict, keys: tuple[str, ...]) -> str:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return ""


def normalize_recipient(value: str, inbound_domain: str | None = None) -> str:
    """
    'Ann <ANN@save.steep.news>, x@y.com' -> 'ann@save.steep.news'.

    Prefers the address on the inbound domain when several are listed.
    """
    addresses = [addr.strip().lower() for _, addr in getaddresses([value or ""]) if addr.strip()]
    if not addresses:
        return (value or "").strip().lower()
    if inbound_domain:
        for addr in addresses:
            if addr.endswith("@" + inbound_domain.lower()):
                return addr
    return addresses[0]


def parse_inbound_payload(payload: dict, inbound_domain: str | None = None) -> InboundEmail:
    return InboundEmail(
        recipient=normalize_recipient(_pick(payload, RECIPIENT_KEYS), inbound_domain),
        sender=_pick(payload, SENDER_KEYS),
        subject=_pick(payload, SUBJECT_KEYS),
        text_body=_pick(payload, TEXT_KEYS),
        html_body=_pick(payload, HTML_KEYS),
    )


def save_inbound_post(db: Database, llm, payload: dict, now: datetime, inbound_domain: str | None = None) -> dict:
    """Store the post forwarded in `payload`. Never raises for bad content."""
    email = parse_inbound_payload(payload, inbound_domain)
    logger.info(f"Received email for {email.recipient} from {email.sender}")

    user = db.get_user_by_inbound_email(email.recipient)
    if not user:
        logger.warning(f"User not found for {email.recipient}")
        return {"success": False, "error": "User not found", "inbound_email": email.recipient}

    post = extract_post(email, llm)
    logger.info(f"Parsed post: source={post.source} author={post.author_name} length={len(post.content)}")

    try:
        saved = db.insert_post({
            "user_id": user["id"],
            "source": post.source,
            "author_name": post.author_name,
            "author_headline": post.author_headline,
            "title": post.title,
            "content": post.content,
            "original_url": post.original_url,
            "post_date": post.post_date,
            "tags": post.tags,
            "raw_email": payload,
            "captured_at": now.isoformat(),
        })
    except Exception:
        logger.exception("Error saving post")
        return {"success": False, "error": "Failed to save post"}

    return {
        "success": True,
        "post_id": saved["id"],
        "author": post.author_name,
        "source": post.source,
    }
