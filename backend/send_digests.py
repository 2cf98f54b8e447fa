#!/usr/bin/env python3
"""
Standalone script to send today's weekly digests.
Can be run via GitHub Actions or any cron scheduler.
"""

import logging
import sys

# Load environment variables
from dotenv import load_dotenv
load_dotenv()

from config import DIGEST_FROM, DIGEST_TIMEZONE
from database import utc_now
from deps import get_db, get_llm, get_mailer
from services.dispatch import dispatch_weekly_digests

logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')
logger = logging.getLogger("send_digests")


def main():
    logger.info("Starting weekly digest dispatch...")

    mailer = get_mailer()
    if not mailer.is_configured():
        logger.error("Email not configured. Set RESEND_API_KEY.")
        sys.exit(1)

    try:
        result = dispatch_weekly_digests(
            get_db(), get_llm(), mailer, utc_now(), DIGEST_TIMEZONE, DIGEST_FROM
        )
    except Exception:
        logger.exception("Digest dispatch failed")
        sys.exit(1)

    if "results" not in result:
        logger.info(f"{result['message']} ({result['day']})")
        sys.exit(0)

    for r in result["results"]:
        logger.info(f"  {r['user']}: {r['status']} {r.get('reason') or ''}".rstrip())

    errors = sum(1 for r in result["results"] if r["status"] == "error")
    logger.info(f"Processed {result['processed']} users on {result['day']}, {errors} errors")
    sys.exit(1 if errors else 0)


if __name__ == "__main__":
    main()
