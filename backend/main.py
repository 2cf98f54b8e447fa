import logging
from contextlib import asynccontextmanager
from urllib.parse import quote

from fastapi import FastAPI, HTTPException, Depends, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
import pytz

from config import (
    APP_URL,
    CRON_SECRET,
    DIGEST_FROM,
    DIGEST_SEND_HOUR,
    DIGEST_TIMEZONE,
    ENABLE_SCHEDULER,
    INBOUND_DOMAIN,
    LOGIN_FROM,
)
from database import Database, utc_now
from deps import get_db, get_llm, get_mailer
from models import (
    SignupRequest, SettingsUpdate, SendLinkRequest, DigestGenerateRequest,
    DigestGenerateResponse, PostListResponse, DigestListResponse
)
from services import (
    create_account,
    AccountExistsError,
    issue_magic_link,
    verify_magic_link,
    VerifyStatus,
    create_digest_for_user,
    digest_preview,
    dispatch_weekly_digests,
    render_markdown,
    build_login_email,
)
from services.accounts import WEEKDAYS, normalize_email
from services.inbound import save_inbound_post
from services.pagination import DATE_FILTERS, build_pagination, date_filter_cutoff, page_offset

logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')
logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Scheduler for the daily digest dispatch
scheduler = BackgroundScheduler(timezone=pytz.timezone(DIGEST_TIMEZONE))


def send_scheduled_digests():
    """Background job: send digests to everyone whose delivery day is today."""
    mailer = get_mailer()
    if not mailer.is_configured():
        logger.warning("Email not configured, skipping digest dispatch")
        return

    try:
        result = dispatch_weekly_digests(
            get_db(), get_llm(), mailer, utc_now(), DIGEST_TIMEZONE, DIGEST_FROM
        )
        logger.info(f"Scheduled digest dispatch: {result.get('processed', 0)} users processed")
    except Exception:
        logger.exception("Scheduled digest dispatch failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: the in-process scheduler is opt-in; external cron can call
    # /api/cron/send-digests instead
    if ENABLE_SCHEDULER and get_mailer().is_configured():
        scheduler.add_job(
            send_scheduled_digests,
            CronTrigger(hour=DIGEST_SEND_HOUR, minute=0, timezone=pytz.timezone(DIGEST_TIMEZONE)),
            id="weekly_digests",
            replace_existing=True
        )
        scheduler.start()
        logger.info(f"Digest scheduler started: daily at {DIGEST_SEND_HOUR}:00 {DIGEST_TIMEZONE}")
    else:
        logger.info("Digest scheduler not started")
    yield
    # Shutdown: stop scheduler
    if scheduler.running:
        scheduler.shutdown()

app = FastAPI(
    title="Steep API",
    description="Save forwarded posts and get a weekly digest",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _validate_page(page: str | None, limit: str | None) -> tuple[int, int]:
    """Parse page/limit query params, answering 400 instead of a 422 dump."""
    try:
        page_num = int(page) if page not in (None, "") else 1
        limit_num = int(limit) if limit not in (None, "") else DEFAULT_PAGE_SIZE
    except ValueError:
        raise HTTPException(status_code=400, detail="page and limit must be integers")
    if page_num < 1:
        raise HTTPException(status_code=400, detail="page must be 1 or greater")
    if limit_num < 1 or limit_num > MAX_PAGE_SIZE:
        raise HTTPException(status_code=400, detail=f"limit must be between 1 and {MAX_PAGE_SIZE}")
    return page_num, limit_num


def _public_user(user: dict) -> dict:
    return {
        "id": user["id"],
        "name": user.get("name"),
        "email": user.get("email"),
        "inbound_email": user.get("inbound_email"),
        "plan": user.get("plan"),
    }


@app.get("/")
async def root():
    return {"message": "Steep API", "version": "1.0.0"}


# ============ ACCOUNT ENDPOINTS ============

@app.post("/api/signup")
async def signup(body: SignupRequest, db: Database = Depends(get_db)):
    """Create a trial account and hand out the user's inbound alias."""
    if not body.email or not body.email.strip() or not body.name or not body.name.strip():
        raise HTTPException(status_code=400, detail="Email and name are required")
    if "@" not in body.email:
        raise HTTPException(status_code=400, detail="Invalid email address")

    try:
        user = create_account(db, body.email, body.name, INBOUND_DOMAIN, utc_now())
    except AccountExistsError:
        raise HTTPException(status_code=400, detail="An account with this email already exists")
    except Exception:
        logger.exception("Error creating user")
        raise HTTPException(status_code=500, detail="Failed to create account")

    return {"success": True, "user": _public_user(user)}


@app.get("/api/user/settings")
async def get_settings(user_id: str | None = None, db: Database = Depends(get_db)):
    if not user_id:
        raise HTTPException(status_code=400, detail="user_id is required")

    try:
        user = db.get_user_by_id(user_id)
    except Exception:
        logger.exception("Error fetching user")
        raise HTTPException(status_code=500, detail="Server error")

    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"user": user}


@app.put("/api/user/settings")
async def update_settings(body: SettingsUpdate, db: Database = Depends(get_db)):
    """Update the digest delivery day and/or display name."""
    if not body.user_id:
        raise HTTPException(status_code=400, detail="user_id is required")

    updates = {}
    if body.digest_day is not None:
        day = body.digest_day.strip().lower()
        if day not in WEEKDAYS:
            raise HTTPException(status_code=400, detail="Invalid digest_day. Must be a day of the week.")
        updates["digest_day"] = day
    if body.name is not None:
        if not body.name.strip():
            raise HTTPException(status_code=400, detail="Name cannot be empty")
        updates["name"] = body.name.strip()

    if not updates:
        raise HTTPException(status_code=400, detail="No updates provided")

    try:
        user = db.update_user(body.user_id, updates)
    except Exception:
        logger.exception("Error updating user")
        raise HTTPException(status_code=500, detail="Failed to update settings")

    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "user": user}


# ============ AUTH ENDPOINTS ============

@app.post("/api/auth/send-link")
async def send_login_link(
    body: SendLinkRequest,
    db: Database = Depends(get_db),
    mailer=Depends(get_mailer),
):
    """
    Email a 15-minute login link.

    The response is the same whether or not the email has an account.
    """
    if not body.email or not body.email.strip():
        raise HTTPException(status_code=400, detail="Email is required")

    generic = {"success": True, "message": "If an account exists, a login link has been sent."}

    try:
        user = db.get_user_by_email(normalize_email(body.email))
    except Exception:
        logger.exception("Error looking up user")
        raise HTTPException(status_code=500, detail="Server error")

    if not user:
        return generic

    try:
        token = issue_magic_link(db, user, utc_now())
    except Exception:
        logger.exception("Error creating magic link")
        raise HTTPException(status_code=500, detail="Failed to create login link")

    login_url = f"{APP_URL}/api/auth/verify?token={token}"
    try:
        mailer.send(
            sender=LOGIN_FROM,
            to=user["email"],
            subject="☕ Your Steep login link",
            html_body=build_login_email(user.get("name") or "there", login_url),
        )
    except Exception:
        logger.exception("Error sending login email")
        raise HTTPException(status_code=500, detail="Failed to send email")

    return generic


@app.get("/api/auth/verify")
async def verify_login_link(token: str | None = None, db: Database = Depends(get_db)):
    """Consume a magic link and redirect to the dashboard."""
    try:
        status, user = verify_magic_link(db, token, utc_now())
    except Exception:
        logger.exception("Error verifying magic link")
        status, user = VerifyStatus.INVALID, None

    if status != VerifyStatus.OK or not user:
        return RedirectResponse(f"{APP_URL}/dashboard?error={status.value}")

    return RedirectResponse(f"{APP_URL}/dashboard?auth={quote(user['email'], safe='')}")


# ============ INBOUND ENDPOINTS ============

@app.post("/api/inbound")
async def inbound_webhook(request: Request, db: Database = Depends(get_db), llm=Depends(get_llm)):
    """
    Email provider webhook for forwarded posts.

    Always answers 200 so the provider doesn't retry; failures are reported
    in the body.
    """
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Inbound webhook received invalid JSON")
        return {"success": False, "error": "Invalid JSON"}

    if not isinstance(payload, dict):
        return {"success": False, "error": "Invalid payload"}

    try:
        return save_inbound_post(db, llm, payload, utc_now(), INBOUND_DOMAIN)
    except Exception:
        logger.exception("Inbound webhook error")
        return {"success": False, "error": "Server error"}


@app.get("/api/inbound")
async def inbound_status():
    return {
        "status": "ok",
        "message": "Steep inbound webhook is running",
        "timestamp": utc_now().isoformat()
    }


# ============ DIGEST ENDPOINTS ============

@app.post("/api/digest/generate", response_model=DigestGenerateResponse)
async def generate_digest(
    body: DigestGenerateRequest,
    db: Database = Depends(get_db),
    llm=Depends(get_llm),
):
    """Generate and store this week's digest for one user."""
    if not body.user_id:
        raise HTTPException(status_code=400, detail="user_id is required")

    try:
        user = db.get_user_by_id(body.user_id)
    except Exception:
        logger.exception("Error fetching user")
        raise HTTPException(status_code=500, detail="Server error")

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    try:
        digest = create_digest_for_user(db, llm, user, utc_now())
    except Exception:
        logger.exception(f"Digest generation failed for user {body.user_id}")
        raise HTTPException(status_code=500, detail="Server error")

    return DigestGenerateResponse(
        success=True,
        digest_id=str(digest["id"]),
        post_count=digest["post_count"],
        preview=digest_preview(digest["digest_content"])
    )


@app.get("/api/digest/generate")
async def digest_status():
    return {"status": "ok", "message": "Digest generation endpoint ready"}


@app.get("/api/cron/send-digests")
async def cron_send_digests(
    authorization: str | None = Header(None),
    db: Database = Depends(get_db),
    llm=Depends(get_llm),
    mailer=Depends(get_mailer),
):
    """Time-triggered dispatch of today's digests."""
    if CRON_SECRET and authorization != f"Bearer {CRON_SECRET}":
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not mailer.is_configured():
        raise HTTPException(
            status_code=500,
            detail="RESEND_API_KEY not configured. Add RESEND_API_KEY to environment variables."
        )

    try:
        return dispatch_weekly_digests(db, llm, mailer, utc_now(), DIGEST_TIMEZONE, DIGEST_FROM)
    except Exception:
        logger.exception("Digest dispatch failed")
        raise HTTPException(status_code=500, detail="Server error")


# ============ LIST ENDPOINTS ============

@app.get("/api/posts/list", response_model=PostListResponse)
async def list_posts(
    user_id: str | None = None,
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    date_filter: str | None = None,
    author: str | None = None,
    db: Database = Depends(get_db),
):
    """Saved posts, newest first, with optional search/date/author filters."""
    if not user_id:
        raise HTTPException(status_code=400, detail="user_id is required")
    page, limit = _validate_page(page, limit)
    if date_filter and date_filter not in DATE_FILTERS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid date_filter. Must be one of: {', '.join(DATE_FILTERS)}"
        )

    try:
        posts, total = db.list_posts(
            user_id,
            offset=page_offset(page, limit),
            limit=limit,
            search=search.strip() if search else None,
            author=author.strip() if author else None,
            captured_after=date_filter_cutoff(date_filter, utc_now()),
        )
    except Exception:
        logger.exception("Error fetching posts")
        raise HTTPException(status_code=500, detail="Failed to fetch posts")

    return PostListResponse(posts=posts, pagination=build_pagination(page, limit, total))


@app.get("/api/digests/list", response_model=DigestListResponse)
async def list_digests(
    user_id: str | None = None,
    page: str | None = None,
    limit: str | None = None,
    db: Database = Depends(get_db),
):
    """Past digests, newest week first, each rendered to HTML."""
    if not user_id:
        raise HTTPException(status_code=400, detail="user_id is required")
    page, limit = _validate_page(page, limit)

    try:
        digests, total = db.list_digests(user_id, offset=page_offset(page, limit), limit=limit)
    except Exception:
        logger.exception("Error fetching digests")
        raise HTTPException(status_code=500, detail="Failed to fetch digests")

    rendered = [
        {**d, "digest_html": render_markdown(d.get("digest_content") or "")}
        for d in digests
    ]
    return DigestListResponse(digests=rendered, pagination=build_pagination(page, limit, total))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
