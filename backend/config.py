import os
from dotenv import load_dotenv

load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), '..', '.env'))

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
LLM_MODEL = os.getenv("LLM_MODEL", "claude-sonnet-4-20250514")

# Email settings (optional - login links and digests won't send without these)
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
LOGIN_FROM = os.getenv("LOGIN_FROM", "Steep <login@steep.news>")
DIGEST_FROM = os.getenv("DIGEST_FROM", "Steep <digest@steep.news>")

APP_URL = os.getenv("APP_URL", "http://localhost:3000").rstrip("/")
INBOUND_DOMAIN = os.getenv("INBOUND_DOMAIN", "save.steep.news")

# Digest schedule
DIGEST_TIMEZONE = os.getenv("DIGEST_TIMEZONE", "America/Chicago")
DIGEST_SEND_HOUR = int(os.getenv("DIGEST_SEND_HOUR", "9"))
ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "false").lower() in ("1", "true", "yes")
CRON_SECRET = os.getenv("CRON_SECRET")

if not all([SUPABASE_URL, SUPABASE_KEY, ANTHROPIC_API_KEY]):
    missing = []
    if not SUPABASE_URL:
        missing.append("SUPABASE_URL")
    if not SUPABASE_KEY:
        missing.append("SUPABASE_KEY")
    if not ANTHROPIC_API_KEY:
        missing.append("ANTHROPIC_API_KEY")
    raise ValueError(f"Missing required environment variables: {', '.join(missing)}")
