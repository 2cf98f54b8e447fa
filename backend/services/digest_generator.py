"""
Weekly digest generator.

Writes the "Your Week, Distilled" digest from the posts a user saved in the
trailing 7 days. The output is markdown; it is rendered to HTML only when
the digest is sent or listed.
"""

import json
import logging
from datetime import datetime

from database import Database, week_window

logger = logging.getLogger(__name__)

MAX_POST_CHARS = 2000
PREVIEW_CHARS = 500

DIGEST_PROMPT = """You are a personal knowledge curator creating a weekly digest for a busy professional.

USER CONTEXT:
- Name: {name}
- Weeks using Steep: {weeks}

THIS WEEK'S SAVED CONTENT ({count} posts):
{posts}

CREATE A WEEKLY DIGEST WITH THESE SECTIONS:

## ☕ THE THROUGHLINE
What's the connective tissue across everything saved this week? (2-3 sentences)

## 📚 THIS WEEK'S THEMES
Group posts into 2-4 themes. For each:
### Theme Name (punchy title)
- **The Pattern**: What people are saying (2-3 sentences)
- **The Posts**: Brief summary of each relevant post with [→ Original](url) link
- **Your Takeaway**: One actionable insight

## 👀 PEOPLE WORTH FOLLOWING
Authors who appeared multiple times or posted great content. Include why they're worth following.

## 💎 THE SLEEPER
One post that seems minor but contains a hidden gem worth revisiting.

## 🤔 REFLECTION PROMPT
One thought-provoking question based on what they saved.

STYLE GUIDELINES:
- Write like a smart friend giving highlights
- Conversational, not formal
- Skimmable in 3-4 minutes
- Every post summary must link to original (skip the link only if the post has no url)
- If only 1-2 posts were saved, keep it brief and acknowledge the light week
- Use markdown: ## for sections, ### for theme names, **bold** labels, - bullets"""


def build_no_posts_reminder(user: dict) -> str:
    """Templated digest for a week with nothing saved. No LLM involved."""
    digest_day = (user.get("digest_day") or "saturday").capitalize()
    return f"""## ☕ Your Week, Distilled

Hey {user.get('name') or 'there'},

We brewed your weekly digest, but the pot's empty this week. No posts saved!

**Here's how to capture content for next week:**

1. **Forward posts** to `{user.get('inbound_email')}`
2. **Save interesting LinkedIn content** as you scroll
3. **Let it steep** all week
4. **Get your digest** every {digest_day}

The best insights come from consistent curation. Start saving this week and watch the patterns emerge.

**Quick tip:** When you see a post worth remembering, forward it immediately. Your future self will thank you.

See you next week,
**Steep** ☕

---

*Not seeing value? Reply and let us know how we can help.*"""


def _posts_for_prompt(posts: list[dict]) -> list[dict]:
    return [
        {
            "author": p.get("author_name"),
            "headline": p.get("author_headline"),
            "title": p.get("title"),
            "content": (p.get("content") or "")[:MAX_POST_CHARS],
            "url": p.get("original_url"),
            "source": p.get("source"),
            "saved": p.get("captured_at"),
        }
        for p in posts
    ]


def build_digest_prompt(user: dict, posts: list[dict], weeks_active: int) -> str:
    return DIGEST_PROMPT.format(
        name=user.get("name") or "there",
        weeks=weeks_active + 1,
        count=len(posts),
        posts=json.dumps(_posts_for_prompt(posts), indent=2, ensure_ascii=False, default=str),
    )


def generate_weekly_digest(user: dict, posts: list[dict], weeks_active: int, llm) -> str:
    """
    Write the digest markdown for a user's week.

    Args:
        user: User record (name, inbound_email, digest_day)
        posts: Posts captured in the trailing 7 days, newest first
        weeks_active: Number of digests generated for this user before
        llm: Any object with `complete(prompt, max_tokens) -> str`

    Returns:
        Digest markdown. With no posts this is the templated reminder.

    Raises:
        LLMError: The LLM call failed. There is no retry.
    """
    if not posts:
        return build_no_posts_reminder(user)

    return llm.complete(build_digest_prompt(user, posts, weeks_active), max_tokens=4000).strip()


def digest_week_start(now: datetime) -> str:
    """ISO date keying the digest week that ends at `now`."""
    return week_window(now)[0].date().isoformat()


def create_digest_for_user(db: Database, llm, user: dict, now: datetime) -> dict:
    """
    Generate and persist one weekly digest.

    Only posts captured inside the window ending at `now` are counted. A
    user has at most one digest per week; regenerating replaces its content.
    Returns the stored weekly_digests row.
    """
    week_start, week_end = week_window(now)
    week_key = digest_week_start(now)
    posts = db.get_posts_since(user["id"], week_start)
    weeks_active = db.count_digests(user["id"])
    if db.get_digest_for_week(user["id"], week_key):
        weeks_active -= 1

    logger.info(f"Generating digest for user {user['id']} from {len(posts)} posts")
    content = generate_weekly_digest(user, posts, max(weeks_active, 0), llm)

    return db.save_digest({
        "user_id": user["id"],
        "week_start": week_key,
        "week_end": week_end.date().isoformat(),
        "post_count": len(posts),
        "digest_content": content,
    })


def digest_preview(content: str) -> str:
    if len(content) <= PREVIEW_CHARS:
        return content
    return content[:PREVIEW_CHARS] + "..."
