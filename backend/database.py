from datetime import datetime, timedelta, timezone
from supabase import create_client, Client
from config import SUPABASE_URL, SUPABASE_KEY


def create_supabase_client() -> Client:
    """Build a fresh Supabase client from the configured URL and service key."""
    return create_client(SUPABASE_URL, SUPABASE_KEY)


def _or_filter_value(term: str) -> str:
    """Strip characters that would break a PostgREST or() filter."""
    return "".join(ch for ch in term if ch not in ",()").strip()


class Database:
    """
    Thin query layer over the Supabase tables.

    One instance is built per request (see deps.get_db) so nothing here is
    shared between requests.
    """

    def __init__(self, client: Client):
        self.client = client

    # User functions

    def get_user_by_id(self, user_id: str) -> dict | None:
        result = self.client.table("users").select("*").eq("id", user_id).limit(1).execute()
        if result.data:
            return result.data[0]
        return None

    def get_user_by_email(self, email: str) -> dict | None:
        result = self.client.table("users").select("*").eq("email", email).limit(1).execute()
        if result.data:
            return result.data[0]
        return None

    def get_user_by_inbound_email(self, inbound_email: str) -> dict | None:
        result = (
            self.client.table("users")
            .select("*")
            .eq("inbound_email", inbound_email)
            .limit(1)
            .execute()
        )
        if result.data:
            return result.data[0]
        return None

    def inbound_email_exists(self, inbound_email: str) -> bool:
        return self.get_user_by_inbound_email(inbound_email) is not None

    def insert_user(self, user_data: dict) -> dict:
        result = self.client.table("users").insert(user_data).execute()
        return result.data[0]

    def update_user(self, user_id: str, updates: dict) -> dict | None:
        result = self.client.table("users").update(updates).eq("id", user_id).execute()
        return result.data[0] if result.data else None

    def get_users_for_digest_day(self, day: str, plans: list[str]) -> list[dict]:
        """Get users who receive their digest on `day` and hold one of `plans`."""
        result = (
            self.client.table("users")
            .select("*")
            .eq("digest_day", day)
            .in_("plan", plans)
            .execute()
        )
        return result.data

    # Saved post functions

    def insert_post(self, post_data: dict) -> dict:
        result = self.client.table("saved_posts").insert(post_data).execute()
        return result.data[0]

    def get_posts_since(self, user_id: str, since: datetime) -> list[dict]:
        """Get a user's posts captured at or after `since`, newest first."""
        result = (
            self.client.table("saved_posts")
            .select("*")
            .eq("user_id", user_id)
            .gte("captured_at", since.isoformat())
            .order("captured_at", desc=True)
            .execute()
        )
        return result.data

    def list_posts(
        self,
        user_id: str,
        offset: int,
        limit: int,
        search: str | None = None,
        author: str | None = None,
        captured_after: datetime | None = None,
    ) -> tuple[list[dict], int]:
        """
        Get one page of a user's posts plus the total number of matches.

        Filters are applied identically to the page and the count.
        """
        query = (
            self.client.table("saved_posts")
            .select("*", count="exact")
            .eq("user_id", user_id)
        )
        if search:
            term = _or_filter_value(search)
            if term:
                query = query.or_(
                    f"content.ilike.%{term}%,author_name.ilike.%{term}%,title.ilike.%{term}%"
                )
        if author:
            query = query.ilike("author_name", f"%{author.strip()}%")
        if captured_after:
            query = query.gte("captured_at", captured_after.isoformat())

        result = (
            query
            .order("captured_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        return result.data, result.count or 0

    # Digest functions

    def count_digests(self, user_id: str) -> int:
        result = (
            self.client.table("weekly_digests")
            .select("id", count="exact")
            .eq("user_id", user_id)
            .execute()
        )
        return result.count or 0

    def get_digest_for_week(self, user_id: str, week_start: str) -> dict | None:
        """Get the user's digest for the week starting on `week_start` (ISO date)."""
        result = (
            self.client.table("weekly_digests")
            .select("*")
            .eq("user_id", user_id)
            .eq("week_start", week_start)
            .limit(1)
            .execute()
        )
        if result.data:
            return result.data[0]
        return None

    def save_digest(self, digest_data: dict) -> dict:
        """Insert the week's digest, or replace the content of an existing one."""
        result = (
            self.client.table("weekly_digests")
            .upsert(digest_data, on_conflict="user_id,week_start")
            .execute()
        )
        return result.data[0]

    def mark_digest_sent(self, digest_id: str, sent_at: datetime | None = None) -> None:
        sent_at = sent_at or datetime.now(timezone.utc)
        self.client.table("weekly_digests").update(
            {"sent_at": sent_at.isoformat()}
        ).eq("id", digest_id).execute()

    def list_digests(self, user_id: str, offset: int, limit: int) -> tuple[list[dict], int]:
        """Get one page of a user's digests, newest week first, plus the total."""
        result = (
            self.client.table("weekly_digests")
            .select("*", count="exact")
            .eq("user_id", user_id)
            .order("week_start", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        return result.data, result.count or 0

    # Magic link functions

    def insert_magic_link(self, user_id: str, token: str, expires_at: datetime) -> dict:
        result = self.client.table("magic_links").insert({
            "user_id": user_id,
            "token": token,
            "expires_at": expires_at.isoformat(),
            "used": False,
        }).execute()
        return result.data[0]

    def get_unused_magic_link(self, token: str) -> dict | None:
        """Get an unused magic link by token, joined with its user as `users`."""
        result = (
            self.client.table("magic_links")
            .select("*, users(*)")
            .eq("token", token)
            .eq("used", False)
            .limit(1)
            .execute()
        )
        if result.data:
            return result.data[0]
        return None

    def consume_magic_link(self, link_id: str) -> bool:
        """
        Mark a magic link as used.

        Returns False when the link was already consumed, so only one caller
        can ever win for a given token.
        """
        result = (
            self.client.table("magic_links")
            .update({"used": True})
            .eq("id", link_id)
            .eq("used", False)
            .execute()
        )
        return bool(result.data)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def week_window(now: datetime) -> tuple[datetime, datetime]:
    """The trailing 7-day window ending at `now`."""
    return now - timedelta(days=7), now
