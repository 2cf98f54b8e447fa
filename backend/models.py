from datetime import datetime
from typing import Literal
from pydantic import BaseModel, field_validator


# Request bodies. Required fields are optional here so the endpoints can
# answer 400 with a readable message instead of a 422 validation dump.

class SignupRequest(BaseModel):
    email: str | None = None
    name: str | None = None


class SettingsUpdate(BaseModel):
    user_id: str | None = None
    digest_day: str | None = None
    name: str | None = None


class SendLinkRequest(BaseModel):
    email: str | None = None


class DigestGenerateRequest(BaseModel):
    user_id: str | None = None


# Inbound email models

class InboundEmail(BaseModel):
    """Forwarded email after provider-specific field names are mapped."""
    recipient: str = ""
    sender: str = ""
    subject: str = ""
    text_body: str = ""
    html_body: str = ""


class ExtractedPost(BaseModel):
    """Structured post pulled out of a forwarded email."""
    source: Literal["linkedin", "substack", "other"] = "other"
    author_name: str = "Unknown"
    author_headline: str | None = None
    title: str | None = None
    content: str = ""
    original_url: str | None = None
    post_date: str | None = None
    tags: list[str] = []

    @field_validator("source", mode="before")
    @classmethod
    def normalize_source(cls, value):
        value = str(value or "other").strip().lower()
        return value if value in ("linkedin", "substack") else "other"

    @field_validator("author_name", mode="before")
    @classmethod
    def default_author(cls, value):
        return value.strip() if isinstance(value, str) and value.strip() else "Unknown"

    @field_validator("author_headline", "title", "original_url", "post_date", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if not isinstance(value, str):
            return None
        value = value.strip()
        return value if value and value.lower() not in ("null", "none") else None

    @field_validator("post_date")
    @classmethod
    def iso_date_only(cls, value):
        # Anything Postgres can't store as a timestamp is dropped
        if value is None:
            return None
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).isoformat()
        except ValueError:
            return None

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, value):
        if not isinstance(value, list):
            return []
        return [str(t).strip().lower() for t in value if str(t).strip()][:10]

    @field_validator("content", mode="before")
    @classmethod
    def default_content(cls, value):
        return value if isinstance(value, str) else ""


# Response models

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int
    hasMore: bool


class PostListResponse(BaseModel):
    posts: list[dict]
    pagination: Pagination


class DigestListResponse(BaseModel):
    digests: list[dict]
    pagination: Pagination


class DigestGenerateResponse(BaseModel):
    success: bool
    digest_id: str
    post_count: int
    preview: str
