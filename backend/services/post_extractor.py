"""
Inbound content extraction.

Turns a forwarded LinkedIn/Substack email into a structured post. The LLM
does the heavy lifting; when it fails or comes back empty we fall back to
regex heuristics over the raw email so the post is still saved.
"""

import html as html_lib
import json
import logging
import re
from urllib.parse import urlparse, unquote

from bs4 import BeautifulSoup

from models import InboundEmail, ExtractedPost

logger = logging.getLogger(__name__)

MAX_PROMPT_CHARS = 10000
MAX_FALLBACK_CHARS = 5000

_URL_TAIL = r"[^\s<>\"'()\[\]]*"

# Ordered by preference: the first shape found wins
POST_URL_PATTERNS = [
    re.compile(r"https?://(?:[\w-]+\.)?linkedin\.com/posts/[^\s<>\"'()\[\]?#]+" + _URL_TAIL, re.I),
    re.compile(r"https?://(?:[\w-]+\.)?linkedin\.com/feed/update/urn:li:(?:activity|share|ugcPost):\d+" + _URL_TAIL, re.I),
    re.compile(r"https?://(?:[\w-]+\.)?linkedin\.com/pulse/[^\s<>\"'()\[\]?#]+" + _URL_TAIL, re.I),
    re.compile(r"https?://[\w.-]+\.substack\.com/p/[\w-]+" + _URL_TAIL, re.I),
    re.compile(r"https?://[\w.-]+\.[a-z]{2,}/p/[\w-]+" + _URL_TAIL, re.I),
]

FORWARD_PREFIX = re.compile(r"^\s*(?:(?:fwd?|fw)\s*:\s*)+", re.I)

AUTHOR_PATTERNS = [
    re.compile(r"^(?P<name>.+?)\s+on LinkedIn\s*:", re.I),
    re.compile(r"^(?P<name>.+?)\s+(?:posted|shared|reposted|published)\b", re.I),
    re.compile(r"^(?P<name>.+?)['’]s\s+(?:post|article|update)\b", re.I),
    re.compile(r"\b(?:post|article|update)\s+(?:by|from)\s+(?P<name>[^|:\-–]+)", re.I),
    re.compile(r"^(?P<name>[^|]+?)\s*\|\s*Substack\b", re.I),
    re.compile(r"[-–—|]\s*by\s+(?P<name>[^|:]+?)\s*$", re.I),
]

SMALL_WORDS = {"a", "an", "and", "as", "at", "but", "by", "for", "in", "of", "on", "or", "the", "to", "vs", "with"}

EXTRACTION_PROMPT = """You are a content extraction specialist. Parse this forwarded email and extract the original LinkedIn post or Substack newsletter content.

EMAIL SUBJECT: {subject}

EMAIL CONTENT:
{body}

Extract and return ONLY valid JSON (no markdown, no explanation, no backticks):
{{
  "source": "linkedin" or "substack" or "other",
  "author_name": "Full name of original author",
  "author_headline": "Their headline if visible, or null",
  "title": "Article or post title if there is one, or null",
  "content": "The full text of the original post/article",
  "original_url": "Direct link to post if present, or null",
  "post_date": "ISO date if visible, or null",
  "tags": ["relevant", "topic", "tags"]
}}

Rules:
- Strip all email forwarding artifacts (Fw:, -----, signatures)
- For LinkedIn: Look for the post content, author name, and any engagement numbers
- For Substack: Look for the article title and body
- Extract only the meaningful content
- Return ONLY the JSON object"""


def html_to_text(html: str) -> str:
    """Reduce an HTML email body to readable plain text."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "head"]):
        tag.decompose()
    text = soup.get_text(separator="\n")
    lines = [re.sub(r"[ \t\xa0]+", " ", line).strip() for line in text.splitlines()]
    text = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def select_body(email: InboundEmail) -> str:
    """Prefer the text body; fall back to the HTML body as text."""
    if email.text_body and email.text_body.strip():
        return email.text_body.strip()
    return html_to_text(email.html_body)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences and any prose around the JSON object."""
    cleaned = re.sub(r"```(?:json)?", "", text or "").strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        cleaned = cleaned[start:end + 1]
    return cleaned


def find_post_url(text: str) -> str | None:
    """Find the first URL shaped like a LinkedIn or Substack post."""
    if not text:
        return None
    for pattern in POST_URL_PATTERNS:
        match = pattern.search(text)
        if match:
            return canonicalize_url(match.group(0))
    return None


def canonicalize_url(url: str) -> str:
    """Drop tracking query strings, fragments and trailing punctuation."""
    url = html_lib.unescape(url)
    url = re.split(r"[?#]", url, maxsplit=1)[0]
    return url.rstrip(".,;:!/")


def source_from_url(url: str | None, text: str = "") -> str:
    """
    Source by URL host. A /p/ page on any other host counts as Substack
    only when the email itself mentions Substack.
    """
    if not url:
        return _guess_source(text)
    parsed = urlparse(url)
    host = parsed.netloc.lower()
    if host.endswith("linkedin.com"):
        return "linkedin"
    if host.endswith("substack.com"):
        return "substack"
    if "/p/" in parsed.path and "substack" in (text or "").lower():
        return "substack"
    return "other"


def _guess_source(text: str) -> str:
    lowered = (text or "").lower()
    if "linkedin" in lowered:
        return "linkedin"
    if "substack" in lowered:
        return "substack"
    return "other"


def _looks_like_hash(word: str) -> bool:
    return word.isdigit() or (len(word) <= 8 and any(c.isdigit() for c in word) and any(c.isalpha() for c in word))


def deslugify(slug: str) -> str | None:
    """'the-art-of-focus' -> 'The Art of Focus'."""
    words = [w for w in re.split(r"[-_+\s]+", unquote(slug)) if w]
    while words and _looks_like_hash(words[-1]):
        words.pop()
    if not words:
        return None
    titled = []
    for i, word in enumerate(words):
        lowered = word.lower()
        if i > 0 and lowered in SMALL_WORDS:
            titled.append(lowered)
        else:
            titled.append(word[:1].upper() + word[1:])
    return " ".join(titled)


def title_from_url(url: str | None) -> str | None:
    """Derive a human-readable title from a post URL's path."""
    if not url:
        return None
    segments = [s for s in urlparse(url).path.split("/") if s]
    if not segments or segments[-1].lower().startswith("urn:li:"):
        return None
    slug = segments[-1]
    if "linkedin.com" in url.lower() and segments[0] == "posts":
        # /posts/<username>_<slug>-activity-<id>-<hash>
        slug = re.sub(r"-(?:activity|ugcpost|share)-\d+.*$", "", slug, flags=re.I)
        if "_" in slug:
            slug = slug.split("_", 1)[1]
    return deslugify(slug)


def _valid_name(name: str) -> bool:
    words = name.split()
    return (
        1 <= len(words) <= 5
        and 2 <= len(name) <= 60
        and "@" not in name
        and "http" not in name.lower()
    )


def author_from_subject(subject: str | None) -> str | None:
    """Pull the original author's name out of a forwarding subject line."""
    if not subject:
        return None
    cleaned = FORWARD_PREFIX.sub("", subject).strip()
    for pattern in AUTHOR_PATTERNS:
        match = pattern.search(cleaned)
        if match:
            name = match.group("name").strip(" \"'“”")
            if _valid_name(name):
                return name
    return None


def build_extraction_prompt(subject: str, body: str) -> str:
    return EXTRACTION_PROMPT.format(subject=subject or "(none)", body=body[:MAX_PROMPT_CHARS])


def fallback_post(email: InboundEmail, body: str | None = None) -> ExtractedPost:
    """Best-effort record built from regex heuristics alone."""
    body = select_body(email) if body is None else body
    url = find_post_url(email.text_body) or find_post_url(email.html_body)
    content = body[:MAX_FALLBACK_CHARS] or FORWARD_PREFIX.sub("", email.subject or "").strip()
    return ExtractedPost(
        source=source_from_url(url, body + " " + (email.subject or "")),
        author_name=author_from_subject(email.subject) or "Unknown",
        title=title_from_url(url),
        content=content,
        original_url=url,
        tags=[],
    )


def _fill_missing(post: ExtractedPost, email: InboundEmail) -> ExtractedPost:
    """Patch gaps in an LLM result with the regex heuristics."""
    updates = {}
    if not post.original_url:
        url = find_post_url(email.text_body) or find_post_url(email.html_body)
        if url:
            updates["original_url"] = url
            if not post.title:
                updates["title"] = title_from_url(url)
            if post.source == "other":
                updates["source"] = source_from_url(url, select_body(email) + " " + (email.subject or ""))
    if post.author_name == "Unknown":
        author = author_from_subject(email.subject)
        if author:
            updates["author_name"] = author
    return post.model_copy(update=updates) if updates else post


def extract_post(email: InboundEmail, llm) -> ExtractedPost:
    """
    Extract a structured post from a forwarded email.

    Args:
        email: The normalized inbound email
        llm: Any object with `complete(prompt, max_tokens) -> str`

    Returns:
        An ExtractedPost. Never raises: on any failure a degraded record
        (unknown author, truncated raw text, URL if found) is returned.
    """
    body = select_body(email)
    if not body and not (email.subject or "").strip():
        logger.info("Empty email body, using fallback extraction")
        return fallback_post(email, body)

    try:
        response = llm.complete(build_extraction_prompt(email.subject, body), max_tokens=2000)
        extracted = ExtractedPost.model_validate(json.loads(strip_code_fences(response)))
    except Exception as e:
        logger.warning(f"LLM extraction failed, using fallback: {e}")
        return fallback_post(email, body)

    if not extracted.content.strip():
        logger.info("LLM extraction returned empty content, using fallback")
        return fallback_post(email, body)

    return _fill_missing(extracted, email)
