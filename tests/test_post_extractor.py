import json

import pytest

from fakes import FakeLLM
from models import InboundEmail
from services.llm import LLMError
from services.post_extractor import (
    author_from_subject,
    extract_post,
    find_post_url,
    html_to_text,
    source_from_url,
    strip_code_fences,
    title_from_url,
)

LINKEDIN_URL = (
    "https://www.linkedin.com/posts/janedoe_why-remote-work-wins-activity-7123456789012345678-AbCd"
)

FORWARDED = InboundEmail(
    recipient="ann@save.steep.news",
    subject="Fwd: Jane Doe on LinkedIn: Why remote work wins",
    text_body=(
        "---------- Forwarded message ---------\n"
        "Jane Doe on LinkedIn\n"
        "Remote work wins because focus compounds.\n"
        f"{LINKEDIN_URL}?utm_source=share&utm_medium=member_desktop\n"
    ),
)


def test_llm_json_inside_code_fences_is_parsed():
    llm = FakeLLM(response="```json\n" + json.dumps({
        "source": "linkedin",
        "author_name": "Jane Doe",
        "author_headline": "Founder at Focus Co",
        "content": "Remote work wins because focus compounds.",
        "original_url": LINKEDIN_URL,
        "post_date": None,
        "tags": ["Remote Work", "focus"],
    }) + "\n```")

    post = extract_post(FORWARDED, llm)

    assert post.source == "linkedin"
    assert post.author_name == "Jane Doe"
    assert post.author_headline == "Founder at Focus Co"
    assert post.original_url == LINKEDIN_URL
    assert post.tags == ["remote work", "focus"]
    assert "Why remote work wins" in llm.prompts[0]


def test_llm_failure_falls_back_to_regex_extraction():
    post = extract_post(FORWARDED, FakeLLM(error=LLMError("boom")))

    assert post.source == "linkedin"
    assert post.author_name == "Jane Doe"
    assert post.original_url == LINKEDIN_URL
    assert post.title == "Why Remote Work Wins"
    assert post.content.startswith("---------- Forwarded message")
    assert post.tags == []


def test_empty_llm_content_uses_fallback():
    llm = FakeLLM(response=json.dumps({"source": "linkedin", "author_name": "Jane Doe", "content": "  "}))

    post = extract_post(FORWARDED, llm)

    assert "Remote work wins" in post.content
    assert post.original_url == LINKEDIN_URL


def test_missing_url_and_author_are_filled_from_email():
    llm = FakeLLM(response=json.dumps({"source": "other", "author_name": None, "content": "Body"}))

    post = extract_post(FORWARDED, llm)

    assert post.content == "Body"
    assert post.author_name == "Jane Doe"
    assert post.original_url == LINKEDIN_URL
    assert post.source == "linkedin"


def test_fallback_content_is_truncated():
    email = InboundEmail(subject="Fwd: notes", text_body="x" * 20000)

    post = extract_post(email, FakeLLM(response="not json at all"))

    assert len(post.content) == 5000


@pytest.mark.parametrize("email", [
    InboundEmail(),
    InboundEmail(subject="Fwd:"),
    InboundEmail(text_body="\x00\x01\x02"),
    InboundEmail(html_body="<div><p>unclosed <a href='"),
    InboundEmail(subject="Re: []{}", text_body="{\"source\": "),
    InboundEmail(text_body="https://", html_body="<<<>>>"),
])
def test_malformed_emails_never_raise(email):
    post = extract_post(email, FakeLLM(response="{\"content\": [1, 2]"))

    assert post.source in ("linkedin", "substack", "other")
    assert post.author_name


def test_empty_email_skips_the_llm():
    llm = FakeLLM(response="{}")

    post = extract_post(InboundEmail(), llm)

    assert llm.prompts == []
    assert post.author_name == "Unknown"
    assert post.source == "other"


def test_html_only_email_is_reduced_to_text():
    email = InboundEmail(
        subject="Fwd: The Art of Focus - by Jane Doe",
        html_body=(
            "<html><head><style>p{color:red}</style></head><body>"
            "<p>The art of focus &amp; attention.</p>"
            "<a href=\"https://janedoe.substack.com/p/the-art-of-focus?r=abc\">Read</a>"
            "</body></html>"
        ),
    )

    post = extract_post(email, FakeLLM(error=LLMError("down")))

    assert post.source == "substack"
    assert post.author_name == "Jane Doe"
    assert post.title == "The Art of Focus"
    assert post.original_url == "https://janedoe.substack.com/p/the-art-of-focus"
    assert "The art of focus & attention." in post.content
    assert "color:red" not in post.content


def test_html_to_text_keeps_line_structure():
    assert html_to_text("<p>One</p><p>Two<br>Three</p>") == "One\nTwo\nThree"


@pytest.mark.parametrize("text, expected", [
    (f"see {LINKEDIN_URL}?utm_source=share.", LINKEDIN_URL),
    ("link: https://www.linkedin.com/feed/update/urn:li:activity:7123456789/",
     "https://www.linkedin.com/feed/update/urn:li:activity:7123456789"),
    ("(https://www.linkedin.com/pulse/the-case-for-boring-tech-jane-doe)",
     "https://www.linkedin.com/pulse/the-case-for-boring-tech-jane-doe"),
    ("https://janedoe.substack.com/p/the-art-of-focus#comments",
     "https://janedoe.substack.com/p/the-art-of-focus"),
    ("https://www.example.com/about and nothing else", None),
    ("", None),
])
def test_find_post_url(text, expected):
    assert find_post_url(text) == expected


@pytest.mark.parametrize("url, expected", [
    (LINKEDIN_URL, "Why Remote Work Wins"),
    ("https://janedoe.substack.com/p/the-art-of-focus", "The Art of Focus"),
    ("https://www.linkedin.com/pulse/the-case-for-boring-tech", "The Case for Boring Tech"),
    ("https://www.linkedin.com/feed/update/urn:li:activity:7123456789", None),
    (None, None),
])
def test_title_from_url(url, expected):
    assert title_from_url(url) == expected


@pytest.mark.parametrize("subject, expected", [
    ("Fwd: Jane Doe on LinkedIn: Why remote work wins", "Jane Doe"),
    ("FW: Fwd: Jane Doe posted on LinkedIn", "Jane Doe"),
    ("Fwd: Check out this post by Jane Doe", "Jane Doe"),
    ("Fwd: Jane Doe's post", "Jane Doe"),
    ("Fwd: The Art of Focus - by Jane Doe", "Jane Doe"),
    ("Fwd: hello", None),
    ("", None),
])
def test_author_from_subject(subject, expected):
    assert author_from_subject(subject) == expected


def test_strip_code_fences_drops_surrounding_prose():
    text = "Here you go:\n```json\n{\"a\": 1}\n```\nThanks!"
    assert strip_code_fences(text) == "{\"a\": 1}"


def test_html_to_text_ignores_markup_inside_attributes():
    text = html_to_text('<p>Hello <a title="a > b" href="https://x.com">link</a> world</p>')

    assert "href" not in text
    assert 'b"' not in text
    assert text.split() == ["Hello", "link", "world"]


def test_html_to_text_drops_head_and_scripts():
    html = "<html><head><title>Inbox</title></head><body><script>track()</script><div>Body</div></body></html>"
    assert html_to_text(html) == "Body"


@pytest.mark.parametrize("url, text, expected", [
    ("https://www.linkedin.com/posts/janedoe_x-activity-1", "", "linkedin"),
    ("https://janedoe.substack.com/p/focus", "", "substack"),
    ("https://www.instagram.com/p/C1abcDEF/", "Check out this photo", "other"),
    ("https://news.janedoe.com/p/focus", "Read on Substack", "substack"),
    (None, "Shared via Substack", "substack"),
])
def test_source_from_url(url, text, expected):
    assert source_from_url(url, text) == expected


def test_instagram_link_is_not_substack():
    email = InboundEmail(subject="Fwd: look", text_body="Nice shot https://www.instagram.com/p/C1abcDEF/")

    post = extract_post(email, FakeLLM(error=LLMError("down")))

    assert post.original_url == "https://www.instagram.com/p/C1abcDEF"
    assert post.source == "other"
