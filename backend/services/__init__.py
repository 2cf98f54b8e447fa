from .llm import AnthropicLLM, LLMError
from .post_extractor import extract_post
from .digest_generator import generate_weekly_digest, create_digest_for_user, digest_preview
from .markdown_renderer import render_markdown
from .email_sender import ResendMailer, EmailError, build_digest_email, build_login_email
from .accounts import create_account, AccountExistsError
from .magic_links import issue_magic_link, verify_magic_link, VerifyStatus
from .dispatch import dispatch_weekly_digests

__all__ = [
    "AnthropicLLM",
    "LLMError",
    "extract_post",
    "generate_weekly_digest",
    "create_digest_for_user",
    "digest_preview",
    "render_markdown",
    "ResendMailer",
    "EmailError",
    "build_digest_email",
    "build_login_email",
    "create_account",
    "AccountExistsError",
    "issue_magic_link",
    "verify_magic_link",
    "VerifyStatus",
    "dispatch_weekly_digests",
]
