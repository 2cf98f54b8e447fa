import html
import logging
import resend

from .markdown_renderer import render_markdown

logger = logging.getLogger(__name__)


class EmailError(Exception):
    """Raised when an email cannot be sent."""
    pass


class ResendMailer:
    """Sends email through Resend. Built per request, see deps.get_mailer."""

    def __init__(self, api_key: str | None):
        self.api_key = api_key

    def is_configured(self) -> bool:
        """Check if email sending is properly configured."""
        return bool(self.api_key)

    def send(self, sender: str, to: str, subject: str, html_body: str) -> dict:
        """
        Send one email.

        Args:
            sender: From header, e.g. "Steep <digest@steep.news>"
            to: Recipient address
            subject: Email subject line
            html_body: HTML content of the email

        Returns:
            dict with send status and id
        """
        if not self.api_key:
            raise EmailError("RESEND_API_KEY not configured")

        resend.api_key = self.api_key

        params = {
            "from": sender,
            "to": [to],
            "subject": subject,
            "html": html_body,
        }

        try:
            result = resend.Emails.send(params)
        except Exception as e:
            raise EmailError(f"Resend failed for {to}: {e}") from e
        logger.info(f"Sent '{subject}' to {to}")
        return {"success": True, "id": result.get("id")}


def digest_subject(post_count: int) -> str:
    noun = "save" if post_count == 1 else "saves"
    return f"☕ Your Weekly Steep ({post_count} {noun})"


def build_digest_email(digest_content: str) -> str:
    """Wrap the rendered digest markdown in the email document."""
    body = render_markdown(digest_content)

    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <style>
        body {{
            font-family: Georgia, 'Times New Roman', serif;
            line-height: 1.7;
            color: #2d2d2d;
            max-width: 600px;
            margin: 0 auto;
            padding: 24px;
            background: #fafafa;
        }}
        .header {{
            border-bottom: 2px solid #1a1a2e;
            padding-bottom: 16px;
            margin-bottom: 24px;
        }}
        .header h1 {{
            font-size: 14px;
            text-transform: uppercase;
            letter-spacing: 2px;
            color: #1a1a2e;
            margin: 0;
            font-weight: 500;
        }}
        h2 {{
            font-size: 20px;
            color: #1a1a1a;
            margin: 32px 0 12px 0;
            padding-bottom: 6px;
            border-bottom: 1px solid #eee;
        }}
        h3 {{
            font-size: 17px;
            color: #1a1a2e;
            margin: 24px 0 8px 0;
        }}
        ul, ol {{
            padding-left: 20px;
        }}
        li {{
            margin-bottom: 8px;
        }}
        a {{
            color: #667eea;
            text-decoration: none;
        }}
        code {{
            background: #f0efff;
            padding: 1px 4px;
            border-radius: 4px;
        }}
        hr {{
            border: none;
            border-top: 1px solid #ddd;
            margin: 32px 0;
        }}
        .footer {{
            margin-top: 32px;
            padding-top: 16px;
            border-top: 1px solid #ddd;
            font-size: 12px;
            color: #999;
            text-align: center;
        }}
    </style>
</head>
<body>
    <div class="header">
        <h1>☕ Steep Weekly</h1>
    </div>

    {body}

    <div class="footer">
        <p>Your week, distilled by Steep</p>
    </div>
</body>
</html>
"""


def build_login_email(name: str, login_url: str) -> str:
    return f"""
<div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 500px; margin: 0 auto; padding: 40px 20px;">
    <h1 style="font-size: 24px; margin-bottom: 20px;">☕ Steep</h1>
    <p style="font-size: 16px; color: #333; margin-bottom: 20px;">
        Hi {html.escape(name)},
    </p>
    <p style="font-size: 16px; color: #333; margin-bottom: 30px;">
        Click the button below to log in to your Steep dashboard:
    </p>
    <a href="{login_url}" style="display: inline-block; background: #1a1a2e; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; font-weight: 600;">
        Log in to Steep →
    </a>
    <p style="font-size: 14px; color: #666; margin-top: 30px;">
        This link expires in 15 minutes. If you didn't request this, you can ignore this email.
    </p>
</div>
"""
