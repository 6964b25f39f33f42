"""
Message composition for contact form submissions.

Renders the two outbound emails for one CleanSubmission:

  owner notification     to the site owner (cc list applied), reply-to the
                         submitter, carries every field plus request metadata
  submitter confirmation to the submitter, reply-to the owner, echoes the
                         subject and message back

Every email has a plain-text and an HTML body. The plain-text bodies use
the sanitized values as-is. Every value interpolated into an HTML body goes
through escape_html exactly once; the templates are string.Template so CSS
braces never collide with placeholders.

Public API:
  escape_html(text) -> str
  compose_owner_message(submission, settings, meta=None, received_at=None) -> DeliveryRequest
  compose_confirmation_message(submission, settings, received_at=None) -> DeliveryRequest
"""

import html
from datetime import datetime, timezone
from string import Template
from typing import Optional

from contact_api.config import ContactSettings
from contact_api.models.delivery import DeliveryRequest
from contact_api.models.submission import CleanSubmission, RequestMeta

OWNER_SUBJECT = "New Contact: {subject} - from {name}"
CONFIRMATION_SUBJECT = "Thanks for connecting! - {subject}"


def escape_html(text: Optional[str]) -> str:
    """Escape & < > " ' for safe insertion into HTML text or attribute values."""
    return html.escape(text or "", quote=True)


def first_word(text: str) -> str:
    """Return the first whitespace-delimited word of text, or 'there'."""
    parts = (text or "").split()
    return parts[0] if parts else "there"


def _format_received(received_at: datetime) -> str:
    return received_at.astimezone(timezone.utc).isoformat(timespec="seconds")


# ---------------------------------------------------------------------------
# HTML templates
# ---------------------------------------------------------------------------

_LAYOUT = Template("""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>$title</title>
  <style>
    body { margin: 0; padding: 0; font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #111827; background: #f6f7fb; }
    .container { max-width: 640px; margin: 0 auto; background: #ffffff; border-radius: 10px; overflow: hidden; }
    .header { background: #4f46e5; padding: 28px 20px; text-align: center; color: #ffffff; }
    .content { padding: 28px 20px; }
    .label { font-size: 13px; font-weight: bold; color: #4f46e5; text-transform: uppercase; margin-bottom: 8px; }
    .box { background: #f4f5ff; border-left: 4px solid #4f46e5; padding: 14px; border-radius: 4px; margin-bottom: 20px; }
    .message { white-space: pre-wrap; word-wrap: break-word; }
    .footer { padding: 16px 20px; text-align: center; font-size: 12px; color: #6b7280; border-top: 1px solid #e6e8f5; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>$heading</h1></div>
    <div class="content">
$content
    </div>
    <div class="footer">$footer</div>
  </div>
</body>
</html>
""")

_OWNER_CONTENT = Template("""      <div class="label">Visitor Details</div>
      <div class="box">
        <p><strong>Name:</strong> $name</p>
        <p><strong>Email:</strong> <a href="mailto:$email">$email</a></p>
        <p><strong>Subject:</strong> $subject</p>
        <p><strong>Received:</strong> $received</p>
      </div>
      <div class="label">Request Meta</div>
      <div class="box">
        <p><strong>IP:</strong> $client_ip</p>
        <p><strong>User-Agent:</strong> $user_agent</p>
        <p><strong>Referer:</strong> $referer</p>
      </div>
      <div class="label">Message</div>
      <div class="box message">$message</div>""")

_CONFIRMATION_CONTENT = Template("""      <p>Hi <strong>$first_name</strong>,</p>
      <p>Thanks for reaching out! Your message has been received and I'll get back to you within 1-2 business days.</p>
      <div class="label">Subject</div>
      <div class="box">$subject</div>
      <div class="label">Your message</div>
      <div class="box message">$message</div>
      <p>Forgot something? Just reply to this email.</p>
      <p>Best regards,<br>$owner_name</p>""")


def _site_footer(settings: ContactSettings) -> str:
    if settings.site_url:
        url = escape_html(settings.site_url)
        return f'Sent from the contact form at <a href="{url}">{url}</a>'
    return "Sent from the contact form"


# ---------------------------------------------------------------------------
# Owner notification
# ---------------------------------------------------------------------------

def _owner_text(
    submission: CleanSubmission, meta: RequestMeta, received: str
) -> str:
    return "\n".join([
        "New Contact Submission",
        "",
        f"Name: {submission.name}",
        f"Email: {submission.email}",
        f"Subject: {submission.subject}",
        f"Received: {received}",
        "",
        "Request Meta:",
        f"IP: {meta.client_ip}",
        f"User-Agent: {meta.user_agent}",
        f"Referer: {meta.referer}",
        "",
        "Message:",
        submission.message,
        "",
        "---",
        f"Reply to: {submission.email}",
    ])


def _owner_html(
    submission: CleanSubmission,
    meta: RequestMeta,
    received: str,
    settings: ContactSettings,
) -> str:
    content = _OWNER_CONTENT.substitute(
        name=escape_html(submission.name),
        email=escape_html(submission.email),
        subject=escape_html(submission.subject),
        received=escape_html(received),
        client_ip=escape_html(meta.client_ip),
        user_agent=escape_html(meta.user_agent),
        referer=escape_html(meta.referer),
        message=escape_html(submission.message),
    )
    return _LAYOUT.substitute(
        title="New Contact Submission",
        heading="New Contact Submission",
        content=content,
        footer=_site_footer(settings),
    )


def compose_owner_message(
    submission: CleanSubmission,
    settings: ContactSettings,
    meta: Optional[RequestMeta] = None,
    received_at: Optional[datetime] = None,
) -> DeliveryRequest:
    """
    Build the owner notification (the critical send).

    The reply-to points at the submitter so the owner can answer directly
    from their mail client.
    """
    meta = meta or RequestMeta()
    received = _format_received(received_at or datetime.now(timezone.utc))

    return DeliveryRequest(
        to=settings.owner_email,
        from_address=settings.sender_email or settings.owner_email,
        from_name=settings.sender_name,
        reply_to=submission.email,
        reply_to_name=submission.name,
        cc=settings.cc_emails,
        subject=OWNER_SUBJECT.format(subject=submission.subject, name=submission.name),
        text=_owner_text(submission, meta, received),
        html=_owner_html(submission, meta, received, settings),
    )


# ---------------------------------------------------------------------------
# Submitter confirmation
# ---------------------------------------------------------------------------

def compose_confirmation_message(
    submission: CleanSubmission,
    settings: ContactSettings,
    received_at: Optional[datetime] = None,
) -> DeliveryRequest:
    """Build the confirmation sent back to the submitter (the best-effort send)."""
    received = _format_received(received_at or datetime.now(timezone.utc))
    greeting_name = first_word(submission.name)

    text_lines = [
        f"Hi {greeting_name},",
        "",
        "Thanks for reaching out! Your message has been received.",
        "",
        f"Subject: {submission.subject}",
        f"Received: {received}",
        "",
        "Message:",
        submission.message,
        "",
        "I'll get back to you within 1-2 business days.",
        "",
        "Best regards,",
        settings.site_owner_name,
    ]
    if settings.site_url:
        text_lines.append(settings.site_url)

    content = _CONFIRMATION_CONTENT.substitute(
        first_name=escape_html(greeting_name),
        subject=escape_html(submission.subject),
        message=escape_html(submission.message),
        owner_name=escape_html(settings.site_owner_name),
    )

    return DeliveryRequest(
        to=submission.email,
        from_address=settings.sender_email or settings.owner_email,
        from_name=settings.sender_name,
        reply_to=settings.owner_email,
        subject=CONFIRMATION_SUBJECT.format(subject=submission.subject),
        text="\n".join(text_lines),
        html=_LAYOUT.substitute(
            title="Message received",
            heading="Got it!",
            content=content,
            footer=_site_footer(settings),
        ),
    )
