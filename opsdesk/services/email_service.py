from pathlib import Path
from typing import TYPE_CHECKING

import resend
from jinja2 import Environment, FileSystemLoader

from opsdesk.config import get_settings
from opsdesk.core.errors import UpstreamError
from opsdesk.core.logging import get_logger

if TYPE_CHECKING:
    from opsdesk.models.ser_reminder import ReminderKind
    from opsdesk.models.work_item import WorkItem
    from opsdesk.services.digest import Digest

logger = get_logger(__name__)

# Initialize Jinja2 environment for email templates
template_dir = Path(__file__).parent.parent / "emails" / "templates"
jinja_env = Environment(loader=FileSystemLoader(template_dir), autoescape=True)


def _init_resend() -> bool:
    """Initialize Resend API with API key. Returns False when email is not configured."""
    settings = get_settings()
    if not settings.resend_api_key:
        return False
    resend.api_key = settings.resend_api_key
    return True


def send_email(to: list[str], subject: str, html: str) -> bool:
    """
    Send one email through Resend.

    Returns:
        True if sent, False if email is not configured or there are no recipients

    Raises:
        UpstreamError: Resend rejected the message
    """
    if not to:
        logger.bind(subject=subject).debug("email_no_recipients")
        return False
    if not _init_resend():
        logger.bind(subject=subject).warning("resend_api_key_not_set")
        return False

    settings = get_settings()
    try:
        resend.Emails.send(
            {
                "from": settings.email_from,
                "to": to,
                "subject": subject,
                "html": html,
            }
        )
    except Exception as e:
        raise UpstreamError(f"Email delivery failed: {e}") from e

    logger.bind(to=",".join(to), subject=subject).info("email_sent")
    return True


async def send_digest_email(digest: "Digest") -> bool:
    """Email the digest to DIGEST_TO."""
    settings = get_settings()
    summary = digest.summary()

    template = jinja_env.get_template("digest.html")
    html = template.render(
        digest=digest,
        summary=summary,
        now=digest.generated_at,
        app_url=settings.auth_url,
    )

    date_str = f"{digest.generated_at:%b} {digest.generated_at.day}"
    if summary["total"] == 0:
        subject = f"All clear · {date_str}"
    else:
        subject = f"Daily digest · {date_str}: {summary['overdue']} overdue, {summary['dueToday']} due today"

    return send_email(settings.digest_recipients, subject, html)


REMINDER_SUBJECTS = {
    "DUE_7DAY": "SER due in {days} days: {title}",
    "DUE_2DAY": "SER due in {days} days: {title}",
    "OVERDUE": "SER overdue by {overdue} days: {title}",
}


async def send_ser_reminder_email(
    item: "WorkItem",
    kind: "ReminderKind",
    days_until_due: int,
    recipients: list[str],
) -> bool:
    """Send one SER reminder for a work item."""
    settings = get_settings()

    template = jinja_env.get_template("ser_reminder.html")
    html = template.render(
        item=item,
        kind=kind.value,
        days_until_due=days_until_due,
        days_overdue=abs(days_until_due),
        item_url=f"{settings.auth_url.rstrip('/')}/board?item={item.id}",
    )
    subject = REMINDER_SUBJECTS[kind.value].format(
        days=days_until_due, overdue=abs(days_until_due), title=item.title
    )
    return send_email(recipients, subject, html)
