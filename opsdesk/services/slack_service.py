"""
Outbound webhooks: Slack digest posts, GHL digest hand-off and error alerts.

Incoming-webhook URLs only; no bot token or app install required.
"""

from typing import TYPE_CHECKING, Any

import httpx

from opsdesk.config import get_settings
from opsdesk.core.errors import UpstreamError
from opsdesk.core.logging import get_logger

if TYPE_CHECKING:
    from opsdesk.services.digest import Digest

logger = get_logger(__name__)


async def post_webhook(url: str, payload: dict[str, Any], timeout: float) -> None:
    """POST JSON to a webhook, raising UpstreamError on transport or HTTP failure."""
    async with httpx.AsyncClient(timeout=timeout) as client:
        try:
            resp = await client.post(url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(f"Webhook returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Webhook request failed: {e}") from e


def build_digest_blocks(digest: "Digest", max_items: int) -> list[dict[str, Any]]:
    """Build Slack Block Kit sections for the daily digest."""
    summary = digest.summary()
    blocks: list[dict[str, Any]] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f"Daily digest · {digest.day.isoformat()}"},
        },
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": (
                    f"*{summary['overdue']}* overdue · *{summary['dueToday']}* due today · "
                    f"*{summary['dueSoon']}* due soon · *{summary['blockedOver3d']}* blocked"
                ),
            },
        },
    ]

    for label, items in digest.sections():
        if not items:
            continue
        lines = [f"• {entry.title} ({entry.owner_label})" for entry in items[:max_items]]
        if len(items) > max_items:
            lines.append(f"_…and {len(items) - max_items} more_")
        blocks.append(
            {"type": "section", "text": {"type": "mrkdwn", "text": f"*{label}*\n" + "\n".join(lines)}}
        )

    return blocks


async def send_digest_to_slack(digest: "Digest", max_items: int = 10) -> bool:
    """
    Post the digest to the Slack incoming webhook.

    Returns:
        True if posted, False if no webhook is configured
    """
    settings = get_settings()
    if not settings.slack_webhook_url:
        logger.debug("slack_webhook_not_set")
        return False

    await post_webhook(
        settings.slack_webhook_url,
        {
            "text": f"Daily digest: {digest.summary()['total']} items need attention",
            "blocks": build_digest_blocks(digest, max_items),
        },
        timeout=settings.external_timeout_seconds,
    )
    logger.bind(total=digest.summary()["total"]).info("digest_posted_to_slack")
    return True


async def send_digest_to_ghl(digest: "Digest") -> bool:
    """Hand the digest payload to the GHL workflow webhook."""
    settings = get_settings()
    if not settings.ghl_digest_webhook_url:
        logger.debug("ghl_webhook_not_set")
        return False

    await post_webhook(
        settings.ghl_digest_webhook_url,
        {"date": digest.day.isoformat(), "summary": digest.summary(), "items": digest.to_payload()},
        timeout=settings.external_timeout_seconds,
    )
    logger.info("digest_posted_to_ghl")
    return True


async def send_slack_error(
    title: str,
    error: str,
    context: dict | None = None,
) -> bool:
    """
    Send an operational error notification to the Slack error webhook.

    Args:
        title: Error title/summary
        error: Error message/details
        context: Optional context dict (job, endpoint, etc.)

    Returns:
        True if successful, False otherwise
    """
    settings = get_settings()
    if not settings.slack_error_webhook_url:
        logger.debug("slack_error_webhook_not_set")
        return False

    fields = [
        {"type": "mrkdwn", "text": f"*{key}*\n{str(value)[:500]}"}
        for key, value in (context or {}).items()
    ]
    blocks: list[dict[str, Any]] = [
        {"type": "section", "text": {"type": "mrkdwn", "text": f":warning: *{title}*"}},
        {"type": "section", "text": {"type": "mrkdwn", "text": f"```{error[:2000]}```"}},
    ]
    if fields:
        blocks.append({"type": "section", "fields": fields[:10]})

    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            resp = await client.post(
                settings.slack_error_webhook_url, json={"text": title, "blocks": blocks}
            )
            resp.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.bind(error=str(e)).warning("slack_error_webhook_failed")
            return False
