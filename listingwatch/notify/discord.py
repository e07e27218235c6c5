"""Discord webhook notifier.

Posts one embed per opened listing and records the returned message id,
so the same message can be edited into an "inactive" rendering once the
listing closes.
"""

import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional
from urllib.parse import urlparse

import httpx

from listingwatch.config import DiscordIntegration
from listingwatch.db.alerts import AlertStore, alert_slug
from listingwatch.schemas import Listing

logger = logging.getLogger(__name__)

OPEN_COLOR = 16755763
CLOSED_COLOR = 15680580
OPEN_TITLE = "🔔 New Job Listing"
CLOSED_TITLE = "❌  Inactive Job Listing"
BLANK = "\u200b"


def repo_slug_from_url(url: str) -> str:
    """'https://github.com/owner/name.git' -> 'owner/name'."""
    return urlparse(url).path.lstrip("/").replace(".git", "")


def build_listing_payload(repo_slug: str, listing: Listing, role_id: Optional[str] = None) -> dict:
    content = f"{listing.company_name} • {listing.title}"
    if role_id:
        content = f"<@&{role_id}>\n{content}"

    if listing.company_url:
        company = f"[{listing.company_name}]({listing.company_url})"
    else:
        company = listing.company_name

    if listing.source == "Simplify":
        url = f"https://simplify.jobs/p/{listing.id}"
    else:
        url = listing.url or "--"

    return {
        "content": content,
        "embeds": [
            {
                "color": OPEN_COLOR,
                "title": OPEN_TITLE,
                "fields": [
                    {"name": "Company", "value": company, "inline": True},
                    {"name": "Role", "value": listing.title, "inline": True},
                    {"name": BLANK, "value": BLANK, "inline": True},
                    {"name": "Season", "value": listing.period.label() or "--", "inline": True},
                    {"name": "Source", "value": repo_slug.split("/")[0], "inline": True},
                    {"name": "Sponsorship", "value": listing.sponsorship or "--", "inline": True},
                    {"name": "Locations", "value": " / ".join(listing.locations) or "--", "inline": True},
                    {"name": "Posted", "value": f"<t:{listing.date_posted}:R>", "inline": True},
                    {"name": "URL", "value": url},
                ],
            }
        ],
    }


def build_closed_payload(payload: dict) -> dict:
    """Re-render a previously sent payload as inactive."""
    embeds = payload.get("embeds") or [{}]
    return {
        "embeds": [
            {**embeds[0], "color": CLOSED_COLOR, "title": CLOSED_TITLE},
        ]
    }


class DiscordNotifier:
    """Publish and close alerts for one webhook integration."""

    def __init__(
        self,
        integration: DiscordIntegration,
        alerts: AlertStore,
        client: httpx.AsyncClient,
        interval: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.integration = integration
        self.alerts = alerts
        self.client = client
        self.interval = interval
        self._sleep = sleep

    def _message_url(self, message_id: str) -> httpx.URL:
        base = httpx.URL(self.integration.url)
        return base.copy_with(path=f"{base.path.rstrip('/')}/messages/{message_id}")

    async def publish(self, repo_slug: str, listing: Listing) -> Optional[str]:
        """Post a new-listing alert. Returns the message id, or None on failure."""
        payload = build_listing_payload(repo_slug, listing, self.integration.role_id)
        response = await self.client.post(
            self.integration.url, params={"wait": "true"}, json=payload
        )

        if not response.is_success:
            logger.warning(
                "Failed to publish new listing (status: %s %s)",
                response.status_code, response.reason_phrase,
            )
            logger.info("-> Payload: %s", json.dumps(payload))
            logger.info("-> Response: %s", response.text)
            return None

        message_id = str(response.json()["id"])
        await self.alerts.append(alert_slug(repo_slug, listing), message_id, payload)
        logger.info("Published %s at %s (message %s)", listing.id, listing.company_name, message_id)
        return message_id

    async def close(self, repo_slug: str, listing: Listing) -> int:
        """Edit every alert sent for a listing, then forget them.

        Returns the number of edits that succeeded. A listing with no alert
        history is left alone.
        """
        slug = alert_slug(repo_slug, listing)
        records = await self.alerts.history(slug)
        if not records:
            return 0

        edited = 0
        for index, record in enumerate(records):
            if index > 0:
                await self._sleep(self.interval)

            updated = build_closed_payload(record.payload)
            try:
                response = await self.client.patch(
                    self._message_url(record.message_id), json=updated
                )
            except httpx.HTTPError as e:
                logger.warning("Failed to close message %s for %s: %s", record.message_id, slug, e)
                continue

            if not response.is_success:
                logger.warning(
                    "Failed to close published listing (status: %s %s)",
                    response.status_code, response.reason_phrase,
                )
                logger.info("-> Payload: %s", json.dumps(updated))
                logger.info("-> Response: %s", response.text)
                continue
            edited += 1

        await self.alerts.clear(slug)
        logger.info("Closed %s (%d/%d messages edited)", slug, edited, len(records))
        return edited
