"""
Property feed fetcher.

Retrieves the PropertyFinder XML export that describes the current inventory.
"""

from __future__ import annotations

import httpx

from core.settings import env_float, env_str

DEFAULT_FEED_URL = "https://zoho.nordstern.ae/property_finder.xml"
DEFAULT_TIMEOUT_S = 15.0


class FeedFetchError(RuntimeError):
    pass


def feed_url() -> str:
    return env_str("PROPERTY_FEED_URL", DEFAULT_FEED_URL)


def feed_timeout_s() -> float:
    value = env_float("PROPERTY_FEED_TIMEOUT_S", DEFAULT_TIMEOUT_S)
    return value if value > 0 else DEFAULT_TIMEOUT_S


async def fetch_feed(*, url: str | None = None, timeout_s: float | None = None) -> str:
    """
    Download the feed and return its text.

    Network errors and non-2xx responses raise FeedFetchError.
    """
    target = (url or feed_url()).strip()
    if not target:
        raise FeedFetchError("PROPERTY_FEED_URL is empty.")

    try:
        async with httpx.AsyncClient(
            timeout=timeout_s or feed_timeout_s(),
            follow_redirects=True,
            max_redirects=5,
            headers={
                "Accept": "application/xml, text/xml",
                "User-Agent": "PropertyImporter/2.0",
            },
        ) as client:
            resp = await client.get(target)
    except httpx.HTTPError as exc:
        raise FeedFetchError(f"Feed request failed: {exc}") from exc

    if resp.status_code < 200 or resp.status_code >= 300:
        raise FeedFetchError(f"Feed request failed: {resp.status_code} {resp.text[:200]}")
    return resp.text
