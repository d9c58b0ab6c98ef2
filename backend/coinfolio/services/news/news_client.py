"""CryptoCompare news API client.

Errors surface as ``HTTPClientError``; the dashboard decides what to show
when news is unavailable.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from coinfolio.config import settings
from coinfolio.services.shared.http_client import HTTPClient

logger = logging.getLogger(__name__)

CRYPTOCOMPARE_BASE_URL = "https://min-api.cryptocompare.com"

# Friendly category names to CryptoCompare category codes
CATEGORY_MAP: dict[str, str] = {
    "bitcoin": "BTC",
    "ethereum": "ETH",
    "defi": "DEFI",
    "nft": "NFT",
    "regulation": "Regulation",
    "altcoin": "Altcoin",
}


@dataclass(frozen=True)
class NewsArticle:
    id: str
    title: str
    summary: str
    url: str
    source: str
    published_at: datetime
    image_url: str | None = None
    categories: list[str] = field(default_factory=list)


def parse_article(item: dict[str, Any]) -> NewsArticle:
    categories = [c for c in (item.get("categories") or "").split("|") if c]
    return NewsArticle(
        id=str(item["id"]),
        title=item["title"],
        summary=item.get("body", ""),
        url=item["url"],
        source=item.get("source_info", {}).get("name") or item.get("source", ""),
        published_at=datetime.fromtimestamp(item["published_on"], tz=UTC).replace(tzinfo=None),
        image_url=item.get("imageurl"),
        categories=categories,
    )


class NewsClient(HTTPClient):
    """Client for CryptoCompare's news feed.

    Usage:
        with NewsClient() as client:
            articles = client.get_latest_news(limit=6)
            btc = client.get_news_by_category("bitcoin")
    """

    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        self.api_key = api_key if api_key is not None else settings.news_api_key
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["authorization"] = f"Apikey {self.api_key}"
        super().__init__(
            base_url=CRYPTOCOMPARE_BASE_URL,
            timeout=timeout or settings.market_data_timeout_seconds,
            headers=headers,
        )

    def get_latest_news(
        self, limit: int = 20, categories: list[str] | None = None
    ) -> list[NewsArticle]:
        """Most recent articles, newest first."""
        params: dict[str, Any] = {"lang": "EN"}
        if categories:
            params["categories"] = ",".join(categories)
        payload = self.get_json("/data/v2/news/", params=params)
        articles = [parse_article(item) for item in payload["Data"]]
        logger.debug(f"Fetched {len(articles)} news articles")
        return articles[:limit]

    def get_news_by_category(self, category: str, limit: int = 20) -> list[NewsArticle]:
        api_category = CATEGORY_MAP.get(category.lower(), category)
        return self.get_latest_news(limit=limit, categories=[api_category])

    def search_news(self, query: str, limit: int = 20) -> list[NewsArticle]:
        """Articles whose title or body mention any word of ``query``."""
        terms = [term for term in query.lower().split() if term]
        if not terms:
            return []
        matches = [
            article
            for article in self.get_latest_news(limit=100)
            if any(term in article.title.lower() or term in article.summary.lower() for term in terms)
        ]
        return matches[:limit]
