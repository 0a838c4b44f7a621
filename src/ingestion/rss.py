"""
Ingestion from RSS sources
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import feedparser

from core.entities import Item
from ingestion.base import SourceAdapter

logger = logging.getLogger(__name__)


def _entry_published(entry) -> Optional[datetime]:
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            return datetime(*parsed[:6], tzinfo=timezone.utc)
    return None


class RSSAdapter(SourceAdapter):
    def __init__(self, feed_urls: List[str], source_name: str, vendor: Optional[str] = None,
                 product: Optional[str] = None):
        self.feed_urls = feed_urls
        self.name = source_name
        self.vendor = vendor
        self.product = product

    async def fetch_items(self, hours: int) -> List[Item]:
        cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
        items: List[Item] = []

        for url in self.feed_urls:
            try:
                feed = feedparser.parse(url)

                for entry in feed.entries:
                    link = entry.get("link")
                    title = (entry.get("title") or "").strip()
                    if not link or not title:
                        continue

                    published = _entry_published(entry)
                    if published and published < cutoff:
                        continue

                    items.append(
                        Item.create(
                            source="rss",
                            url=link,
                            title=title,
                            published_at=published or datetime.now(timezone.utc),
                            vendor=self.vendor,
                            product=self.product,
                            summary=entry.get("summary") or None,
                            raw={"feed": url, "source_name": self.name, "entry_id": entry.get("id")},
                        )
                    )

            except Exception as e:
                logger.error(f"Failed to parse feed {url}: {e}")
                continue

        logger.info(f"RSS {self.name}: {len(items)} items")
        return items
