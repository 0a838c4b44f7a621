import dataclasses
import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from core.entities import Item
from core.vendors import resolve_vendor_product

logger = logging.getLogger(__name__)


def annotate_item(item: Item) -> Item:
    """
    Fill in vendor/product from detection where the item has none.
    Explicit values are never overwritten.
    """
    vendor, product = resolve_vendor_product(item)
    if vendor == item.vendor and product == item.product:
        return item
    return dataclasses.replace(item, vendor=vendor, product=product)


def is_recent(item: Item, *, hours: float, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return item.published_at >= now - timedelta(hours=hours)


def prepare_items(
    items: Iterable[Item],
    *,
    hours_back: float,
    now: Optional[datetime] = None,
) -> List[Item]:
    """
    Annotate items, drop the ones outside the lookback window and
    collapse repeated URLs within the batch (last one wins).
    """
    now = now or datetime.now(timezone.utc)
    by_url: dict[str, Item] = {}
    total = 0

    for item in items:
        total += 1
        if not is_recent(item, hours=hours_back, now=now):
            continue
        by_url[item.url] = annotate_item(item)

    prepared = list(by_url.values())
    logger.info(f"Prefilter: {total} -> {len(prepared)} items")
    return prepared
