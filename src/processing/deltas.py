import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from core.entities import Event, EventKind, Item
from core.schemas import ComputedDeltas, ExtractedFacts
from services.llm import LLMClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "Compare the new facts with prior facts and identify key differences. "
    "Focus on context window, pricing, features, and significant changes. "
    "Return a bullet list of deltas."
)


def new_announcement_summary(facts: ExtractedFacts) -> str:
    suffix = f"v{facts.version}" if facts.version else "announcement"
    return f"New {facts.vendor} {facts.product} {suffix}"


def _describe(facts: ExtractedFacts) -> str:
    return (
        f"Vendor: {facts.vendor}\n"
        f"Product: {facts.product}\n"
        f"Version: {facts.version or 'N/A'}\n"
        f"Features: {', '.join(facts.features) or 'None'}\n"
        f"Changes: {', '.join(facts.changes) or 'None'}\n"
        f"Prices: {', '.join(facts.prices) or 'None'}\n"
        f"Limits: {', '.join(facts.limits) or 'None'}\n"
        f"Date: {facts.date}"
    )


def categorize_delta_lines(response: str) -> ComputedDeltas:
    """
    Best-effort split of a free-text comparison into layout hints.
    The first matching category claims a line; single-valued fields keep the last match.
    """
    context_window: Optional[str] = None
    price: Optional[str] = None
    features: List[str] = []
    changes: List[str] = []

    for line in response.splitlines():
        if not line.strip():
            continue
        lower = line.lower()

        if "context" in lower:
            context_window = line
        elif "price" in lower or "cost" in lower or "$" in lower:
            price = line
        elif "feature" in lower or "capability" in lower:
            features.append(line)
        elif "change" in lower or "update" in lower or "improve" in lower:
            changes.append(line)

    return ComputedDeltas(
        summary=response,
        context_window=context_window,
        price=price,
        features=features,
        changes=changes,
    )


async def compute_deltas(
    facts: ExtractedFacts,
    prior: Optional[ExtractedFacts],
    llm: LLMClient,
) -> ComputedDeltas:
    """
    Without prior facts, or when the comparison call fails, the result is a
    templated "new announcement" summary with no structured deltas.
    """
    if prior is None:
        return ComputedDeltas(summary=new_announcement_summary(facts))

    user_prompt = f"""Prior Facts:
{_describe(prior)}

New Facts:
{_describe(facts)}

Identify key differences and changes."""

    try:
        response = await llm.prompt(SYSTEM_PROMPT, user_prompt)
    except Exception as e:
        logger.error(f"Delta computation failed for {facts.vendor} {facts.product}: {e}")
        return ComputedDeltas(summary=new_announcement_summary(facts))

    if not response.strip():
        return ComputedDeltas(summary=new_announcement_summary(facts))

    deltas = categorize_delta_lines(response)
    logger.info(
        f"Computed deltas for {facts.vendor} {facts.product}",
        extra={
            "context_window": deltas.context_window,
            "price": deltas.price,
            "features": len(deltas.features),
            "changes": len(deltas.changes),
        },
    )
    return deltas


def infer_event_kind(facts: ExtractedFacts) -> EventKind:
    if facts.version:
        return "release"
    if facts.changes:
        return "update"
    return "announcement"


def build_event_record(
    facts: ExtractedFacts,
    deltas: ComputedDeltas,
    items: List[Item],
    *,
    description: Optional[str] = None,
    extra_metadata: Optional[dict[str, Any]] = None,
) -> Event:
    """
    Event row for a processed cluster. The time window spans the member items.
    """
    if items:
        published = sorted(item.published_at for item in items)
        window_start, window_end = published[0], published[-1]
    else:
        window_start = window_end = datetime.now(timezone.utc)

    metadata: dict[str, Any] = {
        "deltas": deltas.model_dump(),
        "item_count": len(items),
        "item_ids": [item.id for item in items],
    }
    if extra_metadata:
        metadata.update(extra_metadata)

    return Event(
        id=f"event-{uuid.uuid4().hex[:12]}",
        vendor=facts.vendor,
        product=facts.product,
        kind=infer_event_kind(facts),
        window_start=window_start,
        window_end=window_end,
        version=facts.version,
        title=facts.title or (items[0].title if items else None),
        description=description or deltas.summary,
        facts_json=facts.model_dump_json(),
        metadata=metadata,
    )
