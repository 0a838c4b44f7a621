import json
import logging
import re
from dataclasses import dataclass
from typing import List, Union
from urllib.parse import urlparse

from pydantic import ValidationError

from core.entities import Item
from core.schemas import ExtractedFacts
from services.llm import LLMClient

logger = logging.getLogger(__name__)

MAX_SOURCES = 2

SYSTEM_PROMPT = (
    "Extract only verifiable facts from the text. Return JSON with keys: vendor, product, version, "
    "title, summary, features[], changes[], prices[], limits[], date, citations[] (must be cluster URLs). "
    "Omit unknowns. Return ONLY the JSON object."
)


class ExtractionError(Exception):
    """Fact extraction failed for one cluster."""


@dataclass(frozen=True)
class FactsParsed:
    facts: ExtractedFacts


@dataclass(frozen=True)
class FactsParseFailure:
    error: str
    raw: str


FactsParseResult = Union[FactsParsed, FactsParseFailure]


def _extract_json(content: str) -> str:
    """
    Extract JSON from LLM response, stripping markdown code blocks if present.
    """
    content = content.strip()

    pattern = r'^```(?:json)?\s*\n?(.*?)\n?```$'
    match = re.match(pattern, content, re.DOTALL)
    if match:
        return match.group(1).strip()

    object_match = re.search(r'\{.*\}', content, re.DOTALL)
    if object_match:
        return object_match.group(0)

    return content


def parse_facts(raw: str) -> FactsParseResult:
    """
    Parse-then-validate an LLM response into ExtractedFacts.
    Never raises; failures come back as FactsParseFailure.
    """
    try:
        data = json.loads(_extract_json(raw))
    except json.JSONDecodeError as e:
        return FactsParseFailure(error=f"Invalid JSON response from LLM: {e}", raw=raw)

    if not isinstance(data, dict):
        return FactsParseFailure(error="Expected a JSON object", raw=raw)

    if not data.get("vendor") or not data.get("product"):
        return FactsParseFailure(error="Invalid facts: missing vendor or product", raw=raw)

    try:
        return FactsParsed(facts=ExtractedFacts.model_validate(data))
    except ValidationError as e:
        return FactsParseFailure(error=f"Invalid facts: {e}", raw=raw)


def _normalize_url(url: str) -> str:
    parsed = urlparse(url.strip())
    path = parsed.path.rstrip("/")
    normalized = f"{parsed.scheme.lower()}://{parsed.netloc.lower()}{path}"
    if parsed.query:
        normalized += f"?{parsed.query}"
    return normalized


def filter_citations(citations: List[str], cluster_urls: List[str]) -> List[str]:
    """
    Keep only citations that resolve to one of the cluster's own URLs.
    Kept citations are rewritten to the cluster's spelling of the URL and de-duplicated.
    """
    by_normalized = {_normalize_url(url): url for url in cluster_urls}

    kept: List[str] = []
    for citation in citations:
        url = by_normalized.get(_normalize_url(citation))
        if url is None:
            logger.debug(f"Dropping citation outside cluster: {citation}")
            continue
        if url not in kept:
            kept.append(url)

    return kept


def select_sources(items: List[Item], limit: int = MAX_SOURCES) -> List[Item]:
    """
    Items with the longest text first.
    """
    with_text = [item for item in items if item.text and item.text.strip()]
    return sorted(with_text, key=lambda item: len(item.text), reverse=True)[:limit]


def build_extraction_prompt(sources: List[Item], cluster_urls: List[str]) -> str:
    concatenated = "\n\n---\n\n".join(f"Source: {item.title}\n{item.text}" for item in sources)
    urls = "\n".join(cluster_urls)

    return f"""Text to analyze:
{concatenated}

Available URLs for citations:
{urls}

Extract facts and return as JSON."""


async def extract_facts(items: List[Item], llm: LLMClient) -> ExtractedFacts:
    """
    Extract verifiable facts from a cluster's items.
    Citations in the result are always a subset of the cluster's URLs.
    """
    sources = select_sources(items)
    if not sources:
        raise ExtractionError("No items with text content found in cluster")

    cluster_urls = [item.url for item in items]
    prompt = build_extraction_prompt(sources, cluster_urls)

    try:
        raw = await llm.prompt(SYSTEM_PROMPT, prompt)
    except Exception as e:
        logger.error(f"Fact extraction LLM call failed: {e}")
        raise ExtractionError(f"Failed to extract facts: {e}") from e

    result = parse_facts(raw)
    if isinstance(result, FactsParseFailure):
        logger.error(f"Fact extraction failed: {result.error}", extra={"raw": raw[:500]})
        raise ExtractionError(f"Failed to extract facts: {result.error}")

    facts = result.facts.model_copy(update={
        "citations": filter_citations(result.facts.citations, cluster_urls),
    })

    logger.info(
        f"Extracted facts for {facts.vendor} {facts.product}",
        extra={
            "version": facts.version,
            "features": len(facts.features),
            "changes": len(facts.changes),
            "citations": len(facts.citations),
        },
    )
    return facts
