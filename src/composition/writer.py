"""
Single-post writer: one article in, one (or occasionally two) finished posts out.

Uses the LLM when a client is supplied and falls back to a heuristic summary
otherwise. Output always goes through the quality chain with the article text
as the plagiarism source.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from composition.quality import apply_quality_filters
from composition.voice import CompositionSession, humanize
from services.config import Config
from services.llm import LLMClient

logger = logging.getLogger(__name__)

SHORT_TEXT_LENGTH = 400

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")

_KEY_DETAIL_PATTERNS = [
    ("metric", re.compile(r"\b\d+(?:\.\d+)?\s*(?:%|x|times|percent)", re.I)),
    ("metric", re.compile(r"\$\d+(?:\.\d+)?\s*(?:[mbk]|million|billion)?\b", re.I)),
    ("metric", re.compile(r"\b\d+(?:\.\d+)?[kmb]?\s+(?:tokens?|parameters|users)\b", re.I)),
    ("name", re.compile(r"\b[A-Z][a-zA-Z]*-?\d+(?:\.\d+)?\b")),
]


@dataclass
class WritePostResult:
    content: str
    provider: str
    length: int
    success: bool
    error: Optional[str] = None


def _domain(source: str) -> str:
    host = urlparse(source).netloc if "://" in source else source
    return host.lower().removeprefix("www.") or source


def first_sentence(text: str, max_length: int = 150) -> str:
    sentence = _SENTENCE_END.split(text.strip(), maxsplit=1)[0]
    if len(sentence) <= max_length:
        return sentence
    return text[:max_length].rstrip() + "..."


def create_fallback_post(title: str, source: str) -> str:
    """Title plus a plain 'what it means' line, for very short articles."""
    short_title = title if len(title) <= 100 else title[:97] + "..."
    return f"{short_title}\n\nWhat it means: worth a look if you follow {_domain(source)}."


def extract_key_detail(text: str) -> Optional[Dict[str, str]]:
    """
    First metric (percent, money, token counts) or model-like name in the text.
    """
    for kind, pattern in _KEY_DETAIL_PATTERNS:
        match = pattern.search(text)
        if match:
            return {"kind": kind, "value": match.group(0).strip()}
    return None


def create_key_detail_tweet(detail: Optional[Dict[str, str]], source: str) -> str:
    domain = _domain(source)
    if detail is None:
        return f"Focus: what changed and who it is for. {domain}"
    label = "Key metric:" if detail["kind"] == "metric" else "Notable:"
    return f"{label} {detail['value']}. {domain}"


async def _summarize_with_llm(title: str, text: str, source: str, llm: LLMClient, max_length: int) -> str:
    system_prompt = (
        f"Write a 2-3 sentence neutral, human, non-clickbait summary for {source}. "
        f"Include the source. Stay under {max_length} characters. No emojis."
    )
    user_prompt = f"Title: {title}\nSource: {source}\nContent: {text[:2000]}"
    response = await llm.prompt(system_prompt, user_prompt)
    return " ".join(response.split())


def _summarize_heuristic(
    title: str,
    text: str,
    source: str,
    config: Config,
    session: CompositionSession,
) -> str:
    if len(text) < SHORT_TEXT_LENGTH:
        return create_fallback_post(title, source)
    return humanize(first_sentence(text), source, "conversational", config.persona, session)


async def write_post(
    title: str,
    text: str,
    source: str,
    *,
    config: Config,
    llm: Optional[LLMClient] = None,
    session: Optional[CompositionSession] = None,
) -> WritePostResult:
    session = session or CompositionSession()
    provider = "heuristic"
    error = None

    summary = ""
    if llm is not None:
        try:
            summary = await _summarize_with_llm(title, text, source, llm, config.persona.max_length)
            provider = "llm"
        except Exception as e:
            logger.warning(f"LLM summary failed for '{title[:60]}', using heuristic: {e}")
            error = str(e)

    if not summary:
        summary = _summarize_heuristic(title, text, source, config, session)
        provider = "heuristic"

    content = apply_quality_filters(summary, config.quality, source=text)
    return WritePostResult(
        content=content,
        provider=provider,
        length=len(content),
        success=bool(content.strip()),
        error=error,
    )


async def write_post_or_thread(
    title: str,
    text: str,
    source: str,
    *,
    config: Config,
    llm: Optional[LLMClient] = None,
    session: Optional[CompositionSession] = None,
) -> List[str]:
    """
    Usually a single post; with `pipeline.thread_chance` a 2-tweet thread
    whose second tweet carries a key detail and the source domain.
    """
    session = session or CompositionSession()
    result = await write_post(title, text, source, config=config, llm=llm, session=session)
    posts = [result.content]

    if session.chance(config.pipeline.thread_chance):
        detail = create_key_detail_tweet(extract_key_detail(text), source)
        posts.append(apply_quality_filters(detail, config.quality, source=text))
        logger.debug(f"Writing 2-tweet thread for '{title[:60]}'")

    return posts


def get_write_stats(results: List[WritePostResult]) -> Dict[str, Any]:
    if not results:
        return {"total": 0, "successful": 0, "average_length": 0, "providers": {}}

    providers: Dict[str, int] = {}
    for result in results:
        providers[result.provider] = providers.get(result.provider, 0) + 1

    return {
        "total": len(results),
        "successful": sum(1 for r in results if r.success),
        "average_length": round(sum(r.length for r in results) / len(results)),
        "providers": providers,
    }
