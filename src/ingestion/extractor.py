"""
Full-text article extraction with a title-only fallback
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

USER_AGENT = "ReleaseRadar/1.0 (AI News Bot)"
_NOISE_TAGS = ["script", "style", "nav", "header", "footer", "aside", "form", "noscript"]


@dataclass
class ExtractedArticle:
    title: str
    text: str
    url: str
    success: bool
    fallback_used: bool = False


def html_to_text(html: str) -> tuple[Optional[str], str]:
    """
    Returns (title, body_text). Prefers <article>, then <main>, then <body>.
    """
    soup = BeautifulSoup(html, "html.parser")

    title = None
    if soup.title and soup.title.string:
        title = soup.title.string.strip()

    for tag in soup(_NOISE_TAGS):
        tag.decompose()

    container = soup.find("article") or soup.find("main") or soup.body or soup
    paragraphs = [p.get_text(" ", strip=True) for p in container.find_all("p")]
    text = "\n\n".join(p for p in paragraphs if p)
    if not text:
        text = container.get_text(" ", strip=True)

    return title, text


class ArticleExtractor:
    def __init__(self, timeout: float = 10.0, max_retries: int = 2, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = client

    async def _fetch(self, url: str) -> str:
        headers = {"User-Agent": USER_AGENT}
        if self._client is not None:
            resp = await self._client.get(url, headers=headers, follow_redirects=True)
        else:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                resp = await client.get(url, headers=headers)
        resp.raise_for_status()
        return resp.text

    async def extract(self, url: str, fallback_title: str = "") -> ExtractedArticle:
        """
        Never raises. On failure the title stands in for the text.
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                html = await self._fetch(url)
                title, text = html_to_text(html)
                if not text:
                    raise ValueError("Article extraction returned empty content")
                return ExtractedArticle(title=title or fallback_title, text=text, url=url, success=True)
            except Exception as e:
                last_error = e
                logger.debug(f"Extraction attempt {attempt}/{self.max_retries} failed for {url}: {e}")

        logger.warning(f"Article extraction failed for {url}: {last_error}")
        return ExtractedArticle(
            title=fallback_title,
            text=fallback_title,
            url=url,
            success=False,
            fallback_used=True,
        )
