"""
Open Graph preview image lookup for the first tweet of a thread
"""
import logging
from typing import Iterable, Optional
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from core.entities import MediaImage
from processing.safety import is_official

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; ReleaseRadar/1.0)"
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg")
MEDIA_VENDOR_DOMAINS = [
    "openai.com", "anthropic.com", "ai.googleblog.com", "meta.ai",
    "mistral.ai", "cohere.com", "huggingface.co",
]


def should_attach_media(url: str, vendor_domains: Iterable[str] = MEDIA_VENDOR_DOMAINS) -> bool:
    """
    Only official vendor pages and official GitHub release pages get a preview.
    """
    if not is_official(url):
        return False

    host = (urlparse(url).hostname or "").lower()
    if host == "github.com":
        return "/releases" in urlparse(url).path
    return any(host == d or host.endswith("." + d) for d in vendor_domains)


def is_valid_image_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False

    host = parsed.netloc.lower()
    return (
        parsed.path.lower().endswith(IMAGE_EXTENSIONS)
        or "cdn" in host
        or "images" in host
        or "assets" in host
    )


def _int_or_none(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value else None
    except ValueError:
        return None


def _meta(soup: BeautifulSoup, **attrs) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag and tag.get("content"):
        return tag["content"].strip()
    return None


def extract_preview_image(html: str, page_url: str) -> Optional[MediaImage]:
    """
    Open Graph image, then Twitter card image, then the first large <img>.
    """
    soup = BeautifulSoup(html, "html.parser")

    og_image = _meta(soup, property="og:image")
    if og_image:
        return MediaImage(
            url=urljoin(page_url, og_image),
            alt=_meta(soup, property="og:image:alt") or "Image",
            width=_int_or_none(_meta(soup, property="og:image:width")),
            height=_int_or_none(_meta(soup, property="og:image:height")),
        )

    twitter_image = _meta(soup, name="twitter:image")
    if twitter_image:
        return MediaImage(
            url=urljoin(page_url, twitter_image),
            alt=_meta(soup, name="twitter:image:alt") or "Image",
        )

    for img in soup.find_all("img", src=True):
        src = urljoin(page_url, img["src"])
        if not is_valid_image_url(src):
            continue
        width = _int_or_none(img.get("width")) or 0
        height = _int_or_none(img.get("height")) or 0
        if width >= 300 or height >= 200:
            return MediaImage(url=src, alt=img.get("alt") or "Image", width=width or None, height=height or None)

    return None


def image_alt_text(product: str, version: Optional[str] = None) -> str:
    version_text = f" {version}" if version else ""
    return f"{product}{version_text} update announcement image."


class MediaPreviewFetcher:
    """
    Best-effort preview lookup. Never raises; any failure means no media.
    """

    def __init__(self, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self._client = client

    async def _get(self, url: str) -> httpx.Response:
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        }
        if self._client is not None:
            return await self._client.get(url, headers=headers, follow_redirects=True)
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            return await client.get(url, headers=headers)

    async def fetch(self, url: str, product: str, version: Optional[str] = None) -> Optional[MediaImage]:
        if not should_attach_media(url):
            logger.debug(f"Media not supported for {url}")
            return None

        try:
            resp = await self._get(url)
            if resp.status_code != 200:
                logger.warning(f"Media preview fetch failed: HTTP {resp.status_code} ({url})")
                return None

            image = extract_preview_image(resp.text, url)
        except Exception as e:
            logger.warning(f"Media preview extraction failed for {url}: {e}")
            return None

        if image is None or not is_valid_image_url(image.url):
            return None

        return MediaImage(
            url=image.url,
            alt=image_alt_text(product, version),
            width=image.width,
            height=image.height,
        )
