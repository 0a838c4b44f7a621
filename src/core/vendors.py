"""
Vendor/product recognition and release-language classification.

Both tables are ordered priority tables: lookup walks them in declaration
order and the first alias contained in the text wins. When a text mentions
two vendors, declaration order decides, not the longest or most specific
alias.
"""
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from core.entities import Item

VENDOR_ALIASES: Dict[str, List[str]] = {
    "openai": ["openai", "open ai", "chatgpt", "gpt", "dall-e", "dalle", "whisper", "codex"],
    "google": ["google", "deepmind", "gemini", "bard", "alphago", "alphafold", "tensorflow", "palm"],
    "anthropic": ["anthropic", "claude", "constitutional ai"],
    "meta": ["meta", "facebook", "llama", "opt", "galactica", "blenderbot", "fair"],
    "microsoft": ["microsoft", "msft", "copilot", "bing chat", "bing", "azure openai", "azure ai"],
    "xai": ["xai", "grok", "elon musk ai", "musk ai"],
    "nvidia": ["nvidia", "nvdia", "cuda", "tensorrt", "jetson", "dgx"],
    "tesla": ["tesla", "fsd", "full self driving", "autopilot", "dojo"],
    "apple": ["apple", "core ml", "siri", "neural engine", "mlx"],
    "amazon": ["amazon", "aws", "bedrock", "sagemaker", "lex", "polly", "rekognition"],
    "huggingface": ["hugging face", "huggingface", "transformers", "datasets", "spaces"],
    "stability": ["stability ai", "stability", "stable diffusion", "stablelm", "stablediffusion"],
    "cohere": ["cohere", "command", "embed", "classify"],
    "mistral": ["mistral", "mixtral", "mistral ai"],
    "perplexity": ["perplexity", "perplexity ai"],
    "character": ["character ai", "character.ai", "character"],
}

PRODUCT_ALIASES: Dict[str, List[str]] = {
    "gpt-4": ["gpt-4", "gpt4", "gpt 4", "gpt-4o", "gpt-4 turbo", "gpt-4-turbo", "chatgpt plus"],
    "gpt-3.5": ["gpt-3.5", "gpt-3", "gpt3", "gpt 3", "chatgpt", "chat gpt", "gpt-3.5-turbo"],
    "gemini": ["gemini", "gemini pro", "gemini ultra", "gemini nano", "bard", "bard ai"],
    "claude": [
        "claude", "claude 3", "claude-3", "claude 3.5", "claude-3.5",
        "claude 3 opus", "claude 3 sonnet", "claude 3 haiku",
    ],
    "llama": ["llama", "llama 2", "llama-2", "llama 3", "llama-3", "llama 3.1", "llama-3.1", "meta llama"],
    "grok": ["grok", "grok-1", "grok 1", "xai grok"],
    "copilot": ["copilot", "github copilot", "microsoft copilot", "bing copilot", "copilot pro"],
    "stable-diffusion": ["stable diffusion", "stablediffusion", "stable-diffusion", "sd3", "sdxl"],
    "dall-e": ["dall-e", "dalle", "dall-e 2", "dall-e 3", "dalle-2", "dalle-3"],
    "whisper": ["whisper", "whisper-1", "openai whisper"],
    "midjourney": ["midjourney", "midjourney v6", "mj v6"],
}

# One hit in any category is enough. Deliberately broad.
RELEASE_PATTERNS: List[re.Pattern] = [
    # explicit release verbs
    re.compile(r"(introducing|introduces|announcing|announces|launching|launches|releasing|releases|unveiling|unveils)", re.I),
    re.compile(r"(now available|now live|now out|now shipping)", re.I),
    re.compile(r"(released|launched|unveiled|announced|introduced)", re.I),
    # version numbers
    re.compile(r"\bv\d+(\.\d+)*(\w+)?", re.I),
    re.compile(r"version\s+\d+(\.\d+)*", re.I),
    re.compile(r"\d+\.\d+(\.\d+)?\s+(release|update|launch)", re.I),
    # update language
    re.compile(r"(update|upgrade|enhancement|improvement)", re.I),
    re.compile(r"(new features|new capabilities|enhanced)", re.I),
    re.compile(r"(changelog|release notes|what's new)", re.I),
    # availability
    re.compile(r"(available|accessible|deployed|rolled out)", re.I),
    re.compile(r"(general availability|\bga\b|public release)", re.I),
    re.compile(r"(beta|alpha|preview|experimental)", re.I),
    # time-proximate phrasing
    re.compile(r"(today|yesterday|this week|this month).*(release|launch|announce)", re.I),
    re.compile(r"(just|recently|latest).*(release|update|version)", re.I),
    re.compile(r"(this week|this month)", re.I),
]


def _first_alias_match(content: str, table: Dict[str, List[str]]) -> Optional[str]:
    for canonical, aliases in table.items():
        if any(alias in content for alias in aliases):
            return canonical
    return None


def detect_vendor_product(title: str, text: Optional[str] = None) -> Tuple[Optional[str], Optional[str]]:
    """
    Map free text to a canonical (vendor, product) pair. Either side may be None.
    """
    content = f"{title} {text or ''}".lower()
    return _first_alias_match(content, VENDOR_ALIASES), _first_alias_match(content, PRODUCT_ALIASES)


def resolve_vendor_product(item: Item) -> Tuple[Optional[str], Optional[str]]:
    """
    Explicit item fields take precedence over detection.
    """
    if item.vendor and item.product:
        return item.vendor, item.product

    detected_vendor, detected_product = detect_vendor_product(item.title, item.text)
    return item.vendor or detected_vendor, item.product or detected_product


def is_release_like(title: str, text: Optional[str] = None) -> bool:
    content = f"{title} {text or ''}"
    return any(pattern.search(content) for pattern in RELEASE_PATTERNS)


def analyze_item(item: Item, now: Optional[datetime] = None) -> dict:
    """
    Score a single item's potential to be part of a release event.
    """
    now = now or datetime.now(timezone.utc)
    vendor, product = detect_vendor_product(item.title, item.text)
    release_like = is_release_like(item.title, item.text)

    confidence = 0.0
    if vendor and product:
        confidence += 0.4
    elif vendor or product:
        confidence += 0.2

    if release_like:
        confidence += 0.3

    hours_ago = (now - item.published_at).total_seconds() / 3600
    if hours_ago <= 24:
        confidence += 0.2
    elif hours_ago <= 72:
        confidence += 0.1

    if item.text and len(item.text) > 500:
        confidence += 0.1

    return {
        "is_release_like": release_like,
        "vendor": vendor,
        "product": product,
        "confidence": min(confidence, 1.0),
    }
