"""
Voice layer: opener selection, rhetorical devices, closers and the occasional emoji.

All randomness and the "last opener" memory live on a CompositionSession,
created once per run and passed in explicitly.
"""
import logging
import random
import re
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence

from core.personas import ALL_PERSONAS, DEFAULT_VOICE, RHETORICAL_DEVICES, SOURCE_VOICES, CASUAL
from services.config import PersonaConfig

logger = logging.getLogger(__name__)

VOICE_EMOJIS = ["🚀", "💡", "⚡", "🎯", "🔥", "📈", "🤖", "💻", "🔬", "🌟"]

_OVERCLAIMS = re.compile(
    r"\b(first-ever|first of its kind|unprecedented|never before seen|groundbreaking|revolutionary)\b",
    re.I,
)

# Topic openers tried first for conversational sources
_TOPIC_OPENERS = [
    (("ai", "artificial intelligence"), "If you follow AI:"),
    (("startup", "venture"), "If you follow startups:"),
    (("tech", "technology"), "If you follow tech:"),
]


class CompositionSession:
    """
    Per-run composition state: an injectable random source and the
    previously used opener. Not safe to share between concurrent compositions.
    """

    def __init__(self, rng: Optional[random.Random] = None, seed: Optional[int] = None):
        self.rng = rng or random.Random(seed)
        self.last_opener: Optional[str] = None

    def reset(self) -> None:
        self.last_opener = None

    def chance(self, probability: float) -> bool:
        return self.rng.random() < probability

    def choice(self, options: Sequence[str]) -> str:
        return self.rng.choice(list(options))

    def pick_opener(self, openers: Sequence[str]) -> str:
        """
        Random opener, never the same as the previous one when there is an alternative.
        """
        available = [o for o in openers if o != self.last_opener] or list(openers)
        opener = self.rng.choice(available)
        self.last_opener = opener
        return opener


def clean_summary(summary: str) -> str:
    """
    Collapse whitespace, tone down over-claims, end with a single period.
    """
    cleaned = " ".join(summary.split())
    cleaned = _OVERCLAIMS.sub("significant", cleaned)
    cleaned = cleaned.rstrip(".!?").rstrip()
    return f"{cleaned}." if cleaned else cleaned


def voice_for_source(source: str, style: Optional[str] = None) -> str:
    """Source-specific voice wins over the requested style."""
    if source in SOURCE_VOICES:
        return SOURCE_VOICES[source]
    return style if style in ALL_PERSONAS else DEFAULT_VOICE


def select_voice_prefix(voice: str, source: str, session: CompositionSession) -> str:
    persona = ALL_PERSONAS.get(voice, CASUAL)

    if voice == "conversational":
        lower_source = source.lower()
        for keywords, opener in _TOPIC_OPENERS:
            if any(k in lower_source for k in keywords) and opener != session.last_opener:
                session.last_opener = opener
                return opener

    return session.pick_opener(persona.openers)


def select_rhetorical_device(summary: str, session: CompositionSession) -> Optional[str]:
    if len(summary) > 180:
        return None
    kind = session.choice(sorted(RHETORICAL_DEVICES))
    return session.choice(RHETORICAL_DEVICES[kind])


def select_closer(voice: str, config: PersonaConfig, session: CompositionSession) -> Optional[str]:
    if not session.chance(config.closer_chance):
        return None
    persona = ALL_PERSONAS.get(voice, CASUAL)
    return session.choice(persona.closers)


def select_emoji(content: str, config: PersonaConfig, session: CompositionSession) -> Optional[str]:
    if not session.chance(config.emoji_chance):
        return None

    lower = content.lower()
    if re.search(r"\bai\b", lower) or "artificial intelligence" in lower:
        return "🤖"
    if "launch" in lower or "release" in lower:
        return "🚀"
    if "research" in lower or "study" in lower:
        return "🔬"
    if "growth" in lower or "increase" in lower:
        return "📈"
    return session.choice(VOICE_EMOJIS)


def _fits(text: str, addition: str, max_length: int) -> bool:
    return len(f"{text} {addition}") <= max_length


def truncate_to_length(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text

    truncated = text[:max_length - 3]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.8:
        return truncated[:last_space] + "..."
    return truncated + "..."


def humanize(
    summary: str,
    source: str,
    style: str = "casual",
    config: Optional[PersonaConfig] = None,
    session: Optional[CompositionSession] = None,
) -> str:
    """
    Add a voice to a plain summary without inventing facts.
    Every optional addition is only made when it still fits max_length.
    """
    config = config or PersonaConfig()
    session = session or CompositionSession()
    voice = voice_for_source(source, style)

    text = clean_summary(summary)

    if config.include_voice_prefix:
        text = f"{select_voice_prefix(voice, source, session)} {text}"

    if config.include_rhetorical_device:
        device = select_rhetorical_device(text, session)
        if device and _fits(text, device, config.max_length):
            text = f"{text} {device}"

    if config.include_closer:
        closer = select_closer(voice, config, session)
        if closer and _fits(text, closer, config.max_length):
            text = f"{text} {closer}"

    if config.include_emoji:
        emoji = select_emoji(text, config, session)
        if emoji and _fits(text, emoji, config.max_length):
            text = f"{text} {emoji}"

    text = truncate_to_length(text, config.max_length)
    logger.debug(f"Humanized summary ({len(text)} chars) for {source} in {voice} voice")
    return text


def get_persona_stats(summaries: List[str], config: Optional[PersonaConfig] = None) -> Dict[str, Any]:
    config = config or PersonaConfig()
    if not summaries:
        return {
            "total": 0,
            "average_length": 0,
            "length_distribution": {"short": 0, "medium": 0, "long": 0},
            "voice_prefixes": {},
        }

    lengths = [len(s) for s in summaries]
    prefixes = Counter(s.split(":")[0] + ":" for s in summaries if ":" in s)

    return {
        "total": len(summaries),
        "average_length": round(sum(lengths) / len(lengths)),
        "length_distribution": {
            "short": sum(1 for n in lengths if n < config.min_length),
            "medium": sum(1 for n in lengths if config.min_length <= n <= config.max_length),
            "long": sum(1 for n in lengths if n > config.max_length),
        },
        "voice_prefixes": dict(prefixes),
    }
