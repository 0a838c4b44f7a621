"""
Deterministic post-processing chain for any composed text.

Order is fixed: clickbait -> unsupported claims -> emoji cap ->
plagiarism limit -> hard truncate. Each step consumes the previous output.
URLs are left untouched by the word-level steps.
"""
import re
import string
from typing import Callable, List, Optional

from composition.style import EMOJI_PATTERN
from services.config import QualityConfig

CLICKBAIT_TERMS = [
    "shocking", "insane", "amazing", "incredible", "unbelievable", "mind-blowing",
    "you won't believe", "this will blow your mind", "game-changing", "revolutionary",
    "breakthrough", "first-ever", "never before seen", "exclusive", "secret",
    "what happens next", "the truth about", "doctors hate this", "one weird trick",
    "this simple trick", "you'll never guess", "the shocking truth", "must-see",
    "viral", "trending", "breaking", "urgent", "alert", "warning", "danger",
]

UNSUPPORTED_CLAIMS = [
    "proven to", "scientifically proven", "guaranteed to", "will definitely",
    "always", "never", "everyone", "no one", "all", "none", "100%",
    "completely", "totally", "absolutely", "certainly", "definitely",
    "without a doubt", "undoubtedly", "clearly", "obviously",
]


def _term_pattern(terms: List[str]) -> re.Pattern:
    # Longest first so multi-word phrases win over their parts
    alternatives = "|".join(re.escape(t) for t in sorted(terms, key=len, reverse=True))
    return re.compile(rf"(?<![\w-])(?:{alternatives})(?![\w-])", re.I)


CLICKBAIT_PATTERN = _term_pattern(CLICKBAIT_TERMS)
CLAIMS_PATTERN = _term_pattern(UNSUPPORTED_CLAIMS)
URL_PATTERN = re.compile(r"(https?://\S+)")


def collapse_whitespace(text: str) -> str:
    """Collapse runs of spaces within each line, keep line breaks."""
    lines = (" ".join(line.split()) for line in text.splitlines())
    return "\n".join(line for line in lines if line)


def _outside_urls(text: str, fn: Callable[[str], str]) -> str:
    parts = URL_PATTERN.split(text)
    return "".join(part if i % 2 else fn(part) for i, part in enumerate(parts))


def remove_clickbait(text: str) -> str:
    def strip(segment: str) -> str:
        # Removing one term can expose another, run to a fixed point
        previous = None
        while previous != segment:
            previous = segment
            segment = re.sub(r"[ \t]{2,}", " ", CLICKBAIT_PATTERN.sub(" ", segment))
        return segment

    return collapse_whitespace(_outside_urls(text, strip))


def remove_unsupported_claims(text: str) -> str:
    return collapse_whitespace(_outside_urls(text, lambda s: CLAIMS_PATTERN.sub("may", s)))


def limit_emojis(text: str, max_emojis: int = 1) -> str:
    """
    Keep the first `max_emojis` emojis in character order, drop the rest.
    """
    seen = 0

    def keep_first(match: re.Match) -> str:
        nonlocal seen
        seen += 1
        return match.group(0) if seen <= max_emojis else " "

    limited = EMOJI_PATTERN.sub(keep_first, text)
    if seen <= max_emojis:
        return text
    return collapse_whitespace(limited)


def _normalize_word(word: str) -> str:
    return word.strip(string.punctuation + "“”‘’…").lower()


def _contains_run(source_words: List[str], run: List[str]) -> bool:
    n = len(run)
    if n == 0:
        return True
    return any(source_words[i:i + n] == run for i in range(len(source_words) - n + 1))


def limit_copied_words(
    text: str,
    source: str,
    max_consecutive: int = 8,
    marker: str = "…",
) -> str:
    """
    Break any run of more than `max_consecutive` words that also appears,
    in order, in `source`. A marker token is inserted and the count restarts.
    """
    source_words = [w for w in (_normalize_word(w) for w in source.split()) if w]
    if not source_words:
        return text

    output: List[str] = []
    run: List[str] = []

    for raw_word in text.split():
        word = _normalize_word(raw_word)
        if not word:
            output.append(raw_word)
            run = []
            continue

        candidate = run + [word]
        while candidate and not _contains_run(source_words, candidate):
            candidate = candidate[1:]

        if len(candidate) > max_consecutive:
            output.append(marker)
            candidate = [word]

        run = candidate
        output.append(raw_word)

    return " ".join(output)


def hard_truncate(content: str, max_length: int = 280, reserved: int = 30) -> str:
    """
    Final length guard. Prefers a sentence boundary, then a word boundary,
    then a raw cut, and always marks a cut with "...".
    """
    if len(content) <= max_length:
        return content

    available = max_length - reserved
    if available <= 0:
        return content[:max_length - 3] + "..."

    truncated = ""
    for sentence in (s.strip() for s in re.split(r"[.!?]+", content)):
        if not sentence:
            continue
        if len(truncated) + len(sentence) + 2 <= available:
            truncated = f"{truncated}. {sentence}" if truncated else sentence
        else:
            break

    if not truncated:
        for word in content.split():
            if len(truncated) + len(word) + 1 <= available:
                truncated = f"{truncated} {word}" if truncated else word
            else:
                break

    if not truncated or len(truncated) > available:
        truncated = content[:available]

    return truncated + "..."


def apply_quality_filters(
    text: str,
    config: Optional[QualityConfig] = None,
    *,
    source: Optional[str] = None,
    truncate: bool = True,
) -> str:
    """
    With `truncate=False` the final length guard is skipped, for callers
    that drop over-long text instead of cutting it.
    """
    config = config or QualityConfig()

    result = remove_clickbait(text)
    result = remove_unsupported_claims(result)
    result = limit_emojis(result)
    if source:
        result = limit_copied_words(result, source, config.max_consecutive_words, config.break_marker)
    if not truncate:
        return result
    return hard_truncate(result, config.max_output_length, config.reserved_url_space)
