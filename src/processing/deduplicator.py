from typing import Iterable, Optional, Tuple

from core.similarity import levenshtein_similarity


def normalize_title(title: str) -> str:
    return " ".join(title.lower().split())


def is_duplicate_title(
    title: str,
    existing_titles: Iterable[str],
    *,
    similarity_threshold: float = 0.98,
) -> Tuple[bool, Optional[str]]:
    """
    Returns (is_duplicate, matching_existing_title)
    """
    normalized = normalize_title(title)

    for existing in existing_titles:
        candidate = normalize_title(existing)
        if candidate == normalized:
            return True, existing
        if levenshtein_similarity(normalized, candidate) >= similarity_threshold:
            return True, existing

    return False, None
