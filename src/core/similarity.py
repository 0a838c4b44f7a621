"""
String similarity measures used by clustering and duplicate detection.
"""
from collections import Counter


def dice_coefficient(first: str, second: str) -> float:
    """
    Sørensen–Dice coefficient over character bigrams, whitespace ignored.
    Returns a value in [0, 1].
    """
    first = "".join(first.split())
    second = "".join(second.split())

    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = Counter(first[i:i + 2] for i in range(len(first) - 1))

    intersection = 0
    for i in range(len(second) - 1):
        bigram = second[i:i + 2]
        if first_bigrams[bigram] > 0:
            first_bigrams[bigram] -= 1
            intersection += 1

    return (2.0 * intersection) / (len(first) + len(second) - 2)


def title_similarity(first: str, second: str) -> float:
    return dice_coefficient(first.lower(), second.lower())


def levenshtein_distance(first: str, second: str) -> int:
    if len(first) < len(second):
        first, second = second, first

    previous = list(range(len(second) + 1))
    for i, char_a in enumerate(first, start=1):
        current = [i]
        for j, char_b in enumerate(second, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (char_a != char_b),
            ))
        previous = current

    return previous[-1]


def levenshtein_similarity(first: str, second: str) -> float:
    """
    1 - distance / len(longer). Two empty strings are identical.
    """
    longer = max(len(first), len(second))
    if longer == 0:
        return 1.0
    return (longer - levenshtein_distance(first, second)) / longer
