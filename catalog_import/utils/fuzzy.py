# catalog_import/utils/fuzzy.py
from typing import Iterable, Optional

from catalog_import.core.config import settings


def levenshtein_distance(s1: str, s2: str) -> int:
    """
    Minimum number of single-character insertions, deletions and
    substitutions needed to turn s1 into s2.
    """
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def similarity(a: str, b: str) -> float:
    """Case-insensitive similarity in [0, 1]; 1.0 means identical."""
    a, b = a.lower(), b.lower()
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return (max_len - levenshtein_distance(a, b)) / max_len


def closest_match(
    value: str,
    options: Iterable[str],
    threshold: Optional[float] = None,
) -> Optional[str]:
    """
    Best-scoring option strictly above `threshold`, or None.
    Ties keep the earliest option so results are stable.
    """
    if threshold is None:
        threshold = settings.FUZZY_MATCH_THRESHOLD

    best_match = None
    best_score = 0.0
    for option in options:
        score = similarity(value, option)
        if score > best_score and score > threshold:
            best_score = score
            best_match = option
    return best_match
