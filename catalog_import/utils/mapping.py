# catalog_import/utils/mapping.py
import re
from typing import Dict, List, Optional

from pydantic import BaseModel

from catalog_import.core.config import settings
from catalog_import.schemas.fields import COMMON_FIELD_ALIASES, DescriptorRegistry
from catalog_import.utils.fuzzy import similarity


class MappingSuggestion(BaseModel):
    mapping: Dict[str, str]
    unmapped_columns: List[str] = []


def _compact(name: str) -> str:
    # "Short Description", "short_description" and "shortDescription" all compare equal
    return re.sub(r"[^a-z0-9]", "", name.lower())


def _candidate_names(key: str, label: str) -> List[str]:
    names = [key, label] + COMMON_FIELD_ALIASES.get(key, [])
    return [_compact(n) for n in names]


def suggest_mapping(
    headers: List[str],
    registry: DescriptorRegistry,
    threshold: Optional[float] = None,
) -> MappingSuggestion:
    """
    Guess which target field each CSV header feeds.

    Exact key/label/alias matches are taken first, then remaining headers
    are matched by name similarity. A field is used at most once and the
    earlier header wins.
    """
    if threshold is None:
        threshold = settings.FUZZY_MATCH_THRESHOLD

    candidates = {key: _candidate_names(key, d.label) for key, d in registry.items()}
    mapping: Dict[str, str] = {}
    used = set()

    for header in headers:
        compact = _compact(header)
        for key, names in candidates.items():
            if key not in used and compact in names:
                mapping[header] = key
                used.add(key)
                break

    for header in headers:
        if header in mapping:
            continue
        compact = _compact(header)
        best_key, best_score = None, 0.0
        for key, names in candidates.items():
            if key in used:
                continue
            score = max(similarity(compact, n) for n in names)
            if score > best_score and score > threshold:
                best_key, best_score = key, score
        if best_key is not None:
            mapping[header] = best_key
            used.add(best_key)

    return MappingSuggestion(
        mapping=mapping,
        unmapped_columns=[h for h in headers if h not in mapping],
    )
