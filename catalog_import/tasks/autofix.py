# catalog_import/tasks/autofix.py

import logging
import math
from decimal import ROUND_DOWN
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple

from catalog_import.core.config import settings
from catalog_import.schemas.fields import Dataset, FieldDescriptor, FieldMapping, PRODUCT_FIELD_REGISTRY, as_registry
from catalog_import.schemas.validation import (
    AutoFixBatch,
    AutoFixSuggestion,
    FixPreview,
    ValidationResult,
)
from catalog_import.schemas.validators import (
    BusinessRule,
    dedupe_items,
    normalize_decimal_separator,
    parse_decimal,
    reformat_alternate_date,
)
from catalog_import.tasks.validation import Descriptors, validate_data, validate_data_async
from catalog_import.utils.fuzzy import closest_match

logger = logging.getLogger(__name__)

# (fixed value or None when no plausible fix exists, description)
FixTransform = Callable[[str, FieldDescriptor], Tuple[Optional[str], str]]


def _fix_decimal_separator(value: str, descriptor: FieldDescriptor):
    fixed = normalize_decimal_separator(value)
    return (fixed if parse_decimal(fixed) is not None else None), "Replace comma with dot in number"


def _fix_fraction(value: str, descriptor: FieldDescriptor):
    description = "Remove decimal places"
    parsed = parse_decimal(value)
    if parsed is None:
        return None, description
    if "e" in value.lower():
        truncated = format(parsed.to_integral_value(rounding=ROUND_DOWN), "f")
    else:
        # string slicing keeps huge values clear of the int->str digit limit
        truncated = value.split(".", 1)[0]
    sign = "-" if truncated.startswith("-") else ""
    digits = truncated.lstrip("+-").lstrip("0")
    return (sign + digits if digits else "0"), description


def _fix_truncate(value: str, descriptor: FieldDescriptor):
    max_length = descriptor.constraints.max_length
    if not max_length:
        return None, "Truncate text"
    return value[:max_length], f"Truncate to {max_length} characters"


def _fix_duplicates(value: str, descriptor: FieldDescriptor):
    return dedupe_items(value), "Remove duplicate items"


def _fix_enum(value: str, descriptor: FieldDescriptor):
    match = closest_match(value, descriptor.constraints.allowed_values)
    if match is None:
        return None, "Replace with closest allowed value"
    return match, f'Replace with closest allowed value "{match}"'


def _fix_date(value: str, descriptor: FieldDescriptor):
    return reformat_alternate_date(value), "Reformat date as YYYY-MM-DD"


# Confidence is fixed per transform; it ranks how safe the rewrite is syntactically
FIX_TRANSFORMS: Dict[str, Tuple[FixTransform, float]] = {
    "array_duplicates": (_fix_duplicates, 0.95),
    "number_comma_decimal": (_fix_decimal_separator, 0.90),
    "number_invalid": (_fix_decimal_separator, 0.90),
    "enum_invalid": (_fix_enum, 0.85),
    "integer_invalid": (_fix_fraction, 0.80),
    "date_invalid": (_fix_date, 0.75),
    "text_too_long": (_fix_truncate, 0.70),
}


def generate_auto_fix_suggestions(
    dataset: Dataset,
    mapping: FieldMapping,
    descriptors: Optional[Descriptors] = None,
    existing_keys: Optional[Iterable[str]] = None,
    rules: Optional[Mapping[str, BusinessRule]] = None,
    result: Optional[ValidationResult] = None,
) -> AutoFixBatch:
    """
    Propose a correction for every auto-fixable issue.

    Reuses `result` when the caller already validated the same inputs;
    otherwise runs a fresh validation pass. Nothing is applied.
    """
    registry = as_registry(descriptors if descriptors is not None else PRODUCT_FIELD_REGISTRY)
    if result is None:
        result = validate_data(dataset, mapping, registry, existing_keys, rules)

    suggestions = []
    for position, issue in enumerate(result.issues):
        if not issue.auto_fixable:
            continue

        entry = FIX_TRANSFORMS.get(issue.code)
        descriptor = registry.get(issue.field)
        if entry is None or descriptor is None:
            logger.debug(f"No fix transform for issue {issue.code} on field {issue.field}")
            continue

        transform, confidence = entry
        fixed, description = transform(issue.value, descriptor)
        suggestions.append(AutoFixSuggestion(
            issue_id=str(position),
            issue=issue,
            description=description,
            preview=FixPreview(before=issue.value, after=fixed if fixed is not None else issue.value),
            confidence=confidence,
            applicable=fixed is not None,
        ))

    affected_rows = len({s.issue.row for s in suggestions if s.applicable})
    logger.info(f"Generated {len(suggestions)} auto-fix suggestion(s) across {affected_rows} row(s)")

    return AutoFixBatch(
        suggestions=suggestions,
        total_affected_rows=affected_rows,
        estimated_time=math.ceil(affected_rows / settings.FIXES_PER_TIME_UNIT),
    )


async def generate_auto_fix_suggestions_async(
    dataset: Dataset,
    mapping: FieldMapping,
    descriptors: Optional[Descriptors] = None,
    existing_keys: Optional[Iterable[str]] = None,
    rules: Optional[Mapping[str, BusinessRule]] = None,
) -> AutoFixBatch:
    """Validate in chunks on the event loop, then build the batch from that result."""
    registry = as_registry(descriptors if descriptors is not None else PRODUCT_FIELD_REGISTRY)
    result = await validate_data_async(dataset, mapping, registry, existing_keys, rules)
    return generate_auto_fix_suggestions(dataset, mapping, registry, existing_keys, rules, result=result)
