# catalog_import/schemas/validators.py
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Set

from pydantic import EmailStr, TypeAdapter, ValidationError

from catalog_import.core.config import settings
from catalog_import.schemas.fields import FieldDescriptor, FieldType
from catalog_import.schemas.validation import ValidationIssue
from catalog_import.utils.fuzzy import closest_match


class PassState:
    """
    Mutable state owned by a single validation pass.

    A new instance is created for every call to the engine so repeated or
    concurrent passes never see each other's keys.
    """

    def __init__(self, existing_keys: Optional[Iterable[str]] = None):
        self.existing_keys = frozenset(existing_keys or ())
        self.seen_keys: Dict[str, Set[str]] = {}

    def seen(self, field_key: str) -> Set[str]:
        return self.seen_keys.setdefault(field_key, set())


TypeValidator = Callable[[str, str, FieldDescriptor, int, str], List[ValidationIssue]]
BusinessRule = Callable[[str, FieldDescriptor, int, str, PassState], List[ValidationIssue]]


def _issue(
    field_key: str,
    row: int,
    column: str,
    code: str,
    severity: str,
    message: str,
    value: str,
    suggestion: Optional[str] = None,
    auto_fixable: bool = False,
) -> ValidationIssue:
    return ValidationIssue(
        row=row,
        column=column,
        field=field_key,
        code=code,
        severity=severity,
        message=message,
        value=value,
        suggestion=suggestion,
        auto_fixable=auto_fixable,
    )


# === Parsing helpers (shared with the auto-fix generator) ===

_DECIMAL_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def parse_decimal(value: str) -> Optional[Decimal]:
    if not _DECIMAL_RE.match(value):
        return None
    return Decimal(value)


def normalize_decimal_separator(value: str) -> str:
    return value.replace(",", ".", 1)


def format_bound(bound: float) -> str:
    return format(Decimal(str(bound)).normalize(), "f")


def parse_iso_date(value: str) -> Optional[date]:
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        return None


ALTERNATE_DATE_LAYOUTS = [
    (re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$"), ("day", "month", "year")),  # D/M/Y
    (re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$"), ("day", "month", "year")),  # D-M-Y
    (re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$"), ("year", "month", "day")),  # Y/M/D
]


def matches_alternate_date_layout(value: str) -> bool:
    return any(pattern.match(value) for pattern, _ in ALTERNATE_DATE_LAYOUTS)


def reformat_alternate_date(value: str) -> Optional[str]:
    """ISO form of a D/M/Y, D-M-Y or Y/M/D value, or None if it is not a real date."""
    for pattern, order in ALTERNATE_DATE_LAYOUTS:
        match = pattern.match(value)
        if not match:
            continue
        parts = dict(zip(order, (int(g) for g in match.groups())))
        try:
            return date(**parts).isoformat()
        except ValueError:
            return None
    return None


def split_items(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def dedupe_items(value: str) -> str:
    return ", ".join(dict.fromkeys(split_items(value)))


# === Type validators ===

def validate_number(field_key, value, descriptor, row, column) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    parsed = parse_decimal(value)

    if parsed is None:
        normalized = normalize_decimal_separator(value)
        parsed = parse_decimal(normalized) if "," in value else None
        if parsed is None:
            return [_issue(
                field_key, row, column, "number_invalid", "error",
                "Must be a valid number", value,
                suggestion='Use format like "123.45"',
                auto_fixable="," in value,
            )]
        issues.append(_issue(
            field_key, row, column, "number_comma_decimal", "error",
            "Must be a valid number (comma used as decimal separator)", value,
            suggestion=f'Use a dot as decimal separator: "{normalized}"',
            auto_fixable=True,
        ))

    issues.extend(_range_issues(field_key, parsed, value, descriptor, row, column, "number"))
    return issues


def validate_integer(field_key, value, descriptor, row, column) -> List[ValidationIssue]:
    parsed = parse_decimal(value)
    if parsed is None or parsed != parsed.to_integral_value():
        return [_issue(
            field_key, row, column, "integer_invalid", "error",
            "Must be a whole number", value,
            suggestion='Use format like "123" (no decimals)',
            auto_fixable="." in value,
        )]
    return _range_issues(field_key, parsed, value, descriptor, row, column, "integer")


def _range_issues(field_key, parsed, value, descriptor, row, column, prefix) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    c = descriptor.constraints
    if c.min is not None and parsed < Decimal(str(c.min)):
        issues.append(_issue(
            field_key, row, column, f"{prefix}_below_min", "error",
            f"Value must be at least {format_bound(c.min)}", value,
            suggestion=f"Use a value >= {format_bound(c.min)}",
        ))
    if c.max is not None and parsed > Decimal(str(c.max)):
        issues.append(_issue(
            field_key, row, column, f"{prefix}_above_max", "error",
            f"Value must be at most {format_bound(c.max)}", value,
            suggestion=f"Use a value <= {format_bound(c.max)}",
        ))
    return issues


PATTERN_HINTS = {
    "sku": 'Use alphanumeric characters, hyphens, and underscores (e.g., "HP-001")',
    "ean": 'Use 8-14 digits (e.g., "1234567890123")',
    "phone": 'Use format like "+1-555-123-4567"',
    "url": 'Use format like "https://example.com"',
}


def validate_text(field_key, value, descriptor, row, column) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    c = descriptor.constraints

    if c.min_length and len(value) < c.min_length:
        issues.append(_issue(
            field_key, row, column, "text_too_short", "error",
            f"Must be at least {c.min_length} characters long", value,
            suggestion=f"Add more characters (current: {len(value)})",
        ))

    if c.max_length and len(value) > c.max_length:
        issues.append(_issue(
            field_key, row, column, "text_too_long", "warning",
            f"Exceeds maximum length of {c.max_length} characters", value,
            suggestion=f"Shorten text (current: {len(value)})",
            auto_fixable=True,
        ))

    if c.pattern and not re.search(c.pattern, value):
        issues.append(_issue(
            field_key, row, column, "text_pattern_mismatch", "error",
            "Invalid format", value,
            suggestion=PATTERN_HINTS.get(field_key, "Check the required format"),
        ))

    return issues


def validate_enum(field_key, value, descriptor, row, column) -> List[ValidationIssue]:
    allowed = descriptor.constraints.allowed_values
    if value.lower() in {v.lower() for v in allowed}:
        return []

    match = closest_match(value, allowed)
    return [_issue(
        field_key, row, column, "enum_invalid", "error",
        f"Invalid value. Allowed: {', '.join(allowed)}", value,
        suggestion=f'Did you mean "{match}"?' if match else f"Use one of: {', '.join(allowed)}",
        auto_fixable=match is not None,
    )]


def validate_date(field_key, value, descriptor, row, column) -> List[ValidationIssue]:
    if parse_iso_date(value) is not None:
        return []
    return [_issue(
        field_key, row, column, "date_invalid", "error",
        "Invalid date format", value,
        suggestion="Use format YYYY-MM-DD (e.g., 2024-01-15)",
        auto_fixable=matches_alternate_date_layout(value),
    )]


def validate_array(field_key, value, descriptor, row, column) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    items = split_items(value)

    if not items:
        issues.append(_issue(
            field_key, row, column, "array_empty", "warning",
            "Empty list - no items found", value,
            suggestion='Use comma-separated values like "item1, item2, item3"',
        ))

    if len(set(items)) != len(items):
        issues.append(_issue(
            field_key, row, column, "array_duplicates", "warning",
            "Duplicate items found in list", value,
            suggestion="Remove duplicate items",
            auto_fixable=True,
        ))

    return issues


TYPE_VALIDATORS: Dict[FieldType, TypeValidator] = {
    FieldType.NUMBER: validate_number,
    FieldType.INTEGER: validate_integer,
    FieldType.TEXT: validate_text,
    FieldType.ENUM: validate_enum,
    FieldType.DATE: validate_date,
    FieldType.ARRAY: validate_array,
}


# === Business rules ===

def validate_unique_key(value, descriptor, row, column, state: PassState) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    label = descriptor.label

    if value in state.existing_keys:
        issues.append(_issue(
            descriptor.key, row, column, "unique_key_exists", "error",
            f"{label} already exists in database", value,
            suggestion=f'Try "{value}-V2" or "{value}-NEW"',
        ))

    seen = state.seen(descriptor.key)
    if value in seen:
        issues.append(_issue(
            descriptor.key, row, column, "unique_key_duplicate", "error",
            f"Duplicate {label} in this import", value,
            suggestion=f"Each {label} must be unique",
        ))
    else:
        seen.add(value)

    return issues


def validate_monetary(value, descriptor, row, column, state: PassState) -> List[ValidationIssue]:
    parsed = parse_decimal(normalize_decimal_separator(value))
    if parsed is None:
        return []

    issues: List[ValidationIssue] = []
    if parsed < Decimal(str(settings.PRICE_LOW_THRESHOLD)):
        issues.append(_issue(
            descriptor.key, row, column, "price_low", "warning",
            f"{descriptor.label} seems unusually low", value,
            suggestion="Please verify this price is correct",
        ))
    if parsed > Decimal(str(settings.PRICE_HIGH_THRESHOLD)):
        issues.append(_issue(
            descriptor.key, row, column, "price_high", "warning",
            f"{descriptor.label} seems unusually high", value,
            suggestion="Please verify this price is correct",
        ))
    return issues


_EMAIL_SHAPE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_EMAIL_ADAPTER = TypeAdapter(EmailStr)


def is_email_shaped(value: str) -> bool:
    return bool(_EMAIL_SHAPE.match(value))


def is_deliverable_looking(value: str) -> bool:
    # email-validator also refuses reserved domains such as .test and .local
    try:
        _EMAIL_ADAPTER.validate_python(value)
    except ValidationError:
        return False
    return True


def validate_email(value, descriptor, row, column, state: PassState) -> List[ValidationIssue]:
    if not is_email_shaped(value):
        return [_issue(
            descriptor.key, row, column, "email_invalid", "error",
            "Invalid email format", value,
            suggestion='Use format like "user@example.com"',
        )]
    if not is_deliverable_looking(value):
        return [_issue(
            descriptor.key, row, column, "email_unusual", "warning",
            "Email address may not be reachable", value,
            suggestion="Please verify this address",
        )]
    return []


DEFAULT_BUSINESS_RULES: Dict[str, BusinessRule] = {
    "sku": validate_unique_key,
    "price": validate_monetary,
    "priceWithTax": validate_monetary,
    "wholesalePrice": validate_monetary,
    "email": validate_email,
}


def validate_field(
    field_key: str,
    raw_value: Optional[str],
    descriptor: FieldDescriptor,
    row: int,
    column: str,
    state: PassState,
    rules: Dict[str, BusinessRule],
) -> List[ValidationIssue]:
    """Type check, then the field's business rule if one is registered."""
    value = (raw_value or "").strip()

    if not value:
        if descriptor.required:
            return [_issue(
                field_key, row, column, "required_empty", "error",
                f'Required field "{descriptor.label}" is empty', value,
                suggestion="Provide a value for this required field",
            )]
        return []

    issues = TYPE_VALIDATORS[descriptor.type](field_key, value, descriptor, row, column)

    rule = rules.get(field_key)
    if rule is not None:
        issues.extend(rule(value, descriptor, row, column, state))

    return issues
