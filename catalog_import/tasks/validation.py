# catalog_import/tasks/validation.py

import asyncio
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Union

from catalog_import.core.config import settings
from catalog_import.core.exceptions import ImportConfigurationError
from catalog_import.schemas.fields import (
    Dataset,
    DescriptorRegistry,
    FieldDescriptor,
    FieldMapping,
    PRODUCT_FIELD_REGISTRY,
    as_registry,
)
from catalog_import.schemas.validation import (
    ConfigurationProblem,
    RowValidationResult,
    ValidationIssue,
    ValidationResult,
    ValidationSummary,
)
from catalog_import.schemas.validators import (
    DEFAULT_BUSINESS_RULES,
    BusinessRule,
    PassState,
    validate_field,
)

logger = logging.getLogger(__name__)

Descriptors = Union[Mapping[str, FieldDescriptor], Iterable[FieldDescriptor]]


def active_mapping(mapping: FieldMapping) -> Dict[str, str]:
    """Drop columns the user left unmapped (blank target)."""
    return {column: field_key for column, field_key in mapping.items() if field_key}


def check_configuration(
    headers: List[str],
    mapping: Dict[str, str],
    registry: DescriptorRegistry,
) -> None:
    """
    Raise ImportConfigurationError listing every structural problem at once:
    columns missing from the file, targets with no descriptor, and targets
    mapped more than once.
    """
    problems: List[ConfigurationProblem] = []
    header_set = set(headers)
    targeted: Dict[str, str] = {}

    for column, field_key in mapping.items():
        if column not in header_set:
            problems.append(ConfigurationProblem(
                code="unknown_column",
                message=f'Mapped column "{column}" is not present in the file headers',
                column=column,
                field=field_key,
            ))
        if field_key not in registry:
            problems.append(ConfigurationProblem(
                code="unknown_field",
                message=f'Column "{column}" is mapped to unknown field "{field_key}"',
                column=column,
                field=field_key,
            ))
        if field_key in targeted:
            problems.append(ConfigurationProblem(
                code="duplicate_target",
                message=f'Field "{field_key}" is mapped from both "{targeted[field_key]}" and "{column}"',
                column=column,
                field=field_key,
            ))
        else:
            targeted[field_key] = column

    if problems:
        logger.warning(f"Rejected import configuration with {len(problems)} problem(s)")
        raise ImportConfigurationError(problems)


def map_row(row: List[str], positions: Dict[str, int], mapping: Dict[str, str]) -> Dict[str, str]:
    """Project raw cells onto target field keys. Cells past the end of a short row read as blank."""
    data: Dict[str, str] = {}
    for column, field_key in mapping.items():
        index = positions[column]
        data[field_key] = row[index] if index < len(row) else ""
    return data


def build_summary(rows: List[RowValidationResult], issues: List[ValidationIssue]) -> ValidationSummary:
    errors = [i for i in issues if i.severity == "error"]
    warnings = [i for i in issues if i.severity == "warning"]
    return ValidationSummary(
        total_rows=len(rows),
        valid_rows=sum(1 for r in rows if r.is_valid),
        error_count=len(errors),
        warning_count=len(warnings),
        error_rows=sorted({i.row for i in errors}),
        warning_rows=sorted({i.row for i in warnings}),
    )


class ValidationPass:
    """
    One run of the engine over one dataset.

    Construction checks the configuration; everything mutable (the
    uniqueness tracking) lives on this object and dies with it.
    """

    def __init__(
        self,
        dataset: Dataset,
        mapping: FieldMapping,
        descriptors: Optional[Descriptors] = None,
        existing_keys: Optional[Iterable[str]] = None,
        rules: Optional[Mapping[str, BusinessRule]] = None,
    ):
        self.dataset = dataset
        self.registry = as_registry(descriptors if descriptors is not None else PRODUCT_FIELD_REGISTRY)
        self.mapping = active_mapping(mapping)
        check_configuration(dataset.headers, self.mapping, self.registry)

        # First occurrence wins when a header is repeated
        self.positions: Dict[str, int] = {}
        for index, header in enumerate(dataset.headers):
            self.positions.setdefault(header, index)

        targeted = set(self.mapping.values())
        self.unmapped_required = [
            d for key, d in self.registry.items() if d.required and key not in targeted
        ]
        self.rules = dict(DEFAULT_BUSINESS_RULES if rules is None else rules)
        self.state = PassState(existing_keys)

    def validate_row(self, row_index: int, row: List[str]) -> RowValidationResult:
        data = map_row(row, self.positions, self.mapping)
        issues: List[ValidationIssue] = []

        for column, field_key in self.mapping.items():
            issues.extend(validate_field(
                field_key,
                data[field_key],
                self.registry[field_key],
                row_index,
                column,
                self.state,
                self.rules,
            ))

        for descriptor in self.unmapped_required:
            issues.append(ValidationIssue(
                row=row_index,
                column=descriptor.key,
                field=descriptor.key,
                code="required_unmapped",
                severity="error",
                message=f'Required field "{descriptor.label}" is not mapped',
                value="",
                suggestion=f"Map a CSV column to {descriptor.label}",
            ))

        return RowValidationResult(
            row_index=row_index,
            data=data,
            is_valid=not any(i.severity == "error" for i in issues),
            issues=issues,
        )

    def finish(self, rows: List[RowValidationResult]) -> ValidationResult:
        issues = [issue for r in rows for issue in r.issues]
        summary = build_summary(rows, issues)
        logger.info(
            f"Validated {summary.total_rows} rows: {summary.valid_rows} valid, "
            f"{summary.error_count} errors, {summary.warning_count} warnings"
        )
        return ValidationResult(
            is_valid=summary.error_count == 0,
            rows=rows,
            issues=issues,
            summary=summary,
        )


def validate_data(
    dataset: Dataset,
    mapping: FieldMapping,
    descriptors: Optional[Descriptors] = None,
    existing_keys: Optional[Iterable[str]] = None,
    rules: Optional[Mapping[str, BusinessRule]] = None,
) -> ValidationResult:
    """
    Validate every row of `dataset` against the mapped field descriptors.

    `existing_keys` are identifiers already in the catalog; `rules` replaces
    the default business-rule registry when given. Raises
    ImportConfigurationError if the mapping cannot be applied.
    """
    run = ValidationPass(dataset, mapping, descriptors, existing_keys, rules)
    rows = [run.validate_row(index, row) for index, row in enumerate(dataset.rows)]
    return run.finish(rows)


async def validate_data_async(
    dataset: Dataset,
    mapping: FieldMapping,
    descriptors: Optional[Descriptors] = None,
    existing_keys: Optional[Iterable[str]] = None,
    rules: Optional[Mapping[str, BusinessRule]] = None,
    chunk_size: Optional[int] = None,
) -> ValidationResult:
    """Same result as validate_data, handing control back to the loop between chunks."""
    chunk_size = chunk_size or settings.VALIDATION_CHUNK_SIZE
    run = ValidationPass(dataset, mapping, descriptors, existing_keys, rules)

    rows: List[RowValidationResult] = []
    for start in range(0, len(dataset.rows), chunk_size):
        for offset, row in enumerate(dataset.rows[start:start + chunk_size]):
            rows.append(run.validate_row(start + offset, row))
        await asyncio.sleep(0)

    return run.finish(rows)
