# catalog_import/schemas/validation.py

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Literal, Dict, Any

Severity = Literal["error", "warning"]


class ValidationIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    row: int
    column: str
    field: str
    code: str
    severity: Severity
    message: str
    value: str = ""
    suggestion: Optional[str] = None
    auto_fixable: bool = False


class RowValidationResult(BaseModel):
    row_index: int
    data: Dict[str, Any] = {}
    is_valid: bool
    issues: List[ValidationIssue] = []


class ValidationSummary(BaseModel):
    total_rows: int
    valid_rows: int
    error_count: int
    warning_count: int
    error_rows: List[int] = []
    warning_rows: List[int] = []


class ValidationResult(BaseModel):
    is_valid: bool
    rows: List[RowValidationResult] = []
    issues: List[ValidationIssue] = []
    summary: ValidationSummary


class FixPreview(BaseModel):
    before: str
    after: str


class AutoFixSuggestion(BaseModel):
    issue_id: str
    issue: ValidationIssue
    description: str
    preview: FixPreview
    confidence: float = Field(ge=0.0, le=1.0)
    applicable: bool = True


class AutoFixBatch(BaseModel):
    suggestions: List[AutoFixSuggestion] = []
    total_affected_rows: int = 0
    estimated_time: int = 0


class ConfigurationProblem(BaseModel):
    code: Literal["unknown_column", "unknown_field", "duplicate_target"]
    message: str
    column: Optional[str] = None
    field: Optional[str] = None


class ImportValidationRequest(BaseModel):
    headers: List[str]
    rows: List[List[Optional[str]]] = []
    mapping: Dict[str, Optional[str]]  # {"CSV Header": "fieldKey"}
    existing_keys: List[str] = []
