# catalog_import/core/exceptions.py

from typing import Any, Dict, List, Optional

from catalog_import.schemas.validation import ConfigurationProblem


class CatalogImportError(Exception):
    """
    Base error for the import engine.

    Carries enough structure to be rendered as an API response without the
    caller having to know which subclass it caught.
    """

    def __init__(
        self,
        message: str,
        code: str = "catalog_import_error",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.details:
            result["details"] = self.details
        return result


class ImportConfigurationError(CatalogImportError):
    """The mapping/descriptor setup is structurally wrong, so no row was validated."""

    def __init__(self, problems: List[ConfigurationProblem]):
        self.problems = list(problems)
        summary = "; ".join(p.message for p in self.problems)
        super().__init__(
            message=f"Import configuration is invalid: {summary}",
            code="configuration_error",
            status_code=422,
            details={"problems": [p.model_dump() for p in self.problems]},
        )
