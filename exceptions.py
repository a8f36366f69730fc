"""Exception hierarchy for pain.008 generation."""

from typing import List, Optional


class SepaError(Exception):
    """Base exception for all direct debit generation errors."""


class FieldValidationError(SepaError, ValueError):
    """One or more field rules were violated."""

    def __init__(self, report, message: str = "Field validation failed") -> None:
        self.report = report
        details = "; ".join(report.messages())
        super().__init__(f"{message}: {details}" if details else message)


class SchemaValidationError(SepaError):
    """Post-render schema check failed. The produced document is kept in ``document``."""

    def __init__(self, message: str, document: Optional[str] = None) -> None:
        self.document = document
        super().__init__(message)


class SchemaFileMissingError(SchemaValidationError):
    """The configured schema directory has no XSD for the requested version."""

    def __init__(self, path: str, document: Optional[str] = None) -> None:
        self.path = path
        super().__init__(f"Schema file {path} was not found.", document)


class SchemaConformanceError(SchemaValidationError):
    """The generated document does not conform to the XSD."""

    def __init__(self, errors: List[str], document: Optional[str] = None) -> None:
        self.errors = list(errors)
        summary = self.errors[0] if self.errors else "unknown error"
        super().__init__(f"Generated document is invalid ({len(self.errors)} error(s)): {summary}", document)
