"""Exception hierarchy for the datatransform package."""


class DataTransformError(Exception):
    """Base exception for all datatransform errors."""

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class JobError(DataTransformError):
    """Raised when job file parsing or validation fails."""

    pass


class StorageError(DataTransformError):
    """Raised when a filesystem operation fails."""

    pass


# ----------------------------------------------------------------------------
# Specification errors (always fatal, raised before any pass runs)
# ----------------------------------------------------------------------------


class SpecError(DataTransformError):
    """Raised when a transformation specification is invalid."""

    pass


class UnknownColumnError(SpecError):
    """Raised when the specification references a column not in the header."""

    pass


class UnsupportedMethodError(SpecError):
    """Raised for unknown or intentionally unsupported transformation methods."""

    pass


class InvalidSpecError(SpecError):
    """Raised for bad parameters or unsupported method combinations."""

    pass


# ----------------------------------------------------------------------------
# Metadata errors (missing or corrupt artifacts at apply time)
# ----------------------------------------------------------------------------


class MetadataError(DataTransformError):
    """Raised when transformation metadata cannot be used."""

    pass


class MissingMetadataError(MetadataError):
    """Raised when a metadata artifact required for a column is absent."""

    pass


class CorruptMetadataError(MetadataError):
    """Raised when a metadata artifact exists but cannot be parsed."""

    pass


class MetadataMismatchError(MetadataError):
    """Raised when persisted metadata does not fit the input being applied."""

    pass


# ----------------------------------------------------------------------------
# Data errors (fatal per row, never skipped)
# ----------------------------------------------------------------------------


class DataError(DataTransformError):
    """Raised when input data cannot be processed."""

    pass


class MalformedHeaderError(DataError):
    """Raised when the sample file header is empty, unreadable or ambiguous."""

    pass


class MalformedRowError(DataError):
    """Raised when a row does not split into the expected number of tokens."""

    pass


class MalformedValueError(DataError):
    """Raised when a token cannot be interpreted as a number."""

    pass


class UnknownCategoryError(DataError):
    """Raised when a category never seen during fit is recoded."""

    pass


class DivideByZeroError(DataError):
    """Raised when z-score scaling meets a zero standard deviation."""

    pass


class EngineError(DataTransformError):
    """Raised by the orchestrator, tagged with the failing pipeline phase."""

    def __init__(self, message: str, phase: str, context: dict | None = None):
        super().__init__(message, context={"phase": phase, **(context or {})})
        self.phase = phase
