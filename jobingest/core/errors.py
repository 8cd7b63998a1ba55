"""Error types shared across extraction, AI and pipeline layers.

SchemaError and StepError each carry a kind from a closed enum so callers
can branch exhaustively on ``error.kind`` instead of on subclasses.
"""

from enum import Enum


class SchemaErrorKind(str, Enum):
    """Every way an AI structured-extraction call can fail."""

    MODEL_NOT_SUPPORTED = "model_not_supported"
    NETWORK_ERROR = "network_error"
    PARSE_ERROR = "parse_error"
    API_ERROR = "api_error"
    SCHEMA_CONVERSION_ERROR = "schema_conversion_error"
    CONFIGURATION_ERROR = "configuration_error"


class SchemaError(Exception):
    """Failure of an AI extraction call."""

    def __init__(
        self,
        kind: SchemaErrorKind,
        message: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    def __repr__(self) -> str:
        return f"SchemaError(kind={self.kind.value!r}, message={self.message!r})"

    @classmethod
    def model_not_supported(cls, message: str, cause: BaseException | None = None) -> "SchemaError":
        return cls(SchemaErrorKind.MODEL_NOT_SUPPORTED, message, cause)

    @classmethod
    def network(cls, message: str, cause: BaseException | None = None) -> "SchemaError":
        return cls(SchemaErrorKind.NETWORK_ERROR, message, cause)

    @classmethod
    def parse(cls, message: str, cause: BaseException | None = None) -> "SchemaError":
        return cls(SchemaErrorKind.PARSE_ERROR, message, cause)

    @classmethod
    def api(cls, message: str, cause: BaseException | None = None) -> "SchemaError":
        return cls(SchemaErrorKind.API_ERROR, message, cause)

    @classmethod
    def schema_conversion(cls, message: str, cause: BaseException | None = None) -> "SchemaError":
        return cls(SchemaErrorKind.SCHEMA_CONVERSION_ERROR, message, cause)

    @classmethod
    def configuration(cls, message: str, cause: BaseException | None = None) -> "SchemaError":
        return cls(SchemaErrorKind.CONFIGURATION_ERROR, message, cause)


class InputValidationError(ValueError):
    """Malformed or missing caller input (no URL host, unsupported file, ...)."""


class StepErrorKind(str, Enum):
    """Categories of pipeline step failure."""

    VALIDATION = "validation"
    EXTRACTION = "extraction"
    NETWORK = "network"
    SCHEMA = "schema"
    STORAGE = "storage"
    NOT_FOUND = "not_found"
    UNEXPECTED = "unexpected"


class StepError(Exception):
    """A pipeline step failed. This is what pipeline callers handle."""

    def __init__(
        self,
        kind: StepErrorKind,
        message: str,
        step_name: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.step_name = step_name
        self.cause = cause

    def __repr__(self) -> str:
        return (
            f"StepError(kind={self.kind.value!r}, step_name={self.step_name!r}, "
            f"message={self.message!r})"
        )
