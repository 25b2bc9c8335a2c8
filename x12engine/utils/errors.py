"""Exception classes raised by the X12 engine.

Parsing and validation never raise on malformed input; they report
``X12Issue`` records instead. Exceptions are reserved for caller mistakes on
the write path and for unsupported mapping requests.
"""
from typing import Any, Dict, Optional


class X12EngineError(Exception):
    """Base engine error."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or "X12_ENGINE_ERROR"
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for CLI and log output."""
        return {"error": self.code, "message": self.message, "details": self.details}


class GenerationError(X12EngineError):
    """Write-path precondition violation."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="GENERATION_ERROR", details=details)


class UnsupportedTransactionSetError(GenerationError):
    """No builder is registered for the requested transaction set code."""

    def __init__(self, transaction_set_code: str):
        super().__init__(
            message=f"Transaction set {transaction_set_code} is not supported",
            details={"transaction_set_code": transaction_set_code},
        )
        self.code = "UNSUPPORTED_TRANSACTION_SET"


class MappingError(X12EngineError):
    """Canonical mapping requested for a record with no mapping."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="MAPPING_ERROR", details=details)
