from typing import Optional, Any

class SolError(Exception):
    """
    Base exception for the Sol backend.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class ResourceNotFoundError(SolError):
    """
    Raised when a requested resource (user, visioning record) is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)

class ValidationError(SolError):
    """
    Raised when input validation fails.
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)

class ExternalServiceError(SolError):
    """
    Raised when an external service (Airtable, OpenAI) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None, code: str = "EXTERNAL_SERVICE_ERROR"):
        super().__init__(message, code=code, status_code=502, details=details)

class StoreError(ExternalServiceError):
    """
    Raised when an Airtable request fails or returns a non-2xx status.
    """
    def __init__(self, message: str = "Airtable request failed", status: Optional[int] = None, details: Optional[Any] = None):
        self.status = status
        super().__init__(message, details=details, code="STORE_ERROR")

class LLMServiceError(ExternalServiceError):
    """
    Raised when a chat completion call fails.
    """
    def __init__(self, message: str = "Language model request failed", details: Optional[Any] = None):
        super().__init__(message, details=details, code="LLM_ERROR")

class ExtractionError(SolError):
    """
    Raised when insight extraction cannot produce a parseable result.
    """
    def __init__(self, message: str = "Insight extraction failed", details: Optional[Any] = None):
        super().__init__(message, code="EXTRACTION_FAILED", status_code=502, details=details)
