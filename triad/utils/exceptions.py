"""
Custom exceptions for Triad.

All application-specific exceptions inherit from TriadError.
"""

from typing import Optional


class TriadError(Exception):
    """Base exception for all Triad errors."""
    
    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[str] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details
        self.recoverable = recoverable
    
    def to_dict(self, safe: bool = False) -> dict:
        """Convert exception to dictionary for API responses.
        
        Args:
            safe: If True, omit internal details (use in production).
        """
        result = {
            "error": {
                "code": self.code,
                "message": self.message,
                "recoverable": self.recoverable,
            }
        }
        if not safe and self.details:
            result["error"]["details"] = self.details
        return result


# --- LLM Errors ---

class LLMError(TriadError):
    """Errors related to language-model calls."""
    pass


class LLMTimeoutError(LLMError):
    """Model invocation timed out."""
    
    def __init__(self, model: str, timeout: float):
        super().__init__(
            message=f"LLM inference timed out after {timeout}s",
            code="LLM_TIMEOUT",
            details=f"Model: {model}",
            recoverable=True,
        )


class LLMConnectionError(LLMError):
    """Cannot connect to the model provider."""
    
    def __init__(self, provider: str, details: Optional[str] = None):
        super().__init__(
            message=f"Cannot connect to LLM provider: {provider}",
            code="LLM_CONNECTION_ERROR",
            details=details,
            recoverable=True,
        )


class LLMRateLimitError(LLMError):
    """Provider rejected the call with a rate limit or overload status."""
    
    def __init__(self, provider: str, status_code: int, retry_after: Optional[float] = None):
        super().__init__(
            message=f"{provider} is rate limiting requests (HTTP {status_code})",
            code="LLM_RATE_LIMITED",
            recoverable=True,
        )
        self.retry_after = retry_after


class LLMAuthenticationError(LLMError):
    """Missing or rejected credentials."""
    
    def __init__(self, provider: str):
        super().__init__(
            message=f"Authentication with {provider} failed",
            code="LLM_AUTH_ERROR",
            details="Check the configured API key",
            recoverable=False,
        )


class LLMModelNotFoundError(LLMError):
    """Requested model not available."""
    
    def __init__(self, model: str):
        super().__init__(
            message=f"Model not found: {model}",
            code="LLM_MODEL_NOT_FOUND",
            recoverable=False,
        )


class LLMServerError(LLMError):
    """Provider failed with a 5xx status; safe to retry."""
    
    def __init__(self, provider: str, status_code: int):
        super().__init__(
            message=f"{provider} returned HTTP {status_code}",
            code="LLM_SERVER_ERROR",
            recoverable=True,
        )


class LLMResponseError(LLMError):
    """Provider returned an error status or an undecodable body."""
    
    def __init__(self, model: str, reason: str, recoverable: bool = False):
        super().__init__(
            message=f"Model call failed: {reason}",
            code="LLM_RESPONSE_ERROR",
            details=f"Model: {model}",
            recoverable=recoverable,
        )


# --- Knowledge Source Errors ---

class KnowledgeSourceError(TriadError):
    """Errors related to the external knowledge source."""
    pass


class KnowledgeSourceTimeoutError(KnowledgeSourceError):
    """Lookup timed out."""
    
    def __init__(self, target: str, timeout: float):
        super().__init__(
            message=f"Knowledge source lookup timed out after {timeout}s",
            code="KNOWLEDGE_TIMEOUT",
            details=f"Target: {target}",
            recoverable=True,
        )


class KnowledgeSourceConnectionError(KnowledgeSourceError):
    """Cannot reach the knowledge source."""
    
    def __init__(self, provider: str, details: Optional[str] = None):
        super().__init__(
            message=f"Cannot connect to knowledge source: {provider}",
            code="KNOWLEDGE_CONNECTION_ERROR",
            details=details,
            recoverable=True,
        )


# --- Pipeline Errors ---

class PipelineError(TriadError):
    """Errors related to the agent pipeline."""
    pass


class PipelineCancelledError(PipelineError):
    """The consumer went away; no further events may be emitted."""
    
    def __init__(self):
        super().__init__(
            message="Pipeline run was cancelled",
            code="PIPELINE_CANCELLED",
            recoverable=False,
        )

