# agents/errors.py
"""
FitForge AI — Body Scan Errors
==============================
Typed failures raised by the body analysis pipeline.

Callers (API layer, tests) can catch ``BodyAnalysisError`` to handle every
pipeline failure at once. Only provider and extraction failures can happen
after the input has been accepted; validation, scoring and the signature
are total.
"""

from typing import List, Optional, Tuple

FRIENDLY_FAILURE_MESSAGE = (
    "Failed to analyze body composition. Please ensure photos are clear and well-lit."
)


class BodyAnalysisError(Exception):
    """
    Base class for body analysis failures.

    ``user_message`` is safe to show to end users; ``str(error)`` carries the
    technical detail for logs.
    """

    user_message = FRIENDLY_FAILURE_MESSAGE


class ScanInputError(BodyAnalysisError, ValueError):
    """
    Raised when the caller submits an unusable set of images.

    Typical causes:
      - No photos at all
      - More photos than the configured limit (front, side, back)
      - Empty or non-binary image payloads
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.user_message = message


class ProviderError(BodyAnalysisError):
    """
    Raised when the vision provider call fails.

    Typical causes:
      - Network failure or timeout
      - Missing / invalid API key
      - Quota exhausted
    """


class ExtractionError(BodyAnalysisError):
    """
    Raised when no extraction strategy recovers a JSON object from the
    provider text.

    Attributes:
      raw_sample: the provider text, truncated for diagnostics
      failures: (strategy_name, reason) for every strategy attempted
    """

    def __init__(self, raw_sample: str, failures: Optional[List[Tuple[str, str]]] = None):
        self.raw_sample = raw_sample
        self.failures = list(failures or [])
        reasons = "; ".join(f"{name}: {reason}" for name, reason in self.failures)
        super().__init__(f"Could not extract JSON from provider response ({reasons})")
