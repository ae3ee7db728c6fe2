"""
Summarization service package.

Usage: `from devrecap.services.summarizer import RecapSummarizer, call_with_retry`

Module structure:
- recap.py: Prompt construction, response parsing, error classification
- retry.py: Bounded retry loop driven by SummaryResult
- base.py: Anthropic client plumbing
- types.py: Request/payload/result types
"""

from devrecap.services.summarizer.base import BaseInterpreter, MalformedResponseError
from devrecap.services.summarizer.recap import RecapSummarizer, classify_api_error
from devrecap.services.summarizer.retry import MAX_RETRIES, RETRY_DELAYS, call_with_retry
from devrecap.services.summarizer.types import (
    FailureKind,
    SummaryPayload,
    SummaryRequest,
    SummaryResult,
)

__all__ = [
    "BaseInterpreter",
    "MalformedResponseError",
    "RecapSummarizer",
    "classify_api_error",
    "call_with_retry",
    "MAX_RETRIES",
    "RETRY_DELAYS",
    "FailureKind",
    "SummaryPayload",
    "SummaryRequest",
    "SummaryResult",
]
