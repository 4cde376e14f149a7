"""Generative endpoint client, retry policy and response parsing."""

from .response import MalformedResponseError, parse_json_payload, strip_code_fence
from .retry import RetryAttempt, RetryPolicy, RetryTrace, call_with_retry, is_rate_limit_error
from .runner import LLMRequest, LLMRequestError, LLMRunner, RateLimitError

__all__ = [
    "LLMRequest",
    "LLMRequestError",
    "LLMRunner",
    "MalformedResponseError",
    "RateLimitError",
    "RetryAttempt",
    "RetryPolicy",
    "RetryTrace",
    "call_with_retry",
    "is_rate_limit_error",
    "parse_json_payload",
    "strip_code_fence",
]
