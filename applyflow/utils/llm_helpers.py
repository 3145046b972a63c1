"""
LLM Helpers Module

Shared plumbing for every call the pipeline makes to the generative service:
the retrying call wrapper and JSON extraction from response text.

Example Usage:
    from applyflow.utils.llm_helpers import call_service_with_retry

    response = await call_service_with_retry(
        service,
        GenerationRequest(parts=[ContentPart.from_text(prompt)], use_search=True),
        policy=params.retry,
        operation="job_discovery",
    )
"""

import asyncio
from typing import Optional

from applyflow.models.config import RetryPolicy
from applyflow.models.service import GenerationRequest, GenerationResponse
from applyflow.utils.retry import Sleep, run_with_retry
from applyflow.utils.service_client import GenerativeService


def extract_json_from_markdown(response_text: str) -> str:
    """Extract JSON from a response, removing markdown code block markers if present.

    Args:
        response_text: Raw text response from the service

    Returns:
        Clean JSON string with code block markers removed
    """
    json_text = response_text.strip()

    if json_text.startswith("```json"):
        json_text = json_text[7:]
    elif json_text.startswith("```"):
        json_text = json_text[3:]

    if json_text.endswith("```"):
        json_text = json_text[:-3]

    return json_text.strip()


async def call_service_with_retry(
    service: GenerativeService,
    request: GenerationRequest,
    policy: RetryPolicy,
    sleep: Sleep = asyncio.sleep,
    operation: str = "service_call",
    correlation_id: Optional[str] = None,
) -> GenerationResponse:
    """
    Call the service, retrying transient failures per policy.

    Args:
        service: Generative service implementation
        request: Request to send (re-sent unchanged on retry)
        policy: Retry policy
        sleep: Awaitable sleep between attempts
        operation: Name used in log events
        correlation_id: Optional correlation ID for logging

    Returns:
        First successful response

    Raises:
        ServiceError: Non-transient failure, or transient failure after the
            attempt budget is spent
    """
    return await run_with_retry(
        lambda: service.generate(request),
        policy=policy,
        sleep=sleep,
        operation=operation,
        correlation_id=correlation_id,
    )
