"""
Generative Service Client

Boundary between the orchestration pipeline and the external generative
service. The pipeline depends only on the GenerativeService protocol;
ClaudeServiceClient implements it with claude_agent_sdk.

Example Usage:
    from applyflow.models.service import ContentPart, GenerationRequest
    from applyflow.utils.service_client import ClaudeServiceClient

    client = ClaudeServiceClient(timeout=60)
    response = await client.generate(
        GenerationRequest(
            parts=[ContentPart.from_text("Find Go developer roles in Pune")],
            use_search=True,
        )
    )
    print(response.text, [s.url for s in response.grounding_sources])

Failure classification:
    - rate limit / quota / overloaded  -> TransientServiceError (retried)
    - authentication                   -> ServiceAuthenticationError
    - not found                        -> ResourceNotFoundError, or
                                          TransientServiceError when lenient
    - timeout                          -> ServiceTimeoutError
    - anything else                    -> ServiceError
"""

import asyncio
import json
import re
from typing import Any, AsyncIterator, Optional, Protocol, Union

import structlog
from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ClaudeSDKClient,
    ClaudeSDKError,
    CLINotFoundError,
    ResultMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)

from applyflow.models.service import (
    GenerationRequest,
    GenerationResponse,
    GroundingSource,
)
from applyflow.utils.errors import (
    ResourceNotFoundError,
    ServiceAuthenticationError,
    ServiceError,
    ServiceTimeoutError,
    TransientServiceError,
)
from applyflow.utils.prompt_loader import get_default_loader
from applyflow.utils.rate_limiter import ServiceRateLimiter

logger = structlog.get_logger(__name__)

SEARCH_TOOLS = ["WebSearch", "WebFetch"]

_RATE_LIMIT_PATTERN = re.compile(
    r"rate[ _-]?limit|\b429\b|quota|resource[ _-]?exhausted|overloaded|\b529\b|too many requests",
    re.IGNORECASE,
)
_AUTH_PATTERN = re.compile(
    r"\b401\b|\b403\b|api[ _-]?key|authenticat|unauthori[sz]ed|permission denied|invalid x-api-key",
    re.IGNORECASE,
)
_NOT_FOUND_PATTERN = re.compile(r"\b404\b|not[ _-]?found", re.IGNORECASE)
_URL_PATTERN = re.compile(r"https?://[^\s\"'<>)\]]+")
_TITLE_URL_PATTERN = re.compile(
    r"\"title\"\s*:\s*\"(?P<title>[^\"]*)\"\s*,\s*\"url\"\s*:\s*\"(?P<url>https?://[^\"]+)\""
)

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert career assistant. Respond directly to the request "
    "with the requested content."
)


class GenerativeService(Protocol):
    """Anything that can answer a GenerationRequest."""

    async def generate(self, request: GenerationRequest) -> GenerationResponse: ...


def classify_service_error(
    error: Union[BaseException, str], lenient_not_found: bool = False
) -> ServiceError:
    """
    Map a raw service failure to the error taxonomy.

    Args:
        error: Exception raised by the SDK, or an error message from a result
        lenient_not_found: Treat not-found as a temporary condition

    Returns:
        ServiceError subclass instance carrying the original message
    """
    message = str(error) or type(error).__name__
    # ProcessError keeps the CLI's stderr separately; the status text lives there
    stderr = getattr(error, "stderr", None)
    if stderr:
        message = f"{message}: {stderr}"

    if isinstance(error, CLINotFoundError):
        return ServiceError(message)
    if _RATE_LIMIT_PATTERN.search(message):
        return TransientServiceError(message)
    if _AUTH_PATTERN.search(message):
        return ServiceAuthenticationError(message)
    if _NOT_FOUND_PATTERN.search(message):
        if lenient_not_found:
            return TransientServiceError(f"Service syncing: {message}")
        return ResourceNotFoundError(message)
    return ServiceError(message)


def extract_grounding_sources(content: Any) -> list[GroundingSource]:
    """
    Pull cited URLs out of a search tool result.

    Args:
        content: ToolResultBlock content (string or list of content dicts)

    Returns:
        Sources in order of first appearance, deduplicated by URL
    """
    if content is None:
        return []
    if isinstance(content, str):
        text = content
    else:
        text = json.dumps(content, ensure_ascii=False)

    sources: list[GroundingSource] = []
    seen: set[str] = set()

    for match in _TITLE_URL_PATTERN.finditer(text):
        url = match.group("url")
        if url not in seen:
            seen.add(url)
            sources.append(GroundingSource(url=url, title=match.group("title")))

    for url in _URL_PATTERN.findall(text):
        url = url.rstrip(".,;")
        if url not in seen:
            seen.add(url)
            sources.append(GroundingSource(url=url))

    return sources


class ClaudeServiceClient:
    """GenerativeService backed by claude_agent_sdk."""

    def __init__(
        self,
        model: Optional[str] = None,
        timeout: float = 60.0,
        rate_limiter: Optional[ServiceRateLimiter] = None,
        lenient_not_found: bool = False,
        search_max_turns: int = 6,
    ):
        """
        Initialize the client.

        Args:
            model: Model override (None = SDK default)
            timeout: Upper bound in seconds for one call, retries excluded
            rate_limiter: Optional throttle acquired before each call
            lenient_not_found: Classify not-found failures as transient
            search_max_turns: Turn budget for search-grounded calls
        """
        self.model = model
        self.timeout = timeout
        self.rate_limiter = rate_limiter
        self.lenient_not_found = lenient_not_found
        self.search_max_turns = search_max_turns

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """
        Issue one request to the service.

        Raises:
            ServiceError: Classified failure (see module docstring)
        """
        log = logger.bind(
            use_search=request.use_search,
            has_schema=request.response_schema is not None,
            has_binary=request.has_binary,
        )

        if self.rate_limiter is not None:
            await self.rate_limiter.acquire(self.model)

        log.debug("Service call initiated", parts=len(request.parts))
        try:
            response = await asyncio.wait_for(self._run(request), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            log.error("Service call timed out", timeout=self.timeout)
            raise ServiceTimeoutError(
                f"Service call exceeded {self.timeout:.0f}s timeout"
            ) from e
        except ServiceError:
            raise
        except (ClaudeSDKError, OSError, RuntimeError, ValueError) as e:
            classified = classify_service_error(e, self.lenient_not_found)
            log.error(
                "Service call failed",
                error=str(e),
                error_type=type(e).__name__,
                classified_as=type(classified).__name__,
            )
            raise classified from e
        except Exception as e:
            # Unclassified: surfaced as a plain ServiceError, never retried
            log.error(
                "Unexpected service client failure",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ServiceError(
                f"Unexpected {type(e).__name__} from service client: {e}"
            ) from e

        log.debug(
            "Service call succeeded",
            response_length=len(response.text),
            grounding_sources=len(response.grounding_sources),
        )
        return response

    def _options(self, request: GenerationRequest) -> ClaudeAgentOptions:
        system_prompt = request.system_prompt or DEFAULT_SYSTEM_PROMPT
        if request.response_schema is not None:
            schema_prompt = get_default_loader().get_system_prompt(
                "structured_output",
                schema=json.dumps(request.response_schema, indent=2),
            )
            system_prompt = f"{system_prompt}\n\n{schema_prompt}"

        return ClaudeAgentOptions(
            allowed_tools=list(SEARCH_TOOLS) if request.use_search else [],
            max_turns=self.search_max_turns if request.use_search else 1,
            system_prompt=system_prompt,
            model=self.model,
            setting_sources=None,  # Isolated context
        )

    def _build_prompt(
        self, request: GenerationRequest
    ) -> Union[str, AsyncIterator[dict[str, Any]]]:
        """Plain string for text-only requests, streamed message for binary ones."""
        if not request.has_binary:
            return "\n\n".join(part.text or "" for part in request.parts)

        blocks: list[dict[str, Any]] = []
        for part in request.parts:
            if part.kind == "binary":
                blocks.append(
                    {
                        "type": "document",
                        "source": {
                            "type": "base64",
                            "media_type": part.media_type,
                            "data": part.encoded(),
                        },
                    }
                )
            else:
                blocks.append({"type": "text", "text": part.text})

        async def _messages() -> AsyncIterator[dict[str, Any]]:
            yield {
                "type": "user",
                "message": {"role": "user", "content": blocks},
                "parent_tool_use_id": None,
                "session_id": "default",
            }

        return _messages()

    async def _run(self, request: GenerationRequest) -> GenerationResponse:
        final_text = ""
        search_tool_ids: set[str] = set()
        sources: list[GroundingSource] = []
        seen_urls: set[str] = set()

        async with ClaudeSDKClient(options=self._options(request)) as client:
            await client.query(self._build_prompt(request))

            async for message in client.receive_response():
                if isinstance(message, AssistantMessage):
                    texts = []
                    for block in message.content:
                        if isinstance(block, TextBlock):
                            texts.append(block.text)
                        elif isinstance(block, ToolUseBlock) and block.name in SEARCH_TOOLS:
                            search_tool_ids.add(block.id)
                    # Keep the last assistant turn that produced text
                    if texts:
                        final_text = "".join(texts)

                elif isinstance(message, UserMessage) and isinstance(
                    message.content, list
                ):
                    for block in message.content:
                        if (
                            isinstance(block, ToolResultBlock)
                            and block.tool_use_id in search_tool_ids
                            and not block.is_error
                        ):
                            for source in extract_grounding_sources(block.content):
                                if source.url not in seen_urls:
                                    seen_urls.add(source.url)
                                    sources.append(source)

                elif isinstance(message, ResultMessage) and message.is_error:
                    detail = message.result or message.subtype
                    raise classify_service_error(detail, self.lenient_not_found)

        return GenerationResponse(text=final_text.strip(), grounding_sources=sources)
