"""
Structured Extraction Client

Turns unstructured input plus an instruction into a schema-valid value by
delegating the reasoning to the generative service. The client is stateless
and may be used concurrently for independent inputs.
"""

import asyncio
import json
from typing import Any, Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError

from applyflow.models.config import RetryPolicy
from applyflow.models.service import ContentPart, GenerationRequest
from applyflow.utils.errors import ExtractionError, SchemaValidationError
from applyflow.utils.llm_helpers import (
    call_service_with_retry,
    extract_json_from_markdown,
)
from applyflow.utils.logger import get_logger
from applyflow.utils.retry import Sleep
from applyflow.utils.service_client import GenerativeService
from applyflow.utils.validator import SchemaValidator

M = TypeVar("M", bound=BaseModel)


class StructuredExtractionClient:
    """Schema-constrained requests to the generative service."""

    def __init__(
        self,
        service: GenerativeService,
        retry_policy: Optional[RetryPolicy] = None,
        validator: Optional[SchemaValidator] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize the extraction client.

        Args:
            service: Generative service implementation
            retry_policy: Policy for transient service failures
            validator: Schema validator (defaults to the package schemas)
            sleep: Awaitable sleep used between retries
        """
        self.service = service
        self.retry_policy = retry_policy or RetryPolicy()
        self.validator = validator or SchemaValidator()
        self.sleep = sleep

    async def extract(
        self,
        instruction: str,
        schema_name: str,
        content: Union[str, bytes, None] = None,
        media_type: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> Any:
        """
        Extract a structured value.

        Args:
            instruction: What to extract and how
            schema_name: Output schema file under applyflow/schemas/
            content: Plain text, or binary data (requires media_type)
            media_type: Media type of binary content (e.g. "application/pdf")
            correlation_id: Optional correlation ID for logging

        Returns:
            Parsed value conforming to the schema

        Raises:
            ServiceError: Service failed (transient failures already retried)
            SchemaValidationError: Response not JSON or violates the schema
        """
        logger = get_logger(
            correlation_id=correlation_id,
            phase="extraction",
            component="structured_extraction",
        )

        parts = [ContentPart.from_text(instruction)]
        if isinstance(content, bytes):
            if not media_type:
                raise ValueError("media_type is required for binary content")
            parts.append(ContentPart.from_bytes(content, media_type))
        elif content:
            parts.append(ContentPart.from_text(content))

        request = GenerationRequest(
            parts=parts,
            response_schema=self.validator.load_schema(schema_name),
        )

        logger.debug(
            "Structured extraction requested",
            schema_name=schema_name,
            binary=isinstance(content, bytes),
        )
        response = await call_service_with_retry(
            self.service,
            request,
            policy=self.retry_policy,
            sleep=self.sleep,
            operation=f"extract:{schema_name}",
            correlation_id=correlation_id,
        )

        result = self.parse(response.text, schema_name)
        logger.info(
            "Structured extraction complete",
            schema_name=schema_name,
            items=len(result) if isinstance(result, list) else None,
        )
        return result

    async def extract_model(
        self,
        model_cls: type[M],
        instruction: str,
        schema_name: str,
        content: Union[str, bytes, None] = None,
        media_type: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> M:
        """Extract and validate into a pydantic model (object schemas only)."""
        data = await self.extract(
            instruction,
            schema_name,
            content=content,
            media_type=media_type,
            correlation_id=correlation_id,
        )
        return to_model(model_cls, data)

    def parse(self, text: Optional[str], schema_name: str) -> Any:
        """
        Parse and validate response text.

        Empty text is treated as the schema's empty value ({} or []) so that
        an empty response fails on missing required fields like any other
        incomplete response.

        Raises:
            ExtractionError: No response text at all
            SchemaValidationError: Not JSON, or schema violation
        """
        if text is None:
            raise ExtractionError("Service returned no response")

        json_text = extract_json_from_markdown(text)
        if not json_text:
            data = self.validator.empty_value(schema_name)
        else:
            try:
                data = json.loads(json_text)
            except json.JSONDecodeError as e:
                raise SchemaValidationError(
                    f"Response is not valid JSON: {e.msg} at position {e.pos}",
                    errors=[str(e)],
                ) from e

        self.validator.validate(data, schema_name)
        return data


def to_model(model_cls: type[M], data: Any) -> M:
    """Validate parsed data into a model, mapping pydantic errors to SchemaValidationError."""
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        messages = [
            f"{'.'.join(str(p) for p in err['loc']) or '(root)'}: {err['msg']}"
            for err in e.errors()
        ]
        raise SchemaValidationError(
            f"Response does not match {model_cls.__name__}: {'; '.join(messages[:5])}",
            errors=messages,
        ) from e
