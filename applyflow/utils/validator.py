"""
Response Schema Validator Module
Validates structured service responses against JSON schemas.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from jsonschema import Draft7Validator, FormatChecker, ValidationError

from applyflow.utils.errors import SchemaValidationError

logger = structlog.get_logger(__name__)

DEFAULT_SCHEMA_DIR = Path(__file__).resolve().parent.parent / "schemas"


class ConfigurationError(Exception):
    """Raised when a schema file is missing or is not valid JSON."""

    pass


class SchemaValidator:
    """Validates parsed service output against JSON schemas."""

    def __init__(self, schema_dir: Optional[Path] = None):
        """
        Initialize validator with schema directory.

        Args:
            schema_dir: Path to directory containing JSON schemas
                (defaults to the package's schemas/ directory)
        """
        self.schema_dir = schema_dir or DEFAULT_SCHEMA_DIR
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Load JSON schema from file.

        Args:
            schema_name: Schema filename (e.g., "job_list.json")

        Returns:
            Loaded schema dictionary

        Raises:
            ConfigurationError: If schema file not found or invalid
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self.schema_dir / schema_name
        if not schema_path.exists():
            logger.error(
                "schema_not_found",
                schema_name=schema_name,
                schema_path=str(schema_path),
            )
            raise ConfigurationError(f"Schema file not found: {schema_path}")

        try:
            with open(schema_path, "r", encoding="utf-8") as f:
                schema = json.load(f)
            self._schemas[schema_name] = schema
            logger.debug(
                "schema_loaded", schema_name=schema_name, schema_path=str(schema_path)
            )
            return schema
        except json.JSONDecodeError as e:
            logger.error("schema_invalid_json", schema_name=schema_name, error=str(e))
            raise ConfigurationError(f"Invalid JSON in schema {schema_name}: {e}")

    def empty_value(self, schema_name: str) -> Any:
        """Empty instance of the schema's top-level type ([] or {})."""
        schema = self.load_schema(schema_name)
        return [] if schema.get("type") == "array" else {}

    def validate(self, instance: Any, schema_name: str) -> None:
        """
        Validate a parsed response against a schema.

        Args:
            instance: Parsed JSON value
            schema_name: Schema filename to validate against

        Raises:
            SchemaValidationError: If validation fails, with one message per error
        """
        schema = self.load_schema(schema_name)
        validator = Draft7Validator(schema, format_checker=FormatChecker())

        errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
        if not errors:
            logger.debug("validation_passed", schema_name=schema_name)
            return

        messages = self._format_validation_errors(errors)
        logger.warning(
            "validation_failed",
            schema_name=schema_name,
            error_count=len(errors),
            first_error=messages[0],
        )
        raise SchemaValidationError(
            f"Response does not match {schema_name}: {'; '.join(messages[:5])}",
            errors=messages,
        )

    def _format_validation_errors(self, errors: List[ValidationError]) -> List[str]:
        """
        Format validation errors into short messages.

        Args:
            errors: List of validation errors from jsonschema

        Returns:
            List of formatted error messages
        """
        messages = []

        for error in errors:
            path = " -> ".join([str(p) for p in error.absolute_path]) or "(root)"

            if error.validator == "required":
                missing_field = error.message.split("'")[1]
                messages.append(f"missing required field '{missing_field}' at {path}")
            elif error.validator == "type":
                messages.append(
                    f"type mismatch at '{path}': expected {error.validator_value}"
                )
            elif error.validator == "minLength":
                messages.append(f"value too short at '{path}'")
            elif error.validator == "minimum":
                messages.append(f"value too small at '{path}': {error.message}")
            else:
                messages.append(f"validation error at '{path}': {error.message}")

        return messages
