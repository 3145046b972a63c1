"""
Prompt templates.

Every prompt sent to the generative service is a Jinja2 template under
applyflow/prompts/:

    profile/   resume extraction
    jobs/      discovery (search turn) and structuring
    application/  drafting
    base/      system prompts, loaded with get_system_prompt()

Undefined variables are always an error: a prompt that silently lost the
candidate's headline or the raw listings would still get an answer, just a
wrong one. Narrative text is substituted verbatim.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import structlog
from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

logger = structlog.get_logger(__name__)


class PromptLoader:
    """Renders templates from one prompts directory."""

    def __init__(self, template_dir: Optional[Path] = None) -> None:
        self.template_dir = Path(template_dir) if template_dir else PROMPTS_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def render(
        self,
        template_name: str,
        correlation_id: Optional[str] = None,
        **variables: Any,
    ) -> str:
        """
        Render a template with provided variables.

        Args:
            template_name: Path relative to the prompts directory (e.g., "jobs/structuring.j2")
            correlation_id: Optional correlation ID for logging
            **variables: Template variables

        Raises:
            jinja2.TemplateError: Missing template, syntax error or undefined variable
        """
        log = logger.bind(template_name=template_name, correlation_id=correlation_id)
        try:
            rendered = self.env.get_template(template_name).render(**variables)
        except TemplateError as e:
            log.error(
                "Prompt rendering failed",
                error=str(e),
                error_type=type(e).__name__,
                template_dir=str(self.template_dir),
                variables_provided=sorted(variables),
            )
            raise

        log.debug("Prompt rendered", rendered_length=len(rendered))
        return rendered

    def get_system_prompt(
        self,
        prompt_type: str,
        correlation_id: Optional[str] = None,
        **variables: Any,
    ) -> str:
        """Render base/<prompt_type>.j2."""
        return self.render(
            f"base/{prompt_type}.j2", correlation_id=correlation_id, **variables
        )


@lru_cache(maxsize=None)
def get_default_loader() -> PromptLoader:
    """Loader for the packaged prompts, created on first use."""
    return PromptLoader()


def render_prompt(
    template_name: str,
    correlation_id: Optional[str] = None,
    **variables: Any,
) -> str:
    return get_default_loader().render(
        template_name, correlation_id=correlation_id, **variables
    )
