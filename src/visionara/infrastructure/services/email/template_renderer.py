"""Jinja2 renderer for verification mail templates.

Templates run in a sandbox with HTML autoescaping on.
"""

from typing import Any

from jinja2 import TemplateSyntaxError, UndefinedError
from jinja2.sandbox import SandboxedEnvironment

from visionara.core.logging import get_logger

logger = get_logger(__name__)


class TemplateRenderer:
    """Renders template strings in a sandboxed Jinja2 environment."""

    def __init__(self) -> None:
        self.env = SandboxedEnvironment(
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_string: str, variables: dict[str, Any]) -> str:
        """Render a template string with variables.

        Args:
            template_string: Jinja2 template string.
            variables: Values to substitute.

        Returns:
            Rendered string.

        Raises:
            TemplateSyntaxError: If the template syntax is invalid.
            UndefinedError: If the template uses an attribute of a missing variable.
        """
        try:
            template = self.env.from_string(template_string)
            # Values may include a plaintext code; log names only
            rendered = template.render(**variables)
            logger.debug("Template rendered", variables=sorted(variables))
            return rendered
        except TemplateSyntaxError as e:
            logger.error("Template syntax error", error=str(e), line=e.lineno)
            raise
        except UndefinedError as e:
            logger.error("Undefined variable in template", error=str(e))
            raise


_template_renderer: TemplateRenderer | None = None


def get_template_renderer() -> TemplateRenderer:
    """Get the shared template renderer instance."""
    global _template_renderer
    if _template_renderer is None:
        _template_renderer = TemplateRenderer()
    return _template_renderer
