"""
Prompt template loader.

Loads .md prompt templates from radar/prompts/ and renders them
by substituting {{VARIABLE_NAME}} placeholders.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

_PROMPTS_DIR = Path(__file__).parent

_PLACEHOLDER_RE = re.compile(r"\{\{([A-Z_][A-Z0-9_]*)\}\}")


@lru_cache(maxsize=16)
def load_prompt(template_name: str) -> str:
    """Load a prompt template by name (file name without ``.md``).

    Raises:
        FileNotFoundError: If the template file does not exist.
    """
    path = _PROMPTS_DIR / f"{template_name}.md"
    if not path.is_file():
        available = sorted(p.stem for p in _PROMPTS_DIR.glob("*.md"))
        raise FileNotFoundError(
            f"Prompt template '{template_name}' not found at {path}. "
            f"Available templates: {available}"
        )
    return path.read_text(encoding="utf-8")


def render_prompt(template_name: str, **variables: str) -> str:
    """Load a template and fill in {{VARIABLE}} placeholders.

    Uses plain string replacement so JSON braces in templates are left
    alone. Placeholders are checked against the template before
    substitution, so values that happen to contain ``{{...}}`` (scraped
    page text, feed titles) are inserted verbatim.

    Raises:
        FileNotFoundError: If the template file does not exist.
        ValueError: If a placeholder in the template has no value.
    """
    template = load_prompt(template_name)
    placeholders = set(_PLACEHOLDER_RE.findall(template))
    missing = placeholders - set(variables)
    if missing:
        raise ValueError(
            f"Unfilled placeholders in template '{template_name}': "
            f"{sorted(missing)}. "
            f"Provide these as keyword arguments."
        )
    for var_name in variables:
        if var_name not in placeholders:
            logger.warning(
                "Variable '%s' provided but not found in template '%s'",
                var_name,
                template_name,
            )
    return _PLACEHOLDER_RE.sub(
        lambda m: str(variables[m.group(1)]) if m.group(1) in variables else m.group(0),
        template,
    )
