"""
Static email notification templates.

Templates are stored as YAML (``data/email_templates.yaml``) with two
top-level keys:

- ``triggers``: event group -> status -> template name
- ``templates``: template name -> ``subject`` / ``text`` with ``{{field}}``
  placeholders filled from the triggering record
"""

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")

DEFAULT_TEMPLATES_PATH = "data/email_templates.yaml"


class EmailTemplateError(Exception):
    """Raised when the template file is missing or malformed."""


def resolve_templates_path(templates_path: Optional[str] = None) -> Path:
    """
    Resolve the template file path.

    Resolution order:
    1. Provided templates_path parameter
    2. WORKORDERPRO_EMAIL_TEMPLATES environment variable
    3. Default: <repo>/data/email_templates.yaml
    """
    path_str = templates_path or os.getenv("WORKORDERPRO_EMAIL_TEMPLATES") or DEFAULT_TEMPLATES_PATH
    path = Path(path_str)
    if not path.is_absolute():
        path = Path(__file__).resolve().parents[1] / path
    return path


@lru_cache(maxsize=8)
def _load_cached(path_str: str) -> Dict[str, Any]:
    path = Path(path_str)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise EmailTemplateError(f"Cannot read email templates: {path.name}") from e

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise EmailTemplateError(f"Invalid YAML in email templates: {e}") from e

    if not isinstance(data, dict):
        raise EmailTemplateError("Email templates must be a mapping")

    triggers = data.get("triggers") or {}
    templates = data.get("templates") or {}
    if not isinstance(triggers, dict) or not isinstance(templates, dict):
        raise EmailTemplateError("'triggers' and 'templates' must be mappings")

    for group, mapping in triggers.items():
        if not isinstance(mapping, dict):
            raise EmailTemplateError(f"Trigger group '{group}' must be a mapping")
        for status, name in mapping.items():
            if name not in templates:
                raise EmailTemplateError(
                    f"Trigger {group}.{status} references unknown template '{name}'"
                )

    return {"triggers": triggers, "templates": templates}


def load_email_templates(templates_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load and validate the template file.

    Raises:
        EmailTemplateError: If the file is missing or malformed
    """
    return _load_cached(str(resolve_templates_path(templates_path)))


def template_for_event(
    templates: Mapping[str, Any], group: str, status: Any
) -> Optional[str]:
    """Return the template name triggered by ``status`` in ``group``, if any."""
    key = getattr(status, "value", status)
    return (templates.get("triggers", {}).get(group) or {}).get(key)


def render_text(text: str, context: Mapping[str, Any]) -> str:
    """Replace ``{{field}}`` placeholders; missing or None values render empty."""

    def _replace(match: "re.Match[str]") -> str:
        value = context.get(match.group(1))
        return "" if value is None else str(value)

    return _PLACEHOLDER_PATTERN.sub(_replace, text)


def render_subject(templates: Mapping[str, Any], template_name: str, context: Mapping[str, Any]) -> str:
    template = templates["templates"][template_name]
    return render_text(template.get("subject", ""), context)
