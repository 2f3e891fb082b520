"""
Stub rendering.

PHP sources are produced from ``.stub`` files containing ``{{key}}``
placeholders. Substitution is literal: no expressions, no conditionals,
and placeholders missing from the map are left in place so a partially
rendered stub can still be previewed. Blade templates use ``{{ $var }}``
themselves, which is why PHP stubs are not rendered with Jinja.

Markdown documentation, which needs loops, is rendered with Jinja2 from
the packaged ``templates/`` directory.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .domain.naming import camel, plural, singular, studly
from .exceptions import StubNotFoundError

logger = logging.getLogger(__name__)

STUB_DIR = Path(__file__).parent / "stubs"
TEMPLATE_DIR = Path(__file__).parent / "templates"

# {{key}} or {{ key }}; keys are identifiers, so Blade's {{ $x }} never matches
PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def render(stub_text: str, placeholders: Mapping[str, str]) -> str:
    """
    Substitute every ``{{key}}`` whose key is in ``placeholders``.

    Args:
        stub_text: Stub contents
        placeholders: Key to replacement text

    Returns:
        The rendered text; unknown placeholders are kept verbatim

    Example:
        >>> render("class {{class}} {}", {"class": "Post"})
        'class Post {}'
    """
    def substitute(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key in placeholders:
            return str(placeholders[key])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(substitute, stub_text)


def find_placeholders(text: str) -> List[str]:
    """Placeholder keys present in ``text``, in order of first appearance."""
    seen: Dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(text):
        seen.setdefault(match.group(1), None)
    return list(seen)


def load_stub(name: str, stub_path: Optional[str] = None) -> str:
    """
    Read ``{name}.stub``, preferring a custom stub directory over the packaged one.

    Raises:
        StubNotFoundError: if neither directory has the stub
    """
    filename = name if name.endswith(".stub") else f"{name}.stub"
    candidates = []
    if stub_path:
        candidates.append(Path(stub_path) / filename)
    candidates.append(STUB_DIR / filename)

    for candidate in candidates:
        if candidate.is_file():
            logger.debug(f"Using stub {candidate}")
            return candidate.read_text(encoding="utf-8")
    raise StubNotFoundError(filename, searched=[str(c.parent) for c in candidates])


def markdown_environment() -> Environment:
    """Sets up and returns the Jinja2 environment for documentation templates."""
    env = Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        autoescape=False,  # Markdown output, not HTML
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )
    env.filters["plural"] = plural
    env.filters["singular"] = singular
    env.filters["studly"] = studly
    env.filters["camel"] = camel
    return env
