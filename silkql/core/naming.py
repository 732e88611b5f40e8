from __future__ import annotations

import inspect
from typing import Any, Optional, Tuple

__all__ = [
    'parse_object_config',
    'parse_field_config',
    'docstring_of',
]


def parse_object_config(text: str) -> Tuple[str, Optional[str]]:
    """Split ``"Name: description"`` on the first colon.

    >>> parse_object_config("Cat: a cat: with colons")
    ('Cat', 'a cat: with colons')
    >>> parse_object_config("Dog")
    ('Dog', None)
    """
    name, sep, rest = str(text).partition(':')
    description = rest.strip() if sep else None
    return name.strip(), (description or None)


def parse_field_config(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    return str(text).strip() or None


def docstring_of(cls: Any) -> Optional[str]:
    """Return the class' own docstring (not inherited), cleaned."""
    try:
        doc = vars(cls).get('__doc__')
    except TypeError:
        return None
    if not doc:
        return None
    return inspect.cleandoc(doc)
