"""
Renderable content type classification.

Decides from a declared type's text whether a property can hold instantiable UI
content. The check is syntactic: a union is renderable if any member is,
arrays are renderable if their element type is, and generic arguments of a
renderable type name are ignored.
"""

import logging
from typing import FrozenSet, Iterable, List, Optional

from ..core.config import DEFAULT_RENDERABLE_TYPES

logger = logging.getLogger(__name__)

ARRAY_WRAPPERS = ("Array", "ReadonlyArray")


def split_top_level(text: str, separator: str) -> List[str]:
    """Split ``text`` on ``separator`` outside of brackets."""
    parts: List[str] = []
    depth = 0
    current = []
    previous = ""
    for char in text:
        if char in "<([{":
            depth += 1
        elif char in ">)]}" and not (char == ">" and previous == "="):
            depth -= 1
        previous = char
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


class RenderableTypeClassifier:
    """Classifies declared types as renderable-content-accepting or not."""

    def __init__(self, renderable_types: Optional[Iterable[str]] = None):
        self.renderable_types: FrozenSet[str] = frozenset(
            renderable_types if renderable_types is not None else DEFAULT_RENDERABLE_TYPES
        )

    def accepts_renderable(self, type_text: Optional[str]) -> bool:
        """
        Classify a declared type.

        Args:
            type_text: Type as written, e.g. ``React.ReactNode | null``

        Returns:
            True if any member of the type can hold renderable content
        """
        if not type_text:
            return False
        try:
            return self._classify(type_text.strip(), 0)
        except RecursionError:
            logger.debug(f"Type too deeply nested to classify: {type_text[:80]}")
            return False

    def _classify(self, text: str, depth: int) -> bool:
        if depth > 32:
            return False
        members = split_top_level(text, "|")
        if len(members) > 1:
            return any(self._classify(member, depth + 1) for member in members)

        member = text.strip()
        if member.startswith("readonly "):
            member = member[len("readonly "):].strip()
        while member.startswith("(") and member.endswith(")"):
            member = member[1:-1].strip()
        if member != text.strip():
            return self._classify(member, depth + 1)

        if member.endswith("[]"):
            return self._classify(member[:-2], depth + 1)

        name, _, rest = member.partition("<")
        name = name.strip()
        if name in ARRAY_WRAPPERS and rest.endswith(">"):
            return self._classify(rest[:-1], depth + 1)

        return name in self.renderable_types
