"""
Documentation tag grammar.

Doc blocks are ``/** ... */`` comments. A tag starts at the beginning of a
line (after the optional ``*`` gutter) with ``@name``; its body runs until the
next tag or the end of the block. The render tag body follows a small grammar::

    body        := [target [description]]
    target      := identifier ("." identifier)* | "{" target "}" | "*"
    description := free text

An empty body (or ``*``) is the wildcard target.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..core.exceptions import MalformedTagError

TAG_NAME_PATTERN = re.compile(r"@([A-Za-z][\w-]*)")
TARGET_TOKEN_PATTERN = re.compile(r"^[A-Za-z_$][\w$-]*(?:\.[A-Za-z_$][\w$]*)*$")

WILDCARD_TOKEN = "*"


@dataclass(frozen=True)
class DocTag:
    """One tag of a doc block.

    ``line_offset`` is relative to the first line of the block and ``column``
    is the 0-based position of the ``@`` within that source line.
    """

    name: str
    body: str
    line_offset: int
    column: int


@dataclass(frozen=True)
class RenderTargetSpec:
    """Parsed body of a render tag. An empty ``target`` is the wildcard."""

    target: str
    description: str = ""

    @property
    def is_wildcard(self) -> bool:
        return not self.target


def is_doc_comment(text: str) -> bool:
    return text.startswith("/**") and not text.startswith("/***") and text.endswith("*/")


def _strip_decoration(raw: str, first: bool, last: bool) -> Tuple[str, int]:
    """Remove comment delimiters and the ``*`` gutter from one line.

    Returns:
        The line content and the column at which it starts in ``raw``
    """
    end = len(raw)
    if last:
        close = raw.rfind("*/")
        if close != -1:
            end = close
    start = 0
    if first:
        start = raw.find("/**") + 3
    else:
        stripped = raw[:end].lstrip()
        start = end - len(stripped)
        if stripped.startswith("*"):
            start += 1
    return raw[start:end], start


def parse_doc_comment(text: str) -> List[DocTag]:
    """
    Split a doc block into tags.

    Args:
        text: Raw comment text including delimiters

    Returns:
        Tags in source order; free text before the first tag is ignored
    """
    if not is_doc_comment(text):
        return []

    lines = text.split("\n")
    tags: List[DocTag] = []
    current: Optional[Tuple[str, List[str], int, int]] = None

    for index, raw in enumerate(lines):
        content, offset = _strip_decoration(raw.rstrip("\r"), index == 0, index == len(lines) - 1)
        stripped = content.lstrip()
        match = TAG_NAME_PATTERN.match(stripped)
        if match:
            if current:
                tags.append(_finish_tag(current))
            column = offset + (len(content) - len(stripped))
            current = (match.group(1), [stripped[match.end():]], index, column)
        elif current:
            current[1].append(content)

    if current:
        tags.append(_finish_tag(current))
    return tags


def _finish_tag(current: Tuple[str, List[str], int, int]) -> DocTag:
    name, body_lines, line_offset, column = current
    body = "\n".join(line.strip() for line in body_lines).strip()
    return DocTag(name=name, body=body, line_offset=line_offset, column=column)


def parse_render_target(body: str, tag_name: str = "renders") -> RenderTargetSpec:
    """
    Parse the body of a render tag into a target token and description.

    Args:
        body: Tag body as returned by parse_doc_comment
        tag_name: Tag name, used in error messages

    Returns:
        RenderTargetSpec with an empty target for the wildcard form

    Raises:
        MalformedTagError: If the first token is not a valid target
    """
    text = body.strip()
    if not text:
        return RenderTargetSpec(target="")

    if text.startswith("{"):
        close = text.find("}")
        if close == -1:
            raise MalformedTagError(
                f"Unterminated '{{' in @{tag_name} target", tag_name=tag_name, raw_text=body
            )
        token = text[1:close].strip()
        rest = text[close + 1:]
    else:
        parts = text.split(None, 1)
        token = parts[0]
        rest = parts[1] if len(parts) > 1 else ""

    description = rest.strip()
    if description.startswith("- "):
        description = description[2:].strip()

    if token == WILDCARD_TOKEN:
        return RenderTargetSpec(target="", description=description)

    if not TARGET_TOKEN_PATTERN.match(token):
        raise MalformedTagError(
            f"Cannot parse @{tag_name} target '{token}'", tag_name=tag_name, raw_text=body
        )

    return RenderTargetSpec(target=token, description=description)
