"""
Annotation extraction.

Walks every node of a source unit, reads the doc blocks attached to it and
registers component declarations, their properties and the raw render tags.
Targets are not resolved here; that is the declared graph builder's job.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..core.config import AnalysisConfig
from ..core.exceptions import MalformedTagError
from ..core.interfaces import DocComment, SourceUnit
from ..core.models import (
    DeclarationArena,
    Discrepancy,
    DiscrepancyKind,
    SourceSpan,
    TagOwnerKind,
)
from ..parsing.doc_tags import DocTag, RenderTargetSpec, parse_doc_comment, parse_render_target

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Declarations of one unit plus the MalformedTag findings met on the way."""

    arena: DeclarationArena
    discrepancies: List[Discrepancy] = field(default_factory=list)


@dataclass
class _PendingPropertyTag:
    property_node: object
    parsed: RenderTargetSpec
    span: SourceSpan


class AnnotationExtractor:
    """Collects component declarations and render tags from a source unit."""

    def __init__(self, config: AnalysisConfig):
        self.config = config

    def extract(self, unit: SourceUnit) -> ExtractionResult:
        """
        Extract declarations from ``unit``.

        Every node is processed independently; a failure on one node is logged
        and does not affect the others.

        Args:
            unit: Parsed source unit

        Returns:
            ExtractionResult with a populated arena
        """
        result = ExtractionResult(arena=DeclarationArena(unit.file_path))
        pending: List[_PendingPropertyTag] = []

        for node in unit.iter_nodes():
            comments = unit.doc_comments(node)
            if not comments:
                continue
            try:
                self._extract_node(unit, node, comments, result, pending)
            except Exception as e:
                logger.error(f"Failed to extract annotations at {unit.span(node)}: {e}")

        self._register_properties(unit, result.arena)
        self._attach_property_tags(unit, result, pending)

        logger.debug(
            f"Extracted {len(result.arena.components)} components, "
            f"{len(result.arena.properties)} properties and {len(result.arena.tags)} tags "
            f"from {unit.file_path}"
        )
        return result

    def _extract_node(
        self,
        unit: SourceUnit,
        node,
        comments: List[DocComment],
        result: ExtractionResult,
        pending: List[_PendingPropertyTag],
    ) -> None:
        component_spans: List[SourceSpan] = []
        renders: List[Tuple[RenderTargetSpec, SourceSpan]] = []

        for comment in comments:
            for tag in parse_doc_comment(comment.text):
                span = _tag_span(comment, tag)
                if tag.name == self.config.component_tag:
                    component_spans.append(span)
                elif tag.name == self.config.renders_tag:
                    try:
                        renders.append((parse_render_target(tag.body, tag.name), span))
                    except MalformedTagError as e:
                        result.discrepancies.append(_malformed(span, tag.name, e.message))

        if component_spans:
            shape = unit.component_shape(node)
            if shape is None:
                result.discrepancies.append(
                    _malformed(
                        component_spans[0],
                        self.config.component_tag,
                        "it must annotate a function or class definition",
                    )
                )
            else:
                component = result.arena.add_component(
                    shape.name, unit.span(node), shape.kind, shape
                )
                for parsed, span in renders:
                    result.arena.add_tag(
                        TagOwnerKind.COMPONENT, component.id, parsed.target, span, parsed.description
                    )
                return

        if not renders:
            return

        property_node = unit.enclosing_property(node)
        if property_node is None:
            for _, span in renders:
                result.discrepancies.append(
                    _malformed(
                        span,
                        self.config.renders_tag,
                        f"it must annotate a property or a @{self.config.component_tag} definition",
                    )
                )
            return

        for parsed, span in renders:
            pending.append(_PendingPropertyTag(property_node, parsed, span))

    def _register_properties(self, unit: SourceUnit, arena: DeclarationArena) -> None:
        for component in list(arena.components):
            try:
                infos = unit.component_properties(component.shape)
            except Exception as e:
                logger.error(f"Failed to read props of {component.name}: {e}")
                continue
            for info in infos:
                arena.add_property(
                    info.name,
                    component.id,
                    unit.is_renderable_type(info.type_text),
                    info.type_text,
                    info.span,
                    info.node,
                )

    def _attach_property_tags(
        self,
        unit: SourceUnit,
        result: ExtractionResult,
        pending: List[_PendingPropertyTag],
    ) -> None:
        arena = result.arena
        by_node: Dict[int, List[int]] = {}
        for prop in arena.properties:
            if prop.node is not None:
                by_node.setdefault(prop.node.id, []).append(prop.id)

        # Props types that no component uses still get their tags resolved
        ownerless: Dict[int, int] = {}

        for item in pending:
            property_ids = by_node.get(item.property_node.id)
            if not property_ids:
                property_id = ownerless.get(item.property_node.id)
                if property_id is None:
                    property_id = self._register_ownerless(unit, arena, item.property_node)
                    if property_id is None:
                        continue
                    ownerless[item.property_node.id] = property_id
                property_ids = [property_id]

            first = arena.properties[property_ids[0]]
            if not first.accepts_renderable:
                result.discrepancies.append(
                    _malformed(
                        item.span,
                        self.config.renders_tag,
                        f"property '{first.name}' of type '{first.type_text or 'unknown'}' "
                        "cannot hold renderable content",
                    )
                )
                continue

            for property_id in property_ids:
                arena.add_tag(
                    TagOwnerKind.PROPERTY,
                    property_id,
                    item.parsed.target,
                    item.span,
                    item.parsed.description,
                )

    def _register_ownerless(self, unit: SourceUnit, arena: DeclarationArena, node) -> Optional[int]:
        info = unit.property_info(node)
        if info is None:
            return None
        prop = arena.add_property(
            info.name,
            None,
            unit.is_renderable_type(info.type_text),
            info.type_text,
            info.span,
            node,
        )
        return prop.id


def _tag_span(comment: DocComment, tag: DocTag) -> SourceSpan:
    """Location of a tag's ``@`` in the source file."""
    if tag.line_offset == 0:
        column = comment.span.column + tag.column
    else:
        column = tag.column + 1
    return SourceSpan(
        file_path=comment.span.file_path,
        line=comment.span.line + tag.line_offset,
        column=column,
    )


def _malformed(span: SourceSpan, tag_name: str, reason: str) -> Discrepancy:
    return Discrepancy(
        kind=DiscrepancyKind.MALFORMED_TAG,
        span=span,
        message=f"Malformed @{tag_name} tag: {reason}",
        details={"tag": tag_name, "reason": reason},
    )
