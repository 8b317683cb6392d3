"""
Declared render graph construction.

Resolves every render tag of a unit and turns the resolved tags into intended
composition edges: component-level tags give self-declared edges, tags on
renderable properties give edges from the owning component to whatever the
property is documented to receive.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..core.config import AnalysisConfig
from ..core.interfaces import ComponentResolver, NullComponentResolver, SourceUnit
from ..core.models import (
    DeclarationArena,
    DeclaredEdge,
    Discrepancy,
    DiscrepancyKind,
    PropertyDeclaration,
    RenderTag,
    RenderTarget,
    SourceSpan,
    TagOwnerKind,
    TargetKind,
    is_intrinsic_name,
)
from .annotation_extractor import ExtractionResult

logger = logging.getLogger(__name__)


@dataclass
class DeclaredGraph:
    """
    Intended composition of one unit.

    Attributes:
        edges: source component id -> deduplicated declared edges
        slot_targets: property id -> resolved targets of the tags on it
        wildcard_components: components declaring arbitrary content
        opted_in: components with at least one resolved component-level tag
        discrepancies: UnresolvedTarget findings met while resolving tags
    """

    edges: Dict[int, List[DeclaredEdge]] = field(default_factory=dict)
    slot_targets: Dict[int, List[Tuple[RenderTarget, SourceSpan]]] = field(default_factory=dict)
    wildcard_components: Set[int] = field(default_factory=set)
    opted_in: Set[int] = field(default_factory=set)
    discrepancies: List[Discrepancy] = field(default_factory=list)

    def edges_from(self, component_id: int) -> List[DeclaredEdge]:
        return self.edges.get(component_id, [])

    def all_edges(self) -> List[DeclaredEdge]:
        return [edge for source_id in sorted(self.edges) for edge in self.edges[source_id]]

    def declares(self, component_id: int, target_key: Tuple) -> bool:
        return any(edge.target.key == target_key for edge in self.edges_from(component_id))

    def add_edge(self, edge: DeclaredEdge) -> bool:
        """Add an edge unless the (source, target) pair is already present."""
        existing = self.edges.setdefault(edge.source_id, [])
        if any(e.target.key == edge.target.key for e in existing):
            return False
        existing.append(edge)
        return True


class DeclaredGraphBuilder:
    """Builds the declared graph from extracted declarations."""

    def __init__(self, config: AnalysisConfig, resolver: Optional[ComponentResolver] = None):
        self.config = config
        self.resolver = resolver or NullComponentResolver()

    def build(self, extraction: ExtractionResult, unit: SourceUnit) -> DeclaredGraph:
        arena = extraction.arena
        graph = DeclaredGraph()

        for tag in arena.tags:
            try:
                tag.resolved = self.resolve_target(tag, arena, unit)
            except Exception as e:
                logger.error(f"Failed to resolve @{self.config.renders_tag} tag at {tag.span}: {e}")
                tag.resolved = RenderTarget.unresolved(tag.raw_target)

            if tag.resolved.kind == TargetKind.UNRESOLVED:
                graph.discrepancies.append(self._unresolved(tag))
                continue

            if tag.owner_kind == TagOwnerKind.COMPONENT:
                self._add_component_tag(graph, tag)
            else:
                self._add_property_tag(graph, tag, arena.properties[tag.owner_id])

        logger.debug(
            f"Declared graph for {unit.file_path}: {len(graph.all_edges())} edges, "
            f"{len(graph.discrepancies)} unresolved tags"
        )
        return graph

    def resolve_target(self, tag: RenderTag, arena: DeclarationArena, unit: SourceUnit) -> RenderTarget:
        """
        Resolve a tag's raw target.

        Property names of the enclosing props scope come first (forwarding
        declarations), then components of the unit, then intrinsic element
        names, then the cross-unit resolver.
        """
        name = tag.raw_target
        if not name:
            return RenderTarget.wildcard()

        scope_target = self._scope_property(tag, name, arena, unit)
        if scope_target is not None:
            return scope_target

        component = arena.component_named(name)
        if component is not None:
            return RenderTarget.for_component(component)

        if is_intrinsic_name(name):
            return RenderTarget.intrinsic(name)

        if self.resolver.resolve(name, unit) is not None:
            return RenderTarget.external(name)

        return RenderTarget.unresolved(name)

    def _scope_property(
        self, tag: RenderTag, name: str, arena: DeclarationArena, unit: SourceUnit
    ) -> Optional[RenderTarget]:
        if tag.owner_kind == TagOwnerKind.COMPONENT:
            prop = arena.property_of(tag.owner_id, name)
            return RenderTarget.for_property(prop) if prop is not None else None

        owner = arena.properties[tag.owner_id]
        if name == owner.name:
            return None
        if owner.owner_id is not None:
            prop = arena.property_of(owner.owner_id, name)
            return RenderTarget.for_property(prop) if prop is not None else None

        # Props type without a component: only the names are known
        if owner.node is not None and name in unit.sibling_property_names(owner.node):
            return RenderTarget(TargetKind.PROPERTY, name)
        return None

    def _add_component_tag(self, graph: DeclaredGraph, tag: RenderTag) -> None:
        graph.opted_in.add(tag.owner_id)
        if tag.resolved.kind == TargetKind.WILDCARD:
            graph.wildcard_components.add(tag.owner_id)
            return
        edge = DeclaredEdge(source_id=tag.owner_id, target=tag.resolved, span=tag.span)
        if not graph.add_edge(edge):
            logger.debug(f"Duplicate render declaration collapsed at {tag.span}")

    def _add_property_tag(self, graph: DeclaredGraph, tag: RenderTag, prop: PropertyDeclaration) -> None:
        if prop.owner_id is None or not prop.accepts_renderable:
            return
        targets = graph.slot_targets.setdefault(prop.id, [])
        if all(target.key != tag.resolved.key for target, _ in targets):
            targets.append((tag.resolved, tag.span))
        if tag.resolved.kind == TargetKind.WILDCARD:
            return
        edge = DeclaredEdge(
            source_id=prop.owner_id,
            target=tag.resolved,
            span=tag.span,
            via_property_id=prop.id,
        )
        if not graph.add_edge(edge):
            logger.debug(f"Duplicate render declaration collapsed at {tag.span}")

    def _unresolved(self, tag: RenderTag) -> Discrepancy:
        return Discrepancy(
            kind=DiscrepancyKind.UNRESOLVED_TARGET,
            span=tag.span,
            message=f"Render target '{tag.raw_target}' does not name a property or a known component",
            details={"target": tag.raw_target, "reason": "no matching declaration"},
        )
