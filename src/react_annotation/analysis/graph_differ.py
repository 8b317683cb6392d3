"""
Graph differ.

Compares the declared and actual graphs component by component and classifies
every disagreement. Decisions that depend on forwarding chains follow the
configured confidence policy: under the transitive policy a supplied component
is consistent with a declared target when it is that target, re-exposes it
with its own render declaration, or reaches it within the depth bound; under
the single-hop policy anything other than an exact match is left unresolved.
"""

import logging
from enum import Enum
from typing import Iterable, List, Optional

from ..core.config import AnalysisConfig
from ..core.models import (
    ActualEdge,
    ComponentDeclaration,
    DeclarationArena,
    DeclaredEdge,
    Discrepancy,
    DiscrepancyKind,
    PathKind,
    RenderTarget,
    TargetKind,
    sort_discrepancies,
)
from .declared_graph import DeclaredGraph
from .usage_graph import ActualGraph, Instantiation, ReachResult, SlotState, SupplyGroup

logger = logging.getLogger(__name__)


class Consistency(Enum):
    CONSISTENT = "consistent"
    MISMATCHED = "mismatched"
    UNCERTAIN = "uncertain"


class GraphDiffer:
    """Classifies discrepancies between a unit's declared and actual graphs."""

    def __init__(self, config: AnalysisConfig):
        self.config = config

    def diff(
        self,
        arena: DeclarationArena,
        declared: DeclaredGraph,
        actual: ActualGraph,
        extra: Iterable[Discrepancy] = (),
    ) -> List[Discrepancy]:
        """
        Diff both graphs.

        Args:
            extra: Findings of earlier stages (e.g. MalformedTag) to merge in

        Returns:
            Discrepancies sorted by (source location, kind), including the
            resolution findings collected while building the graphs
        """
        discrepancies: List[Discrepancy] = list(extra)
        discrepancies.extend(declared.discrepancies)
        discrepancies.extend(actual.discrepancies)

        for component in arena.components:
            try:
                discrepancies.extend(self._undeclared_usage(component, declared, actual))
                discrepancies.extend(self._missing_declarations(arena, component, declared, actual))
                discrepancies.extend(self._supplied_content(arena, component, declared, actual))
            except Exception as e:
                logger.error(f"Failed to diff render graphs of {component.name}: {e}")

        return sort_discrepancies(discrepancies)

    # ------------------------------------------------------------------
    # UndeclaredUsage
    # ------------------------------------------------------------------

    def _undeclared_usage(
        self, component: ComponentDeclaration, declared: DeclaredGraph, actual: ActualGraph
    ) -> List[Discrepancy]:
        if component.id not in declared.opted_in or component.id in declared.wildcard_components:
            return []

        found = []
        for edge in actual.edges_from(component.id):
            if edge.target.is_opaque or edge.target.kind == TargetKind.INTRINSIC:
                continue
            if self._covered(component, edge, declared):
                continue
            found.append(
                Discrepancy(
                    kind=DiscrepancyKind.UNDECLARED_USAGE,
                    span=edge.span,
                    message=(
                        f"{component.name} renders {edge.target.label} "
                        f"but does not declare it with @{self.config.renders_tag}"
                    ),
                    details={
                        "source": component.name,
                        "target": edge.target.label,
                        "path": _describe_path(edge),
                    },
                )
            )
        return found

    def _covered(self, component: ComponentDeclaration, edge: ActualEdge, declared: DeclaredGraph) -> bool:
        if declared.declares(component.id, edge.target.key):
            return True
        # Content placed into a declared component's slot is that component's business
        if edge.path.kind == PathKind.VIA_PROPERTY and edge.slot is not None:
            return declared.declares(component.id, (TargetKind.COMPONENT.value, edge.slot[0]))
        return False

    # ------------------------------------------------------------------
    # MissingDeclaration
    # ------------------------------------------------------------------

    def _missing_declarations(
        self,
        arena: DeclarationArena,
        component: ComponentDeclaration,
        declared: DeclaredGraph,
        actual: ActualGraph,
    ) -> List[Discrepancy]:
        if not actual.was_walked(component.id):
            return []

        found = []
        for edge in declared.edges_from(component.id):
            prop_name = self._forwarded_property(arena, edge)
            if prop_name is not None:
                if actual.resolve_slot(component.id, prop_name).state != SlotState.DROPPED:
                    continue
                found.append(
                    Discrepancy(
                        kind=DiscrepancyKind.MISSING_DECLARATION,
                        span=edge.span,
                        message=(
                            f"{component.name} declares that it renders {edge.target.label} "
                            f"through '{prop_name}', but never renders '{prop_name}'"
                        ),
                        details={
                            "source": component.name,
                            "target": edge.target.label,
                            "property": prop_name,
                        },
                    )
                )
                continue

            if self._observed(component, edge, actual):
                continue
            found.append(
                Discrepancy(
                    kind=DiscrepancyKind.MISSING_DECLARATION,
                    span=edge.span,
                    message=(
                        f"{component.name} declares that it renders {edge.target.label}, "
                        "but no such usage was found"
                    ),
                    details={"source": component.name, "target": edge.target.label},
                )
            )
        return found

    def _forwarded_property(self, arena: DeclarationArena, edge: DeclaredEdge) -> Optional[str]:
        """Property whose rendering observes ``edge``, if the edge is property-derived."""
        if edge.via_property_id is not None:
            return arena.properties[edge.via_property_id].name
        if edge.target.kind == TargetKind.PROPERTY and edge.target.ref_id is not None:
            return arena.properties[edge.target.ref_id].name
        return None

    def _observed(self, component: ComponentDeclaration, edge: DeclaredEdge, actual: ActualGraph) -> bool:
        if actual.has_edge(component.id, edge.target.key):
            return True
        if not self.config.transitive:
            return False
        return actual.reaches(component.id, edge.target.key) != ReachResult.NOT_REACHED

    # ------------------------------------------------------------------
    # MismatchedTarget / UnresolvedTarget on supplied content
    # ------------------------------------------------------------------

    def _supplied_content(
        self,
        arena: DeclarationArena,
        component: ComponentDeclaration,
        declared: DeclaredGraph,
        actual: ActualGraph,
    ) -> List[Discrepancy]:
        found = []
        for group in actual.groups_of(component.id):
            if not group.members:
                continue
            slots = [group.slot]
            for slot in actual.resolve_slot(*group.slot).reached:
                if slot not in slots:
                    slots.append(slot)
            for owner_id, prop_name in slots:
                discrepancy = self._check_slot(arena, declared, actual, group, owner_id, prop_name)
                if discrepancy is not None:
                    found.append(discrepancy)
        return found

    def _check_slot(
        self,
        arena: DeclarationArena,
        declared: DeclaredGraph,
        actual: ActualGraph,
        group: SupplyGroup,
        owner_id: int,
        prop_name: str,
    ) -> Optional[Discrepancy]:
        prop = arena.property_of(owner_id, prop_name)
        if prop is None:
            return None
        targets = [target for target, _ in declared.slot_targets.get(prop.id, [])]
        if not targets or any(t.kind in (TargetKind.WILDCARD, TargetKind.PROPERTY) for t in targets):
            return None

        results = [
            self._consistency(member, target, declared, actual)
            for member in group.members
            for target in targets
        ]
        if Consistency.CONSISTENT in results:
            return None

        owner = arena.components[owner_id].name
        declared_label = " or ".join(target.label for target in targets)
        supplied_label = ", ".join(member.target.label for member in group.members)
        span = group.members[0].span

        if any(member.target.is_opaque for member in group.members):
            logger.debug(f"Skipping check of opaque content supplied to {owner}.{prop_name} at {span}")
            return None

        if Consistency.UNCERTAIN in results:
            return Discrepancy(
                kind=DiscrepancyKind.UNRESOLVED_TARGET,
                span=span,
                message=(
                    f"Cannot confirm that {supplied_label} supplied to '{owner}.{prop_name}' "
                    f"renders {declared_label}"
                ),
                details={
                    "target": declared_label,
                    "reason": f"forwarding chain from {supplied_label} is not confidently resolvable",
                },
            )

        return Discrepancy(
            kind=DiscrepancyKind.MISMATCHED_TARGET,
            span=span,
            message=(
                f"'{owner}.{prop_name}' is declared to render {declared_label}, "
                f"but receives {supplied_label}"
            ),
            details={
                "owner": owner,
                "property": prop_name,
                "declared": declared_label,
                "actual": supplied_label,
            },
        )

    def _consistency(
        self,
        member: Instantiation,
        target: RenderTarget,
        declared: DeclaredGraph,
        actual: ActualGraph,
    ) -> Consistency:
        supplied = member.target
        if supplied.key == target.key:
            return Consistency.CONSISTENT
        if supplied.is_opaque:
            return Consistency.UNCERTAIN
        if supplied.kind == TargetKind.INTRINSIC:
            # Host elements never re-expose anything
            return Consistency.MISMATCHED
        if not self.config.transitive:
            return Consistency.UNCERTAIN

        if declared.declares(supplied.ref_id, target.key):
            return Consistency.CONSISTENT
        reach = actual.reaches(supplied.ref_id, target.key)
        if reach == ReachResult.REACHED:
            return Consistency.CONSISTENT
        if reach == ReachResult.INCOMPLETE:
            return Consistency.UNCERTAIN
        return Consistency.MISMATCHED


def _describe_path(edge: ActualEdge) -> str:
    if edge.path.kind == PathKind.DIRECT:
        return "direct"
    return f"via property ({edge.path.depth})"
