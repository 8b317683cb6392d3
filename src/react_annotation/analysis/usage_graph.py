"""
Usage graph construction.

Walks the markup each component returns and records what it instantiates.
Markup is either rendered by the component itself, supplied to a renderable
property ("slot") of another known component, or handed to an opaque
component whose behaviour is unknown. Supplied content is followed through the
receiving component, which may render the slot, drop it, or forward it into a
slot of yet another component. The forwarding walk is bounded by the
configured depth and by a visited path, so cyclic compositions terminate.
"""

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Set, Tuple, Union

from ..core.cancellation import CancellationToken
from ..core.config import AnalysisConfig
from ..core.interfaces import ComponentResolver, NullComponentResolver, PropBindings, SourceUnit
from ..core.models import (
    ActualEdge,
    ComponentDeclaration,
    DeclarationArena,
    Discrepancy,
    DiscrepancyKind,
    EdgePath,
    RenderTarget,
    SourceSpan,
    TargetKind,
    is_intrinsic_name,
)

logger = logging.getLogger(__name__)

Slot = Tuple[int, str]

CHILDREN_PROP = "children"

FUNCTION_TYPES = ("arrow_function", "function_expression", "function", "function_declaration")
PASS_THROUGH_TYPES = (
    "jsx_expression",
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
    "spread_element",
    "await_expression",
)


class PropUseKind(Enum):
    RENDER = "render"
    FORWARD = "forward"
    UNKNOWN = "unknown"


class SlotState(Enum):
    RENDERED = "rendered"
    DROPPED = "dropped"
    UNKNOWN = "unknown"
    EXCEEDED = "exceeded"


class ReachResult(Enum):
    REACHED = "reached"
    NOT_REACHED = "not_reached"
    INCOMPLETE = "incomplete"


@dataclass(frozen=True)
class PropUse:
    """How a component's body uses one of its own props."""

    kind: PropUseKind
    slot: Optional[Slot] = None


@dataclass
class Instantiation:
    target: RenderTarget
    span: SourceSpan


@dataclass
class SupplyGroup:
    """Content supplied for one slot at one call site (an attribute value or a children list)."""

    id: int
    slot: Slot
    span: SourceSpan
    members: List[Instantiation] = field(default_factory=list)
    forwards: List[str] = field(default_factory=list)


class _Opaque:
    def __repr__(self) -> str:
        return "OPAQUE"


# Placement of markup handed to a component that cannot be traced
OPAQUE = _Opaque()

Placement = Union[None, _Opaque, SupplyGroup]


@dataclass
class ComponentUsage:
    """Everything observed in one component's implementation."""

    component_id: int
    walked: bool = False
    direct: List[Instantiation] = field(default_factory=list)
    groups: List[SupplyGroup] = field(default_factory=list)
    prop_uses: Dict[str, Set[PropUse]] = field(default_factory=dict)


@dataclass
class SlotResolution:
    """Outcome of following content supplied to a slot."""

    rendered_depth: Optional[int] = None
    unknown: bool = False
    exceeded: bool = False
    reached: List[Slot] = field(default_factory=list)

    @property
    def state(self) -> SlotState:
        if self.rendered_depth is not None:
            return SlotState.RENDERED
        if self.exceeded:
            return SlotState.EXCEEDED
        if self.unknown:
            return SlotState.UNKNOWN
        return SlotState.DROPPED

    def merge(self, other: "SlotResolution") -> None:
        if other.rendered_depth is not None:
            if self.rendered_depth is None or other.rendered_depth < self.rendered_depth:
                self.rendered_depth = other.rendered_depth
        self.unknown = self.unknown or other.unknown
        self.exceeded = self.exceeded or other.exceeded
        for slot in other.reached:
            if slot not in self.reached:
                self.reached.append(slot)


class _ImplementationWalker:
    """Walks one component body and fills a ComponentUsage."""

    def __init__(
        self,
        unit: SourceUnit,
        arena: DeclarationArena,
        usage: ComponentUsage,
        bindings: PropBindings,
        targets: Dict[str, RenderTarget],
        resolver: ComponentResolver,
        group_ids: Iterator[int],
    ):
        self.unit = unit
        self.arena = arena
        self.usage = usage
        self.bindings = bindings
        self.targets = targets
        self.resolver = resolver
        self.group_ids = group_ids

    def walk(self, body: Any) -> None:
        self._walk_nested(body, None)

    def _scan(self, node: Any, placement: Placement) -> None:
        """Look for markup positions inside statements and non-markup expressions."""
        if self.unit.is_element(node):
            self._element(node, placement)
            return
        if node.type == "return_statement":
            for child in node.named_children:
                self._markup(child, placement)
            return
        if node.type in FUNCTION_TYPES:
            body = node.child_by_field_name("body")
            if body is not None:
                self._walk_nested(body, placement)
            return
        for child in node.named_children:
            self._scan(child, placement)

    def _walk_nested(self, body: Any, placement: Placement) -> None:
        if body.type == "statement_block":
            self._scan(body, placement)
        else:
            self._markup(body, placement)

    def _markup(self, node: Any, placement: Placement) -> None:
        """Walk an expression whose value ends up in ``placement``."""
        if self.unit.is_element(node):
            self._element(node, placement)
            return

        prop_name = self.unit.prop_reference(node, self.bindings)
        if prop_name is not None:
            self._use_prop(prop_name, placement)
            return

        node_type = node.type
        if node_type in PASS_THROUGH_TYPES or node_type == "array":
            for child in node.named_children:
                self._markup(child, placement)
        elif node_type == "ternary_expression":
            condition = node.child_by_field_name("condition")
            if condition is not None:
                self._scan(condition, placement)
            for field_name in ("consequence", "alternative"):
                branch = node.child_by_field_name(field_name)
                if branch is not None:
                    self._markup(branch, placement)
        elif node_type == "binary_expression":
            self._binary(node, placement)
        elif node_type == "call_expression":
            function = node.child_by_field_name("function")
            if function is not None:
                self._scan(function, placement)
            arguments = node.child_by_field_name("arguments")
            if arguments is not None:
                for argument in arguments.named_children:
                    # Callbacks such as items.map(item => <Row />) return into the
                    # same placement; other arguments go to an unknown function
                    if argument.type in FUNCTION_TYPES:
                        self._scan(argument, placement)
                    else:
                        self._markup(argument, OPAQUE)
        else:
            self._scan(node, placement)

    def _binary(self, node: Any, placement: Placement) -> None:
        operator = node.child_by_field_name("operator")
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        op = self.unit.text(operator) if operator is not None else ""
        if op == "&&":
            if left is not None:
                self._scan(left, placement)
            if right is not None:
                self._markup(right, placement)
        elif op in ("||", "??"):
            for operand in (left, right):
                if operand is not None:
                    self._markup(operand, placement)
        else:
            for child in node.named_children:
                self._scan(child, placement)

    def _element(self, node: Any, placement: Placement) -> None:
        name = self.unit.element_name(node)
        children = self.unit.element_children(node)

        if name is None:
            # Fragment
            for child in children:
                self._markup(child, placement)
            return

        target = self._target(name)
        self._instantiate(target, self.unit.span(node), placement)
        attributes = self.unit.element_attributes(node)

        if target.kind == TargetKind.INTRINSIC:
            for _, value in attributes:
                if value is not None:
                    self._scan(value, placement)
            for child in children:
                self._markup(child, placement)
            return

        if target.kind != TargetKind.COMPONENT:
            for _, value in attributes:
                if value is not None:
                    self._markup(value, OPAQUE)
            for child in children:
                self._markup(child, OPAQUE)
            return

        component_id = target.ref_id
        for attribute_name, value in attributes:
            if value is None:
                continue
            if attribute_name is None:
                self._scan(value, placement)
                continue
            prop = self.arena.property_of(component_id, attribute_name)
            if prop is not None and prop.accepts_renderable:
                group = self._open_group(component_id, attribute_name, self.unit.span(value))
                self._markup(value, group)
            else:
                self._markup(value, OPAQUE)

        if children:
            child_placement = placement
            prop = self.arena.property_of(component_id, CHILDREN_PROP)
            if prop is not None and prop.accepts_renderable:
                child_placement = self._open_group(component_id, CHILDREN_PROP, self.unit.span(node))
            for child in children:
                self._markup(child, child_placement)

    def _target(self, name: str) -> RenderTarget:
        target = self.targets.get(name)
        if target is None:
            component = self.arena.component_named(name)
            if component is not None:
                target = RenderTarget.for_component(component)
            elif is_intrinsic_name(name):
                target = RenderTarget.intrinsic(name)
            elif self.resolver.resolve(name, self.unit) is not None:
                target = RenderTarget.external(name)
            else:
                target = RenderTarget.unresolved(name)
            self.targets[name] = target
        return target

    def _open_group(self, component_id: int, prop_name: str, span: SourceSpan) -> SupplyGroup:
        group = SupplyGroup(id=next(self.group_ids), slot=(component_id, prop_name), span=span)
        self.usage.groups.append(group)
        return group

    def _instantiate(self, target: RenderTarget, span: SourceSpan, placement: Placement) -> None:
        if isinstance(placement, SupplyGroup):
            placement.members.append(Instantiation(target, span))
        else:
            self.usage.direct.append(Instantiation(target, span))

    def _use_prop(self, prop_name: str, placement: Placement) -> None:
        uses = self.usage.prop_uses.setdefault(prop_name, set())
        if placement is None:
            uses.add(PropUse(PropUseKind.RENDER))
        elif isinstance(placement, SupplyGroup):
            placement.forwards.append(prop_name)
            uses.add(PropUse(PropUseKind.FORWARD, placement.slot))
        else:
            uses.add(PropUse(PropUseKind.UNKNOWN))


class ActualGraph:
    """
    Observed composition of one unit.

    Edges are keyed by (source, target); when several paths produce the same
    pair the shortest one is kept (Direct, then ViaProperty(1), ...).
    """

    def __init__(self, arena: DeclarationArena, usages: Dict[int, ComponentUsage], depth_bound: int):
        self.arena = arena
        self.usages = usages
        self.depth_bound = depth_bound
        self.discrepancies: List[Discrepancy] = []
        self._edges: Dict[int, Dict[Tuple, ActualEdge]] = {}
        self._slot_cache: Dict[Slot, SlotResolution] = {}
        self._uncertain: Set[int] = set()
        self._build()

    def _build(self) -> None:
        for component_id in sorted(self.usages):
            usage = self.usages[component_id]
            if not usage.walked:
                self._uncertain.add(component_id)
                continue

            for instantiation in usage.direct:
                if instantiation.target.is_opaque:
                    self._uncertain.add(component_id)
                self._add_edge(
                    ActualEdge(component_id, instantiation.target, EdgePath.direct(), instantiation.span)
                )

            for group in usage.groups:
                if not group.members and not group.forwards:
                    continue
                resolution = self.resolve_slot(*group.slot)
                # A chain is reported once, at the call site that supplies the content
                if resolution.exceeded and group.members:
                    self.discrepancies.append(self._exceeded(component_id, group))
                if resolution.unknown or resolution.exceeded:
                    self._uncertain.add(component_id)
                if resolution.rendered_depth is None:
                    continue
                for member in group.members:
                    self._add_edge(
                        ActualEdge(
                            component_id,
                            member.target,
                            EdgePath.via_property(resolution.rendered_depth),
                            member.span,
                            slot=group.slot,
                        )
                    )

    def _add_edge(self, edge: ActualEdge) -> None:
        edges = self._edges.setdefault(edge.source_id, {})
        current = edges.get(edge.target.key)
        if current is None or (edge.path.rank, edge.span.sort_key) < (
            current.path.rank,
            current.span.sort_key,
        ):
            edges[edge.target.key] = edge

    def _exceeded(self, component_id: int, group: SupplyGroup) -> Discrepancy:
        source = self.arena.components[component_id].name
        owner = self.arena.components[group.slot[0]].name
        return Discrepancy(
            kind=DiscrepancyKind.CYCLE_DEPTH_EXCEEDED,
            span=group.span,
            message=(
                f"Content supplied by {source} to '{owner}.{group.slot[1]}' is forwarded "
                f"in a cycle or beyond the depth bound of {self.depth_bound}"
            ),
            details={
                "source": source,
                "owner": owner,
                "property": group.slot[1],
                "bound": self.depth_bound,
            },
        )

    def resolve_slot(self, component_id: int, prop_name: str) -> SlotResolution:
        """
        Follow content supplied to ``component_id``'s ``prop_name``.

        Returns:
            SlotResolution; ``rendered_depth`` counts property hops, so content
            the receiving component renders itself has depth 1
        """
        key = (component_id, prop_name)
        if key not in self._slot_cache:
            self._slot_cache[key] = self._resolve(component_id, prop_name, 1, frozenset())
        return self._slot_cache[key]

    def _resolve(self, component_id: int, prop_name: str, depth: int, path: FrozenSet[Slot]) -> SlotResolution:
        key = (component_id, prop_name)
        result = SlotResolution(reached=[key])
        if depth > self.depth_bound or key in path:
            result.exceeded = True
            return result

        usage = self.usages.get(component_id)
        if usage is None or not usage.walked:
            result.unknown = True
            return result

        uses = sorted(
            usage.prop_uses.get(prop_name, ()),
            key=lambda use: (use.kind.value, use.slot or (-1, "")),
        )
        for use in uses:
            if use.kind == PropUseKind.RENDER:
                result.merge(SlotResolution(rendered_depth=depth))
            elif use.kind == PropUseKind.UNKNOWN:
                result.unknown = True
            else:
                result.merge(self._resolve(use.slot[0], use.slot[1], depth + 1, path | {key}))
        return result

    def edges_from(self, component_id: int) -> List[ActualEdge]:
        edges = self._edges.get(component_id, {})
        return sorted(edges.values(), key=lambda edge: (edge.span.sort_key, edge.target.key))

    def all_edges(self) -> List[ActualEdge]:
        return [edge for source_id in sorted(self._edges) for edge in self.edges_from(source_id)]

    def has_edge(self, component_id: int, target_key: Tuple) -> bool:
        return target_key in self._edges.get(component_id, {})

    def groups_of(self, component_id: int) -> List[SupplyGroup]:
        usage = self.usages.get(component_id)
        return usage.groups if usage is not None else []

    def was_walked(self, component_id: int) -> bool:
        usage = self.usages.get(component_id)
        return usage is not None and usage.walked

    def is_uncertain(self, component_id: int) -> bool:
        """Whether the component's observed edges may be incomplete."""
        return component_id in self._uncertain

    def reaches(self, source_id: int, target_key: Tuple) -> ReachResult:
        """
        Breadth-first search for ``target_key`` in the component graph.

        The search is INCOMPLETE when it runs out of depth with components left
        to visit, or when a visited component has uncertain edges.
        """
        frontier = [source_id]
        seen = {source_id}
        incomplete = False
        for _ in range(self.depth_bound):
            next_frontier = []
            for component_id in frontier:
                if self.is_uncertain(component_id):
                    incomplete = True
                for edge in self.edges_from(component_id):
                    if edge.target.key == target_key:
                        return ReachResult.REACHED
                    if edge.target.kind == TargetKind.COMPONENT and edge.target.ref_id not in seen:
                        seen.add(edge.target.ref_id)
                        next_frontier.append(edge.target.ref_id)
            frontier = next_frontier
            if not frontier:
                return ReachResult.INCOMPLETE if incomplete else ReachResult.NOT_REACHED
        return ReachResult.INCOMPLETE


class UsageGraphBuilder:
    """Builds the actual graph by tracing every component's implementation."""

    def __init__(self, config: AnalysisConfig, resolver: Optional[ComponentResolver] = None):
        self.config = config
        self.resolver = resolver or NullComponentResolver()

    def build(
        self,
        unit: SourceUnit,
        arena: DeclarationArena,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ActualGraph:
        """
        Trace all components of ``arena``.

        Raises:
            AnalysisCancelled: If ``cancel_token`` is cancelled between components
        """
        usages: Dict[int, ComponentUsage] = {}
        targets: Dict[str, RenderTarget] = {}
        group_ids = itertools.count()

        for component in arena.components:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled(unit.file_path)
            usages[component.id] = self._walk_component(unit, arena, component, targets, group_ids)

        graph = ActualGraph(arena, usages, self.config.forwarding_depth_bound)
        logger.debug(
            f"Actual graph for {unit.file_path}: {len(graph.all_edges())} edges "
            f"from {len(usages)} components"
        )
        return graph

    def _walk_component(
        self,
        unit: SourceUnit,
        arena: DeclarationArena,
        component: ComponentDeclaration,
        targets: Dict[str, RenderTarget],
        group_ids: Iterator[int],
    ) -> ComponentUsage:
        usage = ComponentUsage(component_id=component.id)
        shape = component.shape
        if shape is None or shape.body is None:
            logger.debug(f"No implementation to trace for {component.name}")
            return usage

        try:
            walker = _ImplementationWalker(
                unit,
                arena,
                usage,
                unit.prop_bindings(shape),
                targets,
                self.resolver,
                group_ids,
            )
            walker.walk(shape.body)
            usage.walked = True
        except RecursionError:
            logger.error(f"Implementation of {component.name} is nested too deeply to trace")
            usage = ComponentUsage(component_id=component.id)
        except Exception as e:
            logger.error(f"Failed to trace implementation of {component.name}: {e}")
            usage = ComponentUsage(component_id=component.id)
        return usage
