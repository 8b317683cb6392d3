"""Core data models for render annotation analysis.

This module contains all shared data classes used across the analysis
pipeline. Declarations live in a per-unit arena and are referenced by integer
ids, so graphs and lookup tables never key on live syntax nodes.
"""

from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum


class ComponentKind(Enum):
    """How a component is defined in source."""

    FUNCTION = "function"
    CLASS = "class"


class TargetKind(Enum):
    """What a render target refers to."""

    COMPONENT = "component"
    PROPERTY = "property"
    INTRINSIC = "intrinsic"
    EXTERNAL = "external"
    WILDCARD = "wildcard"
    UNRESOLVED = "unresolved"


class TagOwnerKind(Enum):
    """The kind of declaration a render tag is attached to."""

    COMPONENT = "component"
    PROPERTY = "property"


class PathKind(Enum):
    """How an actual edge was observed."""

    DIRECT = "direct"
    VIA_PROPERTY = "via_property"


class DiscrepancyKind(Enum):
    """Classified findings. Declaration order is the tie-break order when sorting."""

    UNDECLARED_USAGE = "UndeclaredUsage"
    MISSING_DECLARATION = "MissingDeclaration"
    MISMATCHED_TARGET = "MismatchedTarget"
    UNRESOLVED_TARGET = "UnresolvedTarget"
    CYCLE_DEPTH_EXCEEDED = "CycleDepthExceeded"
    MALFORMED_TAG = "MalformedTag"

    @property
    def order(self) -> int:
        return list(DiscrepancyKind).index(self)


@dataclass(frozen=True)
class SourceSpan:
    """A location in a source unit. Lines and columns are 1-based."""

    file_path: str
    line: int
    column: int
    end_line: int = 0
    end_column: int = 0

    @property
    def sort_key(self) -> Tuple[str, int, int]:
        return (self.file_path, self.line, self.column)

    def __str__(self) -> str:
        return f"{self.file_path}:{self.line}:{self.column}"


def is_intrinsic_name(name: str) -> bool:
    """Host elements such as ``div`` or ``my-widget`` start lower-case or contain a dash."""
    return bool(name) and (name[0].islower() or "-" in name)


@dataclass(frozen=True)
class RenderTarget:
    """A resolved (or unresolved) reference to something a component renders."""

    kind: TargetKind
    name: str = ""
    ref_id: Optional[int] = None

    @property
    def key(self) -> Tuple:
        """Identity used for edge deduplication and comparisons.

        External and unresolved names share a key so that a declared external
        target can be matched against an opaque instantiation of the same name.
        """
        if self.kind in (TargetKind.COMPONENT, TargetKind.PROPERTY):
            return (self.kind.value, self.ref_id)
        if self.kind in (TargetKind.EXTERNAL, TargetKind.UNRESOLVED):
            return ("external", self.name)
        return (self.kind.value, self.name)

    @property
    def is_opaque(self) -> bool:
        return self.kind in (TargetKind.EXTERNAL, TargetKind.UNRESOLVED)

    @property
    def label(self) -> str:
        if self.kind == TargetKind.INTRINSIC:
            return f"<{self.name}>"
        if self.kind == TargetKind.WILDCARD:
            return "*"
        return self.name

    @classmethod
    def for_component(cls, component: "ComponentDeclaration") -> "RenderTarget":
        return cls(TargetKind.COMPONENT, component.name, component.id)

    @classmethod
    def for_property(cls, prop: "PropertyDeclaration") -> "RenderTarget":
        return cls(TargetKind.PROPERTY, prop.name, prop.id)

    @classmethod
    def intrinsic(cls, name: str) -> "RenderTarget":
        return cls(TargetKind.INTRINSIC, name)

    @classmethod
    def external(cls, name: str) -> "RenderTarget":
        return cls(TargetKind.EXTERNAL, name)

    @classmethod
    def wildcard(cls) -> "RenderTarget":
        return cls(TargetKind.WILDCARD)

    @classmethod
    def unresolved(cls, name: str) -> "RenderTarget":
        return cls(TargetKind.UNRESOLVED, name)


@dataclass
class ComponentDeclaration:
    """A definition marked with the component tag."""

    id: int
    name: str
    span: SourceSpan
    kind: ComponentKind
    shape: Any = field(default=None, compare=False, repr=False)  # host ComponentShape


@dataclass
class PropertyDeclaration:
    """A property of a component's props type."""

    id: int
    name: str
    owner_id: Optional[int]
    accepts_renderable: bool
    type_text: Optional[str] = None
    span: Optional[SourceSpan] = None
    tag_ids: List[int] = field(default_factory=list)
    node: Any = field(default=None, compare=False, repr=False)


@dataclass
class RenderTag:
    """A single render annotation as written in source."""

    id: int
    owner_kind: TagOwnerKind
    owner_id: int
    raw_target: str
    span: SourceSpan
    description: str = ""
    resolved: Optional[RenderTarget] = None


@dataclass(frozen=True)
class EdgePath:
    """Direct instantiation, or content forwarded through ``depth`` property hops."""

    kind: PathKind
    depth: int = 0

    @property
    def rank(self) -> int:
        return 0 if self.kind == PathKind.DIRECT else self.depth

    @classmethod
    def direct(cls) -> "EdgePath":
        return cls(PathKind.DIRECT)

    @classmethod
    def via_property(cls, depth: int) -> "EdgePath":
        return cls(PathKind.VIA_PROPERTY, depth)


@dataclass(frozen=True)
class DeclaredEdge:
    """Intended composition derived from a render tag."""

    source_id: int
    target: RenderTarget
    span: SourceSpan
    via_property_id: Optional[int] = None


@dataclass(frozen=True)
class ActualEdge:
    """Observed composition derived from tracing an implementation.

    ``slot`` is the first (component id, property name) the content passed
    through when the path is a forwarding path.
    """

    source_id: int
    target: RenderTarget
    path: EdgePath
    span: SourceSpan
    slot: Optional[Tuple[int, str]] = None


@dataclass(frozen=True)
class Discrepancy:
    """A classified disagreement or resolution failure."""

    kind: DiscrepancyKind
    span: SourceSpan
    message: str
    details: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def sort_key(self) -> Tuple:
        return (self.span.sort_key, self.kind.order, self.message)


def sort_discrepancies(discrepancies: List[Discrepancy]) -> List[Discrepancy]:
    """Deduplicate and order discrepancies by (source location, kind)."""
    unique: Dict[Tuple, Discrepancy] = {}
    for discrepancy in discrepancies:
        unique.setdefault((discrepancy.kind, discrepancy.span, discrepancy.message), discrepancy)
    return sorted(unique.values(), key=lambda d: d.sort_key)


class DeclarationArena:
    """Per-unit storage of components, properties and tags indexed by id."""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self.components: List[ComponentDeclaration] = []
        self.properties: List[PropertyDeclaration] = []
        self.tags: List[RenderTag] = []
        self._components_by_name: Dict[str, int] = {}
        self._properties_by_owner: Dict[int, List[int]] = {}

    def add_component(
        self, name: str, span: SourceSpan, kind: ComponentKind, shape: Any = None
    ) -> ComponentDeclaration:
        component = ComponentDeclaration(
            id=len(self.components), name=name, span=span, kind=kind, shape=shape
        )
        self.components.append(component)
        # First declaration wins for name lookups
        self._components_by_name.setdefault(name, component.id)
        return component

    def add_property(
        self,
        name: str,
        owner_id: Optional[int],
        accepts_renderable: bool,
        type_text: Optional[str] = None,
        span: Optional[SourceSpan] = None,
        node: Any = None,
    ) -> PropertyDeclaration:
        prop = PropertyDeclaration(
            id=len(self.properties),
            name=name,
            owner_id=owner_id,
            accepts_renderable=accepts_renderable,
            type_text=type_text,
            span=span,
            node=node,
        )
        self.properties.append(prop)
        if owner_id is not None:
            self._properties_by_owner.setdefault(owner_id, []).append(prop.id)
        return prop

    def add_tag(
        self,
        owner_kind: TagOwnerKind,
        owner_id: int,
        raw_target: str,
        span: SourceSpan,
        description: str = "",
    ) -> RenderTag:
        tag = RenderTag(
            id=len(self.tags),
            owner_kind=owner_kind,
            owner_id=owner_id,
            raw_target=raw_target,
            span=span,
            description=description,
        )
        self.tags.append(tag)
        if owner_kind == TagOwnerKind.PROPERTY:
            self.properties[owner_id].tag_ids.append(tag.id)
        return tag

    def component_named(self, name: str) -> Optional[ComponentDeclaration]:
        component_id = self._components_by_name.get(name)
        return None if component_id is None else self.components[component_id]

    def properties_of(self, component_id: int) -> List[PropertyDeclaration]:
        return [self.properties[i] for i in self._properties_by_owner.get(component_id, [])]

    def property_of(self, component_id: int, name: str) -> Optional[PropertyDeclaration]:
        for prop in self.properties_of(component_id):
            if prop.name == name:
                return prop
        return None

    def component_tags(self, component_id: int) -> List[RenderTag]:
        return [
            tag
            for tag in self.tags
            if tag.owner_kind == TagOwnerKind.COMPONENT and tag.owner_id == component_id
        ]

    def property_tags(self, property_id: int) -> List[RenderTag]:
        return [self.tags[i] for i in self.properties[property_id].tag_ids]
