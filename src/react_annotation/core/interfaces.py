"""Core interfaces for render annotation analysis.

This module defines the abstract base classes the engine depends on: access to
one parsed source unit (syntax tree, documentation tags, type classification)
and cross-unit component resolution. Concrete implementations live in the
``parsing`` package.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from .models import ComponentKind, SourceSpan


@dataclass(frozen=True)
class DocComment:
    """A raw documentation block and where it starts."""

    text: str
    span: SourceSpan


@dataclass
class ComponentShape:
    """Host view of a definition that can act as a component."""

    name: str
    kind: ComponentKind
    node: Any
    body: Any
    props_param: Any = None
    props_type: Any = None


@dataclass
class PropertyInfo:
    """A property member of a props type as seen by the host."""

    name: str
    type_text: Optional[str]
    node: Any = None
    span: Optional[SourceSpan] = None


@dataclass
class PropBindings:
    """Local names through which a component body reads its props.

    Attributes:
        aliases: local variable name -> property name (destructuring)
        objects: names bound to the whole props object (``props.header``)
        this_props: whether ``this.props.x`` reads are props reads (class components)
    """

    aliases: Dict[str, str] = field(default_factory=dict)
    objects: Set[str] = field(default_factory=set)
    this_props: bool = False


class SourceUnit(ABC):
    """
    Abstract access to one parsed source unit.

    Implementations wrap a host syntax tree. They must be read-only: the engine
    never mutates the tree, and several engines may share nothing but the unit.
    """

    def __init__(self, file_path: str):
        self.file_path = file_path

    @property
    @abstractmethod
    def root(self) -> Any:
        """Root node of the syntax tree."""
        pass

    @abstractmethod
    def iter_nodes(self) -> Iterator[Any]:
        """Yield every node of the tree in deterministic pre-order."""
        pass

    @abstractmethod
    def doc_comments(self, node: Any) -> List[DocComment]:
        """Documentation blocks attached to ``node`` (empty if none)."""
        pass

    @abstractmethod
    def text(self, node: Any) -> str:
        pass

    @abstractmethod
    def span(self, node: Any) -> SourceSpan:
        pass

    @abstractmethod
    def component_shape(self, node: Any) -> Optional[ComponentShape]:
        """
        Describe ``node`` as a component definition.

        Returns:
            ComponentShape, or None if the node is not a function or class
            definition that could render markup
        """
        pass

    @abstractmethod
    def component_properties(self, shape: ComponentShape) -> List[PropertyInfo]:
        """Properties of the component's props type, in declaration order."""
        pass

    @abstractmethod
    def enclosing_property(self, node: Any) -> Optional[Any]:
        """Nearest property member node enclosing (or equal to) ``node``."""
        pass

    @abstractmethod
    def property_info(self, property_node: Any) -> Optional[PropertyInfo]:
        pass

    @abstractmethod
    def sibling_property_names(self, property_node: Any) -> List[str]:
        """Names of the other members of the type that declares ``property_node``."""
        pass

    @abstractmethod
    def prop_bindings(self, shape: ComponentShape) -> PropBindings:
        pass

    @abstractmethod
    def prop_reference(self, node: Any, bindings: PropBindings) -> Optional[str]:
        """Name of the prop read by ``node``, or None if it is not a props read."""
        pass

    @abstractmethod
    def is_renderable_type(self, type_text: Optional[str]) -> bool:
        """Classify a declared type as able to hold renderable content."""
        pass

    @abstractmethod
    def is_element(self, node: Any) -> bool:
        """Whether ``node`` instantiates markup (an element or fragment)."""
        pass

    @abstractmethod
    def element_name(self, element: Any) -> Optional[str]:
        pass

    @abstractmethod
    def element_attributes(self, element: Any) -> List[Tuple[Optional[str], Any]]:
        pass

    @abstractmethod
    def element_children(self, element: Any) -> List[Any]:
        pass


class ComponentResolver(ABC):
    """Resolves component names that are not declared in the analyzed unit."""

    @abstractmethod
    def resolve(self, name: str, unit: SourceUnit) -> Optional[str]:
        """
        Resolve a component reference.

        Args:
            name: Identifier as written (may be dotted, e.g. ``UI.Header``)
            unit: The unit the reference appears in

        Returns:
            A stable external identity for the component, or None if unresolved
        """
        pass


class NullComponentResolver(ComponentResolver):
    """Resolver for hosts without cross-unit symbol information."""

    def resolve(self, name: str, unit: SourceUnit) -> Optional[str]:
        return None
