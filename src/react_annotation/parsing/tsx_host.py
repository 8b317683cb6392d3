"""
Tree-sitter TSX source unit.

Wraps one parsed TSX/TypeScript tree and answers the questions the analysis
engine asks of its host: which documentation blocks belong to which
declaration, which definitions can act as components, what their props are,
and how JSX elements and props reads look in the tree. The tree is never
modified.
"""

import logging
from typing import Dict, Iterator, List, Optional, Set, Tuple

from tree_sitter import Node, Parser, Tree

from ..core.interfaces import (
    ComponentShape,
    DocComment,
    PropBindings,
    PropertyInfo,
    SourceUnit,
)
from ..core.models import ComponentKind, SourceSpan
from .doc_tags import is_doc_comment
from .type_classifier import RenderableTypeClassifier

# Configure logging
logger = logging.getLogger(__name__)

FUNCTION_NODE_TYPES = ("function_declaration", "generator_function_declaration")
FUNCTION_VALUE_TYPES = ("arrow_function", "function_expression", "function")
CLASS_NODE_TYPES = ("class_declaration", "abstract_class_declaration", "class")
TYPE_DECLARATION_TYPES = ("interface_declaration", "type_alias_declaration")
OBJECT_TYPE_TYPES = ("object_type", "interface_body")
PROPERTY_MEMBER_TYPES = ("property_signature",)
VARIABLE_WRAPPER_TYPES = ("lexical_declaration", "variable_declaration")
PARAMETER_TYPES = ("required_parameter", "optional_parameter")

JSX_ELEMENT_TYPES = ("jsx_element", "jsx_self_closing_element", "jsx_fragment")
JSX_TAG_TYPES = ("jsx_opening_element", "jsx_closing_element")
JSX_SKIPPED_CHILD_TYPES = JSX_TAG_TYPES + ("jsx_text", "html_character_reference", "comment")

CHILDREN_PROP = "children"


class TsxSourceUnit(SourceUnit):
    """
    Source unit backed by a tree-sitter TSX or TypeScript tree.

    Doc blocks are attached to the declaration that follows them; ``export``
    and ``const``/``let`` wrappers are unwrapped so that a block above
    ``export const Foo = () => ...`` belongs to the ``Foo`` declarator.
    """

    def __init__(
        self,
        tree: Tree,
        source: bytes,
        file_path: str,
        classifier: Optional[RenderableTypeClassifier] = None,
    ):
        super().__init__(file_path)
        self.tree = tree
        self._source = source
        self.classifier = classifier or RenderableTypeClassifier()

        # Host-internal indexes keyed by tree-sitter node ids
        self._doc_comments: Dict[int, List[DocComment]] = {}
        self._type_declarations: Dict[str, Node] = {}
        self._index()

        if tree.root_node.has_error:
            logger.warning(
                f"Syntax errors in {file_path}; analysis continues on the recovered tree"
            )

    @classmethod
    def from_source(
        cls,
        content: str,
        file_path: str,
        parser: Parser,
        classifier: Optional[RenderableTypeClassifier] = None,
    ) -> "TsxSourceUnit":
        """Parse ``content`` and wrap the resulting tree."""
        source = content.encode("utf-8")
        tree = parser.parse(source)
        return cls(tree, source, file_path, classifier)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def iter_nodes(self) -> Iterator[Node]:
        stack = [self.tree.root_node]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def _index(self) -> None:
        for node in self.iter_nodes():
            if node.type == "comment":
                text = self.text(node)
                if not is_doc_comment(text):
                    continue
                target = self._attachment_target(node)
                if target is not None:
                    self._doc_comments.setdefault(target.id, []).append(
                        DocComment(text=text, span=self.span(node))
                    )
            elif node.type in TYPE_DECLARATION_TYPES:
                name_node = node.child_by_field_name("name")
                if name_node is not None:
                    self._type_declarations.setdefault(self.text(name_node), node)

    def _attachment_target(self, comment: Node) -> Optional[Node]:
        sibling = comment.next_named_sibling
        while sibling is not None and sibling.type == "comment":
            sibling = sibling.next_named_sibling
        if sibling is None:
            return None
        return self._unwrap_declaration(sibling)

    def _unwrap_declaration(self, node: Node) -> Node:
        if node.type == "export_statement":
            inner = node.child_by_field_name("declaration") or node.child_by_field_name("value")
            if inner is None:
                return node
            node = inner
        if node.type in VARIABLE_WRAPPER_TYPES:
            for child in node.named_children:
                if child.type == "variable_declarator":
                    return child
        return node

    def doc_comments(self, node: Node) -> List[DocComment]:
        return self._doc_comments.get(node.id, [])

    def text(self, node: Node) -> str:
        return self._source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def span(self, node: Node) -> SourceSpan:
        return SourceSpan(
            file_path=self.file_path,
            line=node.start_point[0] + 1,
            column=node.start_point[1] + 1,
            end_line=node.end_point[0] + 1,
            end_column=node.end_point[1] + 1,
        )

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def component_shape(self, node: Node) -> Optional[ComponentShape]:
        if node.type in FUNCTION_NODE_TYPES:
            name_node = node.child_by_field_name("name")
            if name_node is None:
                return None
            props_param, props_type = self._first_parameter(node)
            return ComponentShape(
                name=self.text(name_node),
                kind=ComponentKind.FUNCTION,
                node=node,
                body=node.child_by_field_name("body"),
                props_param=props_param,
                props_type=props_type,
            )

        if node.type == "variable_declarator":
            name_node = node.child_by_field_name("name")
            value = self._unwrap_function_value(node.child_by_field_name("value"))
            if name_node is None or name_node.type != "identifier" or value is None:
                return None
            props_param, props_type = self._first_parameter(value)
            if props_type is None:
                # const Foo: React.FC<FooProps> = (...) => ...
                props_type = self._first_type_argument(node.child_by_field_name("type"))
            return ComponentShape(
                name=self.text(name_node),
                kind=ComponentKind.FUNCTION,
                node=node,
                body=value.child_by_field_name("body"),
                props_param=props_param,
                props_type=props_type,
            )

        if node.type in CLASS_NODE_TYPES:
            name_node = node.child_by_field_name("name")
            if name_node is None:
                return None
            return ComponentShape(
                name=self.text(name_node),
                kind=ComponentKind.CLASS,
                node=node,
                body=self._render_method_body(node),
                props_type=self._heritage_props_type(node),
            )

        return None

    def _unwrap_function_value(self, value: Optional[Node]) -> Optional[Node]:
        """Find the function in ``memo(forwardRef((props, ref) => ...))`` style wrappers."""
        if value is None:
            return None
        if value.type in FUNCTION_VALUE_TYPES:
            return value
        if value.type == "parenthesized_expression" and value.named_child_count:
            return self._unwrap_function_value(value.named_children[0])
        if value.type == "call_expression":
            arguments = value.child_by_field_name("arguments")
            if arguments is None:
                return None
            for argument in arguments.named_children:
                found = self._unwrap_function_value(argument)
                if found is not None:
                    return found
        return None

    def _first_parameter(self, function_node: Node) -> Tuple[Optional[Node], Optional[Node]]:
        single = function_node.child_by_field_name("parameter")
        if single is not None:
            return single, None

        parameters = function_node.child_by_field_name("parameters")
        if parameters is None or not parameters.named_child_count:
            return None, None

        first = parameters.named_children[0]
        if first.type in PARAMETER_TYPES:
            annotation = first.child_by_field_name("type")
            return first.child_by_field_name("pattern"), self._annotated_type(annotation)
        if first.type in ("identifier", "object_pattern"):
            return first, None
        return None, None

    def _annotated_type(self, annotation: Optional[Node]) -> Optional[Node]:
        if annotation is None:
            return None
        if annotation.type == "type_annotation":
            return annotation.named_children[0] if annotation.named_child_count else None
        return annotation

    def _first_type_argument(self, annotation: Optional[Node]) -> Optional[Node]:
        type_node = self._annotated_type(annotation)
        if type_node is None or type_node.type != "generic_type":
            return None
        return self._type_arguments(type_node)

    def _type_arguments(self, node: Node) -> Optional[Node]:
        arguments = node.child_by_field_name("type_arguments")
        if arguments is None:
            for child in node.named_children:
                if child.type == "type_arguments":
                    arguments = child
                    break
        if arguments is None or not arguments.named_child_count:
            return None
        return arguments.named_children[0]

    def _heritage_props_type(self, class_node: Node) -> Optional[Node]:
        for child in class_node.named_children:
            if child.type != "class_heritage":
                continue
            for clause in child.named_children:
                if clause.type == "extends_clause":
                    return self._type_arguments(clause)
        return None

    def _render_method_body(self, class_node: Node) -> Optional[Node]:
        body = class_node.child_by_field_name("body")
        if body is None:
            return None
        for member in body.named_children:
            if member.type != "method_definition":
                continue
            name_node = member.child_by_field_name("name")
            if name_node is not None and self.text(name_node) == "render":
                return member.child_by_field_name("body")
        return None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    def component_properties(self, shape: ComponentShape) -> List[PropertyInfo]:
        return self._properties_of_type(shape.props_type, set())

    def _properties_of_type(self, type_node: Optional[Node], visited: Set[str]) -> List[PropertyInfo]:
        if type_node is None:
            return []

        if type_node.type in OBJECT_TYPE_TYPES:
            return [
                info
                for info in (
                    self.property_info(member)
                    for member in type_node.named_children
                    if member.type in PROPERTY_MEMBER_TYPES
                )
                if info is not None
            ]

        if type_node.type == "type_identifier":
            return self._properties_of_named_type(self.text(type_node), visited)

        if type_node.type == "generic_type":
            name_node = type_node.child_by_field_name("name")
            name = self.text(name_node) if name_node is not None else ""
            if name.split(".")[-1] == "PropsWithChildren":
                properties = self._properties_of_type(self._type_arguments(type_node), visited)
                if all(info.name != CHILDREN_PROP for info in properties):
                    properties.append(PropertyInfo(name=CHILDREN_PROP, type_text="React.ReactNode"))
                return properties
            return self._properties_of_named_type(name, visited)

        if type_node.type == "intersection_type":
            merged: List[PropertyInfo] = []
            for member in type_node.named_children:
                merged = _merge_properties(merged, self._properties_of_type(member, visited))
            return merged

        if type_node.type == "parenthesized_type" and type_node.named_child_count:
            return self._properties_of_type(type_node.named_children[0], visited)

        return []

    def _properties_of_named_type(self, name: str, visited: Set[str]) -> List[PropertyInfo]:
        declaration = self._type_declarations.get(name)
        if declaration is None or name in visited:
            return []
        visited.add(name)

        if declaration.type == "type_alias_declaration":
            return self._properties_of_type(declaration.child_by_field_name("value"), visited)

        properties = self._properties_of_type(declaration.child_by_field_name("body"), visited)
        for child in declaration.named_children:
            if child.type == "extends_type_clause":
                for base in child.named_children:
                    properties = _merge_properties(properties, self._properties_of_type(base, visited))
        return properties

    def property_info(self, property_node: Node) -> Optional[PropertyInfo]:
        name_node = property_node.child_by_field_name("name")
        if name_node is None:
            return None
        type_node = self._annotated_type(property_node.child_by_field_name("type"))
        return PropertyInfo(
            name=self.text(name_node).strip("'\""),
            type_text=self.text(type_node) if type_node is not None else None,
            node=property_node,
            span=self.span(property_node),
        )

    def enclosing_property(self, node: Node) -> Optional[Node]:
        current = node
        while current is not None:
            if current.type in PROPERTY_MEMBER_TYPES:
                return current
            current = current.parent
        return None

    def sibling_property_names(self, property_node: Node) -> List[str]:
        parent = property_node.parent
        if parent is None:
            return []
        names = []
        for member in parent.named_children:
            if member.type in PROPERTY_MEMBER_TYPES and member.id != property_node.id:
                info = self.property_info(member)
                if info is not None:
                    names.append(info.name)
        return names

    def is_renderable_type(self, type_text: Optional[str]) -> bool:
        return self.classifier.accepts_renderable(type_text)

    # ------------------------------------------------------------------
    # Props reads
    # ------------------------------------------------------------------

    def prop_bindings(self, shape: ComponentShape) -> PropBindings:
        bindings = PropBindings(this_props=shape.kind == ComponentKind.CLASS)
        pattern = shape.props_param
        if pattern is not None:
            if pattern.type == "identifier":
                bindings.objects.add(self.text(pattern))
            elif pattern.type == "object_pattern":
                self._bind_pattern(pattern, bindings)

        if shape.body is None:
            return bindings

        # const { header } = props;  /  const { header } = this.props;
        stack = [shape.body]
        while stack:
            node = stack.pop()
            if node.type == "variable_declarator":
                name_node = node.child_by_field_name("name")
                value = node.child_by_field_name("value")
                if (
                    name_node is not None
                    and name_node.type == "object_pattern"
                    and value is not None
                    and self._is_props_object(value, bindings)
                ):
                    self._bind_pattern(name_node, bindings)
            stack.extend(reversed(node.named_children))
        return bindings

    def _is_props_object(self, node: Node, bindings: PropBindings) -> bool:
        if node.type == "identifier":
            return self.text(node) in bindings.objects
        return bindings.this_props and node.type == "member_expression" and self.text(node) == "this.props"

    def _bind_pattern(self, pattern: Node, bindings: PropBindings) -> None:
        for child in pattern.named_children:
            if child.type == "shorthand_property_identifier_pattern":
                name = self.text(child)
                bindings.aliases[name] = name
            elif child.type == "pair_pattern":
                key = child.child_by_field_name("key")
                value = child.child_by_field_name("value")
                if key is None or value is None:
                    continue
                if value.type == "assignment_pattern":
                    value = value.child_by_field_name("left")
                if value is not None and value.type == "identifier":
                    bindings.aliases[self.text(value)] = self.text(key).strip("'\"")
            elif child.type == "object_assignment_pattern":
                left = child.child_by_field_name("left")
                if left is not None and left.type == "shorthand_property_identifier_pattern":
                    name = self.text(left)
                    bindings.aliases[name] = name
            elif child.type == "rest_pattern":
                for inner in child.named_children:
                    if inner.type == "identifier":
                        bindings.objects.add(self.text(inner))

    def prop_reference(self, node: Node, bindings: PropBindings) -> Optional[str]:
        """Name of the prop read by ``node``, if it is a plain props read."""
        if node.type == "identifier":
            return bindings.aliases.get(self.text(node))
        if node.type == "member_expression":
            obj = node.child_by_field_name("object")
            prop = node.child_by_field_name("property")
            if obj is None or prop is None or prop.type != "property_identifier":
                return None
            if obj.type == "identifier" and self.text(obj) in bindings.objects:
                return self.text(prop)
            if bindings.this_props and obj.type == "member_expression" and self.text(obj) == "this.props":
                return self.text(prop)
        return None

    # ------------------------------------------------------------------
    # JSX
    # ------------------------------------------------------------------

    def is_element(self, node: Node) -> bool:
        return node.type in JSX_ELEMENT_TYPES

    def _opening_tag(self, element: Node) -> Optional[Node]:
        if element.type == "jsx_self_closing_element":
            return element
        if element.type == "jsx_element":
            tag = element.child_by_field_name("open_tag")
            if tag is not None:
                return tag
            for child in element.named_children:
                if child.type == "jsx_opening_element":
                    return child
        return None

    def element_name(self, element: Node) -> Optional[str]:
        """Tag name as written, or None for fragments."""
        tag = self._opening_tag(element)
        if tag is None:
            return None
        name_node = tag.child_by_field_name("name")
        return self.text(name_node) if name_node is not None else None

    def element_attributes(self, element: Node) -> List[Tuple[Optional[str], Optional[Node]]]:
        """
        Attributes of an element's opening tag.

        Returns:
            (name, value) pairs; spread attributes have name None and the
            spread expression as value, valueless attributes have value None
        """
        tag = self._opening_tag(element)
        if tag is None:
            return []
        name_node = tag.child_by_field_name("name")
        attributes = []
        for child in tag.named_children:
            if name_node is not None and child.id == name_node.id:
                continue
            if child.type == "jsx_attribute":
                parts = child.named_children
                if not parts:
                    continue
                value = parts[1] if len(parts) > 1 else None
                attributes.append((self.text(parts[0]), value))
            elif child.type == "jsx_expression":
                attributes.append((None, child))
        return attributes

    def element_children(self, element: Node) -> List[Node]:
        if element.type == "jsx_self_closing_element":
            return []
        return [child for child in element.named_children if child.type not in JSX_SKIPPED_CHILD_TYPES]


def _merge_properties(first: List[PropertyInfo], second: List[PropertyInfo]) -> List[PropertyInfo]:
    seen = {info.name for info in first}
    return first + [info for info in second if info.name not in seen]
