"""
Tree-sitter TypeScript nodes seen through the indexer's SyntaxNode port.

classify() decides which NodeKind a tree-sitter node is; TypeScriptNode wraps
a node together with its source file and exposes the anchor span the emitter
records.
"""

from functools import cached_property
from typing import Any

from .visitors import NodeKind

CLASS_NODE_TYPES = {
    "class_declaration",
    "abstract_class_declaration",
    "interface_declaration",
    "enum_declaration",
}
FUNCTION_NODE_TYPES = {
    "function_declaration",
    "generator_function_declaration",
    "function_signature",
    "method_definition",
    "method_signature",
    "abstract_method_signature",
}
CLASS_BODY_TYPES = {"class_declaration", "abstract_class_declaration", "class"}
PARAMETER_NODE_TYPES = {"required_parameter", "optional_parameter"}
NAMED_TYPE_NODE_TYPES = {"type_identifier", "generic_type", "nested_type_identifier", "predefined_type"}
NULLISH_TYPES = {"null", "undefined"}
PATTERN_NODE_TYPES = {
    "object_pattern",
    "array_pattern",
    "rest_pattern",
    "pair_pattern",
    "assignment_pattern",
    "object_assignment_pattern",
}
BINDING_NODE_TYPES = {"identifier", "shorthand_property_identifier_pattern"}


def node_text(node: Any) -> str:
    return node.text.decode("utf-8", errors="replace") if node is not None and node.text else ""


def same_node(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return False
    return a.start_byte == b.start_byte and a.end_byte == b.end_byte and a.type == b.type


def is_field(node: Any, field_name: str) -> bool:
    """Whether `node` sits in the given field of its parent."""
    parent = node.parent
    return parent is not None and same_node(parent.child_by_field_name(field_name), node)


def union_members(union: Any) -> list[Any]:
    """Flatten nested union_type nodes into their member types."""
    members = []
    for child in union.named_children:
        if child.type == "union_type":
            members.extend(union_members(child))
        else:
            members.append(child)
    return members


def nullable_member(union: Any) -> Any | None:
    """The single named type of a `T | null | undefined` union, if that is what it is."""
    named = []
    for member in union_members(union):
        if node_text(member) in NULLISH_TYPES:
            continue
        named.append(member)
    if len(named) == 1 and named[0].type in NAMED_TYPE_NODE_TYPES and len(union_members(union)) > 1:
        return named[0]
    return None


def outermost_union(node: Any) -> Any:
    while node.parent is not None and node.parent.type == "union_type":
        node = node.parent
    return node


def is_wrapped_by_nullable_union(node: Any) -> bool:
    if node.parent is None or node.parent.type != "union_type":
        return False
    return same_node(nullable_member(outermost_union(node)), node)


def declaration_name(node: Any) -> Any | None:
    """The identifier that names a declaration node."""
    if node.type == "property_identifier":
        return node
    if node.type in PARAMETER_NODE_TYPES:
        pattern = node.child_by_field_name("pattern")
        if pattern is not None and pattern.type == "rest_pattern":
            return next((c for c in pattern.named_children if c.type == "identifier"), None)
        return pattern
    if node.type == "identifier":
        return node
    if node.type == "enum_assignment":
        return node.child_by_field_name("name") or (node.named_children[0] if node.named_child_count else None)
    return node.child_by_field_name("name")


def callee_anchor(node: Any) -> Any | None:
    """The part of a call that names what is called."""
    field_name = "constructor" if node.type == "new_expression" else "function"
    callee = node.child_by_field_name(field_name)
    if callee is None:
        return None
    if callee.type == "member_expression":
        return callee.child_by_field_name("property") or callee
    return callee


def type_anchor(node: Any) -> Any:
    if node.type == "union_type":
        member = nullable_member(outermost_union(node))
        return type_anchor(member) if member is not None else node
    if node.type == "generic_type":
        name = node.child_by_field_name("name")
        return type_anchor(name) if name is not None else node
    if node.type in ("nested_type_identifier", "member_expression"):
        return node.child_by_field_name("name") or node.child_by_field_name("property") or node
    return node


def _classify_binding(node: Any) -> NodeKind:
    """Kind of an identifier bound by a destructuring pattern, loop header or catch clause."""
    current = node
    parent = node.parent
    while parent is not None and parent.type in PATTERN_NODE_TYPES:
        if parent.type == "pair_pattern" and not is_field(current, "value"):
            return NodeKind.OTHER
        if parent.type in ("assignment_pattern", "object_assignment_pattern") and not is_field(current, "left"):
            return NodeKind.OTHER
        current, parent = parent, parent.parent
    if parent is None:
        return NodeKind.OTHER

    nested = current is not node
    if parent.type == "variable_declarator":
        # a plain identifier name is anchored by the declarator itself
        return NodeKind.PROPERTY if nested and is_field(current, "name") else NodeKind.OTHER
    if parent.type in PARAMETER_NODE_TYPES:
        name = declaration_name(parent)
        if not is_field(current, "pattern") or (name is not None and name.type == "identifier"):
            return NodeKind.OTHER
        return NodeKind.PARAMETER
    if parent.type == "for_in_statement":
        if parent.child_by_field_name("kind") is None or not is_field(current, "left"):
            return NodeKind.OTHER
        return NodeKind.PROPERTY
    if parent.type == "catch_clause":
        return NodeKind.PROPERTY if is_field(current, "parameter") else NodeKind.OTHER
    return NodeKind.OTHER


def _classify_type(node: Any) -> NodeKind:
    if is_field(node, "name") or is_wrapped_by_nullable_union(node):
        return NodeKind.OTHER
    if node.parent is not None and node.parent.type == "infer_type":
        return NodeKind.OTHER
    if node.type == "predefined_type" and node_text(node) in NULLISH_TYPES:
        return NodeKind.OTHER
    return NodeKind.TYPE_REFERENCE


def classify(node: Any) -> NodeKind:
    """Map a tree-sitter node onto the indexer's node kinds."""
    node_type = node.type
    parent = node.parent

    if node_type in CLASS_NODE_TYPES:
        return NodeKind.CLASS if node.child_by_field_name("name") is not None else NodeKind.OTHER
    if node_type == "class":
        return NodeKind.CLASS if node.child_by_field_name("name") is not None else NodeKind.OTHER
    if node_type in FUNCTION_NODE_TYPES:
        name = node.child_by_field_name("name")
        if name is None or name.type == "computed_property_name":
            return NodeKind.OTHER
        return NodeKind.FUNCTION
    if node_type == "variable_declarator":
        name = node.child_by_field_name("name")
        return NodeKind.PROPERTY if name is not None and name.type == "identifier" else NodeKind.OTHER
    if node_type in ("public_field_definition", "property_signature"):
        name = node.child_by_field_name("name")
        if name is None or name.type == "computed_property_name":
            return NodeKind.OTHER
        return NodeKind.PROPERTY
    if node_type == "enum_assignment":
        return NodeKind.PROPERTY
    if node_type == "property_identifier" and parent is not None and parent.type == "enum_body":
        return NodeKind.PROPERTY
    if node_type in PARAMETER_NODE_TYPES:
        name = declaration_name(node)
        return NodeKind.PARAMETER if name is not None and name.type == "identifier" else NodeKind.OTHER
    if node_type == "identifier" and parent is not None and parent.type == "arrow_function":
        return NodeKind.PARAMETER if is_field(node, "parameter") else NodeKind.OTHER
    if node_type in BINDING_NODE_TYPES:
        binding = _classify_binding(node)
        if binding is not NodeKind.OTHER:
            return binding
    if node_type == "type_parameter":
        return NodeKind.TYPE_PARAMETER
    if node_type == "type_alias_declaration":
        return NodeKind.TYPE_ALIAS
    if node_type in ("call_expression", "new_expression"):
        callee = node.child_by_field_name("constructor" if node_type == "new_expression" else "function")
        if callee is None or callee.type == "import":
            return NodeKind.OTHER
        return NodeKind.CALL
    if node_type in NAMED_TYPE_NODE_TYPES:
        return _classify_type(node)
    if node_type == "union_type":
        if parent is not None and parent.type == "union_type":
            return NodeKind.OTHER
        return NodeKind.TYPE_REFERENCE if nullable_member(node) is not None else NodeKind.OTHER
    if node_type in ("identifier", "member_expression") and parent is not None and parent.type == "extends_clause":
        return NodeKind.TYPE_REFERENCE if is_field(node, "value") else NodeKind.OTHER
    return NodeKind.OTHER


class TypeScriptNode:
    """A tree-sitter node adapted to the SyntaxNode protocol."""

    def __init__(self, ts_node: Any, file: Any):
        self.ts_node = ts_node
        self.file = file

    @cached_property
    def kind(self) -> NodeKind:
        return classify(self.ts_node)

    @cached_property
    def anchor(self) -> Any:
        kind = self.kind
        if kind is NodeKind.CALL:
            return callee_anchor(self.ts_node) or self.ts_node
        if kind is NodeKind.TYPE_REFERENCE:
            return type_anchor(self.ts_node)
        if kind is NodeKind.OTHER:
            return self.ts_node
        return declaration_name(self.ts_node) or self.ts_node

    @property
    def span(self) -> tuple[int, int]:
        anchor = self.anchor
        return anchor.start_byte, anchor.end_byte

    @property
    def name(self) -> str | None:
        if self.kind is NodeKind.OTHER:
            return None
        return node_text(self.anchor) or None

    @property
    def children(self) -> list["TypeScriptNode"]:
        return [TypeScriptNode(child, self.file) for child in self.ts_node.named_children]

    def __repr__(self) -> str:
        row, column = self.ts_node.start_point
        return f"TypeScriptNode({self.ts_node.type}, {self.kind.name}, {row + 1}:{column + 1})"
