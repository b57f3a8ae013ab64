"""
Scope-based binder for TypeScript projects.

The binder is the DescriptorResolver the TypeScript host hands to the
indexer. It works in two phases:

1. declare: add_file() walks one parsed file, builds its lexical scopes and
   creates a Descriptor for every declaration. Members are registered on
   their owners in declaration order, and TypeScript declaration merges
   (interface + interface, class + interface, namespace + namespace, var
   redeclarations) share one descriptor.
2. link: link() resolves imports against the export tables of the other
   declared files and resolves class and interface heritage.

After link() every resolve_* method only reads, so worker threads may query
one binder concurrently.
"""

import logging
import posixpath
from dataclasses import dataclass, field
from typing import Any

from .descriptors import CLASS_LIKE_KINDS, Descriptor, DescriptorKind, ResolvedType
from .module_resolver import ModuleResolver
from .typescript_nodes import (
    CLASS_BODY_TYPES,
    TypeScriptNode,
    declaration_name,
    node_text,
    nullable_member,
)

logger = logging.getLogger(__name__)

BUILTINS_PACKAGE = "_builtins_"
MAX_INFERENCE_DEPTH = 8

VALUE_KINDS = frozenset(
    {
        DescriptorKind.CLASS,
        DescriptorKind.ENUM,
        DescriptorKind.FUNCTION,
        DescriptorKind.PROPERTY,
        DescriptorKind.PARAMETER,
        DescriptorKind.PACKAGE,
    }
)
TYPE_KINDS = frozenset(
    {
        DescriptorKind.CLASS,
        DescriptorKind.INTERFACE,
        DescriptorKind.ENUM,
        DescriptorKind.TYPE_ALIAS,
        DescriptorKind.TYPE_PARAMETER,
    }
)
NAMESPACE_KINDS = frozenset(
    {DescriptorKind.PACKAGE, DescriptorKind.CLASS, DescriptorKind.ENUM, DescriptorKind.INTERFACE}
)

# Nodes that open a block scope; their declarations are local
BLOCK_SCOPE_TYPES = {
    "statement_block",
    "for_statement",
    "for_in_statement",
    "catch_clause",
    "class_static_block",
    "switch_body",
    "function_type",
    "constructor_type",
    "call_signature",
    "construct_signature",
    "conditional_type",
    "index_signature",
}
FUNCTION_EXPRESSION_TYPES = {"arrow_function", "function_expression", "function", "generator_function"}
TRANSPARENT_EXPRESSIONS = {"parenthesized_expression", "non_null_expression", "satisfies_expression"}

PRIMITIVE_WRAPPERS = {"string": "String", "number": "Number", "boolean": "Boolean", "symbol": "Symbol"}
LITERAL_TYPES = {
    "string": "String",
    "template_string": "String",
    "number": "Number",
    "true": "Boolean",
    "false": "Boolean",
    "array": "Array",
    "regex": "RegExp",
    "arrow_function": "Function",
    "function_expression": "Function",
}

BUILTIN_CLASSES = {
    "Array": [
        "at", "concat", "every", "filter", "find", "findIndex", "flat", "flatMap", "forEach",
        "from", "includes", "indexOf", "isArray", "join", "map", "of", "pop", "push", "reduce",
        "reverse", "shift", "slice", "some", "sort", "splice", "unshift",
    ],
    "Promise": ["all", "allSettled", "any", "catch", "finally", "race", "reject", "resolve", "then"],
    "Map": ["clear", "delete", "entries", "forEach", "get", "has", "keys", "set", "values"],
    "Set": ["add", "clear", "delete", "entries", "forEach", "has", "keys", "values"],
    "WeakMap": ["delete", "get", "has", "set"],
    "WeakSet": ["add", "delete", "has"],
    "Date": ["getDate", "getFullYear", "getMonth", "getTime", "now", "parse", "toISOString", "toJSON"],
    "Error": ["toString"],
    "TypeError": [],
    "RangeError": [],
    "RegExp": ["exec", "test"],
    "Object": [
        "assign", "create", "defineProperty", "entries", "freeze", "fromEntries", "hasOwnProperty",
        "keys", "toString", "valueOf", "values",
    ],
    "String": [
        "charAt", "endsWith", "includes", "indexOf", "match", "padEnd", "padStart", "repeat",
        "replace", "replaceAll", "slice", "split", "startsWith", "substring", "toLowerCase",
        "toUpperCase", "trim", "trimEnd", "trimStart",
    ],
    "Number": ["isFinite", "isInteger", "isNaN", "parseFloat", "parseInt", "toFixed"],
    "Boolean": [],
    "Symbol": ["for"],
    "Function": ["apply", "bind", "call"],
}
BUILTIN_INTERFACES = {
    "Console": ["debug", "error", "info", "log", "table", "trace", "warn"],
    "Math": ["abs", "ceil", "floor", "max", "min", "pow", "random", "round", "sqrt", "trunc"],
    "JSON": ["parse", "stringify"],
    "ReadonlyArray": [],
    "Iterable": [],
    "Iterator": [],
    "ArrayLike": [],
    "PromiseLike": [],
}
BUILTIN_TYPE_ALIASES = [
    "Awaited", "Exclude", "Extract", "InstanceType", "NonNullable", "Omit", "Parameters",
    "Partial", "Pick", "Readonly", "Record", "Required", "ReturnType",
]
PREDEFINED_TYPES = ["any", "bigint", "boolean", "never", "number", "object", "string", "symbol", "unknown", "void"]
BUILTIN_VALUES = {"console": "Console", "Math": "Math", "JSON": "JSON", "globalThis": None, "NaN": "Number"}
BUILTIN_FUNCTIONS = [
    "clearInterval", "clearTimeout", "decodeURIComponent", "encodeURIComponent", "isFinite", "isNaN",
    "parseFloat", "parseInt", "queueMicrotask", "require", "setInterval", "setTimeout", "structuredClone",
]
# Builtin methods whose result keeps the receiver's type, for chained calls
CHAINING_METHODS = {
    "Array": {"concat", "filter", "flat", "flatMap", "map", "reverse", "slice", "sort", "splice"},
    "Promise": {"catch", "finally", "then", "all", "allSettled", "race", "resolve", "reject"},
    "String": {
        "padEnd", "padStart", "repeat", "replace", "replaceAll", "slice", "substring",
        "toLowerCase", "toUpperCase", "trim", "trimEnd", "trimStart",
    },
}

NodeKey = tuple[int, int, str]


def node_key(ts_node: Any) -> NodeKey:
    return ts_node.start_byte, ts_node.end_byte, ts_node.type


def _literal_name(name_node: Any) -> str:
    text = node_text(name_node)
    if name_node.type == "string":
        return text[1:-1]
    return text


@dataclass(eq=False)
class Scope:
    """One lexical scope: a name table plus the owner of its declarations."""

    node: Any
    owner: Descriptor
    parent: "Scope | None" = None
    local: bool = False
    bindings: dict[str, list[Descriptor]] = field(default_factory=dict)

    def declare(self, name: str, descriptor: Descriptor) -> Descriptor:
        entries = self.bindings.setdefault(name, [])
        if descriptor not in entries:
            entries.append(descriptor)
        return descriptor

    def find(self, name: str, kinds: frozenset[DescriptorKind]) -> list[Descriptor]:
        return [d for d in self.bindings.get(name, ()) if d.kind in kinds]


@dataclass
class ImportBinding:
    local_name: str
    specifier: str
    imported: str  # exported name, "default" or "*"


@dataclass(eq=False)
class SourceFile:
    """A parsed file and everything the binder learned about it."""

    path: str
    uri: str
    tree: Any
    source: bytes
    module: Descriptor
    scopes: dict[NodeKey, Scope] = field(default_factory=dict)
    declarations: dict[NodeKey, Descriptor] = field(default_factory=dict)
    classes: dict[NodeKey, Descriptor] = field(default_factory=dict)
    import_bindings: list[ImportBinding] = field(default_factory=list)
    imports: dict[str, list[Descriptor]] = field(default_factory=dict)
    local_exports: list[tuple[str, str]] = field(default_factory=list)
    direct_exports: dict[str, list[Descriptor]] = field(default_factory=dict)
    reexports: list[tuple[str, str, str]] = field(default_factory=list)
    star_exports: list[str] = field(default_factory=list)
    exports: dict[str, list[Descriptor]] = field(default_factory=dict)

    @property
    def module_scope(self) -> Scope:
        return self.scopes[node_key(self.tree.root_node)]

    def export(self, name: str, descriptors: list[Descriptor]) -> None:
        entries = self.exports.setdefault(name, [])
        for descriptor in descriptors:
            if descriptor not in entries:
                entries.append(descriptor)


class TypeScriptBinder:
    """Declares and links TypeScript files and answers resolver queries."""

    def __init__(self, project_root: str = "."):
        self.project_root = posixpath.normpath(str(project_root).replace("\\", "/"))
        self.files: dict[str, SourceFile] = {}
        self.module_resolver: ModuleResolver | None = None

        self._packages: dict[tuple[str, ...], Descriptor] = {}
        self._module_files: dict[Descriptor, SourceFile] = {}
        self._arity: dict[Descriptor, tuple[int, int | None]] = {}
        self._implementations: set[Descriptor] = set()
        self._annotations: dict[Descriptor, tuple[Any, SourceFile]] = {}
        self._initializers: dict[Descriptor, tuple[Any, SourceFile]] = {}
        self._heritage: dict[Descriptor, list[tuple[Any, SourceFile]]] = {}
        self._bases: dict[Descriptor, list[Descriptor]] = {}
        self._type_parameters: dict[tuple[Descriptor, str], Descriptor] = {}
        self._namespace_scopes: dict[tuple[Descriptor, str], Scope] = {}
        self._linking: set[str] = set()
        self._linked_files: set[str] = set()
        self._linked = False

        self._builtins: dict[str, list[Descriptor]] = {}
        self._builtin_types: dict[Descriptor, Descriptor] = {}
        self._builtins_package = Descriptor(DescriptorKind.PACKAGE, BUILTINS_PACKAGE)
        self._declare_builtins()

        self._declarers = {
            "class_declaration": self._declare_class,
            "abstract_class_declaration": self._declare_class,
            "class": self._declare_class,
            "interface_declaration": self._declare_interface,
            "enum_declaration": self._declare_enum,
            "type_alias_declaration": self._declare_type_alias,
            "function_declaration": self._declare_function,
            "generator_function_declaration": self._declare_function,
            "function_signature": self._declare_function,
            "method_definition": self._declare_method,
            "method_signature": self._declare_method,
            "abstract_method_signature": self._declare_method,
            "property_signature": self._declare_property_signature,
            "lexical_declaration": self._declare_variables,
            "variable_declaration": self._declare_variables,
            "internal_module": self._declare_namespace,
            "module": self._declare_namespace,
            "import_statement": self._declare_import,
            "export_statement": self._declare_export,
            "required_parameter": self._declare_parameter,
            "optional_parameter": self._declare_parameter,
            "type_parameter": self._declare_type_parameter,
            "mapped_type_clause": self._declare_inferred_type,
            "infer_type": self._declare_inferred_type,
        }

    # ------------------------------------------------------------------
    # Builtins
    # ------------------------------------------------------------------

    def _declare_builtins(self) -> None:
        package = self._builtins_package

        def builtin(kind: DescriptorKind, name: str, owner: Descriptor = package) -> Descriptor:
            descriptor = owner.add_member(Descriptor(kind, name, owner=owner))
            if owner is package:
                self._builtins.setdefault(name, []).append(descriptor)
            return descriptor

        for name in PREDEFINED_TYPES:
            builtin(DescriptorKind.TYPE_ALIAS, name)
        for name in BUILTIN_TYPE_ALIASES:
            builtin(DescriptorKind.TYPE_ALIAS, name)
        for name, methods in BUILTIN_CLASSES.items():
            cls = builtin(DescriptorKind.CLASS, name)
            builtin(DescriptorKind.CONSTRUCTOR, "<init>", cls)
            for method in methods:
                builtin(DescriptorKind.FUNCTION, method, cls)
        for name, methods in BUILTIN_INTERFACES.items():
            interface = builtin(DescriptorKind.INTERFACE, name)
            for method in methods:
                builtin(DescriptorKind.FUNCTION, method, interface)
        for name, type_name in BUILTIN_VALUES.items():
            value = builtin(DescriptorKind.PROPERTY, name)
            if type_name is not None:
                self._builtin_types[value] = self._builtin(type_name, TYPE_KINDS)
        for name in BUILTIN_FUNCTIONS:
            builtin(DescriptorKind.FUNCTION, name)

        for type_name, methods in CHAINING_METHODS.items():
            cls = self._builtin(type_name, TYPE_KINDS)
            for method in cls.members:
                if method.name in methods:
                    self._builtin_types[method] = cls

    def _builtin(self, name: str, kinds: frozenset[DescriptorKind]) -> Descriptor | None:
        for descriptor in self._builtins.get(name, ()):
            if descriptor.kind in kinds:
                return descriptor
        return None

    # ------------------------------------------------------------------
    # Declare phase
    # ------------------------------------------------------------------

    def add_file(self, path: str, tree: Any, source: bytes) -> SourceFile:
        """Declare everything in one parsed file."""
        if self._linked:
            raise RuntimeError(f"Cannot add {path}: the project is already linked")
        path = posixpath.normpath(str(path).replace("\\", "/"))
        if path in self.files:
            raise ValueError(f"File already declared: {path}")

        uri = self._relative_uri(path)
        module = self._module_package(uri)
        file = SourceFile(path=path, uri=uri, tree=tree, source=source, module=module)
        self.files[path] = file
        self._module_files[module] = file

        root = tree.root_node
        scope = Scope(root, owner=module)
        file.scopes[node_key(root)] = scope
        for child in root.named_children:
            self._declare(child, scope, file)
        return file

    def _relative_uri(self, path: str) -> str:
        if self.project_root not in (".", "") and path.startswith(self.project_root + "/"):
            return path[len(self.project_root) + 1 :]
        if self.project_root in (".", "") and not path.startswith("/"):
            return path
        return path.lstrip("/")

    def _module_package(self, uri: str) -> Descriptor:
        parts = tuple(part for part in uri.split("/") if part and part != ".")
        owner = None
        for index in range(len(parts)):
            key = parts[: index + 1]
            package = self._packages.get(key)
            if package is None:
                package = Descriptor(DescriptorKind.PACKAGE, parts[index], owner=owner)
                self._packages[key] = package
            owner = package
        return owner

    def _declare(self, node: Any, scope: Scope, file: SourceFile) -> None:
        declarer = self._declarers.get(node.type)
        if declarer is not None:
            declarer(node, scope, file)
            return
        if node.type in FUNCTION_EXPRESSION_TYPES:
            self._declare_function_expression(node, scope, file)
            return
        if node.type in BLOCK_SCOPE_TYPES:
            scope = self._open_scope(node, scope, file, scope.owner, local=True)
            self._declare_block_bindings(node, scope, file)
        self._declare_children(node, scope, file)

    def _declare_children(self, node: Any, scope: Scope, file: SourceFile, skip: Any = None) -> None:
        for child in node.named_children:
            if skip is not None and node_key(child) == node_key(skip):
                continue
            self._declare(child, scope, file)

    def _open_scope(self, node: Any, parent: Scope, file: SourceFile, owner: Descriptor, local: bool) -> Scope:
        scope = Scope(node, owner=owner, parent=parent, local=local)
        file.scopes[node_key(node)] = scope
        return scope

    def _new_descriptor(
        self, scope: Scope, kind: DescriptorKind, name: str, owner: Descriptor | None = None, local: bool | None = None
    ) -> Descriptor:
        owner = owner if owner is not None else scope.owner
        local = scope.local if local is None else local
        descriptor = Descriptor(kind, name, owner=owner, local=local)
        if not local:
            owner.add_member(descriptor)
        return descriptor

    def _bind(self, scope: Scope, name: str, kind: DescriptorKind, merge_with: frozenset = frozenset()) -> Descriptor:
        """Declare `name` in `scope`, reusing a mergeable declaration of the same name."""
        for existing in scope.bindings.get(name, ()):
            if existing.kind in merge_with:
                return existing
        return scope.declare(name, self._new_descriptor(scope, kind, name))

    def _member(self, owner: Descriptor, name: str, kind: DescriptorKind, local: bool = False) -> Descriptor:
        """A member of `owner`; properties with the same name merge."""
        if kind is DescriptorKind.PROPERTY:
            for existing in owner.find_members(name):
                if existing.kind is DescriptorKind.PROPERTY:
                    return existing
        return owner.add_member(Descriptor(kind, name, owner=owner, local=local))

    def _declare_block_bindings(self, node: Any, scope: Scope, file: SourceFile) -> None:
        if node.type == "for_in_statement" and node.child_by_field_name("kind") is not None:
            left = node.child_by_field_name("left")
            if left is not None:
                self._declare_pattern(left, scope, file, DescriptorKind.PROPERTY)
        elif node.type == "catch_clause":
            parameter = node.child_by_field_name("parameter")
            if parameter is not None:
                self._declare_pattern(parameter, scope, file, DescriptorKind.PROPERTY)

    def _declare_pattern(self, pattern: Any, scope: Scope, file: SourceFile, kind: DescriptorKind) -> None:
        """Declare every identifier bound by a destructuring pattern."""
        if pattern.type in ("identifier", "shorthand_property_identifier_pattern"):
            descriptor = self._bind(scope, node_text(pattern), kind, frozenset({kind}))
            file.declarations[node_key(pattern)] = descriptor
            return
        if pattern.type in ("assignment_pattern", "object_assignment_pattern"):
            left = pattern.child_by_field_name("left")
            right = pattern.child_by_field_name("right")
            if left is not None:
                self._declare_pattern(left, scope, file, kind)
            if right is not None:
                self._declare(right, scope, file)
            return
        if pattern.type == "pair_pattern":
            value = pattern.child_by_field_name("value")
            if value is not None:
                self._declare_pattern(value, scope, file, kind)
            return
        if pattern.type in ("object_pattern", "array_pattern", "rest_pattern"):
            for child in pattern.named_children:
                self._declare_pattern(child, scope, file, kind)

    def _declare_class(self, node: Any, scope: Scope, file: SourceFile, default_name: str | None = None) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            # Anonymous class expressions own their members under a local descriptor
            name = default_name or "<anonymous>"
            descriptor = self._new_descriptor(scope, DescriptorKind.CLASS, name, local=default_name is None or scope.local)
        elif node.type == "class":
            # Named class expressions are only bound inside themselves
            descriptor = Descriptor(DescriptorKind.CLASS, node_text(name_node), owner=scope.owner, local=True)
        else:
            descriptor = self._bind(scope, node_text(name_node), DescriptorKind.CLASS, CLASS_LIKE_KINDS)
            descriptor.kind = DescriptorKind.CLASS

        if name_node is not None:
            file.declarations[node_key(node)] = descriptor
        file.classes[node_key(node)] = descriptor
        class_scope = self._open_scope(node, scope, file, descriptor, local=False)
        if node.type == "class" and name_node is not None:
            class_scope.declare(node_text(name_node), descriptor)

        body = node.child_by_field_name("body")
        for child in node.named_children:
            if body is not None and node_key(child) == node_key(body):
                continue
            if name_node is not None and node_key(child) == node_key(name_node):
                continue
            if child.type == "class_heritage":
                self._record_class_heritage(child, descriptor, file)
            self._declare(child, class_scope, file)

        if body is not None:
            for member in body.named_children:
                self._declare_class_member(member, descriptor, class_scope, file)

        if not any(m.kind is DescriptorKind.CONSTRUCTOR for m in descriptor.members):
            self._member(descriptor, "<init>", DescriptorKind.CONSTRUCTOR)

    def _record_class_heritage(self, heritage: Any, descriptor: Descriptor, file: SourceFile) -> None:
        entries = self._heritage.setdefault(descriptor, [])
        for clause in heritage.named_children:
            if clause.type == "extends_clause":
                value = clause.child_by_field_name("value")
                if value is not None:
                    entries.append((value, file))
            elif clause.type == "implements_clause":
                entries.extend((child, file) for child in clause.named_children if child.type != "comment")

    def _declare_class_member(self, member: Any, owner: Descriptor, scope: Scope, file: SourceFile) -> None:
        if member.type in ("method_definition", "method_signature", "abstract_method_signature"):
            self._declare_method(member, scope, file, owner=owner)
        elif member.type in ("public_field_definition", "property_signature"):
            self._declare_field(member, scope, file, owner)
        else:
            self._declare(member, scope, file)

    def _declare_field(self, node: Any, scope: Scope, file: SourceFile, owner: Descriptor) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is not None and name_node.type != "computed_property_name":
            descriptor = self._member(owner, _literal_name(name_node), DescriptorKind.PROPERTY, local=owner.is_local)
            file.declarations[node_key(node)] = descriptor
            annotation = node.child_by_field_name("type")
            if annotation is not None:
                self._annotations[descriptor] = (annotation, file)
            value = node.child_by_field_name("value")
            if value is not None:
                self._initializers[descriptor] = (value, file)
        self._declare_children(node, scope, file, skip=name_node)

    def _declare_property_signature(self, node: Any, scope: Scope, file: SourceFile) -> None:
        # Members of anonymous object types
        name_node = node.child_by_field_name("name")
        if name_node is not None and name_node.type != "computed_property_name":
            descriptor = Descriptor(DescriptorKind.PROPERTY, _literal_name(name_node), owner=scope.owner, local=True)
            file.declarations[node_key(node)] = descriptor
            annotation = node.child_by_field_name("type")
            if annotation is not None:
                self._annotations[descriptor] = (annotation, file)
        self._declare_children(node, scope, file, skip=name_node)

    def _declare_method(self, node: Any, scope: Scope, file: SourceFile, owner: Descriptor | None = None) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None or name_node.type == "computed_property_name":
            self._declare_function_scope(node, scope, file, scope.owner)
            return

        name = _literal_name(name_node)
        if owner is None:
            # Object literal and object type methods
            descriptor = Descriptor(DescriptorKind.FUNCTION, name, owner=scope.owner, local=True)
        elif name == "constructor" and owner.kind is DescriptorKind.CLASS:
            descriptor = self._member(owner, "<init>", DescriptorKind.CONSTRUCTOR, local=owner.is_local)
        else:
            descriptor = self._member(owner, name, DescriptorKind.FUNCTION, local=owner.is_local)

        file.declarations[node_key(node)] = descriptor
        self._record_signature(descriptor, node, file)
        self._declare_function_scope(node, scope, file, descriptor, skip=name_node)

        if descriptor.kind is DescriptorKind.CONSTRUCTOR:
            self._declare_parameter_properties(node, owner, file)

    def _declare_parameter_properties(self, constructor: Any, owner: Descriptor, file: SourceFile) -> None:
        parameters = constructor.child_by_field_name("parameters")
        if parameters is None:
            return
        for parameter in parameters.named_children:
            if not any(c.type in ("accessibility_modifier", "readonly") for c in parameter.children):
                continue
            name_node = declaration_name(parameter)
            if name_node is None or name_node.type != "identifier":
                continue
            prop = self._member(owner, node_text(name_node), DescriptorKind.PROPERTY, local=owner.is_local)
            annotation = parameter.child_by_field_name("type")
            if annotation is not None:
                self._annotations[prop] = (annotation, file)

    def _declare_function(self, node: Any, scope: Scope, file: SourceFile) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            self._declare_function_scope(node, scope, file, scope.owner)
            return
        descriptor = scope.declare(
            node_text(name_node), self._new_descriptor(scope, DescriptorKind.FUNCTION, node_text(name_node))
        )
        file.declarations[node_key(node)] = descriptor
        self._record_signature(descriptor, node, file)
        self._declare_function_scope(node, scope, file, descriptor, skip=name_node)

    def _declare_function_expression(self, node: Any, scope: Scope, file: SourceFile) -> None:
        function_scope = self._open_scope(node, scope, file, scope.owner, local=True)
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            function_scope.declare(
                node_text(name_node),
                Descriptor(DescriptorKind.FUNCTION, node_text(name_node), owner=scope.owner, local=True),
            )
        parameter = node.child_by_field_name("parameter")
        if parameter is not None:
            descriptor = function_scope.declare(
                node_text(parameter),
                Descriptor(DescriptorKind.PARAMETER, node_text(parameter), owner=scope.owner, local=True),
            )
            file.declarations[node_key(parameter)] = descriptor
        for child in node.named_children:
            if name_node is not None and node_key(child) == node_key(name_node):
                continue
            if parameter is not None and node_key(child) == node_key(parameter):
                continue
            self._declare(child, function_scope, file)

    def _declare_function_scope(
        self, node: Any, scope: Scope, file: SourceFile, owner: Descriptor, skip: Any = None
    ) -> None:
        function_scope = self._open_scope(node, scope, file, owner, local=True)
        self._declare_children(node, function_scope, file, skip=skip)

    def _record_signature(self, descriptor: Descriptor, node: Any, file: SourceFile) -> None:
        minimum, maximum = 0, 0
        parameters = node.child_by_field_name("parameters")
        for parameter in parameters.named_children if parameters is not None else ():
            if parameter.type not in ("required_parameter", "optional_parameter"):
                continue
            pattern = parameter.child_by_field_name("pattern")
            if pattern is not None and pattern.type == "this":
                continue
            if pattern is not None and pattern.type == "rest_pattern":
                maximum = None
                continue
            if maximum is not None:
                maximum += 1
            if parameter.type == "required_parameter" and parameter.child_by_field_name("value") is None:
                minimum += 1
        self._arity[descriptor] = (minimum, maximum)

        return_type = node.child_by_field_name("return_type")
        if return_type is not None:
            self._annotations[descriptor] = (return_type, file)
        if node.child_by_field_name("body") is not None:
            self._implementations.add(descriptor)

    def _declare_parameter(self, node: Any, scope: Scope, file: SourceFile) -> None:
        name_node = declaration_name(node)
        if name_node is not None and name_node.type == "identifier":
            descriptor = scope.declare(
                node_text(name_node),
                Descriptor(DescriptorKind.PARAMETER, node_text(name_node), owner=scope.owner, local=True),
            )
            file.declarations[node_key(node)] = descriptor
            annotation = node.child_by_field_name("type")
            if annotation is not None:
                self._annotations[descriptor] = (annotation, file)
        else:
            pattern = node.child_by_field_name("pattern")
            if pattern is not None:
                self._declare_pattern(pattern, scope, file, DescriptorKind.PARAMETER)
        for field_name in ("type", "value"):
            child = node.child_by_field_name(field_name)
            if child is not None:
                self._declare(child, scope, file)

    def _declare_type_parameter(self, node: Any, scope: Scope, file: SourceFile) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        name = node_text(name_node)
        key = (scope.owner, name)
        descriptor = self._type_parameters.get(key)
        if descriptor is None or scope.local:
            descriptor = Descriptor(DescriptorKind.TYPE_PARAMETER, name, owner=scope.owner, local=scope.local)
            if not scope.local:
                self._type_parameters[key] = descriptor
        scope.declare(name, descriptor)
        file.declarations[node_key(node)] = descriptor
        self._declare_children(node, scope, file, skip=name_node)

    def _declare_inferred_type(self, node: Any, scope: Scope, file: SourceFile) -> None:
        # `infer U` and `[K in keyof T]` introduce type variables
        name_node = node.child_by_field_name("name")
        if name_node is None:
            name_node = next((c for c in node.named_children if c.type == "type_identifier"), None)
        if name_node is not None:
            name = node_text(name_node)
            scope.declare(name, Descriptor(DescriptorKind.TYPE_PARAMETER, name, owner=scope.owner, local=True))
        self._declare_children(node, scope, file, skip=name_node)

    def _declare_interface(self, node: Any, scope: Scope, file: SourceFile) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        descriptor = self._bind(scope, node_text(name_node), DescriptorKind.INTERFACE, CLASS_LIKE_KINDS)
        file.declarations[node_key(node)] = descriptor
        interface_scope = self._open_scope(node, scope, file, descriptor, local=False)

        body = node.child_by_field_name("body")
        for child in node.named_children:
            if node_key(child) == node_key(name_node) or (body is not None and node_key(child) == node_key(body)):
                continue
            if child.type == "extends_type_clause":
                self._heritage.setdefault(descriptor, []).extend(
                    (base, file) for base in child.named_children if base.type != "comment"
                )
            self._declare(child, interface_scope, file)

        if body is not None:
            for member in body.named_children:
                self._declare_class_member(member, descriptor, interface_scope, file)

    def _declare_enum(self, node: Any, scope: Scope, file: SourceFile) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        descriptor = self._bind(scope, node_text(name_node), DescriptorKind.ENUM, CLASS_LIKE_KINDS)
        file.declarations[node_key(node)] = descriptor

        body = node.child_by_field_name("body")
        for member in body.named_children if body is not None else ():
            if member.type == "property_identifier":
                target = member
                member_name = member
            elif member.type == "enum_assignment":
                target = member
                member_name = declaration_name(member)
            else:
                continue
            if member_name is None or member_name.type == "computed_property_name":
                continue
            prop = self._member(descriptor, _literal_name(member_name), DescriptorKind.PROPERTY, local=descriptor.is_local)
            file.declarations[node_key(target)] = prop
            value = member.child_by_field_name("value") if member.type == "enum_assignment" else None
            if value is not None:
                self._declare(value, scope, file)

    def _declare_type_alias(self, node: Any, scope: Scope, file: SourceFile) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        descriptor = self._bind(scope, node_text(name_node), DescriptorKind.TYPE_ALIAS, CLASS_LIKE_KINDS)
        file.declarations[node_key(node)] = descriptor
        alias_scope = self._open_scope(node, scope, file, descriptor, local=False)

        value = node.child_by_field_name("value")
        for child in node.named_children:
            if node_key(child) == node_key(name_node) or (value is not None and node_key(child) == node_key(value)):
                continue
            self._declare(child, alias_scope, file)

        if value is None:
            return
        if value.type == "object_type":
            for member in value.named_children:
                self._declare_class_member(member, descriptor, alias_scope, file)
        else:
            self._annotations[descriptor] = (value, file)
            self._declare(value, alias_scope, file)

    def _declare_variables(self, node: Any, scope: Scope, file: SourceFile) -> None:
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                self._declare(declarator, scope, file)
                continue
            name_node = declarator.child_by_field_name("name")
            if name_node is None:
                continue
            if name_node.type == "identifier":
                descriptor = self._bind(
                    scope, node_text(name_node), DescriptorKind.PROPERTY, frozenset({DescriptorKind.PROPERTY})
                )
                file.declarations[node_key(declarator)] = descriptor
                annotation = declarator.child_by_field_name("type")
                if annotation is not None:
                    self._annotations[descriptor] = (annotation, file)
                value = declarator.child_by_field_name("value")
                if value is not None:
                    self._initializers[descriptor] = (value, file)
            else:
                self._declare_pattern(name_node, scope, file, DescriptorKind.PROPERTY)
            self._declare_children(declarator, scope, file, skip=name_node)

    def _declare_namespace(self, node: Any, scope: Scope, file: SourceFile) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        if name_node.type == "string":
            parts = [_literal_name(name_node)]
        else:
            parts = [part for part in node_text(name_node).replace(" ", "").split(".") if part]

        namespace_scope = scope
        for part in parts:
            package = self._bind(namespace_scope, part, DescriptorKind.PACKAGE, frozenset({DescriptorKind.PACKAGE}))
            key = (package, file.path)
            inner = self._namespace_scopes.get(key)
            if inner is None:
                inner = Scope(node, owner=package, parent=namespace_scope, local=namespace_scope.local)
                self._namespace_scopes[key] = inner
            namespace_scope = inner
        file.scopes[node_key(node)] = namespace_scope

        body = node.child_by_field_name("body")
        if body is not None:
            for child in body.named_children:
                self._declare(child, namespace_scope, file)

    def _declare_import(self, node: Any, scope: Scope, file: SourceFile) -> None:
        source = node.child_by_field_name("source")
        specifier = _literal_name(source) if source is not None else None
        for child in node.named_children:
            if child.type == "import_clause" and specifier is not None:
                for clause in child.named_children:
                    if clause.type == "identifier":
                        file.import_bindings.append(ImportBinding(node_text(clause), specifier, "default"))
                    elif clause.type == "namespace_import":
                        alias = next((c for c in clause.named_children if c.type == "identifier"), None)
                        if alias is not None:
                            file.import_bindings.append(ImportBinding(node_text(alias), specifier, "*"))
                    elif clause.type == "named_imports":
                        for spec in clause.named_children:
                            if spec.type != "import_specifier":
                                continue
                            name = spec.child_by_field_name("name")
                            alias = spec.child_by_field_name("alias")
                            if name is not None:
                                local_name = node_text(alias) if alias is not None else node_text(name)
                                file.import_bindings.append(ImportBinding(local_name, specifier, _literal_name(name)))
            elif child.type == "import_require_clause":
                alias = next((c for c in child.named_children if c.type == "identifier"), None)
                required = child.child_by_field_name("source")
                if alias is not None and required is not None:
                    file.import_bindings.append(ImportBinding(node_text(alias), _literal_name(required), "*"))

    def _declare_export(self, node: Any, scope: Scope, file: SourceFile) -> None:
        is_default = any(child.type == "default" for child in node.children)
        source = node.child_by_field_name("source")
        specifier = _literal_name(source) if source is not None else None

        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            self._declare(declaration, scope, file)
            if scope is file.module_scope:
                for name in self._declared_names(declaration):
                    file.local_exports.append(("default" if is_default else name, name))
            return

        value = node.child_by_field_name("value")
        if value is not None:
            if value.type == "identifier":
                file.local_exports.append(("default", node_text(value)))
            elif value.type == "class" and value.child_by_field_name("name") is None:
                self._declare_class(value, scope, file, default_name="default")
                file.direct_exports["default"] = [file.classes[node_key(value)]]
            else:
                self._declare(value, scope, file)
            return

        clause = next((c for c in node.named_children if c.type == "export_clause"), None)
        if clause is not None:
            for spec in clause.named_children:
                if spec.type != "export_specifier":
                    continue
                name = spec.child_by_field_name("name")
                alias = spec.child_by_field_name("alias")
                if name is None:
                    continue
                exported = _literal_name(alias) if alias is not None else _literal_name(name)
                if specifier is None:
                    file.local_exports.append((exported, _literal_name(name)))
                else:
                    file.reexports.append((exported, specifier, _literal_name(name)))
            return

        namespace_export = next((c for c in node.named_children if c.type == "namespace_export"), None)
        if namespace_export is not None and specifier is not None:
            alias = next((c for c in namespace_export.named_children if c.type in ("identifier", "string")), None)
            if alias is not None:
                file.reexports.append((_literal_name(alias), specifier, "*"))
        elif specifier is not None:
            file.star_exports.append(specifier)
        else:
            self._declare_children(node, scope, file)

    def _declared_names(self, declaration: Any) -> list[str]:
        if declaration.type in ("lexical_declaration", "variable_declaration"):
            names = []
            for declarator in declaration.named_children:
                name = declarator.child_by_field_name("name") if declarator.type == "variable_declarator" else None
                if name is not None:
                    names.extend(self._pattern_names(name))
            return names
        if declaration.type == "ambient_declaration":
            names = []
            for child in declaration.named_children:
                names.extend(self._declared_names(child))
            return names
        name = declaration.child_by_field_name("name")
        if name is None or name.type == "string":
            return []
        return [node_text(name).split(".")[0].strip()]

    def _pattern_names(self, pattern: Any) -> list[str]:
        """Names bound by an identifier or destructuring pattern, in source order."""
        if pattern.type in ("identifier", "shorthand_property_identifier_pattern"):
            return [node_text(pattern)]
        if pattern.type in ("assignment_pattern", "object_assignment_pattern"):
            left = pattern.child_by_field_name("left")
            return self._pattern_names(left) if left is not None else []
        if pattern.type == "pair_pattern":
            value = pattern.child_by_field_name("value")
            return self._pattern_names(value) if value is not None else []
        names = []
        if pattern.type in ("object_pattern", "array_pattern", "rest_pattern"):
            for child in pattern.named_children:
                names.extend(self._pattern_names(child))
        return names

    # ------------------------------------------------------------------
    # Link phase
    # ------------------------------------------------------------------

    def link(self) -> None:
        """Resolve imports, exports and heritage. Idempotent."""
        if self._linked:
            return
        self.module_resolver = ModuleResolver(self.project_root, known_files=self.files.keys())
        for file in self.files.values():
            self._link_file(file)
        for descriptor, entries in self._heritage.items():
            bases = []
            for base_node, file in entries:
                base = self._type_node_descriptor(base_node, file)
                if base is not None and base is not descriptor and base not in bases:
                    bases.append(base)
            self._bases[descriptor] = bases
        self._linked = True
        logger.debug("Linked %d files", len(self.files))

    def _target(self, specifier: str, file: SourceFile) -> SourceFile | None:
        path = self.module_resolver.resolve_path(specifier, file.path)
        return self.files.get(path) if path is not None else None

    def _link_file(self, file: SourceFile) -> None:
        if file.path in self._linked_files or file.path in self._linking:
            return
        self._linking.add(file.path)

        module_scope = file.module_scope
        pending = []
        for exported, local_name in file.local_exports:
            declared = [d for d in module_scope.bindings.get(local_name, ()) if d.kind is not DescriptorKind.TYPE_PARAMETER]
            if declared:
                file.export(exported, declared)
            else:
                pending.append((exported, local_name))
        for exported, descriptors in file.direct_exports.items():
            file.export(exported, descriptors)

        for binding in file.import_bindings:
            target = self._target(binding.specifier, file)
            if target is None:
                file.imports[binding.local_name] = []
                logger.debug("Unresolved import '%s' in %s", binding.specifier, file.uri)
            elif binding.imported == "*":
                file.imports[binding.local_name] = [target.module]
            else:
                self._link_file(target)
                file.imports[binding.local_name] = list(target.exports.get(binding.imported, ()))

        for exported, local_name in pending:
            file.export(exported, file.imports.get(local_name, []))
        for exported, specifier, imported in file.reexports:
            target = self._target(specifier, file)
            if target is None:
                continue
            if imported == "*":
                file.export(exported, [target.module])
            else:
                self._link_file(target)
                file.export(exported, target.exports.get(imported, []))
        for specifier in file.star_exports:
            target = self._target(specifier, file)
            if target is None:
                continue
            self._link_file(target)
            for exported, descriptors in target.exports.items():
                if exported != "default" and exported not in file.exports:
                    file.export(exported, descriptors)

        self._linking.discard(file.path)
        self._linked_files.add(file.path)

    # ------------------------------------------------------------------
    # DescriptorResolver
    # ------------------------------------------------------------------

    def root_node(self, file: SourceFile) -> TypeScriptNode:
        return TypeScriptNode(file.tree.root_node, file)

    def resolve_declaration(self, node: TypeScriptNode) -> Descriptor | None:
        return node.file.declarations.get(node_key(node.ts_node))

    def resolve_reference(self, node: TypeScriptNode) -> Descriptor | None:
        ts_node = node.ts_node
        if ts_node.type == "new_expression":
            return self._resolve_new(ts_node, node.file, 0)
        if ts_node.type == "call_expression":
            return self._resolve_call(ts_node, node.file, 0)
        return None

    def resolve_type(self, node: TypeScriptNode) -> ResolvedType | None:
        return self._resolve_type_node(node.ts_node, node.file)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _scope_of(self, ts_node: Any, file: SourceFile) -> Scope:
        current = ts_node
        while current is not None:
            scope = file.scopes.get(node_key(current))
            if scope is not None:
                return scope
            current = current.parent
        return file.module_scope

    def lookup(self, name: str, scope: Scope, file: SourceFile, kinds: frozenset[DescriptorKind]) -> list[Descriptor]:
        """Lexical scopes first, then the file's imports, then builtins."""
        current = scope
        while current is not None:
            found = current.find(name, kinds)
            if found:
                return found
            current = current.parent
        if name in file.imports:
            return [d for d in file.imports[name] if d.kind in kinds]
        return [d for d in self._builtins.get(name, ()) if d.kind in kinds]

    def _namespace_members(self, container: Descriptor, name: str) -> list[Descriptor]:
        module_file = self._module_files.get(container)
        if module_file is not None:
            return list(module_file.exports.get(name, ()))
        return container.find_members(name)

    def _resolve_namespace(self, ts_node: Any, file: SourceFile) -> Descriptor | None:
        if ts_node.type == "identifier":
            found = self.lookup(node_text(ts_node), self._scope_of(ts_node, file), file, NAMESPACE_KINDS)
            packages = [d for d in found if d.kind is DescriptorKind.PACKAGE]
            return (packages or found or [None])[0]
        if ts_node.type in ("nested_identifier", "member_expression") and ts_node.named_child_count >= 2:
            container = self._resolve_namespace(ts_node.named_children[0], file)
            if container is None:
                return None
            found = [
                d for d in self._namespace_members(container, node_text(ts_node.named_children[-1])) if d.kind in NAMESPACE_KINDS
            ]
            packages = [d for d in found if d.kind is DescriptorKind.PACKAGE]
            return (packages or found or [None])[0]
        return None

    def _find_members(self, owner: Descriptor, name: str, seen: set | None = None) -> list[Descriptor]:
        """Members named `name` on `owner`, searching bases, alias targets and Object."""
        seen = seen if seen is not None else set()
        if owner in seen:
            return []
        seen.add(owner)

        if owner.kind is DescriptorKind.PACKAGE:
            return self._namespace_members(owner, name)
        found = owner.find_members(name)
        if found:
            return found
        for base in self._bases.get(owner, ()):
            found = self._find_members(base, name, seen)
            if found:
                return found
        if owner.kind is DescriptorKind.TYPE_ALIAS and owner in self._annotations:
            target_node, target_file = self._annotations[owner]
            target = self._type_node_class(target_node, target_file)
            if target is not None:
                found = self._find_members(target, name, seen)
                if found:
                    return found
        root = self._builtin("Object", TYPE_KINDS)
        if root is not None and root not in seen and owner.kind is not DescriptorKind.TYPE_PARAMETER:
            return self._find_members(root, name, seen)
        return []

    def _enclosing_class(self, ts_node: Any, file: SourceFile) -> Descriptor | None:
        current = ts_node.parent
        while current is not None:
            if current.type in CLASS_BODY_TYPES:
                return file.classes.get(node_key(current))
            current = current.parent
        return None

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def _argument_count(self, call: Any) -> int | None:
        arguments = call.child_by_field_name("arguments")
        if arguments is None:
            return 0
        if arguments.type == "template_string":
            return 1
        count = 0
        for argument in arguments.named_children:
            if argument.type == "spread_element":
                return None
            if argument.type != "comment":
                count += 1
        return count

    def _choose_overload(self, functions: list[Descriptor], arguments: int | None) -> Descriptor:
        """Pick the overload matching the call's arity; signatures hide the implementation."""
        signatures = [f for f in functions if f not in self._implementations]
        pool = signatures or functions
        if arguments is None:
            return pool[0]
        for candidate in pool:
            minimum, maximum = self._arity.get(candidate, (0, None))
            if minimum <= arguments and (maximum is None or arguments <= maximum):
                return candidate
        return pool[0]

    def _constructor(self, cls: Descriptor, arguments: int | None) -> Descriptor | None:
        constructors = [m for m in cls.members if m.kind is DescriptorKind.CONSTRUCTOR]
        if not constructors:
            return None
        return self._choose_overload(constructors, arguments)

    def _callable(self, candidates: list[Descriptor], arguments: int | None) -> Descriptor | None:
        if not candidates:
            return None
        functions = [d for d in candidates if d.is_function_like]
        if functions:
            return self._choose_overload(functions, arguments)
        first = candidates[0]
        if first.kind is DescriptorKind.CLASS:
            return self._constructor(first, arguments)
        if first.kind in (DescriptorKind.PROPERTY, DescriptorKind.PARAMETER):
            return first
        return None

    def _resolve_call(self, call: Any, file: SourceFile, depth: int) -> Descriptor | None:
        callee = call.child_by_field_name("function")
        if callee is None:
            return None
        arguments = self._argument_count(call)

        if callee.type == "identifier":
            candidates = self.lookup(node_text(callee), self._scope_of(call, file), file, VALUE_KINDS)
            return self._callable(candidates, arguments)
        if callee.type == "super":
            cls = self._enclosing_class(call, file)
            for base in self._bases.get(cls, ()) if cls is not None else ():
                if base.kind is DescriptorKind.CLASS:
                    return self._constructor(base, arguments)
            return None
        if callee.type == "member_expression":
            receiver = self._infer_type(callee.child_by_field_name("object"), file, depth + 1)
            prop = callee.child_by_field_name("property")
            if receiver is None or prop is None:
                return None
            return self._callable(self._find_members(receiver, node_text(prop)), arguments)
        return None

    def _resolve_new(self, new_expression: Any, file: SourceFile, depth: int) -> Descriptor | None:
        target = new_expression.child_by_field_name("constructor")
        if target is None:
            return None
        arguments = self._argument_count(new_expression)

        if target.type == "identifier":
            candidates = self.lookup(node_text(target), self._scope_of(new_expression, file), file, VALUE_KINDS)
        elif target.type == "member_expression":
            receiver = self._infer_type(target.child_by_field_name("object"), file, depth + 1)
            prop = target.child_by_field_name("property")
            if receiver is None or prop is None:
                return None
            candidates = self._find_members(receiver, node_text(prop))
        else:
            return None

        for candidate in candidates:
            if candidate.kind is DescriptorKind.CLASS:
                return self._constructor(candidate, arguments)
        for candidate in candidates:
            if candidate.kind in (DescriptorKind.PROPERTY, DescriptorKind.PARAMETER):
                return candidate
        return None

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def _resolve_type_node(self, ts_node: Any, file: SourceFile) -> ResolvedType | None:
        node_type = ts_node.type
        if node_type in ("type_identifier", "identifier"):
            name = node_text(ts_node)
            scope = self._scope_of(ts_node, file)
            types = self.lookup(name, scope, file, TYPE_KINDS)
            if types:
                return ResolvedType(types[0])
            values = self.lookup(name, scope, file, VALUE_KINDS)
            if values:
                return ResolvedType(values[0])
            return None
        if node_type == "generic_type":
            name = ts_node.child_by_field_name("name")
            return self._resolve_type_node(name, file) if name is not None else None
        if node_type in ("nested_type_identifier", "member_expression"):
            container_node = ts_node.child_by_field_name("module") or ts_node.child_by_field_name("object")
            name = ts_node.child_by_field_name("name") or ts_node.child_by_field_name("property")
            if container_node is None or name is None:
                return None
            container = self._resolve_namespace(container_node, file)
            if container is None:
                return None
            members = self._namespace_members(container, node_text(name))
            types = [d for d in members if d.kind in TYPE_KINDS]
            if types:
                return ResolvedType(types[0])
            return ResolvedType(members[0]) if members else None
        if node_type == "predefined_type":
            builtin = self._builtin(node_text(ts_node), TYPE_KINDS)
            return ResolvedType(builtin) if builtin is not None else None
        if node_type == "union_type":
            member = nullable_member(ts_node)
            inner = self._resolve_type_node(member, file) if member is not None else None
            if inner is None:
                return None
            return ResolvedType(inner.descriptor, nullable=True)
        return None

    def _type_node_descriptor(self, ts_node: Any, file: SourceFile) -> Descriptor | None:
        resolved = self._resolve_type_node(ts_node, file)
        if resolved is None:
            return None
        return resolved.class_descriptor()

    def _type_node_class(self, ts_node: Any, file: SourceFile) -> Descriptor | None:
        """The class-like descriptor whose members a value of this type has."""
        node_type = ts_node.type
        if node_type in ("type_annotation", "parenthesized_type"):
            inner = ts_node.named_children[0] if ts_node.named_child_count else None
            return self._type_node_class(inner, file) if inner is not None else None
        if node_type == "union_type":
            member = nullable_member(ts_node)
            return self._type_node_class(member, file) if member is not None else None
        if node_type == "array_type":
            return self._builtin("Array", TYPE_KINDS)
        if node_type == "predefined_type":
            wrapper = PRIMITIVE_WRAPPERS.get(node_text(ts_node))
            return self._builtin(wrapper, TYPE_KINDS) if wrapper is not None else None
        if node_type in ("type_identifier", "generic_type", "nested_type_identifier"):
            return self._type_node_descriptor(ts_node, file)
        return None

    def _value_type(self, descriptor: Descriptor, depth: int) -> Descriptor | None:
        """The class-like descriptor (or namespace) a value's members come from."""
        if descriptor.kind in (DescriptorKind.CLASS, DescriptorKind.ENUM, DescriptorKind.PACKAGE):
            return descriptor
        if descriptor in self._builtin_types:
            return self._builtin_types[descriptor]
        if descriptor.is_function_like:
            return self._builtin("Function", TYPE_KINDS)
        annotation = self._annotations.get(descriptor)
        if annotation is not None:
            found = self._type_node_class(*annotation)
            if found is not None:
                return found
        initializer = self._initializers.get(descriptor)
        if initializer is not None:
            value, file = initializer
            return self._infer_type(value, file, depth + 1)
        return None

    def _return_type(self, descriptor: Descriptor) -> Descriptor | None:
        if descriptor.kind is DescriptorKind.CONSTRUCTOR:
            return descriptor.owner
        if descriptor in self._builtin_types:
            return self._builtin_types[descriptor]
        annotation = self._annotations.get(descriptor)
        if annotation is not None and descriptor.is_function_like:
            return self._type_node_class(*annotation)
        return None

    def _infer_type(self, expression: Any, file: SourceFile, depth: int) -> Descriptor | None:
        """Best-effort static type of an expression, limited to MAX_INFERENCE_DEPTH steps."""
        if expression is None or depth > MAX_INFERENCE_DEPTH:
            return None
        expression_type = expression.type

        if expression_type == "this":
            return self._enclosing_class(expression, file)
        if expression_type == "super":
            cls = self._enclosing_class(expression, file)
            bases = self._bases.get(cls, ()) if cls is not None else ()
            return bases[0] if bases else None
        if expression_type in TRANSPARENT_EXPRESSIONS:
            inner = expression.named_children[0] if expression.named_child_count else None
            return self._infer_type(inner, file, depth + 1)
        if expression_type == "as_expression":
            if expression.named_child_count >= 2:
                found = self._type_node_class(expression.named_children[-1], file)
                if found is not None:
                    return found
            return self._infer_type(expression.named_children[0], file, depth + 1)
        if expression_type == "identifier":
            candidates = self.lookup(node_text(expression), self._scope_of(expression, file), file, VALUE_KINDS)
            return self._value_type(candidates[0], depth) if candidates else None
        if expression_type == "new_expression":
            constructor = self._resolve_new(expression, file, depth)
            if constructor is None:
                return None
            if constructor.kind is DescriptorKind.CONSTRUCTOR:
                return constructor.owner
            return None
        if expression_type == "call_expression":
            callee = self._resolve_call(expression, file, depth)
            return self._return_type(callee) if callee is not None else None
        if expression_type == "member_expression":
            receiver = self._infer_type(expression.child_by_field_name("object"), file, depth + 1)
            prop = expression.child_by_field_name("property")
            if receiver is None or prop is None:
                return None
            for member in self._find_members(receiver, node_text(prop)):
                if not member.is_function_like:
                    return self._value_type(member, depth + 1)
            return None
        literal = LITERAL_TYPES.get(expression_type)
        if literal is not None:
            return self._builtin(literal, TYPE_KINDS)
        return None
