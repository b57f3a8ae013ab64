"""Tests for symbol resolution and text document building over fake syntax trees."""

import pytest

from indexer_fakes import FakeNode, FakeResolver, member, module, span_of
from semdex.indexer_server.errors import (
    AmbiguousTypeClassificationError,
    DocumentAlreadyBuiltError,
    TextDocumentBuildError,
    UnresolvedPolicy,
    UnresolvedReferenceError,
)
from semdex.indexer_server.models.semanticdb_models import Range, Role
from semdex.indexer_server.tools.descriptors import Descriptor, DescriptorKind, ResolvedType
from semdex.indexer_server.tools.emitter import LineMap
from semdex.indexer_server.tools.symbols import GlobalSymbolsCache, LocalSymbolsCache
from semdex.indexer_server.tools.visitors import (
    NodeKind,
    ResolutionVisitor,
    TextDocumentBuildingVisitor,
)

SOURCE = """class Foo<T> {
  bar(x: number): Foo | null { return helper(x) }
}
"""


class RecordingObserver:
    def __init__(self):
        self.errors = []

    def on_resolution_error(self, error):
        self.errors.append(error)


@pytest.fixture
def project():
    """Descriptors for SOURCE, keyed by role in the tree."""
    foo_ts = module("foo.ts")
    foo = member(foo_ts, DescriptorKind.CLASS, "Foo")
    t = Descriptor(DescriptorKind.TYPE_PARAMETER, "T", owner=foo)
    bar = member(foo, DescriptorKind.FUNCTION, "bar")
    x = Descriptor(DescriptorKind.PARAMETER, "x", owner=bar)
    number = member(module("_builtins_"), DescriptorKind.TYPE_ALIAS, "number")
    helper = member(foo_ts, DescriptorKind.FUNCTION, "helper")
    return {"foo": foo, "T": t, "bar": bar, "x": x, "number": number, "helper": helper}


def build_tree(project, helper_descriptor="helper"):
    helper = project.get(helper_descriptor) if helper_descriptor else None
    call = FakeNode(
        NodeKind.CALL,
        "helper",
        span_of(SOURCE, "helper"),
        descriptor=helper,
        children=[FakeNode(NodeKind.OTHER, None, span_of(SOURCE, "x", 1))],
    )
    param = FakeNode(
        NodeKind.PARAMETER,
        "x",
        span_of(SOURCE, "x"),
        descriptor=project["x"],
        children=[
            FakeNode(
                NodeKind.TYPE_REFERENCE, "number", span_of(SOURCE, "number"), resolved=ResolvedType(project["number"])
            )
        ],
    )
    return_type = FakeNode(
        NodeKind.TYPE_REFERENCE, "Foo", span_of(SOURCE, "Foo", 1), resolved=ResolvedType(project["foo"], nullable=True)
    )
    method = FakeNode(
        NodeKind.FUNCTION,
        "bar",
        span_of(SOURCE, "bar"),
        descriptor=project["bar"],
        children=[param, return_type, FakeNode(NodeKind.OTHER, children=[call])],
    )
    type_param = FakeNode(NodeKind.TYPE_PARAMETER, "T", span_of(SOURCE, "T"), descriptor=project["T"])
    cls = FakeNode(NodeKind.CLASS, "Foo", span_of(SOURCE, "Foo"), descriptor=project["foo"], children=[type_param, method])
    return FakeNode(NodeKind.OTHER, children=[cls])


def build(project, root, policy=UnresolvedPolicy.SKIP_SUBTREE, observer=None, global_symbols=None):
    visitor = TextDocumentBuildingVisitor(
        "foo.ts",
        root,
        FakeResolver(),
        LineMap(SOURCE),
        global_symbols if global_symbols is not None else GlobalSymbolsCache(),
        policy=policy,
        observer=observer,
    )
    return visitor.build()


class TestResolutionVisitor:
    """The dispatch table turns each significant node into exactly one symbol."""

    def test_each_kind_resolves_through_its_source(self, project):
        resolver = FakeResolver()
        visitor = ResolutionVisitor(resolver, GlobalSymbolsCache())
        recorded = []

        visitor.visit(build_tree(project), lambda symbol, node, role: recorded.append((symbol.value, node.kind, role)))

        assert recorded == [
            ("`foo.ts`/Foo#", NodeKind.CLASS, Role.DEFINITION),
            ("`foo.ts`/Foo#[T]", NodeKind.TYPE_PARAMETER, Role.DEFINITION),
            ("`foo.ts`/Foo#bar().", NodeKind.FUNCTION, Role.DEFINITION),
            ("local0", NodeKind.PARAMETER, Role.DEFINITION),
            ("_builtins_/number#", NodeKind.TYPE_REFERENCE, Role.REFERENCE),
            ("`foo.ts`/Foo#", NodeKind.TYPE_REFERENCE, Role.REFERENCE),
            ("`foo.ts`/helper().", NodeKind.CALL, Role.REFERENCE),
        ]
        # One resolver query per significant node, none for OTHER nodes
        assert len(resolver.queries) == 7
        assert all(node.kind is not NodeKind.OTHER for node in resolver.queries)

    def test_other_nodes_return_none_but_reach_children(self, project):
        visitor = ResolutionVisitor(FakeResolver(), GlobalSymbolsCache())
        seen = []

        result = visitor.visit(build_tree(project), lambda symbol, node, role: seen.append(symbol))

        assert result is None
        assert len(seen) == 7

    def test_symbol_for_does_not_visit_children(self, project):
        resolver = FakeResolver()
        visitor = ResolutionVisitor(resolver, GlobalSymbolsCache())
        cls = build_tree(project).children[0]

        symbol = visitor.symbol_for(cls)

        assert symbol.value == "`foo.ts`/Foo#"
        assert resolver.queries == [cls]

    def test_symbol_for_rejects_other_nodes(self, project):
        visitor = ResolutionVisitor(FakeResolver(), GlobalSymbolsCache())

        with pytest.raises(ValueError):
            visitor.symbol_for(FakeNode(NodeKind.OTHER))

    def test_type_parameter_reference_uses_type_parameter_symbol(self, project):
        visitor = ResolutionVisitor(FakeResolver(), GlobalSymbolsCache())
        node = FakeNode(NodeKind.TYPE_REFERENCE, "T", resolved=ResolvedType(project["T"]))

        assert visitor.symbol_for(node).value == "`foo.ts`/Foo#[T]"

    def test_nullable_type_resolves_like_its_non_null_form(self, project):
        visitor = ResolutionVisitor(FakeResolver(), GlobalSymbolsCache())
        plain = FakeNode(NodeKind.TYPE_REFERENCE, "Foo", resolved=ResolvedType(project["foo"]))
        nullable = FakeNode(NodeKind.TYPE_REFERENCE, "Foo", resolved=ResolvedType(project["foo"], nullable=True))

        assert visitor.symbol_for(plain) == visitor.symbol_for(nullable)

    def test_unresolved_declaration_raises(self, project):
        visitor = ResolutionVisitor(FakeResolver(), GlobalSymbolsCache())

        with pytest.raises(UnresolvedReferenceError) as exc_info:
            visitor.symbol_for(FakeNode(NodeKind.FUNCTION, "ghost"))

        assert exc_info.value.code == "UNRESOLVED_REFERENCE"

    def test_value_used_as_type_is_ambiguous(self, project):
        visitor = ResolutionVisitor(FakeResolver(), GlobalSymbolsCache())
        node = FakeNode(NodeKind.TYPE_REFERENCE, "helper", resolved=ResolvedType(project["helper"]))

        with pytest.raises(AmbiguousTypeClassificationError) as exc_info:
            visitor.symbol_for(node)

        assert exc_info.value.code == "AMBIGUOUS_TYPE"
        assert exc_info.value.node is node


class TestTextDocumentBuildingVisitor:
    """Occurrences are recorded in appearance order at the anchor range."""

    def test_builds_document_with_occurrences_in_order(self, project):
        document = build(project, build_tree(project))

        assert document.uri == "foo.ts"
        assert document.schema == "SEMANTICDB4"
        assert [occ.symbol for occ in document.occurrences] == [
            "`foo.ts`/Foo#",
            "`foo.ts`/Foo#[T]",
            "`foo.ts`/Foo#bar().",
            "local0",
            "_builtins_/number#",
            "`foo.ts`/Foo#",
            "`foo.ts`/helper().",
        ]
        assert document.diagnostics == ()

    def test_ranges_point_at_anchors(self, project):
        document = build(project, build_tree(project))
        by_symbol = {(occ.symbol, occ.role): occ.range for occ in document.occurrences}

        assert by_symbol[("`foo.ts`/Foo#", Role.DEFINITION)] == Range(0, 6, 0, 9)
        assert by_symbol[("`foo.ts`/Foo#bar().", Role.DEFINITION)] == Range(1, 2, 1, 5)
        # The nullable return type points at "Foo", not "Foo | null"
        assert by_symbol[("`foo.ts`/Foo#", Role.REFERENCE)] == Range(1, 18, 1, 21)

    def test_symbol_information_covers_definitions(self, project):
        document = build(project, build_tree(project))

        assert [(info.symbol, info.kind) for info in document.symbols] == [
            ("`foo.ts`/Foo#", "CLASS"),
            ("`foo.ts`/Foo#[T]", "TYPE_PARAMETER"),
            ("`foo.ts`/Foo#bar().", "FUNCTION"),
            ("local0", "PARAMETER"),
        ]

    def test_build_twice_raises(self, project):
        visitor = TextDocumentBuildingVisitor(
            "foo.ts", build_tree(project), FakeResolver(), LineMap(SOURCE), GlobalSymbolsCache()
        )
        visitor.build()

        with pytest.raises(DocumentAlreadyBuiltError):
            visitor.build()

    def test_global_cache_is_shared_and_locals_are_not(self, project):
        global_symbols = GlobalSymbolsCache()
        first = build(project, build_tree(project), global_symbols=global_symbols)
        count = len(global_symbols)
        second = build(project, build_tree(project), global_symbols=global_symbols)

        assert len(global_symbols) == count
        assert first.occurrences == second.occurrences

    def test_explicit_local_cache_is_used(self, project):
        local_symbols = LocalSymbolsCache(scope="foo.ts")
        visitor = TextDocumentBuildingVisitor(
            "foo.ts",
            build_tree(project),
            FakeResolver(),
            LineMap(SOURCE),
            GlobalSymbolsCache(),
            local_symbols=local_symbols,
        )
        visitor.build()

        assert project["x"] in local_symbols


class TestUnresolvedPolicy:
    """Unresolved nodes are reported, never replaced by a placeholder symbol."""

    def test_skip_subtree_drops_node_and_descendants(self, project):
        observer = RecordingObserver()
        tree = build_tree(project)
        tree.children[0].children[1].descriptor = None  # bar

        document = build(project, tree, UnresolvedPolicy.SKIP_SUBTREE, observer)

        assert [occ.symbol for occ in document.occurrences] == ["`foo.ts`/Foo#", "`foo.ts`/Foo#[T]"]
        assert len(document.diagnostics) == 1
        diagnostic = document.diagnostics[0]
        assert diagnostic.code == "UNRESOLVED_REFERENCE"
        assert diagnostic.range == Range(1, 2, 1, 5)
        assert [type(error) for error in observer.errors] == [UnresolvedReferenceError]

    def test_skip_node_keeps_visiting_children(self, project):
        tree = build_tree(project)
        tree.children[0].children[1].descriptor = None  # bar

        document = build(project, tree, UnresolvedPolicy.SKIP_NODE)

        symbols = [occ.symbol for occ in document.occurrences]
        assert "`foo.ts`/Foo#bar()." not in symbols
        assert symbols == [
            "`foo.ts`/Foo#",
            "`foo.ts`/Foo#[T]",
            "local0",
            "_builtins_/number#",
            "`foo.ts`/Foo#",
            "`foo.ts`/helper().",
        ]
        assert len(document.diagnostics) == 1

    def test_fail_aborts_with_location(self, project):
        tree = build_tree(project, helper_descriptor=None)

        with pytest.raises(TextDocumentBuildError) as exc_info:
            build(project, tree, UnresolvedPolicy.FAIL)

        error = exc_info.value
        assert error.uri == "foo.ts"
        assert error.diagnostic.range == Range(1, 38, 1, 44)
        assert isinstance(error.cause, UnresolvedReferenceError)
        assert str(error).startswith("foo.ts:2:39:")

    def test_ambiguous_type_is_a_diagnostic(self, project):
        tree = build_tree(project)
        tree.children[0].children[1].children[1].resolved = ResolvedType(project["helper"])

        document = build(project, tree)

        assert [diag.code for diag in document.diagnostics] == ["AMBIGUOUS_TYPE"]
        assert "`foo.ts`/helper()." in [occ.symbol for occ in document.occurrences]

    def test_parse_accepts_strings(self):
        assert UnresolvedPolicy.parse("SKIP_NODE") is UnresolvedPolicy.SKIP_NODE
        assert UnresolvedPolicy.parse(UnresolvedPolicy.FAIL) is UnresolvedPolicy.FAIL
        with pytest.raises(ValueError):
            UnresolvedPolicy.parse("ignore")
