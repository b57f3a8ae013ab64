"""End-to-end indexing of TypeScript sources parsed with tree-sitter."""

import pytest

from semdex.indexer_server.config import IndexerServerConfig
from semdex.indexer_server.errors import UnresolvedPolicy
from semdex.indexer_server.models.semanticdb_models import Range, Role
from semdex.indexer_server.tools.project_indexer import ProjectIndexer

FOO = """export class Foo {
  bar(x: number): number {
    return x
  }
}
"""

MAIN = """import { Foo } from "./foo";

new Foo().bar(1);
"""

SHAPES = """export interface Shape { area(): number; }
export enum Color { Red, Green = 2 }
export type Id = string;
export class Box<T> implements Shape {
  private value: T;
  constructor(value: T) { this.value = value; }
  area(): number { return 0; }
  get(): T { return this.value; }
}
"""


def definitions(document):
    return [occ.symbol for occ in document.definitions()]


def references(document):
    return [occ.symbol for occ in document.references()]


@pytest.fixture
def indexer():
    return ProjectIndexer(IndexerServerConfig(worker_threads=2, index_cache_ttl=0))


class TestCrossFileReferences:
    """A method defined in one file and called in another shares one symbol."""

    def test_foo_bar(self, indexer):
        result = indexer.index_sources({"foo.ts": FOO, "main.ts": MAIN})

        assert result.errors == []
        foo, main = result.documents
        assert foo.uri == "foo.ts"
        assert main.uri == "main.ts"

        assert definitions(foo) == ["`foo.ts`/Foo#", "`foo.ts`/Foo#bar().", "local0"]
        assert references(main) == ["`foo.ts`/Foo#`<init>`().", "`foo.ts`/Foo#bar()."]

        bar_definition = foo.occurrences_of("`foo.ts`/Foo#bar().")[0]
        assert bar_definition.role is Role.DEFINITION
        assert bar_definition.range == Range(1, 2, 1, 5)

        bar_call = main.occurrences_of("`foo.ts`/Foo#bar().")[0]
        assert bar_call.role is Role.REFERENCE
        assert bar_call.range == Range(2, 10, 2, 13)
        assert main.diagnostics == ()

    def test_documents_keep_input_order(self, indexer):
        result = indexer.index_sources({"main.ts": MAIN, "foo.ts": FOO})

        assert [document.uri for document in result.documents] == ["main.ts", "foo.ts"]
        assert result.document("foo.ts") is result.documents[1]

    def test_nested_paths_become_package_chains(self, indexer):
        main = MAIN.replace("./foo", "./model/foo")
        result = indexer.index_sources({"src/model/foo.ts": FOO, "src/main.ts": main})

        assert references(result.document("src/main.ts"))[1] == "src/model/`foo.ts`/Foo#bar()."

    def test_inherited_methods_and_super_calls(self, indexer):
        source = """class Base { greet(): string { return "hi"; } }
class Child extends Base {
  constructor() { super(); }
}
new Child().greet();
"""
        document = indexer.index_sources({"inherit.ts": source}).documents[0]

        assert "`inherit.ts`/Base#greet()." in references(document)
        assert "`inherit.ts`/Base#`<init>`()." in references(document)
        assert "`inherit.ts`/Base#" in references(document)  # extends clause
        assert document.diagnostics == ()

    def test_stats(self, indexer):
        result = indexer.index_sources({"foo.ts": FOO, "main.ts": MAIN})

        assert result.stats.files_indexed == 2
        assert result.stats.definitions == 3
        assert result.stats.references == 2 + 2  # number, number in foo.ts
        assert result.stats.skipped_nodes == 0
        assert result.stats.global_symbols == len(result.global_symbols)
        assert result.stats.memory_usage_mb > 0


class TestSymbolShapes:
    def test_every_declaration_is_defined(self, indexer):
        document = indexer.index_sources({"shapes.ts": SHAPES}).documents[0]

        assert definitions(document) == [
            "`shapes.ts`/Shape#",
            "`shapes.ts`/Shape#area().",
            "`shapes.ts`/Color#",
            "`shapes.ts`/Color#Red.",
            "`shapes.ts`/Color#Green.",
            "`shapes.ts`/Id#",
            "`shapes.ts`/Box#",
            "`shapes.ts`/Box#[T]",
            "`shapes.ts`/Box#value.",
            "`shapes.ts`/Box#`<init>`().",
            "local0",
            "`shapes.ts`/Box#area().",
            "`shapes.ts`/Box#get().",
        ]
        assert document.diagnostics == ()

    def test_type_references(self, indexer):
        document = indexer.index_sources({"shapes.ts": SHAPES}).documents[0]
        refs = references(document)

        assert refs.count("`shapes.ts`/Box#[T]") == 3
        assert "`shapes.ts`/Shape#" in refs
        assert "_builtins_/string#" in refs
        assert refs.count("_builtins_/number#") == 2

    def test_overloads_resolve_by_arity(self, indexer):
        source = """export function area(r: number): number;
export function area(w: number, h: number): number;
export function area(a: number, b?: number): number {
  return b === undefined ? a * a : a * b;
}
area(2);
area(2, 3);
"""
        document = indexer.index_sources({"area.ts": source}).documents[0]

        assert [s for s in definitions(document) if not s.startswith("local")] == [
            "`area.ts`/area().",
            "`area.ts`/area(+1).",
            "`area.ts`/area(+2).",
        ]
        calls = [s for s in references(document) if "area" in s]
        assert calls == ["`area.ts`/area().", "`area.ts`/area(+1)."]

    def test_nullable_union_is_one_reference_to_the_type(self, indexer):
        source = """export class Node {}
export let head: Node | null = null;
export let tail: Node = new Node();
"""
        document = indexer.index_sources({"list.ts": source}).documents[0]

        type_refs = [occ for occ in document.references() if occ.symbol == "`list.ts`/Node#"]
        assert [occ.range for occ in type_refs] == [Range(1, 17, 1, 21), Range(2, 17, 2, 21)]


class TestAppearanceOrder:
    def test_occurrences_are_sorted_by_start(self, indexer):
        source = "class Foo { bar(x: number): number { return x } }\nnew Foo().bar(1);\n"
        document = indexer.index_sources({"chain.ts": source}).documents[0]

        starts = [(occ.range.start_line, occ.range.start_character) for occ in document.occurrences]
        assert starts == sorted(starts)
        assert [occ.symbol for occ in document.occurrences if occ.range.start_line == 1] == [
            "`chain.ts`/Foo#`<init>`().",
            "`chain.ts`/Foo#bar().",
        ]


class TestBindingDeclarations:
    """Every name a declaration binds gets a definition, whatever its syntax."""

    def test_destructured_variables_and_parameters(self, indexer):
        source = """export let [p, q] = [1, 2];
export const { r } = { r: 1 };
function g({ a }: any, [b]: any) {}
"""
        document = indexer.index_sources({"d.ts": source}).documents[0]

        assert definitions(document) == [
            "`d.ts`/p.",
            "`d.ts`/q.",
            "`d.ts`/r.",
            "`d.ts`/g().",
            "local0",
            "local1",
        ]
        assert document.occurrences_of("`d.ts`/q.")[0].range == Range(0, 15, 0, 16)
        assert document.diagnostics == ()

    def test_renamed_and_defaulted_bindings(self, indexer):
        source = "export const { a: renamed, b = 2, ...rest } = { a: 1 };\n"
        document = indexer.index_sources({"rename.ts": source}).documents[0]

        assert definitions(document) == ["`rename.ts`/renamed.", "`rename.ts`/b.", "`rename.ts`/rest."]

    def test_loop_variables_and_catch_parameters(self, indexer):
        source = """export function f(xs: number[]) {
  for (const x of xs) {}
  for (const k in xs) {}
  try {} catch (e) {}
}
"""
        document = indexer.index_sources({"loops.ts": source}).documents[0]

        assert definitions(document) == ["`loops.ts`/f().", "local0", "local1", "local2", "local3"]
        catch_parameter = [occ for occ in document.definitions() if occ.symbol == "local3"][0]
        assert catch_parameter.range == Range(3, 16, 3, 17)

    def test_called_destructured_binding_has_a_definition(self, indexer):
        source = "const obj = { fn: () => 1 };\nconst { fn } = obj;\nfn();\n"
        document = indexer.index_sources({"fn.ts": source}).documents[0]

        assert "`fn.ts`/fn." in definitions(document)
        assert references(document) == ["`fn.ts`/fn."]
        assert document.diagnostics == ()

    def test_destructured_exports_are_importable(self, indexer):
        result = indexer.index_sources(
            {
                "a.ts": "export const { run } = { run: () => 1 };\n",
                "b.ts": 'import { run } from "./a";\nrun();\n',
            }
        )

        assert references(result.document("b.ts")) == ["`a.ts`/run."]
        assert result.errors == []


class TestLocalIsolation:
    def test_local_symbols_never_reach_the_global_cache(self, indexer):
        result = indexer.index_sources(
            {
                "a.ts": "export function f(x: number) { const y = x; return y; }\n",
                "b.ts": "export function g(z: number) { return z; }\n",
            }
        )
        a, b = result.documents

        assert definitions(a) == ["`a.ts`/f().", "local0", "local1"]
        assert definitions(b) == ["`b.ts`/g().", "local0"]
        assert not any(symbol.startswith("local") for symbol in result.global_symbols.symbols())


class TestUnresolvedPolicies:
    SOURCE = """function helper(): number { return 1; }
missing(helper());
"""

    def helper_refs(self, document):
        return [s for s in references(document) if s == "`policy.ts`/helper()."]

    def test_skip_subtree(self, indexer):
        result = indexer.index_sources({"policy.ts": self.SOURCE}, policy=UnresolvedPolicy.SKIP_SUBTREE)
        document = result.documents[0]

        assert self.helper_refs(document) == []
        assert [diag.code for diag in document.diagnostics] == ["UNRESOLVED_REFERENCE"]
        assert document.diagnostics[0].range == Range(1, 0, 1, 7)
        assert result.stats.skipped_nodes == 1

    def test_skip_node(self, indexer):
        document = indexer.index_sources({"policy.ts": self.SOURCE}, policy="skip_node").documents[0]

        assert self.helper_refs(document) == ["`policy.ts`/helper()."]
        assert len(document.diagnostics) == 1

    def test_fail(self, indexer):
        result = indexer.index_sources({"policy.ts": self.SOURCE, "foo.ts": FOO}, policy=UnresolvedPolicy.FAIL)

        assert [document.uri for document in result.documents] == ["foo.ts"]
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.code == "UNRESOLVED"
        assert error.file == "policy.ts"
        assert error.line == 2

    def test_value_used_as_type_is_ambiguous(self, indexer):
        source = "const config = {};\nlet c: config;\n"
        document = indexer.index_sources({"ambiguous.ts": source}).documents[0]

        assert [diag.code for diag in document.diagnostics] == ["AMBIGUOUS_TYPE"]


class TestDeterminism:
    def test_same_sources_give_identical_documents(self):
        sources = {"shapes.ts": SHAPES, "foo.ts": FOO, "main.ts": MAIN}
        config = IndexerServerConfig(worker_threads=4, index_cache_ttl=0)

        first = ProjectIndexer(config).index_sources(sources)
        second = ProjectIndexer(config).index_sources(sources)

        assert first.documents == second.documents
        assert first.global_symbols.symbols() == second.global_symbols.symbols()


class TestIndexFiles:
    def test_index_files_on_disk(self, tmp_path):
        (tmp_path / "foo.ts").write_text(FOO)
        (tmp_path / "main.ts").write_text(MAIN)
        indexer = ProjectIndexer(IndexerServerConfig(source_root=str(tmp_path)))

        result = indexer.index(["foo.ts", str(tmp_path / "main.ts")])

        assert [document.uri for document in result.documents] == ["foo.ts", "main.ts"]
        assert references(result.documents[1])[1] == "`foo.ts`/Foo#bar()."

    def test_results_are_cached_until_a_file_changes(self, tmp_path):
        (tmp_path / "foo.ts").write_text(FOO)
        indexer = ProjectIndexer(IndexerServerConfig(source_root=str(tmp_path), index_cache_ttl=60))

        first = indexer.index(["foo.ts"])
        second = indexer.index(["foo.ts"])

        assert second.documents is first.documents

    def test_missing_and_outside_files_are_errors(self, tmp_path):
        indexer = ProjectIndexer(IndexerServerConfig(source_root=str(tmp_path)))

        result = indexer.index(["missing.ts", "../outside.ts"])

        assert result.documents == []
        assert sorted(error.code for error in result.errors) == ["INVALID_PATH", "NOT_FOUND"]
