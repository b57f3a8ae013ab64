"""
Tests for the TypeScript parser and module resolution.
"""

import os
import time

import pytest

from semdex.indexer_server.tools.module_resolver import ModuleResolver
from semdex.indexer_server.tools.typescript_parser import TypeScriptParser


class TestTypeScriptParser:
    """Test the core TypeScript parser functionality."""

    @pytest.fixture
    def parser(self):
        return TypeScriptParser(cache_size_mb=10, max_file_size_mb=1)

    def test_parse_source(self, parser):
        result = parser.parse_source("export class Foo {}\n", "foo.ts")

        assert result.success
        assert result.errors == []
        assert result.source == b"export class Foo {}\n"
        assert result.tree.root_node.type == "program"

    def test_tsx_grammar_for_tsx_files(self, parser):
        source = "export const App = () => <div className=\"app\" />;\n"

        assert parser.parse_source(source, "App.tsx").errors == []
        assert parser.parse_source(source, "App.ts").errors != []

    def test_syntax_errors_keep_the_tree(self, parser):
        result = parser.parse_source("class {\n", "broken.ts")

        assert result.success
        assert result.tree is not None
        assert result.errors[0].code == "PARSE_ERROR"

    def test_missing_file(self, parser, tmp_path):
        result = parser.parse_file(str(tmp_path / "missing.ts"))

        assert not result.success
        assert result.errors[0].code == "NOT_FOUND"

    def test_file_too_large(self, parser, tmp_path):
        big = tmp_path / "big.ts"
        big.write_text("// x\n" * (300 * 1024))

        result = parser.parse_file(str(big))

        assert not result.success
        assert result.errors[0].code == "FILE_TOO_LARGE"

    def test_excluded_directories(self, tmp_path):
        (tmp_path / "vendor").mkdir()
        vendored = tmp_path / "vendor" / "lib.ts"
        vendored.write_text("export const x = 1;\n")

        result = TypeScriptParser(excluded_dirs=["vendor"]).parse_file(str(vendored))

        assert not result.success
        assert result.errors[0].code == "EXCLUDED_PATH"

    def test_cache_hit_until_file_changes(self, parser, tmp_path):
        source_file = tmp_path / "foo.ts"
        source_file.write_text("export const a = 1;\n")

        first = parser.parse_file(str(source_file))
        second = parser.parse_file(str(source_file))

        assert second.tree is first.tree
        stats = parser.get_parser_stats()
        assert stats.cache_hits == 1
        assert stats.cache_misses == 1

        source_file.write_text("export const a = 2;\n")
        later = time.time() + 5
        os.utime(source_file, (later, later))

        third = parser.parse_file(str(source_file))
        assert third.source == b"export const a = 2;\n"
        assert parser.get_parser_stats().cache_misses == 2

    def test_clear_all_caches(self, parser, tmp_path):
        source_file = tmp_path / "foo.ts"
        source_file.write_text("export const a = 1;\n")
        parser.parse_file(str(source_file))

        parser.clear_all_caches()

        assert parser.get_cached_tree(str(source_file)) is None
        assert parser.get_memory_usage_mb() == 0


class TestModuleResolver:
    """Test import specifier resolution."""

    @pytest.fixture
    def resolver(self):
        return ModuleResolver(
            "/project",
            known_files=[
                "/project/src/shapes.ts",
                "/project/src/model/index.ts",
                "/project/src/view.tsx",
                "/project/lib/util.ts",
            ],
        )

    @pytest.mark.parametrize(
        "specifier, expected",
        [
            ("./shapes", "/project/src/shapes.ts"),
            ("./shapes.js", "/project/src/shapes.ts"),
            ("./model", "/project/src/model/index.ts"),
            ("./view", "/project/src/view.tsx"),
            ("../lib/util", "/project/lib/util.ts"),
            ("lib/util", "/project/lib/util.ts"),
        ],
    )
    def test_resolves_project_files(self, resolver, specifier, expected):
        assert resolver.resolve_path(specifier, "/project/src/main.ts") == expected

    @pytest.mark.parametrize("specifier", ["./missing", "@scope/pkg", "/abs/path", "node:fs"])
    def test_unresolvable_specifiers(self, resolver, specifier):
        assert resolver.resolve_path(specifier, "/project/src/main.ts") is None

    def test_filesystem_lookup(self, tmp_path):
        (tmp_path / "a.ts").write_text("")

        resolver = ModuleResolver(str(tmp_path))

        assert resolver.resolve_path("./a", str(tmp_path / "b.ts")) == str(tmp_path / "a.ts")
