"""Indexer server tools implementations.

SemanticDB indexing tools for TypeScript projects.
"""

from ...utils.json_parameter_middleware import json_convert
from ..models.semanticdb_models import (
    BuildTextDocumentsResponse,
    FindOccurrencesResponse,
    GotoDefinitionResponse,
)
from .build_text_documents import build_text_documents_impl
from .find_occurrences import find_occurrences_impl, goto_definition_impl


def register_indexer_tools(mcp):
    """Register SemanticDB indexing tools with the MCP server."""

    @mcp.tool
    @json_convert
    def build_text_documents(
        file_paths: str | list[str] | None = None,
        source_root: str | None = None,
        unresolved_policy: str | None = None,
    ) -> BuildTextDocumentsResponse:
        """
        Build SemanticDB text documents for TypeScript files.

        Use this tool when:
        - Producing a cross-referenceable index of every declaration and reference
        - Checking which symbols a file defines and which it uses
        - Finding references the indexer could not resolve (document diagnostics)

        Every occurrence carries a symbol that is stable across files, e.g.
        src/`shapes.ts`/Circle#area(). for a method. Block-scoped entities get
        document-local symbols (local0, local1, ...).

        Args:
            file_paths: Files to index, or None for every TypeScript file under source_root
            source_root: Root that document URIs are relative to (default: MCP_FILE_ROOT)
            unresolved_policy: What to do with unresolvable nodes - "skip_subtree" (default),
                "skip_node" (keep indexing inside them) or "fail" (drop the file with an error)

        Example:
            build_text_documents(["src/shapes.ts", "src/main.ts"])
            → BuildTextDocumentsResponse with one document per file

        Note: Index all files that reference each other in one call so imports resolve
        """
        return build_text_documents_impl(
            file_paths=file_paths,
            source_root=source_root,
            unresolved_policy=unresolved_policy,
        )

    @mcp.tool
    @json_convert
    def find_occurrences(
        symbol: str,
        file_paths: str | list[str] | None = None,
        source_root: str | None = None,
        include_definitions: bool = True,
        include_references: bool = True,
    ) -> FindOccurrencesResponse:
        """
        Find every occurrence of an exact SemanticDB symbol.

        Use this tool when:
        - Finding all call sites of a method before changing its signature
        - Finding every use of a class or interface as a type
        - Locating where a symbol is defined

        Unlike text search, overloads and same-named members of different classes
        are told apart.

        Args:
            symbol: Exact symbol, as returned by build_text_documents or goto_definition
            file_paths: Files to search, or None for project-wide search
            source_root: Root that document URIs are relative to (default: MCP_FILE_ROOT)
            include_definitions: Include DEFINITION occurrences
            include_references: Include REFERENCE occurrences

        Example:
            find_occurrences("src/`shapes.ts`/Circle#area().")
            → FindOccurrencesResponse with the definition and every call

        Note: Local symbols (localN) are only meaningful within one file
        """
        return find_occurrences_impl(
            symbol=symbol,
            file_paths=file_paths,
            source_root=source_root,
            include_definitions=include_definitions,
            include_references=include_references,
        )

    @mcp.tool
    @json_convert
    def goto_definition(
        file_path: str,
        line: int,
        character: int,
        file_paths: str | list[str] | None = None,
        source_root: str | None = None,
    ) -> GotoDefinitionResponse:
        """
        Find the definition of the symbol at a source position.

        Use this tool when:
        - Jumping from a call or type annotation to its declaration
        - Resolving which overload or base-class method a call refers to

        Args:
            file_path: File containing the position
            line: 0-based line number
            character: 0-based column in characters
            file_paths: Files that may hold the definition, or None for project-wide search
            source_root: Root that document URIs are relative to (default: MCP_FILE_ROOT)

        Example:
            goto_definition("src/main.ts", 4, 12)
            → GotoDefinitionResponse with symbol "src/`shapes.ts`/Circle#area()."

        Note: Pairs well with find_occurrences to list every use of the result
        """
        return goto_definition_impl(
            file_path=file_path,
            line=line,
            character=character,
            file_paths=file_paths,
            source_root=source_root,
        )
