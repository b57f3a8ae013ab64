"""Indexer MCP Server - SemanticDB text documents for TypeScript projects."""

import logging
import sys

from fastmcp import FastMCP

from .config import get_config
from .tools import register_indexer_tools

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

# Initialize the Indexer MCP server
mcp = FastMCP(
    name="SemDex Indexer Server",
    version=__version__,
    instructions="""
        Indexer server turns TypeScript sources into SemanticDB text documents:

        Core Tools:
        - build_text_documents: Index files into documents of symbol occurrences
        - find_occurrences: Find every definition and reference of an exact symbol
        - goto_definition: Resolve the symbol at a position to its definition

        Symbols:
        - Global symbols are stable across files, e.g. src/`shapes.ts`/Circle#area().
        - Overloads are told apart: area(). area(+1). area(+2).
        - Parameters and block-scoped entities get document-local symbols (localN)

        Best Practices:
        - Index files that import each other in the same call so references resolve
        - Use the "skip_node" policy to keep indexing inside unresolved expressions
        - Check document diagnostics for references the indexer could not resolve
    """,
)

# Register all indexer tools
register_indexer_tools(mcp)


def main():
    """Entry point for the indexer server."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )

    # Load configuration from environment
    config = get_config()

    # Apply log level from configuration
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.log_level))

    logger.info(
        "Starting indexer server: source_root=%s, policy=%s, workers=%d",
        config.source_root,
        config.unresolved_policy.value,
        config.worker_threads,
    )

    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)


if __name__ == "__main__":
    main()
