"""Indexer server: SemanticDB text documents for TypeScript projects."""
