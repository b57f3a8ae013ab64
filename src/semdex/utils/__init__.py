"""Shared utilities for SemDex servers."""
