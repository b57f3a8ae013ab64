"""Configuration management for the indexer server."""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import UnresolvedPolicy

DEFAULT_FILE_PATTERNS = ["**/*.ts", "**/*.tsx"]
DEFAULT_EXCLUDE_DIRS = ["node_modules", ".git", "dist", "build", ".next", "coverage"]


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class IndexerServerConfig:
    """Configuration class for the indexer server."""

    # Project Configuration
    source_root: str = "."
    language: str = "typescript"
    file_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_FILE_PATTERNS))
    exclude_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))

    # Indexing Configuration
    unresolved_policy: UnresolvedPolicy = UnresolvedPolicy.SKIP_SUBTREE
    emit_symbol_information: bool = True
    worker_threads: int = 4

    # Parser Configuration
    max_file_size_mb: int = 5
    cache_size_mb: int = 100
    index_cache_ttl: int = 60  # seconds

    # Runtime Configuration
    log_level: str = "INFO"

    @classmethod
    def from_environment(cls, base: "IndexerServerConfig | None" = None) -> "IndexerServerConfig":
        """Create configuration from environment variables, on top of `base` when given."""
        base = base if base is not None else cls()
        env = os.environ
        return cls(
            # Project Configuration
            source_root=env.get("MCP_FILE_ROOT", base.source_root),
            language=env.get("SEMDEX_LANGUAGE", base.language),
            file_patterns=_split_list(env["SEMDEX_FILE_PATTERNS"]) if "SEMDEX_FILE_PATTERNS" in env else base.file_patterns,
            exclude_dirs=_split_list(env["SEMDEX_EXCLUDE_DIRS"]) if "SEMDEX_EXCLUDE_DIRS" in env else base.exclude_dirs,

            # Indexing Configuration
            unresolved_policy=UnresolvedPolicy.parse(env.get("SEMDEX_UNRESOLVED_POLICY", base.unresolved_policy)),
            emit_symbol_information=env.get(
                "SEMDEX_EMIT_SYMBOL_INFORMATION", str(base.emit_symbol_information)
            ).lower() == "true",
            worker_threads=int(env.get("SEMDEX_WORKER_THREADS", base.worker_threads)),

            # Parser Configuration
            max_file_size_mb=int(env.get("SEMDEX_MAX_FILE_SIZE_MB", base.max_file_size_mb)),
            cache_size_mb=int(env.get("SEMDEX_CACHE_SIZE_MB", base.cache_size_mb)),
            index_cache_ttl=int(env.get("SEMDEX_INDEX_CACHE_TTL", base.index_cache_ttl)),

            # Runtime Configuration
            log_level=env.get("LOG_LEVEL", base.log_level).upper(),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "IndexerServerConfig":
        """Load configuration from a YAML file; environment variables override it.

        Raises:
            FileNotFoundError: If the file does not exist
            yaml.YAMLError: If YAML parsing fails
            ValueError: If the file has unknown keys or invalid values
        """
        with open(path, encoding="utf-8") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Invalid configuration file {path}: expected a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys in {path}: {', '.join(unknown)}")
        if "unresolved_policy" in data:
            data["unresolved_policy"] = UnresolvedPolicy.parse(data["unresolved_policy"])
        if "log_level" in data:
            data["log_level"] = str(data["log_level"]).upper()
        return cls.from_environment(base=cls(**data))

    def validate(self) -> tuple[bool, list[str]]:
        """Validate configuration settings."""
        errors = []

        if self.worker_threads <= 0:
            errors.append("worker_threads must be positive")

        if self.max_file_size_mb <= 0:
            errors.append("max_file_size_mb must be positive")

        if self.cache_size_mb <= 0:
            errors.append("cache_size_mb must be positive")

        if self.index_cache_ttl < 0:
            errors.append("index_cache_ttl cannot be negative")

        if not self.source_root:
            errors.append("source_root cannot be empty")

        if not self.file_patterns:
            errors.append("file_patterns cannot be empty")

        if not isinstance(self.unresolved_policy, UnresolvedPolicy):
            errors.append(f"unresolved_policy must be one of {[p.value for p in UnresolvedPolicy]}")

        # Validate log level
        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level not in valid_log_levels:
            errors.append(f"log_level must be one of {valid_log_levels}")

        return len(errors) == 0, errors

    def __post_init__(self):
        """Post-initialization validation."""
        if isinstance(self.unresolved_policy, str):
            self.unresolved_policy = UnresolvedPolicy.parse(self.unresolved_policy)
        is_valid, errors = self.validate()
        if not is_valid:
            raise ValueError(f"Invalid configuration: {', '.join(errors)}")


# Global configuration instance
_config: IndexerServerConfig | None = None


def get_config() -> IndexerServerConfig:
    """Get the global configuration instance.

    SEMDEX_CONFIG_FILE, when set, names a YAML file to start from.
    """
    global _config
    if _config is None:
        config_file = os.getenv("SEMDEX_CONFIG_FILE")
        _config = IndexerServerConfig.from_file(config_file) if config_file else IndexerServerConfig.from_environment()
    return _config


def set_config(config: IndexerServerConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
