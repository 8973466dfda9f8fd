"""Configuration for search and sync, loaded from DOCSYNC_* environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Optional, TypeVar

from docsync.errors import ConfigError

T = TypeVar("T")

ENV_PREFIX = "DOCSYNC_"

DEFAULT_EXCLUDE_PATTERNS = (
    "node_modules",
    "__pycache__",
    "dist",
    "build",
    "venv",
    "target",
    "coverage",
    "*.egg-info",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "poetry.lock",
    "Cargo.lock",
    "uv.lock",
    "Gemfile.lock",
    "composer.lock",
)


@dataclass(frozen=True)
class SearchConfig:
    """Hybrid search tuning."""

    enable_hybrid: bool = True
    enable_diversification: bool = True
    enable_query_expansion: bool = False
    rrf_k: int = 30
    dense_weight: float = 1.0
    lexical_weight: float = 1.0
    mmr_lambda: float = 0.3
    top_k: int = 10
    min_score: float = 0.01
    candidate_multiplier: int = 2


@dataclass(frozen=True)
class SyncConfig:
    """Folder discovery, chunking and scheduling limits."""

    window_tokens: int = 16
    stride_tokens: int = 8
    max_depth: int = 12
    max_entries: int = 10_000
    max_file_bytes: int = 2 * 1024 * 1024
    max_workers: int = 2
    embed_batch_size: int = 64
    embed_retries: int = 2
    embed_retry_delays: tuple[float, ...] = (0.5, 2.0)
    debounce_seconds: float = 1.0
    poll_interval: float = 2.0
    rescan_interval: float = 60.0
    exclude_patterns: tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    include_extensions: tuple[str, ...] = ()


@dataclass(frozen=True)
class Config:
    """Complete runtime configuration."""

    enabled: bool = True
    db_path: Path = field(default_factory=lambda: Path(".docsync") / "index.db")
    embedding_model: Optional[str] = None
    search: SearchConfig = field(default_factory=SearchConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def _parse_list(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _read(
    env: Mapping[str, str], name: str, parse: Callable[[str], T], default: T
) -> T:
    key = ENV_PREFIX + name
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return parse(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid value for {key}: {e}") from e


def load_config(env: Optional[Mapping[str, str]] = None) -> Config:
    """Build a Config from the environment.

    Args:
        env: Mapping to read from. Defaults to os.environ.

    Raises:
        ConfigError: If a variable is set to an unparseable value.
    """
    env = os.environ if env is None else env
    s = SearchConfig()
    y = SyncConfig()

    search = SearchConfig(
        enable_hybrid=_read(env, "ENABLE_HYBRID", _parse_bool, s.enable_hybrid),
        enable_diversification=_read(
            env, "ENABLE_DIVERSIFICATION", _parse_bool, s.enable_diversification
        ),
        enable_query_expansion=_read(
            env, "ENABLE_QUERY_EXPANSION", _parse_bool, s.enable_query_expansion
        ),
        rrf_k=_read(env, "RRF_K", int, s.rrf_k),
        dense_weight=_read(env, "DENSE_WEIGHT", float, s.dense_weight),
        lexical_weight=_read(env, "LEXICAL_WEIGHT", float, s.lexical_weight),
        mmr_lambda=_read(env, "MMR_LAMBDA", float, s.mmr_lambda),
        top_k=_read(env, "TOP_K", int, s.top_k),
        min_score=_read(env, "MIN_SCORE", float, s.min_score),
    )
    if not 0.0 <= search.mmr_lambda <= 1.0:
        raise ConfigError(f"{ENV_PREFIX}MMR_LAMBDA must be within [0, 1]")
    if search.rrf_k < 0:
        raise ConfigError(f"{ENV_PREFIX}RRF_K must not be negative")

    sync = SyncConfig(
        window_tokens=_read(env, "WINDOW_TOKENS", int, y.window_tokens),
        stride_tokens=_read(env, "STRIDE_TOKENS", int, y.stride_tokens),
        max_depth=_read(env, "MAX_DEPTH", int, y.max_depth),
        max_entries=_read(env, "MAX_ENTRIES", int, y.max_entries),
        max_file_bytes=_read(env, "MAX_FILE_BYTES", int, y.max_file_bytes),
        max_workers=_read(env, "MAX_WORKERS", int, y.max_workers),
        embed_batch_size=_read(env, "EMBED_BATCH_SIZE", int, y.embed_batch_size),
        embed_retries=_read(env, "EMBED_RETRIES", int, y.embed_retries),
        debounce_seconds=_read(env, "DEBOUNCE_SECONDS", float, y.debounce_seconds),
        poll_interval=_read(env, "POLL_INTERVAL", float, y.poll_interval),
        rescan_interval=_read(env, "RESCAN_INTERVAL", float, y.rescan_interval),
        exclude_patterns=_read(env, "EXCLUDE_PATTERNS", _parse_list, y.exclude_patterns),
        include_extensions=_read(
            env, "INCLUDE_EXTENSIONS", _parse_list, y.include_extensions
        ),
    )
    if sync.max_workers < 1:
        raise ConfigError(f"{ENV_PREFIX}MAX_WORKERS must be at least 1")

    return Config(
        enabled=_read(env, "ENABLED", _parse_bool, True),
        db_path=_read(env, "DB_PATH", Path, Path(".docsync") / "index.db"),
        embedding_model=_read(env, "EMBEDDING_MODEL", str, None),
        search=search,
        sync=sync,
    )
