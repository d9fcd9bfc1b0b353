"""
Memory search configuration.

``MemorySearchConfig`` is the raw, partially specified input (from code or
the environment via ``MemorySearchSettings``). ``resolve_search_config``
applies defaults and clamps values into a ``ResolvedSearchConfig``, which is
the only form the indexer and search engine consume.
"""

import hashlib
import os
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from agent_memory.paths import PathLike, default_index_path

MemorySource = Literal["memory", "conversations"]
ProviderName = Literal["openai", "gemini", "local", "auto"]
FallbackName = Literal["openai", "gemini", "local", "none"]

DEFAULT_OPENAI_MODEL = "text-embedding-3-small"
DEFAULT_GEMINI_MODEL = "gemini-embedding-001"
DEFAULT_LOCAL_MODEL = "intfloat/e5-small-v2"
DEFAULT_MAX_RESULTS = 6
DEFAULT_MIN_SCORE = 0.35
DEFAULT_HYBRID_ENABLED = True
DEFAULT_VECTOR_WEIGHT = 0.7
DEFAULT_TEXT_WEIGHT = 0.3
DEFAULT_CANDIDATE_MULTIPLIER = 4
MAX_CANDIDATE_MULTIPLIER = 20
DEFAULT_SOURCES: List[MemorySource] = ["memory"]
DEFAULT_FTS_TABLE = "fts_memory"


# ----------------------------------------------------------------------
# Raw input
# ----------------------------------------------------------------------


class RemoteConfig(BaseModel):
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    headers: Optional[Dict[str, str]] = None


class LocalConfig(BaseModel):
    model_path: Optional[str] = None
    model_cache_dir: Optional[str] = None


class StoreConfig(BaseModel):
    path: Optional[str] = None
    fts_enabled: Optional[bool] = None


class SyncConfig(BaseModel):
    on_session_start: Optional[bool] = None
    on_search: Optional[bool] = None


class HybridConfig(BaseModel):
    enabled: Optional[bool] = None
    vector_weight: Optional[float] = None
    text_weight: Optional[float] = None
    candidate_multiplier: Optional[int] = None


class QueryConfig(BaseModel):
    max_results: Optional[int] = None
    min_score: Optional[float] = None
    hybrid: HybridConfig = Field(default_factory=HybridConfig)


class CacheConfig(BaseModel):
    enabled: Optional[bool] = None
    max_entries: Optional[int] = None


class MemorySearchConfig(BaseModel):
    """Search configuration as supplied by the host; every field is optional."""

    enabled: Optional[bool] = None
    sources: Optional[List[str]] = None
    provider: Optional[ProviderName] = None
    fallback: Optional[FallbackName] = None
    model: Optional[str] = None
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    local: LocalConfig = Field(default_factory=LocalConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)


class MemorySearchSettings(BaseSettings):
    """
    Environment-backed search configuration.

    Example:
        AGENT_MEMORY_PROVIDER=openai
        AGENT_MEMORY_QUERY__HYBRID__VECTOR_WEIGHT=0.6
        AGENT_MEMORY_STORE__PATH=/var/lib/agent/index.sqlite
    """

    model_config = SettingsConfigDict(
        env_prefix="AGENT_MEMORY_", env_nested_delimiter="__", extra="ignore"
    )

    enabled: Optional[bool] = None
    sources: Optional[List[str]] = None
    provider: Optional[ProviderName] = None
    fallback: Optional[FallbackName] = None
    model: Optional[str] = None
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    local: LocalConfig = Field(default_factory=LocalConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    def to_config(self) -> MemorySearchConfig:
        config = MemorySearchConfig.model_validate(self.model_dump())
        if not config.remote.api_key and os.getenv("OPENAI_API_KEY"):
            config.remote.api_key = os.getenv("OPENAI_API_KEY")
        return config


# ----------------------------------------------------------------------
# Resolved form
# ----------------------------------------------------------------------


class ResolvedRemote(BaseModel):
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    headers: Optional[Dict[str, str]] = None


class ResolvedLocal(BaseModel):
    model_path: Optional[str] = None
    model_cache_dir: Optional[str] = None


class ResolvedStore(BaseModel):
    driver: Literal["sqlite"] = "sqlite"
    path: str
    fts_enabled: bool = True
    fts_table: str = DEFAULT_FTS_TABLE


class ResolvedSync(BaseModel):
    on_session_start: bool = True
    on_search: bool = True


class ResolvedHybrid(BaseModel):
    enabled: bool = DEFAULT_HYBRID_ENABLED
    vector_weight: float = DEFAULT_VECTOR_WEIGHT
    text_weight: float = DEFAULT_TEXT_WEIGHT
    candidate_multiplier: int = DEFAULT_CANDIDATE_MULTIPLIER


class ResolvedQuery(BaseModel):
    max_results: int = DEFAULT_MAX_RESULTS
    min_score: float = DEFAULT_MIN_SCORE
    hybrid: ResolvedHybrid = Field(default_factory=ResolvedHybrid)


class ResolvedCache(BaseModel):
    enabled: bool = True
    max_entries: Optional[int] = None


class ResolvedSearchConfig(BaseModel):
    """Fully defaulted search configuration."""

    enabled: bool = True
    sources: List[MemorySource]
    provider: ProviderName
    fallback: FallbackName
    model: str
    remote: Optional[ResolvedRemote] = None
    local: ResolvedLocal = Field(default_factory=ResolvedLocal)
    store: ResolvedStore
    sync: ResolvedSync = Field(default_factory=ResolvedSync)
    query: ResolvedQuery = Field(default_factory=ResolvedQuery)
    cache: ResolvedCache = Field(default_factory=ResolvedCache)

    def cache_key(self) -> str:
        """Stable digest of this configuration, used to key engine instances."""
        return hashlib.sha256(self.model_dump_json().encode("utf-8")).hexdigest()


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def _normalize_sources(sources: Optional[List[str]]) -> List[MemorySource]:
    normalized: List[MemorySource] = []
    for source in sources or DEFAULT_SOURCES:
        if source in ("memory", "conversations") and source not in normalized:
            normalized.append(source)
    return normalized or ["memory"]


def _default_model(provider: str) -> str:
    if provider == "openai":
        return DEFAULT_OPENAI_MODEL
    if provider == "gemini":
        return DEFAULT_GEMINI_MODEL
    if provider == "local":
        return DEFAULT_LOCAL_MODEL
    return ""


def resolve_search_config(
    config: Optional[MemorySearchConfig],
    workspace_dir: PathLike,
    agent_id: str,
) -> Optional[ResolvedSearchConfig]:
    """
    Apply defaults and clamp a raw configuration.

    Args:
        config: Raw configuration (None = all defaults)
        workspace_dir: Agent workspace root; the default index lives below it
        agent_id: Agent identifier, used for the default index file name

    Returns:
        The resolved configuration, or None when search is disabled
    """
    config = config or MemorySearchConfig()
    if config.enabled is False:
        return None

    provider = config.provider or "auto"
    remote_cfg = config.remote
    has_remote = bool(remote_cfg.base_url or remote_cfg.api_key or remote_cfg.headers)
    remote = None
    if has_remote or provider in ("openai", "gemini", "auto"):
        remote = ResolvedRemote(
            base_url=remote_cfg.base_url,
            api_key=remote_cfg.api_key,
            headers=remote_cfg.headers,
        )

    query = config.query
    hybrid = query.hybrid
    vector_weight = _clamp(
        hybrid.vector_weight if hybrid.vector_weight is not None else DEFAULT_VECTOR_WEIGHT, 0.0, 1.0
    )
    text_weight = _clamp(
        hybrid.text_weight if hybrid.text_weight is not None else DEFAULT_TEXT_WEIGHT, 0.0, 1.0
    )
    weight_sum = vector_weight + text_weight
    if weight_sum > 0:
        vector_weight, text_weight = vector_weight / weight_sum, text_weight / weight_sum
    else:
        vector_weight, text_weight = DEFAULT_VECTOR_WEIGHT, DEFAULT_TEXT_WEIGHT

    multiplier = (
        hybrid.candidate_multiplier
        if hybrid.candidate_multiplier is not None
        else DEFAULT_CANDIDATE_MULTIPLIER
    )
    max_results = query.max_results if query.max_results is not None else DEFAULT_MAX_RESULTS
    min_score = query.min_score if query.min_score is not None else DEFAULT_MIN_SCORE

    max_entries = config.cache.max_entries
    if max_entries is not None:
        max_entries = max(1, int(max_entries))

    store_path = config.store.path or str(default_index_path(workspace_dir, agent_id))

    return ResolvedSearchConfig(
        enabled=True,
        sources=_normalize_sources(config.sources),
        provider=provider,
        fallback=config.fallback or "none",
        model=config.model or _default_model(provider),
        remote=remote,
        local=ResolvedLocal(
            model_path=config.local.model_path,
            model_cache_dir=config.local.model_cache_dir,
        ),
        store=ResolvedStore(
            path=store_path,
            fts_enabled=config.store.fts_enabled if config.store.fts_enabled is not None else True,
        ),
        sync=ResolvedSync(
            on_session_start=(
                config.sync.on_session_start if config.sync.on_session_start is not None else True
            ),
            on_search=config.sync.on_search if config.sync.on_search is not None else True,
        ),
        query=ResolvedQuery(
            max_results=max(1, max_results),
            min_score=_clamp(min_score, 0.0, 1.0),
            hybrid=ResolvedHybrid(
                enabled=hybrid.enabled if hybrid.enabled is not None else DEFAULT_HYBRID_ENABLED,
                vector_weight=vector_weight,
                text_weight=text_weight,
                candidate_multiplier=int(_clamp(multiplier, 1, MAX_CANDIDATE_MULTIPLIER)),
            ),
        ),
        cache=ResolvedCache(
            enabled=config.cache.enabled if config.cache.enabled is not None else True,
            max_entries=max_entries,
        ),
    )
