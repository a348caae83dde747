"""Central configuration constants for semsearch."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Final, Optional

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for 3.10
    import tomli as tomllib

SIMILARITY_METRICS: Final[tuple[str, ...]] = ("cosine", "euclidean", "dotProduct")
DEFAULT_CONFIG_PATH = Path(os.environ.get("SEMSEARCH_CONFIG_FILE", "semsearch.toml"))


def _load_config_data() -> Dict[str, Any]:
    if DEFAULT_CONFIG_PATH.exists():
        with DEFAULT_CONFIG_PATH.open("rb") as fh:
            return tomllib.load(fh)
    return {}


_CONFIG_DATA = _load_config_data()


def _get_setting(section: str, name: str, default: Any) -> str:
    env_key = f"SEMSEARCH_{section.upper()}_{name.upper()}"
    if env_key in os.environ:
        return os.environ[env_key]
    data_section = _CONFIG_DATA.get(section, {})
    return str(data_section.get(name, default))


def _get_bool_setting(section: str, name: str, default: bool) -> bool:
    raw = _get_setting(section, name, default).strip().lower()
    return raw in {"1", "true", "yes", "on"}


def _get_optional_float(section: str, name: str) -> Optional[float]:
    raw = _get_setting(section, name, "").strip()
    return float(raw) if raw else None


DATA_ROOT = Path(_get_setting("data", "root", str(Path.home() / ".semsearch")))
STATE_DIR = Path(_get_setting("data", "state_dir", str(DATA_ROOT / "state")))
VECTOR_DB_PATH = Path(_get_setting("store", "path", str(DATA_ROOT / "vectordb")))
DEFAULT_EMBED_MODEL = os.environ.get("SEMSEARCH_EMBED_MODEL", "BAAI/bge-m3")


@dataclass(frozen=True)
class Paths:
    """Filesystem paths used throughout the project."""

    data_root: Path = DATA_ROOT
    state_dir: Path = STATE_DIR
    vector_db_path: Path = VECTOR_DB_PATH
    config_file: Path = DEFAULT_CONFIG_PATH


@dataclass(frozen=True)
class SearchDefaults:
    """Per-call defaults applied when a caller leaves an option unset."""

    limit: int = int(_get_setting("search", "limit", 10))
    threshold: float = float(_get_setting("search", "threshold", 0.7))
    candidate_multiplier: int = int(_get_setting("search", "candidate_multiplier", 10))
    timeout: Optional[float] = _get_optional_float("search", "timeout")


@dataclass(frozen=True)
class VectorSearchConfig:
    """Collection-level settings for the indexed search path.

    ``enabled=False`` pins every search on the collection to brute force.
    ``auto_create_index`` lets the provisioner create ``index_name`` when it is
    missing; otherwise a missing index is only logged.
    """

    enabled: bool = _get_bool_setting("vector_search", "enabled", True)
    index_name: str = _get_setting("vector_search", "index_name", "vector_index")
    auto_create_index: bool = _get_bool_setting("vector_search", "auto_create_index", True)
    similarity: str = _get_setting("vector_search", "similarity", "cosine")
    probe_timeout: Optional[float] = _get_optional_float("vector_search", "probe_timeout")

    def __post_init__(self) -> None:
        if self.similarity not in SIMILARITY_METRICS:
            raise ValueError(
                f"Unsupported similarity metric {self.similarity!r}; "
                f"expected one of {', '.join(SIMILARITY_METRICS)}"
            )
        if not self.index_name:
            raise ValueError("index_name must be a non-empty string")


@dataclass(frozen=True)
class StoreConfig:
    """Document store backend settings."""

    backend: str = _get_setting("store", "backend", "chroma")
    path: Path = VECTOR_DB_PATH
    collection: str = _get_setting("store", "collection", "semsearch_documents")
    # Chroma HNSW space: cosine, ip or l2
    space: str = _get_setting("store", "space", "cosine")
    embedding_field: str = _get_setting("store", "embedding_field", "embedding")


@dataclass(frozen=True)
class AppConfig:
    """Aggregate configuration for the semsearch runtime."""

    paths: Paths = field(default_factory=Paths)
    search: SearchDefaults = field(default_factory=SearchDefaults)
    vector_search: VectorSearchConfig = field(default_factory=VectorSearchConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    embed_model: str = DEFAULT_EMBED_MODEL


CONFIG: Final[AppConfig] = AppConfig()
