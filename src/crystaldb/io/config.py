"""
Configuration for the crystaldb.io module.

Defines StoreSettings, a frozen dataclass carrying runtime configuration for the store
layer (backend choice, on-disk location, parquet compression, logging, list limits).
Defaults are sourced from crystaldb.core.constants.

Source of truth
- crystaldb.core.constants.DEFAULT_BACKEND, DEFAULT_ROOT_DIR, COMPRESSION, STORE_BACKENDS

Import DAG discipline
- Depends on stdlib, crystaldb.core.constants, and (in build_adapter only) the adapter
  modules of this package.

Notes
- Precedence: env > TOML > defaults.
- Compression applies to Parquet writes via pyarrow in crystaldb.io.parquet.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from crystaldb.core.constants import COMPRESSION as CORE_COMPRESSION
from crystaldb.core.constants import DEFAULT_BACKEND, DEFAULT_ROOT_DIR, STORE_BACKENDS

from .errors import StoreConfigError

if TYPE_CHECKING:
    from .adapter import DatabaseAdapter

Backend = Literal["memory", "parquet"]
Compression = Literal["zstd", "lz4", "snappy"]
LogFormat = Literal["json", "console"]

_COMPRESSIONS = ("zstd", "lz4", "snappy")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_LOG_FORMATS = ("json", "console")


@dataclass(frozen=True)
class StoreSettings:
    """
    Runtime settings for the crystaldb.io layer.

    Attributes:
        backend (Literal["memory","parquet"]): Storage adapter built by ``build_adapter``.
        root_dir (str): Directory holding the parquet collections.
        compression (Literal["zstd","lz4","snappy"]): Parquet compression codec.
        log_level (str): Minimum structlog level (DEBUG..CRITICAL).
        log_format (Literal["json","console"]): structlog renderer.
        default_limit (int | None): Limit applied to ``list_units`` when the query sets
            none; None means unbounded.

    Examples:
        >>> from crystaldb.io import StoreSettings
        >>> StoreSettings(backend="parquet", root_dir="data")  # doctest: +ELLIPSIS
        StoreSettings(...)
    """

    backend: Backend = DEFAULT_BACKEND  # type: ignore[assignment]
    root_dir: str = DEFAULT_ROOT_DIR
    compression: Compression = CORE_COMPRESSION  # type: ignore[assignment]
    log_level: str = "INFO"
    log_format: LogFormat = "json"
    default_limit: int | None = None

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: StoreSettings, cfg: dict[str, Any] | None) -> StoreSettings:
        """Apply a loose config mapping onto StoreSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        def _choice(val: Any, allowed: tuple[str, ...], *, upper: bool = False) -> str | None:
            if not isinstance(val, str):
                return None
            norm = val.strip().upper() if upper else val.strip().lower()
            return norm if norm in allowed else None

        # backend
        if "backend" in cfg:
            backend = _choice(cfg["backend"], STORE_BACKENDS)
            if backend is None:
                raise StoreConfigError(
                    f"unsupported backend {cfg['backend']!r}; expected one of {STORE_BACKENDS}"
                )
            s = replace(s, backend=backend)  # type: ignore[arg-type]

        # root_dir
        if "root_dir" in cfg and isinstance(cfg["root_dir"], str):
            s = replace(s, root_dir=cfg["root_dir"])

        # compression
        comp = _choice(cfg.get("compression"), _COMPRESSIONS)
        if comp is not None:
            s = replace(s, compression=comp)  # type: ignore[arg-type]

        # logging
        level = _choice(cfg.get("log_level"), _LOG_LEVELS, upper=True)
        if level is not None:
            s = replace(s, log_level=level)
        fmt = _choice(cfg.get("log_format"), _LOG_FORMATS)
        if fmt is not None:
            s = replace(s, log_format=fmt)  # type: ignore[arg-type]

        # default_limit (<= 0 disables the cap)
        if "default_limit" in cfg:
            try:
                limit = int(cfg["default_limit"])
            except (TypeError, ValueError):
                limit = None
            else:
                s = replace(s, default_limit=limit if limit > 0 else None)

        return s

    @classmethod
    def from_env(
        cls, base: StoreSettings | None = None, prefix: str = "CRYSTALDB_"
    ) -> StoreSettings:
        """
        Build StoreSettings from environment variables. Precedence is env > base (if provided) > defaults.

        Recognized variables:
            - CRYSTALDB_BACKEND ("memory" | "parquet")
            - CRYSTALDB_ROOT_DIR
            - CRYSTALDB_COMPRESSION ("zstd" | "lz4" | "snappy")
            - CRYSTALDB_LOG_LEVEL
            - CRYSTALDB_LOG_FORMAT ("json" | "console")
            - CRYSTALDB_DEFAULT_LIMIT
        """
        s = base or cls()
        mapping: dict[str, Any] = {}
        for key in ("backend", "root_dir", "compression", "log_level", "log_format", "default_limit"):
            v = os.getenv(prefix + key.upper())
            if v:
                mapping[key] = v
        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> StoreSettings:
        """
        Build StoreSettings from a TOML file.

        Search order when `path` is None:
            1) ./crystaldb.toml (with either a [store] table or direct keys)
            2) ./pyproject.toml under [tool.crystaldb.store]

        Returns defaults if no file is present.

        Raises:
            StoreConfigError: If an explicit or discovered file is not valid TOML.
        """
        s = cls()

        def _load_toml(p: Path) -> dict[str, Any]:
            try:
                with p.open("rb") as fh:
                    return tomllib.load(fh)
            except tomllib.TOMLDecodeError as exc:
                raise StoreConfigError(f"invalid TOML in {p}: {exc}") from exc

        cfg: dict[str, Any] | None = None

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "crystaldb.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        for p in cand:
            if not p.exists():
                continue
            data = _load_toml(p)
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                section = tool.get("crystaldb", {}) if isinstance(tool, dict) else {}
                cfg = section.get("store") if isinstance(section, dict) else None
            elif isinstance(data.get("store"), dict):
                cfg = data["store"]
            else:
                cfg = data
            if cfg:
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> StoreSettings:
        """
        Load StoreSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults
                (crystaldb.toml, pyproject.toml).
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s


def build_adapter(settings: StoreSettings) -> DatabaseAdapter:
    """
    Construct the storage adapter selected by ``settings.backend``.

    Raises:
        StoreConfigError: If the backend is unknown.
    """
    if settings.backend == "memory":
        from .memory import InMemoryDatabaseAdapter

        return InMemoryDatabaseAdapter()
    if settings.backend == "parquet":
        from .parquet import ParquetDatabaseAdapter

        return ParquetDatabaseAdapter(settings.root_dir, compression=settings.compression)
    raise StoreConfigError(f"unsupported backend {settings.backend!r}")
