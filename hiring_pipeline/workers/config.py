from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_LOOP_MS = 15000


def loop_ms(value: Optional[str], fallback: float = DEFAULT_LOOP_MS) -> float:
    """
    Poll interval from a raw environment value. Anything that is not a
    finite positive number falls back.
    """
    if value is None:
        return fallback
    try:
        parsed = float(value)
    except ValueError:
        return fallback
    return parsed if math.isfinite(parsed) and parsed > 0 else fallback


def _positive_int(value: Optional[str], fallback: int) -> int:
    try:
        parsed = int(value) if value is not None else fallback
    except ValueError:
        return fallback
    return parsed if parsed > 0 else fallback


def _optional_float(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


@dataclass
class WorkerConfig:
    database_url: str = "sqlite+pysqlite:///./data/hiring_pipeline.db"
    export_loop_ms: float = DEFAULT_LOOP_MS
    parser_loop_ms: float = DEFAULT_LOOP_MS
    export_batch_size: int = 1
    parser_batch_size: int = 5
    storage_backend: str = "supabase"
    storage_root: str = "./data/storage"
    exports_bucket: str = "exports"
    resumes_bucket: str = "resumes"
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    affinda_api_key: Optional[str] = None
    affinda_timeout: Optional[float] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "WorkerConfig":
        env = os.environ if environ is None else environ
        return cls(
            database_url=env.get("DATABASE_URL", cls.database_url),
            export_loop_ms=loop_ms(env.get("EXPORT_LOOP_MS")),
            parser_loop_ms=loop_ms(env.get("PARSER_LOOP_MS")),
            export_batch_size=_positive_int(env.get("EXPORT_BATCH_SIZE"), 1),
            parser_batch_size=_positive_int(env.get("PARSER_BATCH_SIZE"), 5),
            storage_backend=env.get("STORAGE_BACKEND", cls.storage_backend).lower(),
            storage_root=env.get("STORAGE_ROOT", cls.storage_root),
            exports_bucket=env.get("EXPORTS_BUCKET", cls.exports_bucket),
            resumes_bucket=env.get("RESUMES_BUCKET", cls.resumes_bucket),
            supabase_url=env.get("SUPABASE_URL"),
            supabase_service_role_key=env.get("SUPABASE_SERVICE_ROLE_KEY"),
            affinda_api_key=env.get("AFFINDA_API_KEY"),
            affinda_timeout=_optional_float(env.get("AFFINDA_TIMEOUT")),
            log_level=env.get("LOG_LEVEL", cls.log_level).upper(),
        )
