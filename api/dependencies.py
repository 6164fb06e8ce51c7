from __future__ import annotations

import os
from functools import lru_cache

from hiring_pipeline.workers import (
    ApplicationRepository,
    ExportJobRepository,
    ResumeDocumentRepository,
    SqlAlchemyApplicationRepository,
    SqlAlchemyDatabase,
    SqlAlchemyExportJobRepository,
    SqlAlchemyResumeDocumentRepository,
)


@lru_cache(maxsize=1)
def get_database() -> SqlAlchemyDatabase:
    db_url = os.getenv("DATABASE_URL", "sqlite+pysqlite:///./data/hiring_pipeline.db")
    return SqlAlchemyDatabase(db_url)


def get_export_repo() -> ExportJobRepository:
    return SqlAlchemyExportJobRepository(get_database())


def get_resume_repo() -> ResumeDocumentRepository:
    return SqlAlchemyResumeDocumentRepository(get_database())


def get_application_repo() -> ApplicationRepository:
    return SqlAlchemyApplicationRepository(get_database())
