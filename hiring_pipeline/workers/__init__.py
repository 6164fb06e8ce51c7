"""
Worker subsystem exports.
"""

from .config import WorkerConfig, loop_ms
from .export import ExportPipeline, render_applications_csv
from .models import (
    ApplicationRecord,
    AuditEntry,
    ExportJobRecord,
    ExportJobStatus,
    FitExplanation,
    JobPostingRecord,
    ParseStatus,
    ResumeDocumentRecord,
    ScoreResult,
)
from .parsing_service import AffindaParsingService, ParsingServiceError, ResumeParsingService
from .queue import ClaimableQueue, claim
from .repository import (
    ApplicationRepository,
    ExportJobRepository,
    InMemoryApplicationRepository,
    InMemoryExportJobRepository,
    InMemoryResumeDocumentRepository,
    ResumeDocumentRepository,
    SqlAlchemyApplicationRepository,
    SqlAlchemyDatabase,
    SqlAlchemyExportJobRepository,
    SqlAlchemyResumeDocumentRepository,
)
from .resume import ResumeParsePipeline, extract_resume_text
from .scoring import KeywordOverlapScorer, ScoringStrategy
from .storage import LocalObjectStorage, ObjectStorage, StorageError, StoragePaths, SupabaseObjectStorage
from .worker import QueueWorker, describe_error

__all__ = [
    "AffindaParsingService",
    "ApplicationRecord",
    "ApplicationRepository",
    "AuditEntry",
    "ClaimableQueue",
    "ExportJobRecord",
    "ExportJobRepository",
    "ExportJobStatus",
    "ExportPipeline",
    "FitExplanation",
    "InMemoryApplicationRepository",
    "InMemoryExportJobRepository",
    "InMemoryResumeDocumentRepository",
    "JobPostingRecord",
    "KeywordOverlapScorer",
    "LocalObjectStorage",
    "ObjectStorage",
    "ParseStatus",
    "ParsingServiceError",
    "QueueWorker",
    "ResumeDocumentRecord",
    "ResumeDocumentRepository",
    "ResumeParsePipeline",
    "ResumeParsingService",
    "ScoreResult",
    "ScoringStrategy",
    "SqlAlchemyApplicationRepository",
    "SqlAlchemyDatabase",
    "SqlAlchemyExportJobRepository",
    "SqlAlchemyResumeDocumentRepository",
    "StorageError",
    "StoragePaths",
    "SupabaseObjectStorage",
    "WorkerConfig",
    "claim",
    "describe_error",
    "extract_resume_text",
    "loop_ms",
    "render_applications_csv",
]
