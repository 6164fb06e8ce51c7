from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExportJobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ParseStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    PARSED = "parsed"
    FAILED = "failed"


@dataclass
class ExportJobRecord:
    id: str
    params: Dict[str, Any] = field(default_factory=dict)
    status: ExportJobStatus = ExportJobStatus.QUEUED
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None


@dataclass
class ResumeDocumentRecord:
    id: str
    file_uri: str
    candidate_id: Optional[str] = None
    status: ParseStatus = ParseStatus.QUEUED
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    parsed: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None


@dataclass
class JobPostingRecord:
    id: str
    title: str = ""
    description: str = ""
    skills: List[str] = field(default_factory=list)
    required_skills: List[str] = field(default_factory=list)


@dataclass
class ApplicationRecord:
    id: str
    candidate_id: str
    job_id: str
    stage: Optional[str] = None
    fit_score: Optional[int] = None
    fit_explain: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class AuditEntry:
    actor: str
    action: str
    entity_type: str
    entity_id: str
    meta: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class FitExplanation:
    matched_skills: List[str]
    matched_required: List[str]
    keyword_ratio: int
    similarity_ratio: int
    requirement_ratio: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScoreResult:
    final_score: int
    explanation: FitExplanation
