from __future__ import annotations

import json
import threading
from copy import deepcopy
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import Column, DateTime, Enum, Float, Integer, String, create_engine, select, update
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .models import (
    ApplicationRecord,
    AuditEntry,
    ExportJobRecord,
    ExportJobStatus,
    JobPostingRecord,
    ParseStatus,
    ResumeDocumentRecord,
    utcnow,
)
from .queue import ClaimableQueue

Base = declarative_base()


def _enum_values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


def _dumps(value: Any) -> Optional[str]:
    return json.dumps(value) if value is not None else None


def _loads(raw: Optional[str]) -> Any:
    return json.loads(raw) if raw else None


class ExportJobModel(Base):
    __tablename__ = "export_job"
    id = Column(String, primary_key=True)
    status = Column(Enum(ExportJobStatus, name="export_job_status", values_callable=_enum_values), index=True)
    params_json = Column(String)
    created_at = Column(DateTime, index=True)
    started_at = Column(DateTime)
    finished_at = Column(DateTime)
    files_json = Column(String)
    error_json = Column(String)


class ResumeDocumentModel(Base):
    __tablename__ = "resume_document"
    id = Column(String, primary_key=True)
    candidate_id = Column(String, index=True)
    file_uri = Column(String)
    parse_status = Column(Enum(ParseStatus, name="parse_status", values_callable=_enum_values), index=True)
    parsed_json = Column(String)
    created_at = Column(DateTime, index=True)
    started_at = Column(DateTime)
    parsed_at = Column(DateTime)
    error_json = Column(String)


class JobModel(Base):
    __tablename__ = "job"
    id = Column(String, primary_key=True)
    title = Column(String)
    jd_text = Column(String)
    skills_json = Column(String)
    required_skills_json = Column(String)


class ApplicationModel(Base):
    __tablename__ = "application"
    id = Column(String, primary_key=True)
    candidate_id = Column(String, index=True)
    job_id = Column(String, index=True)
    stage = Column(String)
    fit_score = Column(Float)
    fit_explain_json = Column(String)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)


class AuditLogModel(Base):
    __tablename__ = "audit_log"
    id = Column(Integer, primary_key=True, autoincrement=True)
    actor = Column(String)
    action = Column(String)
    entity_type = Column(String)
    entity_id = Column(String, index=True)
    meta = Column(String)
    created_at = Column(DateTime)


class ExportJobRepository(ClaimableQueue[ExportJobRecord]):
    """
    Queue of export jobs: queued -> running -> completed | failed.
    """

    kind = "export_job"

    def get(self, item_id: str) -> Optional[ExportJobRecord]:
        raise NotImplementedError

    def save(self, job: ExportJobRecord) -> None:
        raise NotImplementedError

    def mark_completed(self, item_id: str, result: Dict[str, Any]) -> bool:
        raise NotImplementedError


class ResumeDocumentRepository(ClaimableQueue[ResumeDocumentRecord]):
    """
    Queue of uploaded resumes: queued -> processing -> parsed | failed.
    """

    kind = "resume_document"

    def get(self, item_id: str) -> Optional[ResumeDocumentRecord]:
        raise NotImplementedError

    def save(self, document: ResumeDocumentRecord) -> None:
        raise NotImplementedError

    def mark_parsed(self, item_id: str, parsed: Dict[str, Any]) -> bool:
        raise NotImplementedError


class ApplicationRepository:
    """
    Applications, the postings they point at, and the audit log. Owned by
    the wider application; workers only read postings and overwrite fit data.
    """

    def save_job_posting(self, posting: JobPostingRecord) -> None:
        raise NotImplementedError

    def save_application(self, application: ApplicationRecord) -> None:
        raise NotImplementedError

    def get_application(self, application_id: str) -> Optional[ApplicationRecord]:
        raise NotImplementedError

    def list_applications_for_job(self, job_id: str) -> List[ApplicationRecord]:
        raise NotImplementedError

    def list_applications_for_candidate(
        self, candidate_id: str
    ) -> List[Tuple[ApplicationRecord, Optional[JobPostingRecord]]]:
        raise NotImplementedError

    def update_fit(self, application_id: str, fit_score: int, fit_explain: Dict[str, Any]) -> None:
        raise NotImplementedError

    def append_audit(self, entry: AuditEntry) -> None:
        raise NotImplementedError

    def list_audit(self, entity_id: Optional[str] = None) -> List[AuditEntry]:
        raise NotImplementedError


# region In-memory implementations


class _InMemoryQueue:
    """
    Dict-backed queue. A single lock makes each conditional write atomic,
    which is all the claim protocol needs from a backend.
    """

    queued_status: Any = None
    running_status: Any = None
    failed_status: Any = None
    result_field: str = ""

    def __init__(self):
        self.items: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def _clone(self, obj):
        return deepcopy(obj)

    def get(self, item_id: str):
        with self._lock:
            item = self.items.get(item_id)
            return self._clone(item) if item else None

    def save(self, item) -> None:
        with self._lock:
            self.items[item.id] = self._clone(item)

    def list_queued(self, limit: int) -> List[Any]:
        with self._lock:
            queued = [i for i in self.items.values() if i.status == self.queued_status]
            queued.sort(key=lambda i: i.created_at)
            return [self._clone(i) for i in queued[:limit]]

    def claim(self, item_id: str) -> bool:
        with self._lock:
            item = self.items.get(item_id)
            if not item or item.status != self.queued_status:
                return False
            item.status = self.running_status
            item.started_at = utcnow()
            return True

    def mark_failed(self, item_id: str, error: Dict[str, Any]) -> bool:
        return self._finish(item_id, self.failed_status, **{self.result_field: None, "error": error})

    def _finish(self, item_id: str, status, **values) -> bool:
        with self._lock:
            item = self.items.get(item_id)
            if not item or item.status != self.running_status:
                return False
            item.status = status
            item.finished_at = utcnow()
            for key, value in values.items():
                setattr(item, key, self._clone(value))
            return True


class InMemoryExportJobRepository(_InMemoryQueue, ExportJobRepository):
    queued_status = ExportJobStatus.QUEUED
    running_status = ExportJobStatus.RUNNING
    failed_status = ExportJobStatus.FAILED
    result_field = "result"

    def mark_completed(self, item_id: str, result: Dict[str, Any]) -> bool:
        return self._finish(item_id, ExportJobStatus.COMPLETED, result=result, error=None)


class InMemoryResumeDocumentRepository(_InMemoryQueue, ResumeDocumentRepository):
    queued_status = ParseStatus.QUEUED
    running_status = ParseStatus.PROCESSING
    failed_status = ParseStatus.FAILED
    result_field = "parsed"

    def mark_parsed(self, item_id: str, parsed: Dict[str, Any]) -> bool:
        return self._finish(item_id, ParseStatus.PARSED, parsed=parsed, error=None)


class InMemoryApplicationRepository(ApplicationRepository):
    def __init__(self):
        self.postings: Dict[str, JobPostingRecord] = {}
        self.applications: Dict[str, ApplicationRecord] = {}
        self.audit: List[AuditEntry] = []

    def _clone(self, obj):
        return deepcopy(obj)

    def save_job_posting(self, posting: JobPostingRecord) -> None:
        self.postings[posting.id] = self._clone(posting)

    def save_application(self, application: ApplicationRecord) -> None:
        self.applications[application.id] = self._clone(application)

    def get_application(self, application_id: str) -> Optional[ApplicationRecord]:
        app = self.applications.get(application_id)
        return self._clone(app) if app else None

    def list_applications_for_job(self, job_id: str) -> List[ApplicationRecord]:
        return [self._clone(a) for a in self.applications.values() if a.job_id == job_id]

    def list_applications_for_candidate(
        self, candidate_id: str
    ) -> List[Tuple[ApplicationRecord, Optional[JobPostingRecord]]]:
        rows = []
        for app in self.applications.values():
            if app.candidate_id != candidate_id:
                continue
            posting = self.postings.get(app.job_id)
            rows.append((self._clone(app), self._clone(posting) if posting else None))
        return rows

    def update_fit(self, application_id: str, fit_score: int, fit_explain: Dict[str, Any]) -> None:
        app = self.applications.get(application_id)
        if not app:
            return
        app.fit_score = fit_score
        app.fit_explain = self._clone(fit_explain)
        app.updated_at = utcnow()

    def append_audit(self, entry: AuditEntry) -> None:
        self.audit.append(self._clone(entry))

    def list_audit(self, entity_id: Optional[str] = None) -> List[AuditEntry]:
        return [self._clone(e) for e in self.audit if entity_id is None or e.entity_id == entity_id]


# endregion


# region SQLAlchemy implementations


class SqlAlchemyDatabase:
    """
    Engine and session factory shared by the SQL repositories. Works with
    SQLite/Postgres URLs.
    """

    def __init__(self, database_url: str, create_tables: bool = True):
        self.engine = create_engine(database_url, future=True)
        if create_tables:
            Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)

    def session(self) -> Session:
        return self.SessionLocal()


class _SqlAlchemyQueue:
    model: Any = None
    status_field: str = "status"
    finished_field: str = "finished_at"
    result_field: str = ""
    queued_status: Any = None
    running_status: Any = None
    failed_status: Any = None

    def __init__(self, database: SqlAlchemyDatabase):
        self.db = database

    def _to_record(self, model):
        raise NotImplementedError

    def _column(self, name: str):
        return getattr(self.model, name)

    def get(self, item_id: str):
        with self.db.session() as session:
            model = session.get(self.model, item_id)
            return self._to_record(model) if model else None

    def list_queued(self, limit: int) -> List[Any]:
        with self.db.session() as session:
            stmt = (
                select(self.model)
                .where(self._column(self.status_field) == self.queued_status)
                .order_by(self.model.created_at.asc())
                .limit(limit)
            )
            return [self._to_record(m) for m in session.execute(stmt).scalars().all()]

    def claim(self, item_id: str) -> bool:
        values = {self.status_field: self.running_status, "started_at": utcnow()}
        return self._conditional_update(item_id, self.queued_status, values)

    def mark_failed(self, item_id: str, error: Dict[str, Any]) -> bool:
        values = {
            self.status_field: self.failed_status,
            self.finished_field: utcnow(),
            self.result_field: None,
            "error_json": _dumps(error),
        }
        return self._conditional_update(item_id, self.running_status, values)

    def _conditional_update(self, item_id: str, expected_status, values: Dict[str, Any]) -> bool:
        with self.db.session() as session:
            stmt = (
                update(self.model)
                .where(self.model.id == item_id, self._column(self.status_field) == expected_status)
                .values(**values)
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount == 1


class SqlAlchemyExportJobRepository(_SqlAlchemyQueue, ExportJobRepository):
    model = ExportJobModel
    result_field = "files_json"
    queued_status = ExportJobStatus.QUEUED
    running_status = ExportJobStatus.RUNNING
    failed_status = ExportJobStatus.FAILED

    def _to_record(self, model: ExportJobModel) -> ExportJobRecord:
        return ExportJobRecord(
            id=model.id,
            params=_loads(model.params_json) or {},
            status=model.status,
            created_at=model.created_at,
            started_at=model.started_at,
            finished_at=model.finished_at,
            result=_loads(model.files_json),
            error=_loads(model.error_json),
        )

    def save(self, job: ExportJobRecord) -> None:
        with self.db.session() as session:
            session.merge(
                ExportJobModel(
                    id=job.id,
                    status=job.status,
                    params_json=_dumps(job.params or {}),
                    created_at=job.created_at,
                    started_at=job.started_at,
                    finished_at=job.finished_at,
                    files_json=_dumps(job.result),
                    error_json=_dumps(job.error),
                )
            )
            session.commit()

    def mark_completed(self, item_id: str, result: Dict[str, Any]) -> bool:
        values = {
            "status": ExportJobStatus.COMPLETED,
            "finished_at": utcnow(),
            "files_json": _dumps(result),
            "error_json": None,
        }
        return self._conditional_update(item_id, ExportJobStatus.RUNNING, values)


class SqlAlchemyResumeDocumentRepository(_SqlAlchemyQueue, ResumeDocumentRepository):
    model = ResumeDocumentModel
    status_field = "parse_status"
    finished_field = "parsed_at"
    result_field = "parsed_json"
    queued_status = ParseStatus.QUEUED
    running_status = ParseStatus.PROCESSING
    failed_status = ParseStatus.FAILED

    def _to_record(self, model: ResumeDocumentModel) -> ResumeDocumentRecord:
        return ResumeDocumentRecord(
            id=model.id,
            file_uri=model.file_uri,
            candidate_id=model.candidate_id,
            status=model.parse_status,
            created_at=model.created_at,
            started_at=model.started_at,
            finished_at=model.parsed_at,
            parsed=_loads(model.parsed_json),
            error=_loads(model.error_json),
        )

    def save(self, document: ResumeDocumentRecord) -> None:
        with self.db.session() as session:
            session.merge(
                ResumeDocumentModel(
                    id=document.id,
                    candidate_id=document.candidate_id,
                    file_uri=document.file_uri,
                    parse_status=document.status,
                    parsed_json=_dumps(document.parsed),
                    created_at=document.created_at,
                    started_at=document.started_at,
                    parsed_at=document.finished_at,
                    error_json=_dumps(document.error),
                )
            )
            session.commit()

    def mark_parsed(self, item_id: str, parsed: Dict[str, Any]) -> bool:
        values = {
            "parse_status": ParseStatus.PARSED,
            "parsed_at": utcnow(),
            "parsed_json": _dumps(parsed),
            "error_json": None,
        }
        return self._conditional_update(item_id, ParseStatus.PROCESSING, values)


class SqlAlchemyApplicationRepository(ApplicationRepository):
    def __init__(self, database: SqlAlchemyDatabase):
        self.db = database

    @staticmethod
    def _application(model: ApplicationModel) -> ApplicationRecord:
        return ApplicationRecord(
            id=model.id,
            candidate_id=model.candidate_id,
            job_id=model.job_id,
            stage=model.stage,
            fit_score=int(model.fit_score) if model.fit_score is not None else None,
            fit_explain=_loads(model.fit_explain_json),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _posting(model: JobModel) -> JobPostingRecord:
        return JobPostingRecord(
            id=model.id,
            title=model.title or "",
            description=model.jd_text or "",
            skills=_loads(model.skills_json) or [],
            required_skills=_loads(model.required_skills_json) or [],
        )

    def save_job_posting(self, posting: JobPostingRecord) -> None:
        with self.db.session() as session:
            session.merge(
                JobModel(
                    id=posting.id,
                    title=posting.title,
                    jd_text=posting.description,
                    skills_json=_dumps(posting.skills),
                    required_skills_json=_dumps(posting.required_skills),
                )
            )
            session.commit()

    def save_application(self, application: ApplicationRecord) -> None:
        with self.db.session() as session:
            session.merge(
                ApplicationModel(
                    id=application.id,
                    candidate_id=application.candidate_id,
                    job_id=application.job_id,
                    stage=application.stage,
                    fit_score=application.fit_score,
                    fit_explain_json=_dumps(application.fit_explain),
                    created_at=application.created_at,
                    updated_at=application.updated_at,
                )
            )
            session.commit()

    def get_application(self, application_id: str) -> Optional[ApplicationRecord]:
        with self.db.session() as session:
            model = session.get(ApplicationModel, application_id)
            return self._application(model) if model else None

    def list_applications_for_job(self, job_id: str) -> List[ApplicationRecord]:
        with self.db.session() as session:
            stmt = select(ApplicationModel).where(ApplicationModel.job_id == job_id)
            return [self._application(m) for m in session.execute(stmt).scalars().all()]

    def list_applications_for_candidate(
        self, candidate_id: str
    ) -> List[Tuple[ApplicationRecord, Optional[JobPostingRecord]]]:
        with self.db.session() as session:
            stmt = (
                select(ApplicationModel, JobModel)
                .outerjoin(JobModel, JobModel.id == ApplicationModel.job_id)
                .where(ApplicationModel.candidate_id == candidate_id)
            )
            return [
                (self._application(app), self._posting(job) if job is not None else None)
                for app, job in session.execute(stmt).all()
            ]

    def update_fit(self, application_id: str, fit_score: int, fit_explain: Dict[str, Any]) -> None:
        with self.db.session() as session:
            stmt = (
                update(ApplicationModel)
                .where(ApplicationModel.id == application_id)
                .values(fit_score=fit_score, fit_explain_json=_dumps(fit_explain), updated_at=utcnow())
            )
            session.execute(stmt)
            session.commit()

    def append_audit(self, entry: AuditEntry) -> None:
        with self.db.session() as session:
            session.add(
                AuditLogModel(
                    actor=entry.actor,
                    action=entry.action,
                    entity_type=entry.entity_type,
                    entity_id=entry.entity_id,
                    meta=_dumps(entry.meta),
                    created_at=entry.created_at,
                )
            )
            session.commit()

    def list_audit(self, entity_id: Optional[str] = None) -> List[AuditEntry]:
        with self.db.session() as session:
            stmt = select(AuditLogModel).order_by(AuditLogModel.id.asc())
            if entity_id is not None:
                stmt = stmt.where(AuditLogModel.entity_id == entity_id)
            return [
                AuditEntry(
                    actor=m.actor,
                    action=m.action,
                    entity_type=m.entity_type,
                    entity_id=m.entity_id,
                    meta=_loads(m.meta) or {},
                    created_at=m.created_at,
                )
                for m in session.execute(stmt).scalars().all()
            ]


# endregion
