from __future__ import annotations

import logging
import signal
import sys
from pathlib import Path

from .config import WorkerConfig
from .export import ExportPipeline
from .parsing_service import AffindaParsingService
from .repository import (
    SqlAlchemyApplicationRepository,
    SqlAlchemyDatabase,
    SqlAlchemyExportJobRepository,
    SqlAlchemyResumeDocumentRepository,
)
from .resume import ResumeParsePipeline
from .scoring import KeywordOverlapScorer
from .storage import LocalObjectStorage, ObjectStorage, StoragePaths, SupabaseObjectStorage
from .worker import QueueWorker

logger = logging.getLogger(__name__)

WORKER_KINDS = ("export", "parser")


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def build_storage(config: WorkerConfig) -> ObjectStorage:
    if config.storage_backend == "filesystem":
        return LocalObjectStorage(StoragePaths(Path(config.storage_root)))
    if config.storage_backend == "supabase":
        return SupabaseObjectStorage.from_credentials(config.supabase_url, config.supabase_service_role_key)
    raise ValueError(f"Unknown storage backend: {config.storage_backend}")


def build_export_worker(config: WorkerConfig) -> QueueWorker:
    db = SqlAlchemyDatabase(config.database_url)
    exports = SqlAlchemyExportJobRepository(db)
    pipeline = ExportPipeline(
        applications=SqlAlchemyApplicationRepository(db),
        exports=exports,
        storage=build_storage(config),
        bucket=config.exports_bucket,
    )
    return QueueWorker(
        exports,
        pipeline,
        batch_size=config.export_batch_size,
        poll_interval_ms=config.export_loop_ms,
        name="exporter",
    )


def build_parser_worker(config: WorkerConfig) -> QueueWorker:
    db = SqlAlchemyDatabase(config.database_url)
    documents = SqlAlchemyResumeDocumentRepository(db)
    pipeline = ResumeParsePipeline(
        documents=documents,
        applications=SqlAlchemyApplicationRepository(db),
        storage=build_storage(config),
        parser=AffindaParsingService(config.affinda_api_key, timeout=config.affinda_timeout),
        scorer=KeywordOverlapScorer(),
        bucket=config.resumes_bucket,
    )
    return QueueWorker(
        documents,
        pipeline,
        batch_size=config.parser_batch_size,
        poll_interval_ms=config.parser_loop_ms,
        name="parser",
    )


def build_worker(kind: str, config: WorkerConfig) -> QueueWorker:
    if kind == "export":
        return build_export_worker(config)
    if kind == "parser":
        return build_parser_worker(config)
    raise ValueError(f"Unknown worker kind: {kind}")


def install_signal_handlers(worker: QueueWorker) -> None:
    """
    SIGINT/SIGTERM stop the worker and exit right away. A blocking call in
    flight is abandoned; its item stays in progress.
    """

    def _handle(signum, frame):
        logger.info("Received %s, shutting down worker %s", signal.Signals(signum).name, worker.name)
        worker.stop()
        raise SystemExit(0)

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def run_worker(kind: str, config: WorkerConfig, once: bool = False) -> int:
    worker = build_worker(kind, config)
    if once:
        return worker.run_once()
    install_signal_handlers(worker)
    worker.run_forever()
    return 0
