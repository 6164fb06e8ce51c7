from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Callable, Iterable, List

from .models import ApplicationRecord, ExportJobRecord
from .repository import ApplicationRepository, ExportJobRepository
from .storage import ObjectStorage

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["id", "candidate_id", "stage", "fit_score", "created_at"]
SIGNED_URL_TTL_SECONDS = 60 * 60 * 24


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def render_applications_csv(applications: Iterable[ApplicationRecord], delimiter: str = ",") -> str:
    """
    Header row plus one row per application. Values are joined as-is (no
    quoting) and missing values become empty cells.
    """
    lines: List[str] = [delimiter.join(EXPORT_COLUMNS)]
    for app in applications:
        lines.append(delimiter.join(_cell(getattr(app, column)) for column in EXPORT_COLUMNS))
    return "\n".join(lines)


class ExportPipeline:
    """
    Exports every application of one job posting to a CSV in object storage
    and completes the export job with a 24 hour download link.
    """

    def __init__(
        self,
        applications: ApplicationRepository,
        exports: ExportJobRepository,
        storage: ObjectStorage,
        bucket: str = "exports",
        url_ttl_seconds: int = SIGNED_URL_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.applications = applications
        self.exports = exports
        self.storage = storage
        self.bucket = bucket
        self.url_ttl_seconds = url_ttl_seconds
        self.clock = clock

    def export_path(self, job_id: str) -> str:
        return f"exports/job_{job_id}_{int(self.clock() * 1000)}.csv"

    def process(self, job: ExportJobRecord) -> None:
        job_id = (job.params or {}).get("job_id")
        if not job_id:
            raise ValueError(f"Export job {job.id} has no job_id in params")

        rows = self.applications.list_applications_for_job(job_id)
        csv_text = render_applications_csv(rows)

        path = self.export_path(job_id)
        self.storage.upload(self.bucket, path, csv_text.encode("utf-8"), content_type="text/csv", overwrite=True)
        url = self.storage.create_signed_url(self.bucket, path, self.url_ttl_seconds)

        if not self.exports.mark_completed(job.id, {"url": url, "path": path}):
            logger.warning("Export job %s left running state before completion was recorded", job.id)
            return
        logger.info("Exported %s applications for job %s to %s/%s", len(rows), job_id, self.bucket, path)
