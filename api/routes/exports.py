from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from hiring_pipeline.workers import ExportJobRecord, ExportJobRepository

from api.dependencies import get_export_repo

router = APIRouter(prefix="/exports", tags=["exports"])


class ExportRequest(BaseModel):
    job_id: str


def _serialize(job: ExportJobRecord) -> dict:
    return {
        "id": job.id,
        "status": job.status,
        "params": job.params,
        "created_at": job.created_at,
        "started_at": job.started_at,
        "finished_at": job.finished_at,
        "result": job.result,
        "error": job.error,
    }


@router.post("", status_code=202)
def queue_export(request: ExportRequest, repo: ExportJobRepository = Depends(get_export_repo)):
    job = ExportJobRecord(id=str(uuid.uuid4()), params={"job_id": request.job_id})
    repo.save(job)
    return _serialize(job)


@router.get("/{export_id}")
def get_export(export_id: str, repo: ExportJobRepository = Depends(get_export_repo)):
    job = repo.get(export_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Export job not found: {export_id}")
    return _serialize(job)
