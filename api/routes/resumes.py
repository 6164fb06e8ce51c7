from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from hiring_pipeline.workers import ResumeDocumentRecord, ResumeDocumentRepository

from api.dependencies import get_resume_repo

router = APIRouter(prefix="/resumes", tags=["resumes"])


class ResumeRequest(BaseModel):
    file_uri: str
    candidate_id: Optional[str] = None


@router.post("", status_code=202)
def queue_resume(request: ResumeRequest, repo: ResumeDocumentRepository = Depends(get_resume_repo)):
    """
    Queue an already-uploaded resume (a path inside the resumes bucket).
    """
    document = ResumeDocumentRecord(
        id=str(uuid.uuid4()),
        file_uri=request.file_uri,
        candidate_id=request.candidate_id,
    )
    repo.save(document)
    return {"id": document.id, "status": document.status, "candidate_id": document.candidate_id}


@router.get("/{document_id}")
def get_resume(document_id: str, repo: ResumeDocumentRepository = Depends(get_resume_repo)):
    document = repo.get(document_id)
    if not document:
        raise HTTPException(status_code=404, detail=f"Resume not found: {document_id}")
    return {
        "id": document.id,
        "file_uri": document.file_uri,
        "candidate_id": document.candidate_id,
        "status": document.status,
        "started_at": document.started_at,
        "parsed_at": document.finished_at,
        "parsed": document.parsed,
        "error": document.error,
    }
