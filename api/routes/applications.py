from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from hiring_pipeline.workers import ApplicationRepository

from api.dependencies import get_application_repo

router = APIRouter(prefix="/applications", tags=["applications"])


@router.get("/{application_id}/fit")
def get_fit(application_id: str, repo: ApplicationRepository = Depends(get_application_repo)):
    application = repo.get_application(application_id)
    if not application:
        raise HTTPException(status_code=404, detail=f"Application not found: {application_id}")
    return {
        "id": application.id,
        "job_id": application.job_id,
        "fit_score": application.fit_score,
        "fit_explain": application.fit_explain,
        "audit": [
            {"actor": e.actor, "action": e.action, "created_at": e.created_at}
            for e in repo.list_audit(entity_id=application.id)
        ],
    }
