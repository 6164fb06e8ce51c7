from __future__ import annotations

from fastapi import FastAPI

from api.routes.applications import router as applications_router
from api.routes.exports import router as exports_router
from api.routes.resumes import router as resumes_router


def create_app() -> FastAPI:
    app = FastAPI(title="Hiring Pipeline API", version="0.1.0")

    app.include_router(applications_router)
    app.include_router(exports_router)
    app.include_router(resumes_router)

    @app.get("/healthz")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
