from hiring_pipeline.workers import (
    ApplicationRecord,
    JobPostingRecord,
    KeywordOverlapScorer,
    ParseStatus,
    ParsingServiceError,
    QueueWorker,
    ResumeDocumentRecord,
    ResumeParsePipeline,
    SqlAlchemyApplicationRepository,
    SqlAlchemyDatabase,
    SqlAlchemyResumeDocumentRepository,
)

from conftest import FakeParser

PARSED = {
    "data": {
        "professionalSummary": "Backend engineer shipping Python and Go services on Postgres",
        "skills": [{"name": "Python"}, {"name": "Go"}],
    }
}


def _seed_candidate(app_repo):
    app_repo.save_job_posting(
        JobPostingRecord(
            id="job-1",
            title="Platform engineer",
            description="Go services on Postgres",
            skills=["Python", "Go", "Kubernetes"],
            required_skills=["Go"],
        )
    )
    app_repo.save_job_posting(
        JobPostingRecord(id="job-2", description="Frontend role", skills=["React"], required_skills=["TypeScript"])
    )
    app_repo.save_application(ApplicationRecord(id="app-1", candidate_id="cand-1", job_id="job-1", fit_score=3))
    app_repo.save_application(ApplicationRecord(id="app-2", candidate_id="cand-1", job_id="job-2"))
    app_repo.save_application(ApplicationRecord(id="app-other", candidate_id="cand-2", job_id="job-1"))


def _pipeline(resume_repo, app_repo, storage, parser, scorer=None):
    return ResumeParsePipeline(
        documents=resume_repo,
        applications=app_repo,
        storage=storage,
        parser=parser,
        scorer=scorer or KeywordOverlapScorer(),
    )


def _run(resume_repo, pipeline):
    return QueueWorker(resume_repo, pipeline, batch_size=5, poll_interval_ms=1).run_once()


def test_parse_and_score_candidate_applications(resume_repo, app_repo, storage):
    storage.upload("resumes", "cand-1/cv.pdf", b"%PDF-1.4")
    _seed_candidate(app_repo)
    resume_repo.save(ResumeDocumentRecord(id="doc-1", file_uri="cand-1/cv.pdf", candidate_id="cand-1"))
    parser = FakeParser(result=PARSED)

    assert _run(resume_repo, _pipeline(resume_repo, app_repo, storage, parser)) == 1

    doc = resume_repo.get("doc-1")
    assert doc.status == ParseStatus.PARSED
    assert doc.parsed == PARSED
    assert doc.error is None
    assert doc.finished_at is not None
    assert parser.urls[0].startswith("file://")
    assert "expires=1700000600" in parser.urls[0]

    expected = KeywordOverlapScorer().score(
        PARSED["data"]["professionalSummary"], "Go services on Postgres", ["Python", "Go", "Kubernetes"], ["Go"]
    )
    app_1 = app_repo.get_application("app-1")
    assert app_1.fit_score == expected.final_score
    assert app_1.fit_explain == expected.explanation.to_dict()
    assert app_1.fit_explain["matched_skills"] == ["Python", "Go"]

    assert app_repo.get_application("app-2").fit_score == 0
    assert app_repo.get_application("app-other").fit_score is None

    audit = app_repo.list_audit()
    assert sorted(e.entity_id for e in audit) == ["app-1", "app-2"]
    assert all(e.actor == "worker/parser" and e.action == "score.update" for e in audit)
    assert all(e.entity_type == "application" for e in audit)


def test_document_without_candidate_is_parsed_but_not_scored(resume_repo, app_repo, storage):
    storage.upload("resumes", "anon.pdf", b"%PDF-1.4")
    _seed_candidate(app_repo)
    resume_repo.save(ResumeDocumentRecord(id="doc-1", file_uri="anon.pdf"))

    _run(resume_repo, _pipeline(resume_repo, app_repo, storage, FakeParser(result=PARSED)))

    assert resume_repo.get("doc-1").status == ParseStatus.PARSED
    assert app_repo.list_audit() == []
    assert app_repo.get_application("app-1").fit_score == 3


def test_parser_error_fails_document_with_response_body(resume_repo, app_repo, storage):
    storage.upload("resumes", "cv.pdf", b"%PDF-1.4")
    resume_repo.save(ResumeDocumentRecord(id="doc-1", file_uri="cv.pdf", candidate_id="cand-1"))
    error = ParsingServiceError('Affinda error 422: {"detail":"unsupported file"}', status_code=422)

    _run(resume_repo, _pipeline(resume_repo, app_repo, storage, FakeParser(error=error)))

    doc = resume_repo.get("doc-1")
    assert doc.status == ParseStatus.FAILED
    assert doc.error["message"] == 'Affinda error 422: {"detail":"unsupported file"}'
    assert doc.parsed is None


def test_missing_stored_file_fails_before_parsing(resume_repo, app_repo, storage):
    resume_repo.save(ResumeDocumentRecord(id="doc-1", file_uri="missing.pdf"))
    parser = FakeParser()

    _run(resume_repo, _pipeline(resume_repo, app_repo, storage, parser))

    doc = resume_repo.get("doc-1")
    assert doc.status == ParseStatus.FAILED
    assert "missing.pdf" in doc.error["message"]
    assert parser.urls == []


def test_one_application_scoring_failure_is_isolated(resume_repo, app_repo, storage):
    storage.upload("resumes", "cv.pdf", b"%PDF-1.4")
    _seed_candidate(app_repo)
    resume_repo.save(ResumeDocumentRecord(id="doc-1", file_uri="cv.pdf", candidate_id="cand-1"))

    class FrontendAllergicScorer(KeywordOverlapScorer):
        def score(self, candidate_text, description, skills, required_skills):
            if "React" in skills:
                raise ValueError("bad posting data")
            return super().score(candidate_text, description, skills, required_skills)

    pipeline = _pipeline(resume_repo, app_repo, storage, FakeParser(result=PARSED), scorer=FrontendAllergicScorer())
    _run(resume_repo, pipeline)

    assert resume_repo.get("doc-1").status == ParseStatus.PARSED
    assert app_repo.get_application("app-1").fit_score > 3
    assert app_repo.get_application("app-2").fit_score is None
    assert [e.entity_id for e in app_repo.list_audit()] == ["app-1"]
    assert pipeline.score_candidate("cand-1", "python") == ["app-2"]


def test_application_without_posting_scores_against_empty_requirements(resume_repo, app_repo, storage):
    storage.upload("resumes", "cv.pdf", b"%PDF-1.4")
    app_repo.save_application(ApplicationRecord(id="orphan", candidate_id="cand-1", job_id="deleted-job"))
    resume_repo.save(ResumeDocumentRecord(id="doc-1", file_uri="cv.pdf", candidate_id="cand-1"))

    _run(resume_repo, _pipeline(resume_repo, app_repo, storage, FakeParser(result=PARSED)))

    orphan = app_repo.get_application("orphan")
    assert orphan.fit_score == 0
    assert orphan.fit_explain["matched_skills"] == []


def test_parse_and_score_on_sqlalchemy(tmp_path, storage):
    db = SqlAlchemyDatabase(f"sqlite+pysqlite:///{tmp_path / 'parser.db'}")
    documents = SqlAlchemyResumeDocumentRepository(db)
    apps = SqlAlchemyApplicationRepository(db)
    _seed_candidate(apps)
    storage.upload("resumes", "cv.pdf", b"%PDF-1.4")
    documents.save(ResumeDocumentRecord(id="doc-1", file_uri="cv.pdf", candidate_id="cand-1"))

    _run(documents, _pipeline(documents, apps, storage, FakeParser(result=PARSED)))

    doc = documents.get("doc-1")
    assert doc.status == ParseStatus.PARSED
    assert doc.parsed == PARSED
    assert doc.finished_at is not None

    app_1 = apps.get_application("app-1")
    assert app_1.fit_score is not None and app_1.fit_score > 3
    assert app_1.fit_explain["requirement_ratio"] == 100
    audit = apps.list_audit(entity_id="app-1")
    assert len(audit) == 1
    assert audit[0].meta == app_1.fit_explain
