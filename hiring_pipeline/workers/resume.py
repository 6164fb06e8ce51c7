from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from .models import AuditEntry, ResumeDocumentRecord
from .parsing_service import ResumeParsingService
from .repository import ApplicationRepository, ResumeDocumentRepository
from .scoring import ScoringStrategy
from .storage import ObjectStorage

logger = logging.getLogger(__name__)

SIGNED_URL_TTL_SECONDS = 600


def extract_resume_text(parsed: Any) -> str:
    """
    Representative text for scoring: the professional summary, else the
    extracted skill names, else the whole parse result as JSON.
    """
    data = parsed.get("data") if isinstance(parsed, dict) else None
    data = data if isinstance(data, dict) else {}

    summary = data.get("professionalSummary")
    if summary:
        return str(summary)

    names = " ".join(str(s.get("name") or "") if isinstance(s, dict) else "" for s in data.get("skills") or [])
    if names:
        return names

    return json.dumps(parsed, separators=(",", ":"), default=str)


class ResumeParsePipeline:
    """
    Parses a stored resume through the external parser, stores the result,
    then rescores every application of the linked candidate.

    Once the document is marked parsed it is terminal. Scoring problems for a
    single application are logged and do not fail the document or stop the
    remaining applications from being scored.
    """

    def __init__(
        self,
        documents: ResumeDocumentRepository,
        applications: ApplicationRepository,
        storage: ObjectStorage,
        parser: ResumeParsingService,
        scorer: ScoringStrategy,
        bucket: str = "resumes",
        url_ttl_seconds: int = SIGNED_URL_TTL_SECONDS,
        actor: str = "worker/parser",
    ):
        self.documents = documents
        self.applications = applications
        self.storage = storage
        self.parser = parser
        self.scorer = scorer
        self.bucket = bucket
        self.url_ttl_seconds = url_ttl_seconds
        self.actor = actor

    def process(self, document: ResumeDocumentRecord) -> None:
        url = self.storage.create_signed_url(self.bucket, document.file_uri, self.url_ttl_seconds)
        parsed = self.parser.parse_url(url)

        if not self.documents.mark_parsed(document.id, parsed):
            logger.warning("Resume %s left processing state before the parse result was stored", document.id)
            return
        logger.info("Parsed resume %s", document.id)

        if document.candidate_id:
            self.score_candidate(document.candidate_id, extract_resume_text(parsed))

    def score_candidate(self, candidate_id: str, resume_text: str) -> List[str]:
        """
        Score every application of ``candidate_id``. Returns the ids that
        failed to score.
        """
        try:
            rows = self.applications.list_applications_for_candidate(candidate_id)
        except Exception:  # noqa: BLE001
            logger.exception("Could not load applications for candidate %s", candidate_id)
            return []

        failed: List[str] = []
        for application, posting in rows:
            try:
                self._score_application(application.id, resume_text, posting)
            except Exception:  # noqa: BLE001
                logger.exception("Scoring failed for application %s", application.id)
                failed.append(application.id)
        return failed

    def _score_application(self, application_id: str, resume_text: str, posting) -> None:
        result = self.scorer.score(
            resume_text,
            posting.description if posting else "",
            posting.skills if posting else [],
            posting.required_skills if posting else [],
        )
        explain: Dict[str, Any] = result.explanation.to_dict()
        self.applications.update_fit(application_id, result.final_score, explain)
        self.applications.append_audit(
            AuditEntry(
                actor=self.actor,
                action="score.update",
                entity_type="application",
                entity_id=application_id,
                meta=explain,
            )
        )
        logger.debug("Application %s scored %s", application_id, result.final_score)
