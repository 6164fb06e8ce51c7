from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

AFFINDA_RESUMES_URL = "https://api.affinda.com/v3/resumes"


class ParsingServiceError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ResumeParsingService:
    """
    Abstract resume parser. Takes a fetchable URL and returns the parser's
    structured result as plain JSON-compatible data.
    """

    def parse_url(self, url: str) -> Dict[str, Any]:
        raise NotImplementedError


class AffindaParsingService(ResumeParsingService):
    """
    Affinda v3 resume parser. The API key is checked per call so a missing
    credential fails the document rather than the worker process.
    """

    def __init__(
        self,
        api_key: Optional[str],
        endpoint: str = AFFINDA_RESUMES_URL,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    def parse_url(self, url: str) -> Dict[str, Any]:
        if not self.api_key:
            raise ParsingServiceError("Missing AFFINDA_API_KEY")

        r = self.session.post(
            self.endpoint,
            headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
            json={"url": url},
            timeout=self.timeout,
        )
        if not r.ok:
            raise ParsingServiceError(f"Affinda error {r.status_code}: {r.text}", status_code=r.status_code, body=r.text)
        logger.debug("Affinda parsed %s (status %s)", url.split("?")[0], r.status_code)
        return r.json()
