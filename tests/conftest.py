from datetime import timedelta

import pytest

from hiring_pipeline.workers import (
    InMemoryApplicationRepository,
    InMemoryExportJobRepository,
    InMemoryResumeDocumentRepository,
    LocalObjectStorage,
    ResumeParsingService,
    StoragePaths,
)
from hiring_pipeline.workers.models import utcnow


class FakeParser(ResumeParsingService):
    def __init__(self, result=None, error=None):
        self.result = result if result is not None else {"data": {"professionalSummary": "Python and Go engineer"}}
        self.error = error
        self.urls = []

    def parse_url(self, url):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.result


def minutes_ago(n):
    return utcnow() - timedelta(minutes=n)


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(StoragePaths(tmp_path / "objects"), clock=lambda: 1700000000.0)


@pytest.fixture
def export_repo():
    return InMemoryExportJobRepository()


@pytest.fixture
def resume_repo():
    return InMemoryResumeDocumentRepository()


@pytest.fixture
def app_repo():
    return InMemoryApplicationRepository()
