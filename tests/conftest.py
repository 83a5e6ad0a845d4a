from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from vid2tune.config import Settings

CLOUDCONVERT_BASE = "https://cloudconvert.test/v2"
ASSEMBLYAI_BASE = "https://assemblyai.test/v2"
UPLOAD_FORM_URL = "https://storage.test/import"


class FakeProviders:
    """In-memory stand-in for both provider APIs, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.job_statuses: list[dict[str, Any]] = []
        self.transcript_statuses: list[dict[str, Any]] = []
        self.import_task: dict[str, Any] | None = {
            "name": "import-upload",
            "status": "waiting",
            "result": {
                "form": {
                    "url": UPLOAD_FORM_URL,
                    "parameters": {"expires": "1700000000", "signature": "sig"},
                }
            },
        }
        self.transport = httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if url == f"{CLOUDCONVERT_BASE}/jobs" and request.method == "POST":
            tasks = [self.import_task] if self.import_task is not None else []
            return httpx.Response(201, json={"data": {"id": "job-1", "status": "waiting", "tasks": tasks}})
        if url == UPLOAD_FORM_URL:
            return httpx.Response(201)
        if url == f"{CLOUDCONVERT_BASE}/jobs/job-1":
            return httpx.Response(200, json={"data": self.job_statuses.pop(0)})

        if url == f"{ASSEMBLYAI_BASE}/upload":
            return httpx.Response(200, json={"upload_url": "u"})
        if url == f"{ASSEMBLYAI_BASE}/transcript" and request.method == "POST":
            return httpx.Response(200, json={"id": "42", "status": "queued"})
        if url == f"{ASSEMBLYAI_BASE}/transcript/42":
            return httpx.Response(200, json=self.transcript_statuses.pop(0))

        return httpx.Response(404, json={"error": f"unexpected {request.method} {url}"})

    def find(self, method: str, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and str(r.url) == url]

    def submitted_tasks(self) -> dict[str, Any]:
        (request,) = self.find("POST", f"{CLOUDCONVERT_BASE}/jobs")
        return json.loads(request.content)["tasks"]


def finished_job(url: str = "https://storage.test/out.mp3") -> dict[str, Any]:
    return {
        "id": "job-1",
        "status": "finished",
        "tasks": [
            {"name": "import-upload", "status": "finished"},
            {"name": "convert-file", "status": "finished"},
            {"name": "export-file", "status": "finished", "result": {"files": [{"filename": "out.mp3", "url": url}]}},
        ],
    }


@pytest.fixture
def providers() -> FakeProviders:
    return FakeProviders()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        host="127.0.0.1",
        port=4000,
        cloudconvert_api_key="cc-key",
        assemblyai_api_key="aai-key",
        cloudconvert_base_url=CLOUDCONVERT_BASE,
        assemblyai_base_url=ASSEMBLYAI_BASE,
        poll_interval_seconds=0.0,
    )
