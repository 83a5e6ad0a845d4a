from __future__ import annotations

from typing import Any

import httpx

from vid2tune.errors import ProviderRequestError
from vid2tune.services.polling import classify_status
from vid2tune.types import JobSnapshot, JobState, UploadForm

PROVIDER = "CloudConvert"

_STATUS_MAP: dict[str, JobState] = {
    "waiting": "pending",
    "processing": "pending",
    "finished": "finished",
    "error": "error",
}


def map_job_status(status: object) -> JobState:
    return classify_status(PROVIDER, _STATUS_MAP, status)


def failure_message(job: dict[str, Any]) -> str:
    tasks = job.get("tasks")
    messages: list[str] = []
    if isinstance(tasks, list):
        for task in tasks:
            if isinstance(task, dict) and task.get("message"):
                messages.append(str(task["message"]))
    return ", ".join(messages) or "CloudConvert job failed"


def find_task(job: dict[str, Any], name: str) -> dict[str, Any] | None:
    tasks = job.get("tasks")
    if not isinstance(tasks, list):
        return None
    for task in tasks:
        if isinstance(task, dict) and task.get("name") == name:
            return task
    return None


class CloudConvertClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://api.cloudconvert.com/v2",
    ) -> None:
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def create_job(self, tasks: dict[str, dict[str, Any]]) -> dict[str, Any]:
        response = await self._send(
            "POST",
            f"{self.base_url}/jobs",
            "job create",
            headers=self.headers,
            json={"tasks": tasks},
        )
        job = self._data(response, "job create", strict=True)
        if not job.get("id"):
            raise ProviderRequestError(PROVIDER, "job create response missing id")
        return job

    async def upload_payload(self, form: UploadForm, content: bytes, filename: str) -> None:
        # Provider form fields must precede the file part; httpx writes data before files.
        await self._send(
            "POST",
            form.url,
            "upload",
            data=form.parameters,
            files={"file": (filename, content)},
        )

    async def get_job_status(self, job_id: str) -> JobSnapshot:
        response = await self._send(
            "GET",
            f"{self.base_url}/jobs/{job_id}",
            "job poll",
            headers=self.headers,
        )
        job = self._data(response, "job poll", strict=False)
        state = map_job_status(job.get("status"))
        message = failure_message(job) if state == "error" else None
        return JobSnapshot(state=state, payload=job, message=message)

    async def _send(self, method: str, url: str, action: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise ProviderRequestError(PROVIDER, f"{action} failed: {exc}") from exc
        if response.status_code >= 400:
            raise ProviderRequestError(
                PROVIDER,
                f"{action} failed: {response.text[:400]}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _data(response: httpx.Response, action: str, *, strict: bool) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            if not strict:
                return {}
            raise ProviderRequestError(PROVIDER, f"{action} returned invalid JSON") from exc
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            if not strict:
                return {}
            raise ProviderRequestError(PROVIDER, f"{action} response missing data")
        return data
