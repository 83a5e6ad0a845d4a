from __future__ import annotations

from typing import Any

import httpx

from vid2tune.errors import ProviderRequestError
from vid2tune.services.polling import classify_status
from vid2tune.types import JobSnapshot, JobState

PROVIDER = "AssemblyAI"

_STATUS_MAP: dict[str, JobState] = {
    "queued": "pending",
    "processing": "pending",
    "completed": "finished",
    "error": "error",
}


def map_transcript_status(status: object) -> JobState:
    return classify_status(PROVIDER, _STATUS_MAP, status)


class AssemblyAIClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://api.assemblyai.com/v2",
    ) -> None:
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def headers(self) -> dict[str, str]:
        return {"authorization": self.api_key}

    async def upload_payload(self, content: bytes) -> str:
        headers = {**self.headers, "content-type": "application/octet-stream"}
        payload = await self._request("POST", "/upload", "upload", headers=headers, content=content)
        uploaded = payload.get("upload_url")
        if not uploaded:
            raise ProviderRequestError(PROVIDER, "upload response missing upload_url")
        return str(uploaded)

    async def create_job(self, audio_url: str) -> str:
        payload = await self._request(
            "POST",
            "/transcript",
            "transcript create",
            headers=self.headers,
            json={"audio_url": audio_url},
        )
        transcript_id = payload.get("id")
        if not transcript_id:
            raise ProviderRequestError(PROVIDER, "transcript response missing id")
        return str(transcript_id)

    async def get_job_status(self, transcript_id: str) -> JobSnapshot:
        payload = await self._request(
            "GET",
            f"/transcript/{transcript_id}",
            "transcript poll",
            headers=self.headers,
            strict=False,
        )
        state = map_transcript_status(payload.get("status"))
        message = None
        if state == "error":
            message = str(payload.get("error") or "AssemblyAI transcription failed")
        return JobSnapshot(state=state, payload=payload, message=message)

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        *,
        strict: bool = True,
        **kwargs: Any,
    ) -> dict[str, Any]:
        try:
            response = await self.client.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as exc:
            raise ProviderRequestError(PROVIDER, f"{action} failed: {exc}") from exc
        if response.status_code >= 400:
            raise ProviderRequestError(
                PROVIDER,
                f"{action} failed: {response.text[:400]}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            if not strict:
                return {}
            raise ProviderRequestError(PROVIDER, f"{action} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            if not strict:
                return {}
            raise ProviderRequestError(PROVIDER, f"{action} returned unexpected payload")
        return payload
