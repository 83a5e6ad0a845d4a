from __future__ import annotations

import logging
from pathlib import PurePath
from typing import Any

import httpx

from vid2tune.config import Settings
from vid2tune.errors import PipelineResultError, PipelineSetupError
from vid2tune.services.assemblyai import AssemblyAIClient
from vid2tune.services.cloudconvert import CloudConvertClient, find_task
from vid2tune.services.polling import await_completion
from vid2tune.types import UploadForm, UploadedFile

logger = logging.getLogger(__name__)

DEFAULT_INPUT_FORMAT = "mp4"
OUTPUT_FORMAT = "mp3"
IMPORT_TASK = "import-upload"
CONVERT_TASK = "convert-file"
EXPORT_TASK = "export-file"


def source_format(filename: str) -> str:
    extension = PurePath(filename or "").suffix.lstrip(".").lower()
    return extension or DEFAULT_INPUT_FORMAT


def conversion_tasks(input_format: str) -> dict[str, dict[str, Any]]:
    return {
        IMPORT_TASK: {"operation": "import/upload"},
        CONVERT_TASK: {
            "operation": "convert",
            "input": IMPORT_TASK,
            "input_format": input_format,
            "output_format": OUTPUT_FORMAT,
            "audio_codec": OUTPUT_FORMAT,
        },
        EXPORT_TASK: {"operation": "export/url", "input": CONVERT_TASK},
    }


def _upload_form(task: dict[str, Any] | None) -> UploadForm:
    if task is None:
        raise PipelineSetupError("Failed to prepare import task for CloudConvert")
    result = task.get("result") or {}
    form = result.get("form") if isinstance(result, dict) else None
    if not isinstance(form, dict) or not form.get("url"):
        raise PipelineSetupError("CloudConvert import task has no upload form")
    parameters = form.get("parameters")
    if not isinstance(parameters, dict):
        parameters = {}
    return UploadForm(
        url=str(form["url"]),
        parameters={str(key): str(value) for key, value in parameters.items()},
    )


def _export_url(job: dict[str, Any]) -> str:
    task = find_task(job, EXPORT_TASK)
    result = (task or {}).get("result") or {}
    files = result.get("files") if isinstance(result, dict) else None
    if isinstance(files, list) and files and isinstance(files[0], dict) and files[0].get("url"):
        return str(files[0]["url"])
    raise PipelineResultError("Failed to retrieve exported file URL")


class _Pipeline:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.request_timeout_seconds, transport=self.transport)

    def _poll_options(self) -> dict[str, Any]:
        return {
            "interval_seconds": self.settings.poll_interval_seconds,
            "max_wait_seconds": self.settings.poll_max_wait_seconds,
            "max_consecutive_errors": self.settings.poll_max_errors,
        }


class VideoToAudioPipeline(_Pipeline):
    """Converts an uploaded video into an mp3 and returns its download URL."""

    async def run(self, upload: UploadedFile) -> str:
        async with self._client() as http:
            provider = CloudConvertClient(
                http,
                api_key=self.settings.cloudconvert_api_key,
                base_url=self.settings.cloudconvert_base_url,
            )
            input_format = source_format(upload.filename)
            job = await provider.create_job(conversion_tasks(input_format))
            job_id = str(job["id"])
            logger.info("Created CloudConvert job %s (%s -> %s)", job_id, input_format, OUTPUT_FORMAT)

            form = _upload_form(find_task(job, IMPORT_TASK))
            await provider.upload_payload(form, upload.content, upload.filename)
            logger.info("Uploaded %s bytes for job %s", len(upload.content), job_id)

            finished = await await_completion(
                lambda: provider.get_job_status(job_id),
                **self._poll_options(),
            )

        url = _export_url(finished)
        logger.info("CloudConvert job %s finished", job_id)
        return url


class AudioToTextPipeline(_Pipeline):
    """Transcribes uploaded audio and returns the transcript text."""

    async def run(self, upload: UploadedFile) -> str:
        async with self._client() as http:
            provider = AssemblyAIClient(
                http,
                api_key=self.settings.assemblyai_api_key,
                base_url=self.settings.assemblyai_base_url,
            )
            audio_url = await provider.upload_payload(upload.content)
            transcript_id = await provider.create_job(audio_url)
            logger.info("Created AssemblyAI transcript %s", transcript_id)

            transcript = await await_completion(
                lambda: provider.get_job_status(transcript_id),
                **self._poll_options(),
            )

        logger.info("AssemblyAI transcript %s completed", transcript_id)
        return str(transcript.get("text") or "")
