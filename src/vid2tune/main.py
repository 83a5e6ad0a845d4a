from __future__ import annotations

import logging

import httpx
import uvicorn
from starlette.applications import Starlette
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from vid2tune.config import Settings, load_settings
from vid2tune.errors import ValidationError
from vid2tune.pipelines import AudioToTextPipeline, VideoToAudioPipeline
from vid2tune.types import UploadedFile

logger = logging.getLogger(__name__)


async def _read_upload(request: Request, missing_message: str) -> UploadedFile:
    try:
        form = await request.form()
    except (HTTPException, MultiPartException) as exc:
        logger.warning("Rejected unreadable multipart body: %s", exc)
        raise ValidationError(missing_message) from exc
    try:
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise ValidationError(missing_message)
        content = await upload.read()
        return UploadedFile(filename=upload.filename or "", content=content)
    finally:
        await form.close()


async def _relay(
    request: Request,
    pipeline: VideoToAudioPipeline | AudioToTextPipeline,
    *,
    missing_message: str,
    failure_message: str,
    result_key: str,
) -> JSONResponse:
    try:
        upload = await _read_upload(request, missing_message)
    except ValidationError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)

    try:
        result = await pipeline.run(upload)
    except Exception:  # pylint: disable=broad-except
        logger.exception("%s for %r", failure_message, upload.filename)
        return JSONResponse({"error": failure_message}, status_code=500)

    return JSONResponse({result_key: result})


def create_app(settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> Starlette:
    video_to_audio_pipeline = VideoToAudioPipeline(settings, transport=transport)
    audio_to_text_pipeline = AudioToTextPipeline(settings, transport=transport)

    async def video_to_audio(request: Request) -> JSONResponse:
        return await _relay(
            request,
            video_to_audio_pipeline,
            missing_message="Video file is required",
            failure_message="Video to audio conversion failed",
            result_key="downloadUrl",
        )

    async def audio_to_text(request: Request) -> JSONResponse:
        return await _relay(
            request,
            audio_to_text_pipeline,
            missing_message="Audio file is required",
            failure_message="Audio to text conversion failed",
            result_key="text",
        )

    async def health(_: Request) -> JSONResponse:
        return JSONResponse(
            {
                "ok": True,
                "cloudconvert_configured": bool(settings.cloudconvert_api_key),
                "assemblyai_configured": bool(settings.assemblyai_api_key),
            }
        )

    return Starlette(
        routes=[
            Route("/api/video-to-audio", video_to_audio, methods=["POST"]),
            Route("/api/audio-to-text", audio_to_text, methods=["POST"]),
            Route("/healthz", health, methods=["GET"]),
        ],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=list(settings.cors_origins),
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["*"],
            )
        ],
    )


def cli() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    settings = load_settings()
    logging.getLogger().setLevel(settings.log_level)

    app = create_app(settings)
    logger.info("Vid2Tune backend running on http://%s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    cli()
