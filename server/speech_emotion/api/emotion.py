import uuid
from pathlib import Path

import aiofiles
from fastapi import APIRouter, HTTPException, Query, Response, UploadFile
from fastapi.responses import FileResponse

from speech_emotion.config import settings
from speech_emotion.models.emotion import EMOTIONS
from speech_emotion.services.audio_decoder import DecodeError
from speech_emotion.services.emotion_service import EmotionRecognitionService
from speech_emotion.services.storage import record_store

router = APIRouter()

ALLOWED_EXTENSIONS = {".mp3", ".wav", ".flac", ".ogg", ".webm", ".m4a", ".aac"}
MAX_DIMENSION = 4096


def _validate_audio_file(filename: str, size: int) -> None:
    ext = Path(filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported format '{ext}'. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
        )
    if size == 0:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if size > settings.max_upload_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Maximum size: {settings.max_upload_size_mb} MB",
        )


async def _read_upload(file: UploadFile) -> bytes:
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")
    content = await file.read()
    _validate_audio_file(file.filename, len(content))
    return content


@router.get("/labels")
async def list_labels() -> dict[str, list[str]]:
    return {"labels": [label.value for label in EMOTIONS]}


@router.post("/analyze")
async def analyze_audio(
    file: UploadFile,
    width: int | None = Query(default=None, ge=1, le=MAX_DIMENSION),
    height: int | None = Query(default=None, ge=1, le=MAX_DIMENSION),
) -> dict:
    """Upload a clip, render its spectrogram and classify its emotion."""
    content = await _read_upload(file)

    ext = Path(file.filename).suffix.lower()
    audio_path = settings.upload_dir / f"{uuid.uuid4()}{ext}"
    async with aiofiles.open(audio_path, "wb") as f:
        await f.write(content)

    service = EmotionRecognitionService()
    try:
        record = await service.process(
            content, file.filename, file.content_type, width, height, audio_path=str(audio_path)
        )
    except DecodeError as e:
        raise HTTPException(status_code=422, detail=f"Could not decode audio: {e}") from e

    return {
        "record_id": record.record_id,
        "result": record.result.model_dump(by_alias=True, mode="json"),
        "spectrogram": record.spectrogram,
    }


@router.post("/spectrogram")
async def spectrogram(
    file: UploadFile,
    width: int | None = Query(default=None, ge=1, le=MAX_DIMENSION),
    height: int | None = Query(default=None, ge=1, le=MAX_DIMENSION),
) -> dict:
    """Render a Mel spectrogram image without classifying the clip."""
    content = await _read_upload(file)

    service = EmotionRecognitionService()
    try:
        image = await service.render_spectrogram(content, file.content_type, width, height)
    except DecodeError as e:
        raise HTTPException(status_code=422, detail=f"Could not decode audio: {e}") from e

    return {
        "width": image.width,
        "height": image.height,
        "bands": image.bands,
        "data_uri": image.data_uri,
    }


@router.get("/records")
async def list_records() -> dict:
    """Analysis history, newest first, without the spectrogram payloads."""
    return {
        "records": [
            record.model_dump(by_alias=True, mode="json", exclude={"spectrogram"})
            for record in record_store.list_records()
        ]
    }


@router.get("/records/{record_id}")
async def get_record(record_id: str) -> dict:
    record = record_store.get(record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Record not found")
    return record.model_dump(by_alias=True, mode="json")


@router.delete("/records/{record_id}", status_code=204)
async def delete_record(record_id: str) -> Response:
    if not record_store.delete(record_id):
        raise HTTPException(status_code=404, detail="Record not found")
    return Response(status_code=204)


@router.get("/records/{record_id}/audio")
async def get_record_audio(record_id: str) -> FileResponse:
    """Stream back the uploaded clip for playback."""
    record = record_store.get(record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Record not found")
    if not record.audio_path or not Path(record.audio_path).exists():
        raise HTTPException(status_code=404, detail="Audio not available")
    return FileResponse(
        record.audio_path,
        media_type=record.mime_type or "application/octet-stream",
        filename=record.filename,
    )
