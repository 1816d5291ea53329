"""Decode encoded audio (WAV, MP3, WebM recordings, ...) into a SampleBuffer."""

import logging
import tempfile
import uuid
from pathlib import Path
from types import TracebackType

import librosa
import numpy as np

from speech_emotion.models.emotion import SampleBuffer

logger = logging.getLogger(__name__)

_MIME_SUFFIXES: dict[str, str] = {
    "audio/wav": ".wav",
    "audio/wave": ".wav",
    "audio/x-wav": ".wav",
    "audio/vnd.wave": ".wav",
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/ogg": ".ogg",
    "audio/flac": ".flac",
    "audio/x-flac": ".flac",
    "audio/webm": ".webm",
    "audio/mp4": ".m4a",
    "audio/x-m4a": ".m4a",
    "audio/aac": ".aac",
}


class DecodeError(ValueError):
    """The payload could not be decoded as audio."""


def suffix_for_mime(mime_type: str | None) -> str:
    if not mime_type:
        return ".wav"
    base = mime_type.split(";", 1)[0].strip().lower()
    return _MIME_SUFFIXES.get(base, ".wav")


class AudioDecoder:
    """Librosa-backed decoder with an explicit open/close lifecycle.

    Payloads are spooled into a private scratch directory so that librosa can
    hand containers soundfile does not understand to its audioread backend.
    The directory exists between ``open()`` and ``close()``; use the decoder
    as a context manager to get both.
    """

    def __init__(self) -> None:
        self._scratch: tempfile.TemporaryDirectory[str] | None = None

    @property
    def is_open(self) -> bool:
        return self._scratch is not None

    def open(self) -> "AudioDecoder":
        if self._scratch is None:
            self._scratch = tempfile.TemporaryDirectory(prefix="ser-decode-")
        return self

    def close(self) -> None:
        if self._scratch is not None:
            self._scratch.cleanup()
            self._scratch = None

    def __enter__(self) -> "AudioDecoder":
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def decode(self, data: bytes, mime_type: str | None = None) -> SampleBuffer:
        if self._scratch is None:
            raise RuntimeError("AudioDecoder is closed; call open() or use it as a context manager")
        if not data:
            raise DecodeError("Audio payload is empty")

        path = Path(self._scratch.name) / f"{uuid.uuid4().hex}{suffix_for_mime(mime_type)}"
        path.write_bytes(data)
        try:
            y, sr = librosa.load(str(path), sr=None, mono=False)
        except Exception as e:
            raise DecodeError(f"Unable to decode audio ({mime_type or 'unknown type'}): {e}") from e
        finally:
            path.unlink(missing_ok=True)

        y = np.atleast_2d(y)
        channels = int(y.shape[0])
        if y.shape[1] == 0:
            logger.info("Decoded an empty clip (%s)", mime_type or "unknown type")
        else:
            logger.info(
                "Decoded %d samples at %d Hz (%d channel(s), %s)",
                y.shape[1], sr, channels, mime_type or "unknown type",
            )
        return SampleBuffer(samples=y[0], sample_rate=int(sr), channels=max(1, channels))
