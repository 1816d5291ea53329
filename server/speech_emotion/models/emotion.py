import base64
import io
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

import numpy as np
from PIL import Image
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


class EmotionLabel(str, Enum):
    """The closed label set. Declaration order is the canonical order."""

    HAPPY = "Happy"
    SAD = "Sad"
    ANGRY = "Angry"
    NEUTRAL = "Neutral"
    FEAR = "Fear"
    SURPRISE = "Surprise"
    DISGUST = "Disgust"


EMOTIONS: tuple[EmotionLabel, ...] = tuple(EmotionLabel)

ResultSource = Literal["remote", "heuristic"]


class ProcessingPhase(str, Enum):
    IDLE = "idle"
    ACQUISITION = "Signal Acquisition"
    PREPROCESSING = "Preprocessing & Normalization"
    SPECTROGRAM = "Mel-Spectrogram Generation"
    INFERENCE = "CNN Model Inference"
    COMPLETE = "Analysis Complete"


class SampleBuffer(BaseModel):
    """Decoded mono PCM. Samples are clipped to [-1, 1] and read-only."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    samples: np.ndarray
    sample_rate: int = Field(ge=0)
    channels: int = Field(default=1, ge=1)

    @field_validator("samples", mode="before")
    @classmethod
    def _first_channel(cls, value: object) -> np.ndarray:
        arr = np.asarray(value, dtype=np.float64)
        if arr.ndim > 1:
            arr = arr[0] if arr.shape[0] else arr.reshape(-1)
        arr = np.clip(arr.reshape(-1), -1.0, 1.0)
        arr.setflags(write=False)
        return arr

    def __len__(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        return len(self) / self.sample_rate if self.sample_rate else 0.0


class AcousticFeatures(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel)

    rms: float = Field(ge=0)
    zcr: float = Field(ge=0, le=1)
    spectral_centroid_hz: float = Field(ge=0)


class EmotionScore(BaseModel):
    label: EmotionLabel
    confidence: float = Field(ge=0, le=1)


class FeatureDescriptors(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel)

    pitch: str | None = None
    intensity: str | None = None
    tempo: str | None = None
    spectral_centroid: str | None = None


def dominant_label(scores: list[EmotionScore]) -> EmotionLabel:
    """Label with the highest confidence, ties going to the earlier canonical label."""
    best = max(s.confidence for s in scores)
    tied = {s.label for s in scores if s.confidence == best}
    return next(label for label in EMOTIONS if label in tied)


class AnalysisResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel)

    dominant_emotion: EmotionLabel
    scores: list[EmotionScore]
    features: FeatureDescriptors = Field(default_factory=FeatureDescriptors)
    insights: str = ""
    transcription: str | None = None
    source: ResultSource = "heuristic"

    @model_validator(mode="after")
    def _check_distribution(self) -> "AnalysisResult":
        labels = [s.label for s in self.scores]
        if len(labels) != len(EMOTIONS) or set(labels) != set(EMOTIONS):
            raise ValueError(f"scores must contain each of the {len(EMOTIONS)} emotions exactly once")
        expected = dominant_label(self.scores)
        if self.dominant_emotion != expected:
            raise ValueError(
                f"dominant_emotion {self.dominant_emotion.value} does not match top score {expected.value}"
            )
        return self

    def confidence_of(self, label: EmotionLabel) -> float:
        return next(s.confidence for s in self.scores if s.label == label)


class SpectrogramImage(BaseModel):
    """Losslessly encoded (PNG) spectrogram raster."""

    width: int = Field(ge=1)
    height: int = Field(ge=1)
    bands: int = Field(ge=1)
    png: bytes

    @property
    def data_uri(self) -> str:
        return "data:image/png;base64," + base64.b64encode(self.png).decode("ascii")

    def to_array(self) -> np.ndarray:
        with Image.open(io.BytesIO(self.png)) as img:
            return np.asarray(img.convert("RGB"))


class AnalysisRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel)

    record_id: str
    filename: str
    mime_type: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    phase: ProcessingPhase = ProcessingPhase.IDLE
    result: AnalysisResult | None = None
    spectrogram: str | None = None
    error: str | None = None
    # Server-side copy of the upload; never serialised
    audio_path: str | None = Field(default=None, exclude=True)
