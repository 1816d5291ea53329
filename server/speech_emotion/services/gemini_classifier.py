"""Remote speech emotion classification via Google Gemini."""

import json
import logging

from google import genai
from google.genai import types
from pydantic import BaseModel, ValidationError

from speech_emotion.config import settings
from speech_emotion.models.emotion import (
    EMOTIONS,
    AnalysisResult,
    EmotionLabel,
    EmotionScore,
    FeatureDescriptors,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "Expert SER-CNN Inference Engine."

ANALYSIS_PROMPT = f"""Perform a high-precision Speech Emotion Recognition (SER) analysis of the attached audio.

Return a JSON object with:
- dominantEmotion: one of {", ".join(label.value for label in EMOTIONS)}
- scores: one entry per emotion above, each with a label and a confidence between 0 and 1, summing to 1
- features: short descriptors for pitch (High/Normal/Low), intensity (Loud/Soft), tempo (Fast/Slow) and spectralCentroid (Bright/Mid/Dark)
- insights: one or two sentences explaining the classification
- transcription: the spoken words, if any"""


class RemoteClassifierError(RuntimeError):
    """The remote classifier could not produce a usable result."""


class _RemoteScore(BaseModel):
    label: str
    confidence: float


class _RemoteFeatures(BaseModel):
    pitch: str | None = None
    intensity: str | None = None
    tempo: str | None = None
    spectralCentroid: str | None = None


class RemoteAnalysis(BaseModel):
    """Response schema requested from Gemini. Deliberately loose; see normalize_remote()."""

    dominantEmotion: str
    scores: list[_RemoteScore]
    features: _RemoteFeatures | None = None
    insights: str | None = None
    transcription: str | None = None


def _match_label(raw: str) -> EmotionLabel | None:
    key = raw.strip().lower()
    for label in EMOTIONS:
        if label.value.lower() == key:
            return label
    return None


def normalize_remote(remote: RemoteAnalysis) -> AnalysisResult:
    """Project a remote answer onto the fixed seven-label distribution."""
    raw: dict[EmotionLabel, float] = {label: 0.0 for label in EMOTIONS}
    for item in remote.scores:
        label = _match_label(item.label)
        if label is None:
            logger.debug("Dropping unknown remote label %r", item.label)
            continue
        raw[label] = max(raw[label], min(1.0, max(0.0, item.confidence)))

    total = sum(raw.values())
    if total <= 0:
        raise RemoteClassifierError("Remote classifier returned no usable scores")

    scores = sorted(
        (EmotionScore(label=label, confidence=round(value / total, 2)) for label, value in raw.items()),
        key=lambda s: s.confidence,
        reverse=True,
    )
    dominant = scores[0].label
    if _match_label(remote.dominantEmotion) != dominant:
        logger.debug("Remote dominantEmotion %r disagrees with scores; using %s", remote.dominantEmotion, dominant.value)

    features = remote.features or _RemoteFeatures()
    return AnalysisResult(
        dominant_emotion=dominant,
        scores=scores,
        features=FeatureDescriptors(
            pitch=features.pitch,
            intensity=features.intensity,
            tempo=features.tempo,
            spectral_centroid=features.spectralCentroid,
        ),
        insights=remote.insights or "",
        transcription=remote.transcription,
        source="remote",
    )


class GeminiEmotionClassifier:
    """Gemini integration that sends raw audio bytes and parses a JSON verdict."""

    def __init__(self) -> None:
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if self._client is None:
            api_key = settings.google_ai_api_key
            if not api_key:
                raise RuntimeError(
                    "GOOGLE_AI_API_KEY is not set. Please set it in your .env file or environment."
                )
            self._client = genai.Client(api_key=api_key)
        return self._client

    async def classify(self, data: bytes, mime_type: str = "audio/wav") -> AnalysisResult:
        """Classify an encoded clip. Every failure surfaces as RemoteClassifierError."""
        client = self._get_client()

        config = types.GenerateContentConfig(
            system_instruction=SYSTEM_PROMPT,
            response_mime_type="application/json",
            response_schema=RemoteAnalysis,
            temperature=0.1,
        )

        try:
            response = await client.aio.models.generate_content(
                model=settings.gemini_model,
                contents=[
                    types.Part.from_bytes(data=data, mime_type=mime_type),
                    ANALYSIS_PROMPT,
                ],
                config=config,
            )
        except Exception as e:
            logger.exception("Gemini API error")
            raise RemoteClassifierError(f"Gemini request failed: {e}") from e

        return self.parse_response(response.text)

    @staticmethod
    def parse_response(text: str | None) -> AnalysisResult:
        if not text or not text.strip():
            raise RemoteClassifierError("Empty response from Gemini")

        raw = text.strip()
        # Strip markdown fences if present
        if raw.startswith("```"):
            raw = raw.split("\n", 1)[1] if "\n" in raw else raw[3:]
        if raw.endswith("```"):
            raw = raw[: raw.rfind("```")]
        raw = raw.strip()

        try:
            remote = RemoteAnalysis.model_validate(json.loads(raw))
            return normalize_remote(remote)
        except json.JSONDecodeError as e:
            raise RemoteClassifierError(f"Gemini returned invalid JSON: {e}") from e
        except ValidationError as e:
            raise RemoteClassifierError(f"Gemini response did not match the schema: {e}") from e
