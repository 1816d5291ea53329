"""Local emotion analysis used when the remote classifier is unavailable."""

import logging

from speech_emotion.models.emotion import (
    AcousticFeatures,
    AnalysisResult,
    FeatureDescriptors,
    SampleBuffer,
)
from speech_emotion.services.emotion_scorer import EmotionScorer
from speech_emotion.services.feature_extractor import FeatureExtractor

logger = logging.getLogger(__name__)


def describe_features(features: AcousticFeatures) -> FeatureDescriptors:
    """Coarse human-readable labels for the raw feature values."""
    rms = features.rms
    centroid = features.spectral_centroid_hz

    if rms > 0.05:
        pitch = "High"
    elif rms < 0.015:
        pitch = "Low"
    else:
        pitch = "Normal"

    if centroid > 2000:
        brightness = "Bright"
    elif centroid > 1000:
        brightness = "Mid"
    else:
        brightness = "Dark"

    return FeatureDescriptors(
        pitch=pitch,
        intensity="Loud" if rms > 0.04 else "Soft",
        tempo="Fast" if features.zcr > 0.02 else "Slow",
        spectral_centroid=brightness,
    )


def format_insights(features: AcousticFeatures) -> str:
    return (
        f"Heuristic analysis: rms={features.rms:.4f}, zcr={features.zcr:.4f}, "
        f"centroid={round(features.spectral_centroid_hz)}Hz"
    )


class HeuristicAnalyzer:
    """Feature extraction + scoring, assembled into the same shape the remote classifier returns."""

    def __init__(
        self,
        extractor: FeatureExtractor | None = None,
        scorer: EmotionScorer | None = None,
    ) -> None:
        self.extractor = extractor or FeatureExtractor()
        self.scorer = scorer or EmotionScorer()

    def analyze(self, buffer: SampleBuffer) -> AnalysisResult:
        features = self.extractor.extract(buffer)
        return self.analyze_features(features)

    def analyze_features(self, features: AcousticFeatures) -> AnalysisResult:
        scores = self.scorer.score(features)
        result = AnalysisResult(
            dominant_emotion=scores[0].label,
            scores=scores,
            features=describe_features(features),
            insights=format_insights(features),
            source="heuristic",
        )
        logger.info(
            "Heuristic result: %s (%.2f) from rms=%.4f zcr=%.4f centroid=%.0fHz",
            result.dominant_emotion.value,
            scores[0].confidence,
            features.rms,
            features.zcr,
            features.spectral_centroid_hz,
        )
        return result
