"""Hand-tuned mapping from acoustic features to an emotion distribution."""

import numpy as np

from speech_emotion.models.emotion import EMOTIONS, AcousticFeatures, EmotionLabel, EmotionScore

DEFAULT_JITTER = 0.025


def softmax(values: np.ndarray) -> np.ndarray:
    shifted = np.exp(values - np.max(values))
    return shifted / shifted.sum()


def _affinity(label: EmotionLabel, rms: float, zcr: float, centroid: float) -> float:
    if label is EmotionLabel.ANGRY:
        return rms * 5 + zcr * 50 + (1.0 if centroid > 3000 else 0.0)
    if label is EmotionLabel.SURPRISE:
        return rms * 4 + zcr * 40 + (0.6 if centroid > 2000 else 0.0)
    if label is EmotionLabel.HAPPY:
        return rms * 3 + zcr * 20 + (0.4 if centroid > 1500 else 0.0)
    if label is EmotionLabel.SAD:
        return (1 - min(1.0, rms * 20)) + (0.6 if centroid < 800 else 0.0)
    if label is EmotionLabel.NEUTRAL:
        return (1 - abs(rms - 0.02) * 50) + max(0.0, 0.05 - zcr) * 20
    if label is EmotionLabel.FEAR:
        return zcr * 30 + (0.3 if centroid > 2500 else 0.0)
    if label is EmotionLabel.DISGUST:
        return rms * 2 + (0.8 if centroid < 700 else 0.0) + zcr * 5
    raise ValueError(f"Unknown emotion label: {label!r}")


class EmotionScorer:
    """Scores all seven emotions from RMS, ZCR and spectral centroid.

    A small uniform jitter is added to every affinity so that degenerate
    inputs (silence, constant tones) do not produce exactly tied outputs.
    Pass a seeded ``numpy.random.Generator`` for reproducible results, or
    ``jitter=0`` to disable the perturbation entirely.
    """

    def __init__(self, rng: np.random.Generator | None = None, jitter: float = DEFAULT_JITTER) -> None:
        if jitter < 0:
            raise ValueError("jitter must be non-negative")
        self._rng = rng if rng is not None else np.random.default_rng()
        self._jitter = jitter

    def affinities(self, features: AcousticFeatures) -> dict[EmotionLabel, float]:
        """Raw per-label affinities before jitter and normalisation."""
        return {
            label: _affinity(label, features.rms, features.zcr, features.spectral_centroid_hz)
            for label in EMOTIONS
        }

    def score(self, features: AcousticFeatures) -> list[EmotionScore]:
        values = np.array(list(self.affinities(features).values()), dtype=np.float64)
        if self._jitter > 0:
            values += self._rng.uniform(-self._jitter, self._jitter, size=values.shape)

        probs = softmax(values)
        scores = [
            EmotionScore(label=label, confidence=round(float(p), 2))
            for label, p in zip(EMOTIONS, probs)
        ]
        # sorted() is stable, so equal confidences keep canonical order
        return sorted(scores, key=lambda s: s.confidence, reverse=True)
