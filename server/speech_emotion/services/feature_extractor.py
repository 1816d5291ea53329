"""Scalar acoustic features (energy, noisiness, brightness) from a sample buffer."""

import numpy as np

from speech_emotion.models.emotion import AcousticFeatures, SampleBuffer

# The centroid only looks at a short leading window; it is a brightness
# indicator, not a spectral analysis of the full clip.
CENTROID_WINDOW = 512


class FeatureExtractor:
    """Computes RMS energy, zero-crossing rate and spectral centroid."""

    def extract(self, buffer: SampleBuffer) -> AcousticFeatures:
        x = buffer.samples
        if x.size == 0:
            return AcousticFeatures(rms=0.0, zcr=0.0, spectral_centroid_hz=0.0)

        return AcousticFeatures(
            rms=self.rms(x),
            zcr=self.zero_crossing_rate(x),
            spectral_centroid_hz=self.spectral_centroid(x, buffer.sample_rate),
        )

    @staticmethod
    def rms(x: np.ndarray) -> float:
        if x.size == 0:
            return 0.0
        return float(np.sqrt(np.mean(np.square(x, dtype=np.float64))))

    @staticmethod
    def zero_crossing_rate(x: np.ndarray) -> float:
        """Sign changes between neighbours divided by N (not N - 1)."""
        if x.size == 0:
            return 0.0
        positive = x >= 0
        crossings = np.count_nonzero(positive[1:] != positive[:-1])
        return float(crossings / x.size)

    @staticmethod
    def magnitude_spectrum(x: np.ndarray) -> np.ndarray:
        """Direct DFT magnitudes for bins [0, N/2).

        Deliberately O(N^2): the window is capped at CENTROID_WINDOW samples.
        """
        n_fft = x.size
        n_bins = n_fft // 2
        if n_bins == 0:
            return np.zeros(0)
        k = np.arange(n_bins)[:, None]
        n = np.arange(n_fft)[None, :]
        angle = 2.0 * np.pi * k * n / n_fft
        re = np.cos(angle) @ x
        im = -(np.sin(angle) @ x)
        return np.sqrt(re * re + im * im)

    @classmethod
    def spectral_centroid(cls, x: np.ndarray, sample_rate: int) -> float:
        window = np.asarray(x[: min(CENTROID_WINDOW, x.size)], dtype=np.float64)
        mags = cls.magnitude_spectrum(window)
        mag_sum = float(mags.sum())
        if mags.size == 0 or mag_sum <= 0.0:
            return 0.0
        centroid_bin = float(np.arange(mags.size) @ mags) / mag_sum
        # Each bin spans (sr / 2) / n_bins == sr / n_fft Hz
        return centroid_bin * (sample_rate / 2) / mags.size
