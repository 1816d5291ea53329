"""Tests for RMS, zero-crossing rate and spectral centroid extraction."""

import numpy as np
import pytest

from speech_emotion.models.emotion import SampleBuffer
from speech_emotion.services.feature_extractor import CENTROID_WINDOW, FeatureExtractor


@pytest.fixture
def extractor():
    return FeatureExtractor()


def _buffer(samples, sample_rate: int = 16000) -> SampleBuffer:
    return SampleBuffer(samples=np.asarray(samples, dtype=np.float64), sample_rate=sample_rate)


class TestDegenerateInput:
    def test_empty_buffer_is_all_zero(self, extractor: FeatureExtractor):
        features = extractor.extract(_buffer([]))
        assert features.rms == 0.0
        assert features.zcr == 0.0
        assert features.spectral_centroid_hz == 0.0

    def test_silence_is_all_zero(self, extractor: FeatureExtractor):
        features = extractor.extract(_buffer(np.zeros(16000)))
        assert features.rms == 0.0
        assert features.zcr == 0.0
        assert features.spectral_centroid_hz == 0.0

    def test_single_sample(self, extractor: FeatureExtractor):
        features = extractor.extract(_buffer([0.5]))
        assert features.rms == pytest.approx(0.5)
        assert features.zcr == 0.0
        assert features.spectral_centroid_hz == 0.0


class TestRms:
    def test_constant_signal(self, extractor: FeatureExtractor):
        assert extractor.extract(_buffer(np.full(1000, -0.25))).rms == pytest.approx(0.25)

    def test_sine_rms(self, extractor: FeatureExtractor, make_sine):
        y = make_sine(500.0, amplitude=0.8)
        assert extractor.extract(_buffer(y)).rms == pytest.approx(0.8 / np.sqrt(2), rel=1e-3)

    @pytest.mark.parametrize("k", [1.0, 0.5, 0.1, 0.003])
    def test_scales_linearly(self, extractor: FeatureExtractor, k: float):
        rng = np.random.default_rng(0)
        y = rng.uniform(-1, 1, 4000)
        base = extractor.extract(_buffer(y)).rms
        scaled = extractor.extract(_buffer(y * k)).rms
        assert scaled == pytest.approx(k * base, rel=1e-9)


class TestZeroCrossingRate:
    def test_alternating_signal(self, extractor: FeatureExtractor):
        y = np.tile([1.0, -1.0], 500)
        assert extractor.extract(_buffer(y)).zcr == pytest.approx(999 / 1000)

    def test_divides_by_length(self):
        # Two crossings over four samples
        assert FeatureExtractor.zero_crossing_rate(np.array([0.1, -0.1, -0.2, 0.3])) == pytest.approx(0.5)

    def test_zero_counts_as_positive(self):
        assert FeatureExtractor.zero_crossing_rate(np.array([0.0, 0.5, 0.0, 1.0])) == 0.0
        assert FeatureExtractor.zero_crossing_rate(np.array([-0.5, 0.0])) == pytest.approx(0.5)

    @pytest.mark.parametrize("k", [0.9, 0.2, 0.01])
    def test_invariant_under_positive_scaling(self, extractor: FeatureExtractor, k: float):
        rng = np.random.default_rng(1)
        y = rng.uniform(-1, 1, 3000)
        assert extractor.extract(_buffer(y * k)).zcr == extractor.extract(_buffer(y)).zcr

    def test_within_unit_interval(self, extractor: FeatureExtractor):
        rng = np.random.default_rng(2)
        zcr = extractor.extract(_buffer(rng.uniform(-1, 1, 500))).zcr
        assert 0.0 <= zcr <= 1.0


class TestSpectralCentroid:
    @pytest.mark.parametrize("freq", [500.0, 1000.0, 2500.0, 4000.0])
    def test_bin_centred_sine(self, extractor: FeatureExtractor, make_sine, freq: float):
        # 16 kHz / 512 samples puts these tones exactly on DFT bins
        y = make_sine(freq, sample_rate=16000, n=16000)
        centroid = extractor.extract(_buffer(y, 16000)).spectral_centroid_hz
        assert centroid == pytest.approx(freq, rel=0.01)

    def test_short_buffer_uses_all_samples(self, extractor: FeatureExtractor, make_sine):
        # 256 samples at 16 kHz: 62.5 Hz bins, 1 kHz is bin 16
        y = make_sine(1000.0, sample_rate=16000, n=256)
        centroid = extractor.extract(_buffer(y, 16000)).spectral_centroid_hz
        assert centroid == pytest.approx(1000.0, rel=0.01)

    def test_only_leading_window_is_analysed(self, extractor: FeatureExtractor, make_sine):
        head = make_sine(1000.0, sample_rate=16000, n=CENTROID_WINDOW)
        tail = make_sine(6000.0, sample_rate=16000, n=16000)
        y = np.concatenate([head, tail])
        centroid = extractor.extract(_buffer(y, 16000)).spectral_centroid_hz
        assert centroid == pytest.approx(1000.0, rel=0.01)

    def test_scales_with_sample_rate(self, make_sine):
        y = make_sine(1000.0, sample_rate=16000, n=512)
        at_16k = FeatureExtractor.spectral_centroid(y, 16000)
        at_32k = FeatureExtractor.spectral_centroid(y, 32000)
        assert at_32k == pytest.approx(2 * at_16k)

    def test_magnitude_spectrum_matches_fft(self):
        rng = np.random.default_rng(3)
        x = rng.uniform(-1, 1, 128)
        expected = np.abs(np.fft.rfft(x))[:64]
        np.testing.assert_allclose(FeatureExtractor.magnitude_spectrum(x), expected, atol=1e-9)

    def test_brighter_signal_has_higher_centroid(self, extractor: FeatureExtractor, make_sine):
        low = extractor.extract(_buffer(make_sine(250.0))).spectral_centroid_hz
        high = extractor.extract(_buffer(make_sine(3000.0))).spectral_centroid_hz
        assert high > low
