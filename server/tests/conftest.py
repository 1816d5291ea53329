"""Shared audio fixtures."""

import io
from collections.abc import Callable

import numpy as np
import pytest
import soundfile as sf


def encode_wav(samples: np.ndarray, sample_rate: int = 16000) -> bytes:
    """Encode float samples (mono 1-D or frames x channels) as 16-bit PCM WAV."""
    out = io.BytesIO()
    sf.write(out, samples, sample_rate, format="WAV", subtype="PCM_16")
    return out.getvalue()


def sine(freq: float, sample_rate: int = 16000, n: int = 16000, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(n) / sample_rate
    return amplitude * np.sin(2 * np.pi * freq * t)


@pytest.fixture
def make_wav() -> Callable[..., bytes]:
    return encode_wav


@pytest.fixture
def sine_wav() -> bytes:
    return encode_wav(sine(440.0, n=8000), 16000)


@pytest.fixture
def make_sine() -> Callable[..., np.ndarray]:
    return sine
