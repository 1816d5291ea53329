"""Tests for the librosa-backed audio decoder."""

from pathlib import Path

import numpy as np
import pytest

from speech_emotion.services.audio_decoder import AudioDecoder, DecodeError, suffix_for_mime


class TestSuffixForMime:
    @pytest.mark.parametrize(
        "mime, suffix",
        [
            ("audio/wav", ".wav"),
            ("audio/x-wav", ".wav"),
            ("audio/mpeg", ".mp3"),
            ("audio/webm;codecs=opus", ".webm"),
            ("AUDIO/OGG", ".ogg"),
            ("audio/unknown", ".wav"),
            (None, ".wav"),
            ("", ".wav"),
        ],
    )
    def test_mapping(self, mime: str | None, suffix: str):
        assert suffix_for_mime(mime) == suffix


class TestLifecycle:
    def test_context_manager_opens_and_closes(self):
        decoder = AudioDecoder()
        assert decoder.is_open is False
        with decoder as d:
            assert d is decoder
            assert decoder.is_open
            scratch = Path(decoder._scratch.name)
            assert scratch.is_dir()
        assert decoder.is_open is False
        assert not scratch.exists()

    def test_decode_requires_open(self, sine_wav: bytes):
        with pytest.raises(RuntimeError, match="closed"):
            AudioDecoder().decode(sine_wav, "audio/wav")

    def test_close_is_idempotent(self):
        decoder = AudioDecoder().open()
        decoder.close()
        decoder.close()
        assert decoder.is_open is False

    def test_reopen(self, sine_wav: bytes):
        decoder = AudioDecoder()
        with decoder:
            pass
        with decoder:
            assert len(decoder.decode(sine_wav, "audio/wav")) == 8000


class TestDecode:
    def test_mono_wav(self, make_wav, make_sine):
        y = make_sine(440.0, sample_rate=16000, n=16000, amplitude=0.5)
        with AudioDecoder() as decoder:
            buffer = decoder.decode(make_wav(y, 16000), "audio/wav")

        assert buffer.sample_rate == 16000
        assert buffer.channels == 1
        assert len(buffer) == 16000
        np.testing.assert_allclose(buffer.samples, y, atol=1e-3)

    def test_native_sample_rate_preserved(self, make_wav):
        with AudioDecoder() as decoder:
            buffer = decoder.decode(make_wav(np.zeros(4410), 44100), "audio/wav")
        assert buffer.sample_rate == 44100
        assert buffer.duration == pytest.approx(0.1)

    def test_stereo_keeps_first_channel(self, make_wav):
        left = np.full(1000, 0.25)
        right = np.full(1000, -0.75)
        with AudioDecoder() as decoder:
            buffer = decoder.decode(make_wav(np.column_stack([left, right]), 16000), "audio/wav")

        assert buffer.channels == 2
        np.testing.assert_allclose(buffer.samples, left, atol=1e-3)

    def test_samples_within_unit_range(self, make_wav):
        y = np.tile([0.999, -1.0], 500)
        with AudioDecoder() as decoder:
            buffer = decoder.decode(make_wav(y, 8000), None)
        assert buffer.samples.max() <= 1.0
        assert buffer.samples.min() >= -1.0

    def test_scratch_file_removed(self, sine_wav: bytes):
        with AudioDecoder() as decoder:
            decoder.decode(sine_wav, "audio/wav")
            assert list(Path(decoder._scratch.name).iterdir()) == []

    def test_empty_payload(self):
        with AudioDecoder() as decoder:
            with pytest.raises(DecodeError, match="empty"):
                decoder.decode(b"", "audio/wav")

    def test_garbage_payload(self):
        with AudioDecoder() as decoder:
            with pytest.raises(DecodeError):
                decoder.decode(b"this is not audio at all", "audio/wav")

    def test_decode_error_is_value_error(self):
        assert issubclass(DecodeError, ValueError)
