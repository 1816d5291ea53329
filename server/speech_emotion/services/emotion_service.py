"""Speech emotion recognition pipeline.

Chooses between the remote Gemini classifier and the local heuristic
analyzer. Both return the same AnalysisResult shape, so callers never need to
know which path produced a result. Remote failures always degrade to the
heuristic path; decode failures always propagate.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable

import numpy as np

from speech_emotion.config import Settings, settings as default_settings
from speech_emotion.models.emotion import (
    AnalysisRecord,
    AnalysisResult,
    ProcessingPhase,
    SampleBuffer,
    SpectrogramImage,
)
from speech_emotion.services.audio_decoder import AudioDecoder
from speech_emotion.services.emotion_scorer import EmotionScorer
from speech_emotion.services.gemini_classifier import GeminiEmotionClassifier, RemoteClassifierError
from speech_emotion.services.heuristic_analyzer import HeuristicAnalyzer
from speech_emotion.services.spectrogram import SpectrogramSynthesizer
from speech_emotion.services.storage import RecordStore, discard_audio, record_store

logger = logging.getLogger(__name__)

RngFactory = Callable[[], np.random.Generator]


class EmotionRecognitionService:
    """Single entry point for analysis, spectrogram rendering and record keeping."""

    def __init__(
        self,
        classifier: GeminiEmotionClassifier | None = None,
        store: RecordStore | None = None,
        rng_factory: RngFactory | None = None,
        config: Settings | None = None,
    ) -> None:
        self.config = config or default_settings
        self.classifier = classifier or GeminiEmotionClassifier()
        self.store = store if store is not None else record_store
        self._rng_factory = rng_factory or self._default_rng_factory

    def _default_rng_factory(self) -> np.random.Generator:
        # A fixed seed makes every call reproducible; otherwise each call is fresh
        return np.random.default_rng(self.config.random_seed)

    # -- synchronous core -------------------------------------------------

    def decode(self, data: bytes, mime_type: str | None = None) -> SampleBuffer:
        with AudioDecoder() as decoder:
            return decoder.decode(data, mime_type)

    def analyze_buffer(self, buffer: SampleBuffer) -> AnalysisResult:
        scorer = EmotionScorer(rng=self._rng_factory(), jitter=self.config.scorer_jitter)
        return HeuristicAnalyzer(scorer=scorer).analyze(buffer)

    def render_buffer(
        self,
        buffer: SampleBuffer,
        width: int | None = None,
        height: int | None = None,
    ) -> SpectrogramImage:
        synthesizer = SpectrogramSynthesizer(rng=self._rng_factory(), bands=self.config.spectrogram_bands)
        return synthesizer.render(
            buffer,
            width or self.config.spectrogram_width,
            height or self.config.spectrogram_height,
        )

    # -- async entry points ------------------------------------------------

    async def _classify_remote(self, data: bytes, mime_type: str | None) -> AnalysisResult | None:
        if not self.config.remote_available:
            return None
        try:
            return await self.classifier.classify(data, mime_type or "audio/wav")
        except RemoteClassifierError as e:
            logger.warning("Remote classifier failed, falling back to heuristic analysis: %s", e)
            return None

    async def analyze(self, data: bytes, mime_type: str | None = None) -> AnalysisResult:
        """Classify an encoded clip, remotely when possible, locally otherwise."""
        result = await self._classify_remote(data, mime_type)
        if result is not None:
            return result
        buffer = await asyncio.to_thread(self.decode, data, mime_type)
        return await asyncio.to_thread(self.analyze_buffer, buffer)

    async def render_spectrogram(
        self,
        data: bytes,
        mime_type: str | None = None,
        width: int | None = None,
        height: int | None = None,
    ) -> SpectrogramImage:
        buffer = await asyncio.to_thread(self.decode, data, mime_type)
        return await asyncio.to_thread(self.render_buffer, buffer, width, height)

    async def process(
        self,
        data: bytes,
        filename: str,
        mime_type: str | None = None,
        width: int | None = None,
        height: int | None = None,
        audio_path: str | None = None,
    ) -> AnalysisRecord:
        """Full dashboard pipeline: decode, spectrogram, inference, record.

        ``audio_path`` is the stored upload, if any. The record takes ownership
        of it; a failed run removes it straight away.
        """
        record = AnalysisRecord(
            record_id=str(uuid.uuid4()),
            filename=filename,
            mime_type=mime_type,
            audio_path=audio_path,
            phase=ProcessingPhase.ACQUISITION,
        )
        self.store.add(record)
        logger.info("Processing %s as record %s", filename, record.record_id)

        try:
            self.store.update(record.record_id, phase=ProcessingPhase.PREPROCESSING)
            buffer = await asyncio.to_thread(self.decode, data, mime_type)

            self.store.update(record.record_id, phase=ProcessingPhase.SPECTROGRAM)
            image = await asyncio.to_thread(self.render_buffer, buffer, width, height)

            self.store.update(record.record_id, phase=ProcessingPhase.INFERENCE)
            result = await self._classify_remote(data, mime_type)
            if result is None:
                result = await asyncio.to_thread(self.analyze_buffer, buffer)
        except Exception as e:
            discard_audio(audio_path)
            self.store.update(record.record_id, phase=ProcessingPhase.IDLE, error=str(e), audio_path=None)
            raise

        completed = self.store.update(
            record.record_id,
            phase=ProcessingPhase.COMPLETE,
            result=result,
            spectrogram=image.data_uri,
        )
        logger.info(
            "Record %s complete: %s via %s",
            record.record_id, result.dominant_emotion.value, result.source,
        )
        return completed or record.model_copy(
            update={"phase": ProcessingPhase.COMPLETE, "result": result, "spectrogram": image.data_uri}
        )
