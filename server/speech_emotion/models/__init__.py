from speech_emotion.models.emotion import (
    EMOTIONS,
    AcousticFeatures,
    AnalysisRecord,
    AnalysisResult,
    EmotionLabel,
    EmotionScore,
    FeatureDescriptors,
    ProcessingPhase,
    SampleBuffer,
    SpectrogramImage,
)

__all__ = [
    "EMOTIONS",
    "AcousticFeatures",
    "AnalysisRecord",
    "AnalysisResult",
    "EmotionLabel",
    "EmotionScore",
    "FeatureDescriptors",
    "ProcessingPhase",
    "SampleBuffer",
    "SpectrogramImage",
]
