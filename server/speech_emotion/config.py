from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root (one level above server/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Optional API key; without it every analysis takes the heuristic path
    google_ai_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    remote_classifier_enabled: bool = True

    # Storage
    storage_path: str = "./data/storage"
    max_records: int = 100

    # App settings
    cors_origins: str = "http://localhost:5173"
    max_upload_size_mb: int = 25
    log_level: str = "INFO"

    # Signal processing
    spectrogram_width: int = 1200
    spectrogram_height: int = 480
    spectrogram_bands: int = 128
    scorer_jitter: float = 0.025
    random_seed: int | None = None

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def upload_dir(self) -> Path:
        path = Path(self.storage_path) / "uploads"
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def remote_available(self) -> bool:
        return self.remote_classifier_enabled and bool(self.google_ai_api_key)


settings = Settings()
