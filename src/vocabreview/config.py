"""Configuration settings for the review engine."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
MEDIA_DIR = DATA_DIR / "media"
PRONUNCIATIONS_DIR = MEDIA_DIR / "pronunciations"

MORPHOLOGY_BACKENDS = ("rules", "wordnet")
ACCENTS = ("us", "uk")


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        MEDIA_DIR,
        PRONUNCIATIONS_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    media_dir: Path = MEDIA_DIR
    pronunciations_dir: Path = PRONUNCIATIONS_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///vocabreview.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass(frozen=True)
class ReviewSettings:
    """Review session settings, fixed for the lifetime of a session."""
    batch_size: int = int(os.getenv("REVIEW_BATCH_SIZE", "10"))
    request_retention: float = float(os.getenv("REQUEST_RETENTION", "0.9"))
    fuzz_min_scheduled_days: int = int(os.getenv("FUZZ_MIN_SCHEDULED_DAYS", "2"))
    fuzz_low: float = float(os.getenv("FUZZ_LOW", "0.95"))
    fuzz_high: float = float(os.getenv("FUZZ_HIGH", "1.05"))
    typo_min_length: int = int(os.getenv("TYPO_MIN_LENGTH", "3"))
    typo_max_distance: int = int(os.getenv("TYPO_MAX_DISTANCE", "1"))
    proficiency_max: int = int(os.getenv("PROFICIENCY_MAX", "5"))
    proficiency_neutral_grade: int = int(os.getenv("PROFICIENCY_NEUTRAL_GRADE", "3"))
    first_recall_floor: int = int(os.getenv("FIRST_RECALL_FLOOR", "1"))
    blank_token: str = os.getenv("CLOZE_BLANK_TOKEN", "_____")
    morphology: str = os.getenv("MORPHOLOGY_BACKEND", "rules")
    preferred_accent: str = os.getenv("PREFERRED_ACCENT", "us")


@dataclass
class AudioSettings:
    """Pronunciation audio settings."""
    enabled: bool = os.getenv("AUDIO_ENABLED", "true").lower() == "true"
    language: str = os.getenv("AUDIO_LANGUAGE", "en")


@dataclass
class MonitoringSettings:
    """Metrics exporter settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_review_settings() -> ReviewSettings:
    """Get review settings."""
    return ReviewSettings()


def get_audio_settings() -> AudioSettings:
    """Get audio settings."""
    return AudioSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    review: ReviewSettings = field(default_factory=get_review_settings)
    audio: AudioSettings = field(default_factory=get_audio_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        validate_review_settings(self.review)


def validate_review_settings(review: ReviewSettings) -> None:
    """Raise ValueError if the review settings are out of range."""
    if review.batch_size < 1:
        raise ValueError("REVIEW_BATCH_SIZE must be positive")

    if not 0 < review.request_retention < 1:
        raise ValueError("REQUEST_RETENTION must be between 0 and 1")

    if review.fuzz_low <= 0 or review.fuzz_low > review.fuzz_high:
        raise ValueError("FUZZ_LOW must be positive and not greater than FUZZ_HIGH")

    if review.proficiency_max < 1:
        raise ValueError("PROFICIENCY_MAX must be positive")

    if not 0 <= review.first_recall_floor <= review.proficiency_max:
        raise ValueError("FIRST_RECALL_FLOOR must be between 0 and PROFICIENCY_MAX")

    if review.morphology not in MORPHOLOGY_BACKENDS:
        raise ValueError(f"MORPHOLOGY_BACKEND must be one of {', '.join(MORPHOLOGY_BACKENDS)}")

    if review.preferred_accent not in ACCENTS:
        raise ValueError(f"PREFERRED_ACCENT must be one of {', '.join(ACCENTS)}")


# Create global settings instance
settings = Settings()
settings.validate()
