"""
Configuration

Explicit settings for the backend services and the conversation session.
Values come from the environment (and a local .env file) and are passed into
the components that need them at construction time.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from learnverse_tutor.errors import ConfigurationError


DBE_EXAMS_URL = "https://www.education.gov.za/Curriculum/NationalSeniorCertificate(NSC)Examinations.aspx"


@dataclass
class Settings:
    """Backend settings (API keys, endpoints, server options)."""
    groq_api_key: str = ""
    groq_base_url: str = "https://api.groq.com/openai/v1"
    model: str = "llama-3.1-8b-instant"
    youtube_api_key: str = ""
    youtube_base_url: str = "https://www.googleapis.com/youtube/v3"
    tts_api_key: str = ""
    tts_url: str = "https://texttospeech.googleapis.com/v1/text:synthesize"
    backend_url: str = "http://localhost:3001"
    port: int = 3001
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    automation_default_website: str = DBE_EXAMS_URL
    log_level: str = "INFO"
    environment: str = "development"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            env_file: Optional path to a .env file (defaults to the usual lookup)

        Returns:
            Settings instance
        """
        load_dotenv(env_file)

        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            groq_base_url=os.getenv("GROQ_BASE_URL", cls.groq_base_url),
            model=os.getenv("GROQ_MODEL", cls.model),
            youtube_api_key=os.getenv("YOUTUBE_API_KEY", ""),
            tts_api_key=os.getenv("GOOGLE_TTS_API_KEY", ""),
            backend_url=os.getenv("BACKEND_URL", cls.backend_url),
            port=int(os.getenv("PORT", str(cls.port))),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            automation_default_website=os.getenv("AUTOMATION_DEFAULT_WEBSITE", DBE_EXAMS_URL),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            environment=os.getenv("NODE_ENV", os.getenv("ENVIRONMENT", "development")),
        )

    def validate(self) -> None:
        """Raise ConfigurationError if a required key is missing."""
        missing = []
        if not self.groq_api_key:
            missing.append("GROQ_API_KEY")
        if not self.youtube_api_key:
            missing.append("YOUTUBE_API_KEY")
        if missing:
            raise ConfigurationError(
                f"{', '.join(missing)} is not set in environment variables"
            )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@dataclass
class SessionConfig:
    """Constants governing one conversation session."""
    history_window: int = 10
    progress_step: int = 10
    progress_cap: int = 100
    capture_timeout_seconds: float = 10.0
    error_clear_seconds: float = 5.0
    language: str = "en-US"
    listening_placeholder: str = "Listening..."
    interim_suffix: str = "..."
    video_history_window: int = 6
