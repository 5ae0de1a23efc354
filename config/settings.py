"""
Settings Configuration
Pydantic-based configuration loaded from the environment / .env
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from utils.exceptions import ConfigurationError


class LLMSettings(BaseSettings):
    """Generation backend"""
    provider: str = Field(default="openai", description="LLM provider: openai, gemini")
    model_name: Optional[str] = Field(default=None, description="Model name (provider default when empty)")
    generation_temperature: float = Field(default=0.8, description="Temperature for open-ended question generation")
    calibration_temperature: float = Field(default=0.3, description="Temperature for difficulty scoring")
    max_output_tokens: int = Field(default=1500, description="Output length budget per request")
    timeout: float = Field(default=60.0, description="Request timeout (s)")
    max_attempts: int = Field(default=3, description="Attempts per request on transient failures")
    retry_min_wait: float = Field(default=1.0, description="Minimum backoff (s)")
    retry_max_wait: float = Field(default=10.0, description="Maximum backoff (s)")

    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API Key")
    gemini_api_key: Optional[str] = Field(default=None, description="Google Gemini API Key")

    class Config:
        env_prefix = "LLM_"

    def api_key_for(self, provider: Optional[str] = None) -> Optional[str]:
        keys = {
            "openai": self.openai_api_key,
            "gemini": self.gemini_api_key,
        }
        return keys.get((provider or self.provider).strip().lower())


class StoreSettings(BaseSettings):
    """Content store"""
    url: str = Field(default="sqlite:///data/question_bank.db", description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Log SQL statements")

    class Config:
        env_prefix = "STORE_"


class JobApiSettings(BaseSettings):
    """Remote job submission/status endpoints"""
    base_url: Optional[str] = Field(default=None, description="Base URL of the admin API")
    session_cookie: Optional[str] = Field(default=None, description="Admin session cookie")
    poll_interval_s: float = Field(default=2.0, description="Initial status poll interval (s)")
    max_poll_interval_s: float = Field(default=5.0, description="Upper bound for the poll interval (s)")
    backoff_factor: float = Field(default=1.0, description="Multiplier applied to the interval after each poll")
    job_timeout_s: float = Field(default=180.0, description="Wall-clock budget per job (s)")
    request_timeout_s: float = Field(default=30.0, description="HTTP timeout per request (s)")

    class Config:
        env_prefix = "JOB_API_"


class PregenSettings(BaseSettings):
    """Planning and scheduling"""
    catalog_path: Optional[str] = Field(default=None, description="External coverage catalog (JSON)")
    target_per_bucket: Optional[int] = Field(default=None, description="Override of the catalog target count")
    per_run_cap: int = Field(default=3, ge=1, description="Max items requested per bucket per run")
    inter_item_delay_s: float = Field(default=3.0, description="Delay between generation calls (s)")
    runtime_minutes: float = Field(default=180.0, description="Default scheduler deadline (min)")
    shuffle_seed: Optional[int] = Field(default=None, description="Seed for round shuffling")

    class Config:
        env_prefix = "PREGEN_"


class Settings(BaseSettings):
    """Aggregated configuration"""

    llm: LLMSettings = Field(default_factory=LLMSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    job_api: JobApiSettings = Field(default_factory=JobApiSettings)
    pregen: PregenSettings = Field(default_factory=PregenSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """Load configuration, reading the given .env file first"""
        if env_path is None:
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        try:
            return cls(
                llm=LLMSettings(),
                store=StoreSettings(),
                job_api=JobApiSettings(),
                pregen=PregenSettings(),
            )
        except ValidationError as exc:
            fields = [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
            raise ConfigurationError(
                f"Invalid settings: {', '.join(fields)}", {"errors": exc.error_count()}
            ) from exc

    def require_llm_credentials(self) -> str:
        """Return the generation API key or raise ConfigurationError"""
        provider = self.llm.provider.strip().lower()
        if provider not in {"openai", "gemini"}:
            raise ConfigurationError(f"Unsupported LLM provider: {provider}")
        api_key = self.llm.api_key_for(provider)
        if not api_key:
            raise ConfigurationError(
                f"LLM_{provider.upper()}_API_KEY is not set",
                {"provider": provider},
            )
        return api_key

    def require_job_api_credentials(self) -> None:
        """Raise ConfigurationError unless the job API is configured"""
        missing = []
        if not (self.job_api.base_url or "").strip():
            missing.append("JOB_API_BASE_URL")
        if not (self.job_api.session_cookie or "").strip():
            missing.append("JOB_API_SESSION_COOKIE")
        if missing:
            raise ConfigurationError("Job API is not configured", {"missing": missing})


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings singleton"""
    return Settings.load_from_env_file()


def get_llm_settings() -> LLMSettings:
    return get_settings().llm


def get_store_settings() -> StoreSettings:
    return get_settings().store


def get_job_api_settings() -> JobApiSettings:
    return get_settings().job_api


def get_pregen_settings() -> PregenSettings:
    return get_settings().pregen
