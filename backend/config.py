from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"  # development | test | staging | production
    APP_NAME: str = "Habit Cadence"
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:8050",
        "https://localhost:8050",
    ]
    HABIT_MIN_PROGRESS_STREAK: int = 14
    UPGRADE_MIN_STREAK_DAYS: int = 14
    UPGRADE_MIN_ADHERENCE_30: int = 85
    RATIONALE_AI_ENABLED: bool = False
    RATIONALE_AI_PROVIDER: str = "openai"  # openai | anthropic
    RATIONALE_AI_MODEL: str | None = None
    OPENAI_API_KEY: str | None = None
    ANTHROPIC_API_KEY: str | None = None
    RATIONALE_AI_TIMEOUT_SECONDS: float = 3.0
    RATIONALE_CACHE_MAX_ENTRIES: int = 512

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def is_production_like(self) -> bool:
        return (self.ENVIRONMENT or "").strip().lower() in {"production", "prod", "staging"}

    @property
    def upgrade_rules(self) -> dict[str, int]:
        return {
            "min_streak_days": self.UPGRADE_MIN_STREAK_DAYS,
            "min_adherence_30": self.UPGRADE_MIN_ADHERENCE_30,
        }

    def rationale_api_key(self) -> str | None:
        provider = (self.RATIONALE_AI_PROVIDER or "").strip().lower()
        if provider == "anthropic":
            return self.ANTHROPIC_API_KEY
        if provider == "openai":
            return self.OPENAI_API_KEY
        return None

    def validate_configuration(self) -> None:
        errors: list[str] = []
        provider = (self.RATIONALE_AI_PROVIDER or "").strip().lower()
        if provider not in {"openai", "anthropic"}:
            errors.append(f"RATIONALE_AI_PROVIDER must be openai or anthropic, got {self.RATIONALE_AI_PROVIDER!r}")
        if self.RATIONALE_AI_TIMEOUT_SECONDS <= 0:
            errors.append("RATIONALE_AI_TIMEOUT_SECONDS must be positive")
        if self.RATIONALE_CACHE_MAX_ENTRIES < 0:
            errors.append("RATIONALE_CACHE_MAX_ENTRIES must not be negative")
        if self.HABIT_MIN_PROGRESS_STREAK < 1 or self.UPGRADE_MIN_STREAK_DAYS < 1:
            errors.append("streak thresholds must be at least 1")
        if not 0 <= self.UPGRADE_MIN_ADHERENCE_30 <= 100:
            errors.append("UPGRADE_MIN_ADHERENCE_30 must be between 0 and 100")
        if self.is_production_like and self.RATIONALE_AI_ENABLED and not self.rationale_api_key():
            errors.append("RATIONALE_AI_ENABLED requires an API key for the selected provider")
        if errors:
            joined = "; ".join(errors)
            raise RuntimeError(f"Invalid configuration: {joined}")


settings = Settings()
