"""Application configuration using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Outcome probabilities
    remote_suspicion_probability: float = 0.18
    agent_location_suspicion_probability: float = 0.05
    follow_up_clear_probability: float = 0.5

    # Narration delays (seconds, relative to the command that schedules them)
    greeting_request_delay: float = 0.7
    greeting_mode_question_delay: float = 1.4
    capture_video_delay: float = 0.7
    capture_biometrics_delay: float = 1.4
    first_pass_decision_delay: float = 2.6
    reverify_narration_delay: float = 0.8
    reverify_decision_delay: float = 2.0
    staff_alert_delay: float = 0.6

    # Event stream polling
    event_poll_interval: float = 0.25
    event_max_polls: int = 1200  # 5 minutes at 0.25 second intervals

    # CORS
    cors_origins: list[str] = ["*"]


settings = Settings()
