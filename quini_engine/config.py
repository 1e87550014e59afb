"""Application configuration using Pydantic Settings."""

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App
    APP_NAME: str = "Quini Reduction Engine"
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_DIR: Path = Path("./logs")

    # Domain
    NUMBER_MIN: int = 0
    NUMBER_MAX: int = 45
    PICK_COUNT: int = 6
    MODALITY: str = "tradicional"

    # Statistics
    ANALYSIS_WINDOWS: list[int] = [5, 10, 20]
    POISSON_WINDOW: int = 20
    ANOMALY_THRESHOLD: float = 1.5
    BIAS_SIGNIFICANCE: float = 0.05

    # Heuristic filters (None = unbounded)
    PARITY_MIN_EVEN: int | None = None
    PARITY_MAX_EVEN: int | None = None
    SUM_MIN: int | None = None
    SUM_MAX: int | None = None
    SUM_STD_DEVIATIONS: float | None = None
    SPACING_MIN: int | None = None
    SPACING_MAX: int | None = None
    AMPLITUDE_MIN: int | None = None
    AMPLITUDE_MAX: int | None = None
    ENTROPY_MIN: float = 0.3
    ENTROPY_MAX: float = 0.9

    # Covering design
    GUARANTEE_HITS: int = 4
    GUARANTEE_DRAWN: int = 5
    WHEEL_MAX_COMBINATIONS: int = 20
    WHEEL_EXACT_CANDIDATE_LIMIT: int = 20000
    BASE_SET_SIZE: int = 12
    BASE_PRESSURE_COUNT: int = 5

    # Scoring (optimized profile)
    SCORE_WEIGHT_AFFINITY: float = 0.046
    SCORE_WEIGHT_ENTROPY: float = 0.578
    SCORE_WEIGHT_AMPLITUDE: float = 0.262
    SCORE_WEIGHT_FREQUENCY: float = 0.113
    AMPLITUDE_HEALTHY_MIN: int = 32
    AMPLITUDE_HEALTHY_MAX: int = 43
    AMPLITUDE_NEAR_MIN: int = 28
    AMPLITUDE_NEAR_MAX: int = 45
    FREQUENCY_BAND_TOLERANCE: float = 0.25
    ENTROPY_SPACING_WEIGHT: float = 1.0

    # Parallel evaluation
    PARALLEL_LIMITER_THRESHOLD: int = 5000
    PARALLEL_POOL_THRESHOLD: int = 10000
    PARALLEL_MAX_WORKERS: int = 4
    PARALLEL_MAX_IN_FLIGHT: int = 4
    PARALLEL_CHUNK_SIZE: int = 1000

    # Judge (Groq chat model via langchain-groq)
    JUDGE_ENABLED: bool = False
    JUDGE_API_KEY: str = ""
    JUDGE_BASE_URL: str | None = None  # None = Groq default endpoint
    JUDGE_MODEL: str = "llama-3.3-70b-versatile"
    JUDGE_TEMPERATURE: float = 0.6
    JUDGE_TIMEOUT: float = 30.0
    JUDGE_TOP_N: int = 15
    JUDGE_MAX_RETRIES: int = 3
    JUDGE_RETRY_INITIAL_DELAY: float = 1.0
    JUDGE_RETRY_MAX_DELAY: float = 10.0


settings = Settings()
