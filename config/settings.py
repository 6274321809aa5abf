"""Application settings loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    app_name: str = "Clinic Insights API"
    log_level: str = "INFO"

    # CORS: comma-separated origins, "*" for local dev
    cors_origins: str = "*"

    # Industry benchmarks
    benchmark_conversion_rate: float = 25.0  # %
    benchmark_avg_pipeline_time: float = 45.0  # days

    # Clients with no purchase for longer than this need reactivation
    reactivation_days: int = 60

    def benchmark_overrides(self) -> dict[str, float]:
        return {
            "conversion_rate": self.benchmark_conversion_rate,
            "avg_pipeline_time": self.benchmark_avg_pipeline_time,
        }


settings = Settings()
