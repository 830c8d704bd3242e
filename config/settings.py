"""Configuration settings for asvstrack."""

from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

ROOT_DIR = Path(__file__).resolve().parent.parent

load_dotenv(ROOT_DIR / ".env")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase Configuration
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # SQL store Configuration
    database_url: str = ""
    store_backend: str = "supabase"  # "supabase" or "sql"

    # Search Configuration
    search_debounce_ms: int = 300
    search_min_chars: int = 2
    search_limit: int = 10

    # Aggregation Configuration
    asvs_level_thresholds: dict[str, float] = {"L1": 0.0, "L2": 50.0, "L3": 90.0}
    recommendation_threshold: float = 80.0
    max_recommendations: int = 3

    # Tracing Configuration
    tracing_enabled: bool = True
    log_level: str = "INFO"

    # Export Configuration
    report_output_dir: str = "reports"

    # API Configuration
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8080"]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
