"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_v1_prefix: str = "/api/v1"
    debug: bool = True

    # CORS
    cors_origins: List[str] = [
        "http://localhost:5173",  # Vite dev server
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    # Paths
    base_dir: Path = Path(__file__).parent
    params_dir: Path = base_dir / "params"
    probability_params_path: Path = params_dir / "probability_params.yaml"

    # Simulation
    random_seed: Optional[int] = None  # None = fresh entropy per match
    default_overs: int = 20
    fast_forward_ball_limit: int = 180  # 30 overs, one Test session
    snapshot_every: int = 30  # Deliveries between progress snapshots
    max_match_deliveries: int = 6000  # Runaway guard for whole-match runs

    class Config:
        env_prefix = "CRICSIM_"
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
