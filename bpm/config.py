#!/usr/bin/env python3
"""
Configuration settings for the Bayes Point Machine driver.

All settings are loaded from environment variables (prefix ``BPM_``) with
sensible defaults. Use a .env file for local runs.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import DivergencePolicy


class Settings(BaseSettings):
    """Settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_prefix="BPM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # === Logging ===
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"  # "production" switches to JSON logs
    
    # === Model ===
    N_CLASSES: int = Field(default=3, ge=2)
    N_FEATURES: int = Field(default=4, ge=1)
    NOISE_PRECISION: float = Field(default=0.1, gt=0.0)
    PRIOR_PRECISION: float = Field(default=1.0, gt=0.0)
    
    # === Inference ===
    N_ITERATIONS: int = Field(default=1, ge=1)  # EP sweeps per training call
    DIVERGENCE_POLICY: DivergencePolicy = DivergencePolicy.CLAMP
    MIN_PRECISION: float = Field(default=1e-10, gt=0.0)
    
    # === Chunked training ===
    CHUNK_SIZE: int = Field(default=10, ge=1)  # items per chunk
    N_PASSES: int = Field(default=15, ge=1)  # passes over all chunks
    SPARSE_N_PASSES: int = Field(default=5, ge=1)
    
    # === Data ===
    VALUE_TO_IGNORE: float = 0.0  # feature value dropped when making items sparse


# Global settings instance
settings = Settings()
