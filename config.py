"""
Production Configuration for the Modality Classification API
Environment-based configuration management
"""

import os
from pathlib import Path
from typing import List
from dataclasses import dataclass, field

# Base directory
BASE_DIR = Path(__file__).parent.resolve()


def _get_allowed_origins() -> List[str]:
    """Factory function to get allowed origins from environment"""
    return os.getenv("ALLOWED_ORIGINS", "*").split(",")


@dataclass
class Settings:
    """Application settings loaded from environment variables"""

    # Server Configuration
    HOST: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    PORT: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    WORKERS: int = field(default_factory=lambda: int(os.getenv("WORKERS", "1")))

    # Analysis
    ANALYSIS_PROFILE: str = field(default_factory=lambda: os.getenv("ANALYSIS_PROFILE", "clinical"))
    EXTRACTION_WORKERS: int = field(default_factory=lambda: int(os.getenv("EXTRACTION_WORKERS", "1")))

    # Logging
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # CORS Configuration
    ALLOWED_ORIGINS: List[str] = field(default_factory=_get_allowed_origins)

    # API Configuration
    API_TITLE: str = "Imaging Modality Classification API"
    API_DESCRIPTION: str = """
    **Heuristic imaging-modality classification**

    Classifies a medical image (chest X-ray, brain MRI, CT, ultrasound, ...) from
    pixel statistics and filename keywords alone. No trained model is involved;
    the reported confidence is a bounded heuristic score, not a probability.

    ## Features
    - Single image and batch classification
    - Pathology indicator scores
    - Switchable threshold profiles (`clinical`, `perfect`)
    - Technical image-quality summary

    ## Usage
    1. Upload an image to `/analyze`
    2. Receive the modality, confidence and top pathology indicators
    """
    API_VERSION: str = "1.0.0"

    # Upload limits
    MAX_BATCH_SIZE: int = field(default_factory=lambda: int(os.getenv("MAX_BATCH_SIZE", "10")))
    MAX_IMAGE_BYTES: int = field(default_factory=lambda: int(os.getenv("MAX_IMAGE_BYTES", str(20 * 1024 * 1024))))

    def validate(self) -> bool:
        """Validate configuration"""
        from profiles import PROFILES

        if self.ANALYSIS_PROFILE.strip().lower() not in PROFILES:
            raise ValueError(
                f"Unknown ANALYSIS_PROFILE '{self.ANALYSIS_PROFILE}'. "
                f"Available profiles: {', '.join(PROFILES)}"
            )
        if self.EXTRACTION_WORKERS < 1:
            raise ValueError(f"EXTRACTION_WORKERS must be >= 1, got {self.EXTRACTION_WORKERS}")
        return True


# Global settings instance
settings = Settings()
