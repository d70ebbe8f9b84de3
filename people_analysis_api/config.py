"""
Configuration module for the People Analysis application.

Loads environment variables and provides centralized configuration access.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration loaded from environment variables."""
    
    # Gemini
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", os.getenv("API_KEY", ""))
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    GEMINI_TEMPERATURE: float = float(os.getenv("GEMINI_TEMPERATURE", "0.4"))
    
    # When the host supplies its own key picker, the session waits for a key
    # to be chosen instead of reading GEMINI_API_KEY.
    HOST_KEY_SELECTION: bool = _env_flag("HOST_KEY_SELECTION")
    
    # Upload limits
    MAX_IMAGE_BYTES: int = int(os.getenv("MAX_IMAGE_BYTES", str(10 * 1024 * 1024)))
    
    # Service Config
    PORT: int = int(os.getenv("PORT", "8080"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    
    @classmethod
    def validate(cls) -> None:
        """Validate that required configuration is present."""
        if not cls.GEMINI_MODEL:
            raise ValueError("GEMINI_MODEL environment variable is required")
        
        if cls.MAX_IMAGE_BYTES <= 0:
            raise ValueError("MAX_IMAGE_BYTES must be a positive number of bytes")


# Singleton instance
config = Config()
