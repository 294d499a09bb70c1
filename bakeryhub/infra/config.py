"""Configuration management."""

import os
from typing import Optional, List
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from project root
# This ensures dotenv works regardless of where the script is run from
project_root = Path(__file__).parent.parent.parent
env_file = project_root / ".env"

# Existing environment variables take precedence over .env values
load_dotenv(dotenv_path=env_file, override=False)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    """Application configuration."""
    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./bakeryhub.db")

    # Model provider. When no key is configured the keyword fallback model is used.
    OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY") or None
    LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    LLM_MAX_COMPLETION_TOKENS: int = int(os.getenv("LLM_MAX_COMPLETION_TOKENS", "1000"))
    MODEL_MAX_RETRIES: int = int(os.getenv("MODEL_MAX_RETRIES", "2"))

    # Conversation limits
    MAX_TOOL_ITERATIONS: int = int(os.getenv("MAX_TOOL_ITERATIONS", "3"))
    MAX_MESSAGE_LENGTH: int = int(os.getenv("MAX_MESSAGE_LENGTH", "4000"))
    MAX_PARAM_STRING_LENGTH: int = int(os.getenv("MAX_PARAM_STRING_LENGTH", "1000"))

    # Timeouts (seconds)
    MODEL_CALL_TIMEOUT: float = float(os.getenv("MODEL_CALL_TIMEOUT", "60"))
    TOOL_CALL_TIMEOUT: float = float(os.getenv("TOOL_CALL_TIMEOUT", "30"))
    REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "120"))

    # Service authentication
    SERVICE_API_KEY: Optional[str] = os.getenv("SERVICE_API_KEY") or None

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    CORS_ORIGINS: List[str] = _split_csv(os.getenv("CORS_ORIGINS", ""))

    # Bakery identity used in role prompts
    BUSINESS_NAME: str = os.getenv("BUSINESS_NAME", "Roni's Bagel Bakery")


config = Config()
