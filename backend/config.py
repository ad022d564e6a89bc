"""
Configuration management for the Artifact Chat API
Uses pydantic-settings for environment variable validation
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database (PostgreSQL in production, SQLite file for local development)
    DATABASE_URL: str = "sqlite:///./artifact_chat.db"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_RELOAD: bool = True
    DEBUG: bool = False

    # Security
    API_KEY_PREFIX: str = "ac_"

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # Application
    APP_NAME: str = "Artifact Chat"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"  # development or production

    # OpenAI
    OPENAI_API_KEY: str = ""

    # Chat (model from environment for consistency)
    CHAT_MODEL: str = "gpt-4o"
    CHAT_TEMPERATURE: float = 0.8
    CHAT_MAX_TOKENS: int = 300
    CHAT_PRESENCE_PENALTY: float = 0.1
    CHAT_FREQUENCY_PENALTY: float = 0.1

    # LLM Provider (LiteLLM format: provider/model)
    LLM_PROVIDER: str = "openai"  # openai, anthropic, groq, ollama, etc.
    LLM_MODEL_STRING: str = ""  # Optional: override full model string (e.g., "openai/gpt-4o")
    LLM_API_BASE: str = ""  # Optional: custom API base URL

    # Turn orchestration
    GENERATION_TIMEOUT: float = 30.0  # Seconds before the fallback reply takes over
    CHAT_HISTORY_WINDOW: int = 10  # Conversation window sent with the persona prompt, current message included
    MAX_MESSAGE_LENGTH: int = 4000
    QUICK_QUESTION_LIMIT: int = 5
    FALLBACK_REPLY: str = "Waduh, ada gangguan teknis... aku jadi speechless deh! 🤐 Coba lagi ya!"

    # Persistence
    PERSISTENCE_MAX_ATTEMPTS: int = 2  # First write plus one retry
    PERSISTENCE_RETRY_DELAY: float = 0.2

    # Rate Limiting (HTTP transport only)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_CHAT: str = "30/minute"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
