"""Configuration settings for the runtime."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class for the runtime."""

    # Define the settings with default values and types
    # These will be loaded from AGENTRY_* environment variables or a .env file if not provided
    DATA_DIR: str = "./data"
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical
    TRANSCRIPT_LOG: str | None = None  # JSON-lines transcript file; disabled when unset

    # Agent loop limits
    MAX_TOOL_ERRORS: int = 3  # failed tool turns tolerated before the loop gives up
    MAX_CORRECTION_ATTEMPTS: int = 3  # parameter re-prompts per planned tool step
    MAX_DELEGATION_DEPTH: int = 8  # nested agent-as-tool calls

    # Generator configuration
    GENERATOR: str = "openai"
    GENERATOR_MODE: str = "function_calling"  # Options: function_calling, text
    OPENAI_API_KEY: str | None = None
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_MODEL: str = "gpt-4o-mini"
    REQUEST_TIMEOUT: float = 60.0

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_prefix = "AGENTRY_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
