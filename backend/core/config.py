# backend/core/config.py
import os
from typing import List
from dotenv import load_dotenv

class Settings:
    """
    Setup environment variables.
        - HOST / PORT the address uvicorn binds to
        - DEFAULT_LANGUAGE the language tag a freshly created room starts with
        - CORS_ORIGINS comma separated list of allowed origins ("*" for any)
        - LOG_LEVEL root log level (read by core.logging)
    """

    # Load environment variables from the .env file
    load_dotenv()

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "5000"))

    DEFAULT_LANGUAGE: str = os.getenv("DEFAULT_LANGUAGE", "javascript")

    CORS_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

settings = Settings()
