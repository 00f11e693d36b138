"""
Console Configuration
Settings for the management API connection and the console app, plus logging setup
"""

import logging
import os
import sys

from pydantic import BaseModel, Field

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ConsoleConfig(BaseModel):
    """Configuration for the middleware console"""
    api_url: str = Field(default="http://localhost:3456", description="Middleware manager API base URL")
    request_timeout: float = Field(default=30.0, description="HTTP client timeout in seconds")
    log_level: str = Field(default="INFO")
    host: str = Field(default="0.0.0.0", description="Console app bind host")
    port: int = Field(default=8080, description="Console app bind port")

    @classmethod
    def from_env(cls) -> "ConsoleConfig":
        """Build the configuration from environment variables"""
        return cls(
            api_url=os.getenv("MIDDLEWARE_MANAGER_API_URL", "http://localhost:3456"),
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8080")),
        )


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)]
    )
