"""
Configuration for the Stockroom HTTP API.

Uses pydantic-settings for environment variable loading.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """HTTP API configuration loaded from environment."""

    host: str = Field(default="0.0.0.0", description="API bind host")
    port: int = Field(default=5000, description="API bind port")

    # Identity of the acting user, set by the authenticating front end
    actor_header: str = Field(default="X-Actor", description="Header carrying the acting user id")

    # CORS settings
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins",
    )

    model_config = {"env_prefix": "STOCKROOM_API_"}
