"""
Configuration for the gateway HTTP surface.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)

    # Serve the GraphQL sandbox page at "/"
    sandbox_enabled: bool = Field(default=True)

    # CORS
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173", "http://localhost:8080"],
    )

    model_config = {"env_prefix": "GATEWAY_"}
