"""Configuration for the MCP server."""

from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Default configuration
DEFAULT_CONFIG = {
    "mcp_server_name": "aem-mcp",
    "mcp_server_version": "0.1.0",
    "ims_token_url": "https://ims-na1.adobelogin.com/ims/token/v3",
    "log_level": "INFO",
    "request_timeout": 30.0,
}


class AuthType(str, Enum):
    """Supported ways of authorizing requests against AEM."""

    BASIC = "basic"
    TOKEN = "token"  # static bearer token supplied by the operator
    OAUTH = "oauth"  # client-credentials exchange with automatic refresh


class Config(BaseSettings):
    """MCP server configuration.

    Values come from ``AEM_*`` environment variables or a ``.env`` file.
    Nothing is required at load time: missing settings surface as
    ``ConfigurationError`` the first time they are needed.
    """

    model_config = SettingsConfigDict(
        env_prefix="AEM_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    base_url: str | None = None
    auth_type: AuthType = AuthType.BASIC

    username: str | None = None
    password: str | None = None

    access_token: str | None = None

    client_id: str | None = None
    client_secret: str | None = None
    scopes: str | None = None
    ims_token_url: str = DEFAULT_CONFIG["ims_token_url"]

    request_timeout: float = Field(default=DEFAULT_CONFIG["request_timeout"], gt=0)
    log_level: str = DEFAULT_CONFIG["log_level"]
    log_file: Path | None = None
    mcp_server_name: str = Field(
        default=DEFAULT_CONFIG["mcp_server_name"], alias="AEM_SERVER_NAME"
    )
    mcp_server_version: str = DEFAULT_CONFIG["mcp_server_version"]

    def __repr__(self) -> str:
        return f"Config(base_url='{self.base_url}', auth_type='{self.auth_type.value}')"
