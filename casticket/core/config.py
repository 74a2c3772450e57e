from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = "casticket CAS client"


class CASSettings(BaseSettings):
    """
    CAS client configuration, read from CAS_* environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="CAS_",
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    server_url: str = Field(
        default="https://cas.example.org/cas",
        min_length=1,
        description="Base URL of the CAS server, including any path prefix.",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        min_length=1,
        description="User-Agent sent with validation requests.",
    )
    http_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Per-request timeout applied by the HTTP client (seconds).",
    )
    verify_tls: bool = Field(
        default=True,
        description="Verify the CAS server's TLS certificate.",
    )
