from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the GPT-Image-1 MCP server."""

    #----------------------------------------------------------
    # OpenAI API settings
    #----------------------------------------------------------
    openai_api_key: SecretStr = Field(
        default=SecretStr(""),
        validation_alias="OPENAI_API_KEY",
        description="API key for the OpenAI Images API. Tools report an error while it is unset.",
    )

    openai_base_url: Optional[str] = Field(
        default=None,
        description="Alternative base URL for an OpenAI-compatible image endpoint.",
    )

    image_model_id: str = Field(
        default="gpt-image-1",
        description="Model id sent with every image generation request.",
    )

    image_response_format: str = Field(
        default="b64_json",
        description="Requested response format. Leave empty to omit the parameter.",
    )

    #----------------------------------------------------------
    # Storage settings
    #----------------------------------------------------------
    images_dir: str = Field(
        default="images",
        description="Directory for saved images, relative to the working directory.",
    )

    #----------------------------------------------------------
    # Server settings
    #----------------------------------------------------------
    server_name: str = Field(
        default="gpt-image-1-server",
        description="Name announced to MCP clients.",
    )
    transport: Literal["stdio", "sse", "streamable-http"] = Field(
        default="stdio",
        description="MCP transport used by the server.",
    )
    host: str = Field(default="127.0.0.1", description="Bind address for HTTP transports.")
    port: int = Field(default=8000, description="Port for HTTP transports.")
    log_level: str = Field(
        default="INFO",
        description="Level of the diagnostic log written to stderr.",
    )

    model_config = SettingsConfigDict(
        env_prefix="GPT_IMAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def has_api_key(self) -> bool:
        return bool(self.openai_api_key.get_secret_value().strip())


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
