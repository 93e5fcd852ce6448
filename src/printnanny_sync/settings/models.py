"""Schema of the effective device settings.

`PrintNannySettings` is a `BaseSettings` so that the environment layer can be
read with pydantic-settings' own `EnvSettingsSource`. The resolver merges its
layers explicitly and validates the result; the merged values are passed as
init values, which outrank every settings source pydantic-settings consults.

Every optional field defaults to `None`; the canonical TOML form omits `None`
values, so omitting them loses nothing.
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "PRINTNANNY_SETTINGS_"
ENV_NESTED_DELIMITER = "__"


class GitSettings(BaseModel):
    """Remote and commit identity of the settings repository."""

    remote: str = Field(
        default="https://github.com/bitsy-ai/printnanny-settings.git",
        description="Repository cloned by `settings clone`",
    )
    name: str = Field(default="PrintNanny", description="Commit author name")
    email: str = Field(default="robots@printnanny.ai", description="Commit author email")


class ApiSettings(BaseModel):
    base_path: str = Field(
        default="https://printnanny.ai",
        description="PrintNanny Cloud API base URL",
    )
    bearer_access_token: str | None = Field(
        default=None,
        description="API token; falls back to anonymous access when unset",
    )


class OctoPrintSettings(BaseModel):
    enabled: bool = Field(default=True)
    base_url: str = Field(default="http://localhost:5000")
    api_key: str | None = Field(default=None)


class CameraSettings(BaseModel):
    device: str = Field(default="/dev/video0")
    width: int = Field(default=1280, gt=0)
    height: int = Field(default=720, gt=0)
    framerate: int = Field(default=15, gt=0)


class PrintNannySettings(BaseSettings):
    """Effective settings for a PrintNanny device."""

    git: GitSettings = Field(default_factory=GitSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    octoprint: OctoPrintSettings = Field(default_factory=OctoPrintSettings)
    camera: CameraSettings = Field(default_factory=CameraSettings)

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter=ENV_NESTED_DELIMITER,
        extra="ignore",
    )
