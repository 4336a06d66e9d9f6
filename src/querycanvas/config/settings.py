#
#  Copyright (C) 2017-2025 Dremio Corporation
#
#  Licensed under the Apache License, Version 2.0 (the "License");
#  you may not use this file except in compliance with the License.
#  You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
#  Unless required by applicable law or agreed to in writing, software
#  distributed under the License is distributed on an "AS IS" BASIS,
#  WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#  See the License for the specific language governing permissions and
#  limitations under the License.
#
from pydantic import (
    Field,
    HttpUrl,
    AfterValidator,
    BaseModel,
    ConfigDict,
    field_serializer,
    PrivateAttr,
)
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import (
    Optional,
    Union,
    Annotated,
    Self,
    List,
    Dict,
    Any,
    Callable,
)
from pathlib import Path
from yaml import safe_load, add_representer, dump
from contextvars import ContextVar
from os import environ
from importlib.util import find_spec


def _resolve_api_uri(uri: Union[str, HttpUrl]) -> str:
    if isinstance(uri, str):
        uri = HttpUrl(uri)
    return str(uri).rstrip("/")


def _resolve_token_file(token: str) -> str:
    return (
        Path(token[1:]).expanduser().read_text().strip()
        if token.startswith("@")
        else token
    )


class HttpRetry(BaseModel):
    """Configuration for HTTP retry behavior with exponential backoff"""

    max_retries: Optional[int] = Field(
        default=3,
        description="Maximum number of retry attempts for rate-limited requests",
    )
    initial_delay: Optional[float] = Field(
        default=1.0, description="Initial delay in seconds before first retry"
    )
    max_delay: Optional[float] = Field(
        default=60.0, description="Maximum delay in seconds between retries"
    )
    backoff_multiplier: Optional[float] = Field(
        default=2.0, description="Multiplier for exponential backoff"
    )
    model_config = ConfigDict(validate_assignment=True)


class Api(BaseModel):
    uri: Annotated[Union[str, HttpUrl], AfterValidator(_resolve_api_uri)]
    raw_token: Optional[str] = Field(default=None, alias="token")
    workspace_id: Optional[str] = None
    http_retry: Optional[HttpRetry] = Field(default_factory=HttpRetry)
    _token_resolved: Optional[str] = PrivateAttr(default=None)
    model_config = ConfigDict(validate_assignment=True, populate_by_name=True)

    @field_serializer("raw_token")
    def serialize_token(self, token: str):
        return self.raw_token if token != self.raw_token else token

    @property
    def token(self) -> Optional[str]:
        if v := getattr(self, "_token_resolved", None):
            return v
        if self.raw_token is not None and self.raw_token.startswith("@"):
            self._token_resolved = _resolve_token_file(self.raw_token)
            return self._token_resolved
        return self.raw_token

    @token.setter
    def token(self, v: str):
        self.raw_token = v
        self._token_resolved = None


class Builder(BaseModel):
    default_limit: Optional[int] = Field(
        default=1000, description="Row limit applied to new visual queries"
    )
    model_config = ConfigDict(validate_assignment=True)


class Export(BaseModel):
    poll_interval: Optional[float] = Field(
        default=2.0, description="Seconds between export status checks"
    )
    max_attempts: Optional[int] = Field(
        default=150, description="Status checks before an export is timed out"
    )
    model_config = ConfigDict(validate_assignment=True)


class Ai(BaseModel):
    max_explain_rows: Optional[int] = Field(
        default=50, description="Rows sent to the explain endpoint"
    )
    model_config = ConfigDict(validate_assignment=True)


class Settings(BaseSettings):
    api: Optional[Api] = Field(default=None)
    builder: Optional[Builder] = Field(default_factory=Builder)
    export: Optional[Export] = Field(default_factory=Export)
    ai: Optional[Ai] = Field(default_factory=Ai)
    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        env_prefix="QUERYCANVAS_",
        extra="allow",
        use_enum_values=True,
    )

    def with_overrides(self, overrides: Dict[str, Any]) -> Self:
        def set_values(aparts: List[str], value: Any, obj: Any):
            if len(aparts) == 1 and hasattr(obj, aparts[0]):
                setattr(obj, aparts[0], value)
            elif hasattr(obj, aparts[0]):
                set_values(aparts[1:], value, getattr(obj, aparts[0]))

        for aparts, value in [
            (attr.split("."), value)
            for attr, value in overrides.items()
            if value is not None
        ]:
            set_values(aparts, value, self)

        return self


_settings: ContextVar[Settings] = ContextVar("settings", default=None)


# the default config is ~/.config/querycanvas/config.yaml, use it if it exists
def default_config() -> Path:
    _top = "querycanvas"
    if (_spec := find_spec(__name__)) and _spec.name:
        _top = _spec.name.split(".")[0]
    return (
        Path(environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
        / _top
        / "config.yaml"
    )


# configures the settings using the given config file and overwrites the global
# settings instance if force is True
def configure(cfg: Union[str, Path] = None, force=False) -> ContextVar[Settings]:
    global _settings
    if force and isinstance(_settings.get(), Settings):
        old = _settings.get()
        try:
            _settings.set(None)
            configure(cfg, force=False)
        except Exception:
            # keep the old settings if the new ones cannot be loaded
            _settings.set(old)
            raise

    if isinstance(cfg, str):
        cfg = Path(cfg)

    if cfg is None:
        cfg = default_config()

    if not cfg.exists():
        cfg.parent.mkdir(parents=True, exist_ok=True)
        cfg.touch()

    with cfg.open() as f:
        s = safe_load(f)
        _settings.set(Settings.model_validate(s if s else {}))

    return _settings


# Get the current settings instance if one has been configured. If not try
# to configure it using the default config file. If that fails, create a new
# empty settings instance.
def instance() -> Settings | None:
    global _settings
    if not isinstance(_settings.get(), Settings):
        try:
            configure()
        except (FileNotFoundError, PermissionError):
            _settings.set(Settings())
    return _settings.get()


async def run_with(
    func: Callable,
    overrides: Optional[Dict[str, Any]] = None,
    args: Optional[List[Any]] = None,
    kw: Optional[Dict[str, Any]] = None,
) -> Any:
    tok = _settings.set(
        instance().model_copy(deep=True).with_overrides(overrides or {})
    )
    try:
        return await func(*(args or []), **(kw or {}))
    finally:
        _settings.reset(tok)


def write_settings(
    cfg: Path = None, inst: Settings = None, dry_run: bool = False
) -> str | None:
    if cfg is None:
        cfg = default_config()

    if not isinstance(inst, Settings):
        inst = instance()

    d = inst.model_dump(
        exclude_none=True, mode="json", exclude_unset=True, by_alias=True
    )
    add_representer(
        str,
        lambda dumper, data: dumper.represent_scalar(
            "tag:yaml.org,2002:str", data, style=('"' if "@" in data else None)
        ),
    )
    if dry_run:
        return dump(d)

    if not cfg.exists() or not cfg.parent.exists():
        cfg.parent.mkdir(parents=True, exist_ok=True)

    with cfg.open("w") as f:
        dump(d, f)
