"""Layered configuration loader for i18n-ast."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, Mapping, Optional, Sequence

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigurationError
from .keys import DEFAULT_PREFIX
from .locales import SUPPORTED_LOCALES

APP_NAME = "i18n-ast"
ENV_PREFIX = "I18N_AST_"
CONFIG_FILENAMES = (
    "i18n-ast.config.yaml",
    "i18n-ast.config.yml",
    "i18n-ast.yaml",
    ".i18n-ast.yaml",
)
LIST_FIELDS = {"entry", "exclude", "ignore_functions", "prettier_command"}


class I18nAstConfig(BaseModel):
    """Schema describing all supported configuration options."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    entry: list[str] = Field(min_length=1, description="Files or directories to rewrite.")
    output: str = Field(default="locales", description="Directory for the resource module.")
    locales: Literal["zh", "en", "fr", "es"] = Field(default="zh")
    i18n_config_file_path: str = Field(
        alias="i18nConfigFilePath",
        min_length=1,
        description="Module specifier imported as the translator.",
    )
    exclude: list[str] = Field(default_factory=list)
    ignore_functions: list[str] = Field(default_factory=list, alias="ignoreFunctions")
    prettierrc: dict[str, Any] = Field(default_factory=dict)
    formatter: Literal["prettier", "none"] = Field(default="prettier")
    prettier_command: Optional[list[str]] = Field(default=None, alias="prettierCommand")
    key_prefix: str = Field(default=DEFAULT_PREFIX, min_length=1, alias="keyPrefix")
    output_format: Literal["cjs", "esm", "json"] = Field(default="cjs", alias="outputFormat")
    concurrency: int = Field(default=16, ge=1)
    base_dir: Path = Field(default_factory=Path.cwd, alias="baseDir")

    @model_validator(mode="before")
    @classmethod
    def _normalise_locale(cls, data: Any) -> Any:
        if isinstance(data, dict):
            raw_value = data.get("locales")
            if isinstance(raw_value, str):
                normalized = raw_value.strip().lower().replace("_", "-").split("-")[0]
                if normalized in SUPPORTED_LOCALES:
                    data["locales"] = normalized
        return data

    def resolve(self, value: str | Path) -> Path:
        """Resolve a configured path against the base directory."""

        return (self.base_dir / Path(value).expanduser()).resolve()

    @property
    def output_dir(self) -> Path:
        return self.resolve(self.output)


def load_config(
    config_path: Path | str | None = None,
    *,
    base_dir: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> I18nAstConfig:
    """Load YAML, ``.env``, environment and override layers into one model."""

    explicit = Path(config_path).expanduser().resolve() if config_path else None
    root = base_dir or (explicit.parent if explicit else Path.cwd())

    combined: dict[str, Any] = {}
    file_path = explicit or _discover_config_file(root)
    if explicit is not None and not explicit.is_file():
        raise ConfigurationError(f"Configuration file not found: {explicit}")
    if file_path is not None:
        combined.update(_canonical_keys(_load_yaml(file_path)))

    _merge_env_sources(
        combined,
        app_dir=root,
        environ=os.environ if environ is None else environ,
    )
    if overrides:
        combined.update(
            _canonical_keys({k: v for k, v in overrides.items() if v is not None})
        )

    if not combined:
        raise ConfigurationError(
            "No configuration sources were found. Provide an i18n-ast.config.yaml "
            "file, a .env file, environment variables, or command line options."
        )
    configured_base = combined.get("base_dir")
    if configured_base is None:
        combined["base_dir"] = root
    else:
        combined["base_dir"] = root / Path(configured_base).expanduser()

    try:
        return I18nAstConfig.model_validate(combined)
    except ValidationError as exc:
        raise ConfigurationError(_format_validation_errors(exc.errors())) from exc


def _canonical_keys(values: Mapping[str, Any]) -> dict[str, Any]:
    """Map camelCase aliases onto field names so later layers override earlier ones."""

    aliases = {
        info.alias: name
        for name, info in I18nAstConfig.model_fields.items()
        if info.alias
    }
    return {aliases.get(key, key): value for key, value in values.items()}


def _discover_config_file(app_dir: Path) -> Path | None:
    for name in CONFIG_FILENAMES:
        candidate = app_dir / name
        if candidate.is_file():
            return candidate
    return None


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            parsed = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigurationError(
            f"Configuration file could not be read: {exc}"
        ) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            f"Configuration file {path} is not valid YAML: {exc}"
        ) from exc

    if parsed is None:
        return {}
    if not isinstance(parsed, Mapping):
        raise ConfigurationError(
            f"Invalid configuration file {path}: expected a mapping at the root."
        )
    return dict(parsed)


def _merge_env_sources(
    target: dict[str, Any],
    *,
    app_dir: Path,
    environ: Mapping[str, str],
) -> None:
    """Merge .env and process environment variables into the target mapping."""

    allowed = set(I18nAstConfig.model_fields) - {"prettierrc", "base_dir"}

    def merge_values(values: Mapping[str, str | None]) -> None:
        for key, value in sorted(values.items()):
            if value is None or not key.startswith(ENV_PREFIX):
                continue
            name = key[len(ENV_PREFIX):].lower()
            if name not in allowed:
                continue
            if name in LIST_FIELDS:
                target[name] = [item.strip() for item in value.split(",") if item.strip()]
            else:
                target[name] = value

    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        merge_values(dotenv_values(dotenv_path))

    merge_values(environ)


def _format_validation_errors(entries: Sequence[Mapping[str, Any]]) -> str:
    details: list[str] = []
    for entry in entries:
        path = entry.get("loc") or []
        if isinstance(path, (list, tuple)):
            location = ".".join(str(part) for part in path if part not in {None, ""})
        else:
            location = str(path)
        message = str(entry.get("msg") or "Invalid value")
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}")
    return "Configuration validation errors detected:\n" + "\n".join(details)
