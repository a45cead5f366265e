"""Configuration loading and validation.

This module is responsible for:

- Loading `.env` into the process environment (without overriding existing vars).
- Collecting `MONGO_*` environment variables into a raw options mapping.
- Converting raw options into a strongly-typed, frozen Pydantic model.
- Validating required fields and providing actionable error messages.
"""

from __future__ import annotations

import os
import re
from typing import Any

import dotenv
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator


class ConfigError(ValueError):
    """Raised when the sink cannot start because its configuration is invalid."""


_SIZE_RE = re.compile(r"^\s*(\d+)\s*([kmgt]?)b?\s*$", re.IGNORECASE)
_SIZE_UNITS = {"": 1, "k": 1024, "m": 1024**2, "g": 1024**3, "t": 1024**4}

# Log level aliases accepted by `mongo_log_level`.
_LOG_LEVELS = {
    "trace": "DEBUG",
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
    "fatal": "CRITICAL",
    "critical": "CRITICAL",
}


def parse_size(value: Any) -> int:
    """Parse a byte size such as `8m`, `512k` or `1048576` (units are powers of 1024)."""
    if isinstance(value, bool):
        raise ValueError(f"size must be an integer or a string like '8m'. Got: {value!r}")
    if isinstance(value, int):
        return value
    match = _SIZE_RE.match(str(value))
    if match is None:
        raise ValueError(f"size must be an integer or a string like '8m'. Got: {value!r}")
    number, unit = match.groups()
    return int(number) * _SIZE_UNITS[unit.lower()]


def parse_bool(value: Any) -> bool:
    """Parse a boolean option value (true/false, yes/no, on/off, 1/0)."""
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in {"true", "1", "yes", "y", "on"}:
        return True
    if normalized in {"false", "0", "no", "n", "off"}:
        return False
    raise ValueError(f"must be a boolean (true/false). Got: {value!r}")


class MongoOutputConfig(BaseModel):
    """Validated options for the MongoDB output sink."""

    # Host buffer options (and anything else) travel in the same mapping.
    model_config = ConfigDict(extra="ignore", frozen=True)

    database: str = Field(..., description="MongoDB database")
    collection: str = Field(default="untagged", description="MongoDB collection")
    host: str = Field(default="localhost", description="MongoDB host")
    port: int = Field(default=27017, description="MongoDB port")
    write_concern: int | None = Field(default=None, description="MongoDB write concern (w)")
    journaled: bool = Field(default=False, description="MongoDB journaled write concern (j)")

    replace_dot_in_key_with: str | None = Field(default=None, description="Replace dot with specified string")
    replace_dollar_in_key_with: str | None = Field(default=None, description="Replace leading dollar with specified string")

    # Tag mapped mode
    tag_mapped: bool = Field(default=False, description="Use the tag as the collection name")
    remove_tag_prefix: str | None = Field(default=None, description="Remove this prefix from tags")

    capped: bool = Field(default=False, description="Create the collection as capped")
    capped_size: int | None = Field(default=None, description="Capped collection size in bytes")
    capped_max: int | None = Field(default=None, description="Capped collection max document count")

    user: str | None = Field(default=None, description="MongoDB user")
    password: SecretStr | None = Field(default=None, description="MongoDB password")
    auth_source: str | None = Field(default=None, description="Authentication database")

    # SSL connection
    ssl: bool = Field(default=False, description="Use TLS")
    ssl_cert: str | None = Field(default=None, description="PEM file holding the client certificate and key")
    ssl_key: str | None = Field(default=None, description="PEM file holding the client key")
    ssl_key_pass_phrase: SecretStr | None = Field(default=None, description="Client key passphrase")
    ssl_verify: bool = Field(default=False, description="Verify the server certificate")
    ssl_ca_cert: str | None = Field(default=None, description="CA certificate file")

    include_time_key: bool = Field(default=True, description="Store the event time in each record")
    time_key: str = Field(default="time", description="Record key for the event time")
    include_tag_key: bool = Field(default=False, description="Store the event tag in each record")
    tag_key: str = Field(default="tag", description="Record key for the event tag")

    mongo_log_level: str = Field(default="info", validate_default=True, description="Log level for the pymongo driver")
    mongodb_smaller_bson_limit: bool = Field(default=False, description="Use the 2MB chunk limit")
    buffer_chunk_limit: int | None = Field(default=None, description="Max buffered chunk size in bytes")

    @field_validator(
        "journaled",
        "capped",
        "ssl",
        "ssl_verify",
        "include_time_key",
        "include_tag_key",
        "mongodb_smaller_bson_limit",
        mode="before",
    )
    @classmethod
    def _parse_bool(cls, v: Any) -> bool:
        return parse_bool(v)

    @field_validator("tag_mapped", mode="before")
    @classmethod
    def _parse_tag_mapped(cls, v: Any) -> bool:
        """A bare `tag_mapped` flag (empty value) switches the mode on."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return True
        return parse_bool(v)

    @field_validator("capped_size", "capped_max", "buffer_chunk_limit", mode="before")
    @classmethod
    def _parse_size(cls, v: Any) -> int | None:
        if v is None or v == "":
            return None
        return parse_size(v)

    @field_validator("mongo_log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        level = _LOG_LEVELS.get(v.strip().lower())
        if level is None:
            raise ValueError(f"mongo_log_level must be one of {sorted(_LOG_LEVELS)}. Got: {v!r}")
        return level

    @field_validator("replace_dot_in_key_with")
    @classmethod
    def _validate_dot_replacement(cls, v: str | None) -> str | None:
        if v is not None and "." in v:
            raise ValueError("replace_dot_in_key_with must not contain '.'")
        return v

    @field_validator("replace_dollar_in_key_with")
    @classmethod
    def _validate_dollar_replacement(cls, v: str | None) -> str | None:
        # An empty replacement would turn "$$x" into "$x" and leave a leading dollar.
        # The dollar rewrite runs after the dot rewrite, so a dot here would survive.
        if v is not None and (not v or v.startswith("$") or "." in v):
            raise ValueError("replace_dollar_in_key_with must be non-empty, must not start with '$' and must not contain '.'")
        return v

    @model_validator(mode="after")
    def _validate_modes(self) -> "MongoOutputConfig":
        if not self.tag_mapped and "collection" not in self.model_fields_set:
            raise ValueError("normal mode requires collection parameter")
        if self.capped and self.capped_size is None:
            raise ValueError("'capped_size' parameter is required when 'capped' is set")
        # pymongo reads the client certificate and key from a single PEM file.
        if self.ssl_key is not None and self.ssl_key != self.ssl_cert:
            raise ValueError("ssl_key must be omitted or point at the same PEM file as ssl_cert")
        return self


# Raw option name -> environment variable.
_ENV_OPTIONS = {
    "database": "MONGO_DATABASE",
    "collection": "MONGO_COLLECTION",
    "host": "MONGO_HOST",
    "port": "MONGO_PORT",
    "write_concern": "MONGO_WRITE_CONCERN",
    "journaled": "MONGO_JOURNALED",
    "replace_dot_in_key_with": "MONGO_REPLACE_DOT_IN_KEY_WITH",
    "replace_dollar_in_key_with": "MONGO_REPLACE_DOLLAR_IN_KEY_WITH",
    "tag_mapped": "MONGO_TAG_MAPPED",
    "remove_tag_prefix": "MONGO_REMOVE_TAG_PREFIX",
    "capped": "MONGO_CAPPED",
    "capped_size": "MONGO_CAPPED_SIZE",
    "capped_max": "MONGO_CAPPED_MAX",
    "user": "MONGO_USER",
    "password": "MONGO_PASSWORD",
    "auth_source": "MONGO_AUTH_SOURCE",
    "ssl": "MONGO_SSL",
    "ssl_cert": "MONGO_SSL_CERT",
    "ssl_key": "MONGO_SSL_KEY",
    "ssl_key_pass_phrase": "MONGO_SSL_KEY_PASS_PHRASE",
    "ssl_verify": "MONGO_SSL_VERIFY",
    "ssl_ca_cert": "MONGO_SSL_CA_CERT",
    "include_time_key": "MONGO_INCLUDE_TIME_KEY",
    "time_key": "MONGO_TIME_KEY",
    "include_tag_key": "MONGO_INCLUDE_TAG_KEY",
    "tag_key": "MONGO_TAG_KEY",
    "mongo_log_level": "MONGO_LOG_LEVEL",
    "mongodb_smaller_bson_limit": "MONGO_SMALLER_BSON_LIMIT",
    "buffer_chunk_limit": "MONGO_BUFFER_CHUNK_LIMIT",
}


def _get_required_env(name: str) -> str:
    """Read a required env var or raise a helpful error."""
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(f"{name} is required. Please set it in your .env file.")
    if value.startswith("your_") and value.endswith("_here"):
        raise ValueError(f"{name} is required. Please replace the placeholder value in your .env file.")
    return value


def load_config() -> dict[str, str]:
    """Load raw sink options from environment variables.

    Notes:
    - Calls `dotenv.load_dotenv()` so local `.env` values are visible to the process.
    - Only variables that are set end up in the mapping, so "explicitly configured"
      stays distinguishable from "defaulted" (static mode needs an explicit collection).
    - The result is meant for `MongoOutput.configure`, which validates it.
    """
    dotenv.load_dotenv()

    conf = {"database": _get_required_env("MONGO_DATABASE")}
    for option, env_name in _ENV_OPTIONS.items():
        if option in conf:
            continue
        raw = os.getenv(env_name)
        if raw is None or raw == "":
            continue
        conf[option] = raw.strip()
    return conf
