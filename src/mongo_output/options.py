"""Connection and write-concern options for the MongoDB client.

Auth and TLS are optional capabilities: each is either a value on
`ClientOptions` or `None`, and nothing for an absent capability reaches the
client. Building options performs no network I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from config import MongoOutputConfig


@dataclass(frozen=True)
class WriteConcernOptions:
    journaled: bool = False
    # None means "driver default", never 0.
    w: int | None = None

    def to_client_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"journal": self.journaled}
        if self.w is not None:
            kwargs["w"] = self.w
        return kwargs


@dataclass(frozen=True)
class AuthCredentials:
    user: str
    password: str | None = None
    auth_source: str | None = None

    def to_client_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"username": self.user}
        if self.password is not None:
            kwargs["password"] = self.password
        if self.auth_source is not None:
            kwargs["authSource"] = self.auth_source
        return kwargs


@dataclass(frozen=True)
class TlsOptions:
    cert: str | None = None
    key: str | None = None
    key_pass_phrase: str | None = None
    verify: bool = False
    ca_cert: str | None = None

    def to_client_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"tls": True, "tlsAllowInvalidCertificates": not self.verify}
        # `key` is validated to be the same PEM file as `cert`.
        cert_file = self.cert or self.key
        if cert_file is not None:
            kwargs["tlsCertificateKeyFile"] = cert_file
        if self.key_pass_phrase is not None:
            kwargs["tlsCertificateKeyFilePassword"] = self.key_pass_phrase
        if self.ca_cert is not None:
            kwargs["tlsCAFile"] = self.ca_cert
        return kwargs


@dataclass(frozen=True)
class ClientOptions:
    host: str
    port: int
    database: str
    write: WriteConcernOptions
    auth: AuthCredentials | None = None
    tls: TlsOptions | None = None

    def to_client_kwargs(self) -> dict[str, Any]:
        """Map onto `pymongo.MongoClient` keyword arguments."""
        kwargs: dict[str, Any] = {"host": self.host, "port": self.port}
        kwargs.update(self.write.to_client_kwargs())
        if self.auth is not None:
            kwargs.update(self.auth.to_client_kwargs())
        if self.tls is not None:
            kwargs.update(self.tls.to_client_kwargs())
        return kwargs


def _secret(value: Any) -> str | None:
    return value.get_secret_value() if value is not None else None


def build_client_options(config: MongoOutputConfig) -> ClientOptions:
    """Assemble client options from validated configuration."""
    auth = None
    if config.user:
        auth = AuthCredentials(
            user=config.user,
            password=_secret(config.password),
            auth_source=config.auth_source,
        )

    tls = None
    if config.ssl:
        tls = TlsOptions(
            cert=config.ssl_cert,
            key=config.ssl_key,
            key_pass_phrase=_secret(config.ssl_key_pass_phrase),
            verify=config.ssl_verify,
            ca_cert=config.ssl_ca_cert,
        )

    return ClientOptions(
        host=config.host,
        port=config.port,
        database=config.database,
        write=WriteConcernOptions(journaled=config.journaled, w=config.write_concern),
        auth=auth,
        tls=tls,
    )
