from __future__ import annotations

import re

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

IDENTIFIER_RE = re.compile(r"[A-Za-z0-9._-]+")


def _check_identifier(value: str, field: str) -> str:
    if not IDENTIFIER_RE.fullmatch(value):
        raise ValueError(f"{field} may only contain letters, digits, '-', '_' and '.'")
    return value


def _check_token(value: str, field: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{field} must not be empty")
    if any(ch.isspace() for ch in value):
        raise ValueError(f"{field} must not contain whitespace")
    if value.startswith("-"):
        raise ValueError(f"{field} must not start with '-'")
    return value


class Server(BaseModel):
    """SSH server bookmark."""

    name: str
    alias: str | None = None
    user: str
    host: str
    port: int = Field(default=22, ge=1, le=65535)

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        return _check_identifier(v, "name")

    @field_validator("alias")
    @classmethod
    def _validate_alias(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return _check_identifier(v, "alias")

    @field_validator("user", "host")
    @classmethod
    def _validate_token(cls, v: str, info: ValidationInfo) -> str:
        return _check_token(v, info.field_name)

    def identifiers(self) -> tuple[str, ...]:
        """Return the name and, if set, the alias."""
        return (self.name, self.alias) if self.alias else (self.name,)

    def destination(self) -> str:
        return f"{self.user}@{self.host}"

    def display(self) -> str:
        """Return formatted server display string."""
        label = f"{self.name} ({self.alias})" if self.alias else self.name
        return f"{label}  [{self.destination()}:{self.port}]"


class ServerPatch(BaseModel):
    """Partial update for a server; only explicitly set fields are applied."""

    name: str | None = None
    alias: str | None = None
    user: str | None = None
    host: str | None = None
    port: int | None = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten pydantic errors into a single line."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "entry"
        msg = err["msg"].removeprefix("Value error, ")
        parts.append(f"{loc}: {msg}")
    return "; ".join(parts)
