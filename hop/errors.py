from __future__ import annotations

from pathlib import Path


class HopError(Exception):
    """Base class for errors reported to the user."""

    exit_code = 1


class ConfigError(HopError):
    def __init__(self, path: Path, message: str):
        super().__init__(message)
        self.path = path


class ConfigIoError(ConfigError):
    exit_code = 10

    def __init__(self, path: Path, error: OSError):
        reason = error.strerror or str(error)
        super().__init__(path, f"Cannot access config file '{path}': {reason}")
        self.error = error


class ConfigMalformedError(ConfigError):
    exit_code = 11

    def __init__(self, path: Path, reason: str):
        super().__init__(path, f"Malformed config file '{path}': {reason}")
        self.reason = reason


class RegistryError(HopError):
    pass


class DuplicateNameError(RegistryError):
    exit_code = 20

    def __init__(self, name: str):
        super().__init__(f"Server with name '{name}' already exists")
        self.name = name


class DuplicateAliasError(RegistryError):
    exit_code = 21

    def __init__(self, alias: str):
        super().__init__(f"Alias '{alias}' is already used by another server")
        self.alias = alias


class NotFoundError(RegistryError):
    exit_code = 22

    def __init__(self, identifier: str):
        super().__init__(f"Server '{identifier}' not found")
        self.identifier = identifier


class InvalidEntryError(RegistryError):
    exit_code = 23

    def __init__(self, reason: str):
        super().__init__(f"Invalid server entry: {reason}")
        self.reason = reason


class SpawnError(HopError):
    exit_code = 127

    def __init__(self, program: str, error: OSError | None = None):
        if error is None:
            message = f"'{program}' executable not found in PATH"
        else:
            message = f"Failed to start '{program}': {error.strerror or error}"
        super().__init__(message)
        self.program = program
        self.error = error
