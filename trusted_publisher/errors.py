"""Errors raised while configuring a trusted publisher."""

import json
from typing import Any


class ConfigureError(Exception):
    """Base class for fatal configuration errors."""
    pass


class PreconditionError(ConfigureError):
    """Repository, gem or tooling is not in a state we can configure."""
    pass


class AuthenticationError(ConfigureError):
    """The registry rejected the supplied credentials."""
    pass


class RegistryRequestError(ConfigureError):
    """The registry answered with an unexpected HTTP status."""

    def __init__(self, message: str, status: int, body: str):
        super().__init__(f"{message} ({status}):\n{body}")
        self.status = status
        self.body = body


class PublisherConflictError(ConfigureError):
    """An equivalent trusted publisher is already configured."""

    def __init__(self, gem_name: str, record: Any):
        super().__init__(
            f"Trusted publisher for {gem_name} already configured for {json.dumps(record.name)}"
        )
        self.gem_name = gem_name
        self.record = record


class HostCliError(ConfigureError):
    """The GitHub CLI exited with a non-zero status."""

    def __init__(self, message: str, command: str, output: str):
        super().__init__(f"{message} using `{command}`:\n{output}")
        self.command = command
        self.output = output
