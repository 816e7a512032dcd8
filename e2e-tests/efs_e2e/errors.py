"""Harness-level errors.

Only configuration and setup problems are harness errors. A failing test is
reported by pytest and never raised through here.
"""


class E2EError(Exception):
    """Base class for errors raised by the E2E harness."""


class ConfigurationError(E2EError):
    """User-supplied configuration cannot be turned into a valid run."""


class InvalidSelectorSyntax(ConfigurationError):
    """A combined label selector string is malformed."""

    def __init__(self, combined: str, token: str):
        self.combined = combined
        self.token = token
        super().__init__(
            f"failed to parse combined EFS driver label selectors {combined!r}: "
            f"malformed token {token!r}"
        )


class SetupError(E2EError):
    """The suite cannot start, e.g. the report directory is not writable."""
