"""Error types shared by several Ledgerline layers."""

from __future__ import annotations


class ConfigurationError(Exception):
    """Raised when an environment variable holds an unusable value."""

    @classmethod
    def invalid_parameter(
        cls, variable: str, value: str, constraint: str
    ) -> ConfigurationError:
        """Create an error naming the variable, its value and the rule it broke.

        Parameters
        ----------
        variable
            Environment variable name.
        value
            Raw value that failed validation.
        constraint
            Description of acceptable values.

        """
        return cls(f"Invalid {variable} {value!r}. {constraint}")

    @classmethod
    def missing(cls, variable: str) -> ConfigurationError:
        """Create an error for a required variable that is unset."""
        return cls(f"{variable} environment variable is required")


class DependencyUnavailableError(Exception):
    """Raised when an optional backing service cannot serve a request.

    Covers misconfigured or unreachable embedding providers and vector
    stores. The HTTP layer answers 503 so clients can fall back to lexical
    search.

    Attributes
    ----------
    dependency
        Short name of the failing dependency (``embedding``, ``vector_store``).

    """

    def __init__(self, message: str, *, dependency: str) -> None:
        """Store the dependency name with the message."""
        self.dependency = dependency
        super().__init__(message)
