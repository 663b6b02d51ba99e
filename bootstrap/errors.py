"""Error taxonomy for the bootstrap entrypoints."""

from __future__ import annotations


class BootstrapError(RuntimeError):
    """Base class for every condition raised by the bootstrap layer."""


class MissingConfiguration(BootstrapError):
    """
    Required configuration is absent or invalid.

    Carries every problem found in one pass so the operator sees the full
    list instead of fixing one variable per restart.
    """

    def __init__(self, problems: dict[str, str]):
        self.problems = dict(problems)
        details = "; ".join(f"{field}: {reason}" for field, reason in self.problems.items())
        super().__init__(f"Missing or invalid configuration: {details}")

    @property
    def fields(self) -> list[str]:
        return list(self.problems)


class DirectoryUnavailable(BootstrapError):
    """The metadata registry could not be read or returned garbage."""


class ProbeUnreachable(BootstrapError):
    """A peer did not answer on its TCP port."""


class MalformedProtocolReply(BootstrapError):
    """A RESP reply could not be parsed."""
