"""Exception taxonomy shared across the runner."""

from .types import Violation


class CentoError(RuntimeError):
    """Base class for all runner errors."""


class ProgramValidationError(CentoError):
    """Program tree is malformed; raised before any run starts."""

    def __init__(self, violations: list[Violation]):
        self.violations = list(violations)
        lines = "; ".join(str(v) for v in self.violations)
        super().__init__(f"Program failed validation ({len(self.violations)} problem(s)): {lines}")


class ChannelUnavailableError(CentoError):
    """Motion channel is not connected."""


class PublishError(CentoError):
    """A send on the motion channel failed."""


class ExecutorBusyError(CentoError):
    """A run is already in progress on this executor."""


class ProgramStoreError(CentoError):
    """Saved program could not be read or written."""
