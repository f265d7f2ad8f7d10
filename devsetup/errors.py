from typing import Optional


class SetupError(Exception):
    """Base class for provisioning errors."""


class StepFailure(SetupError):
    """
    A recoverable failure of the current step.

    The runner logs the reason, prints the tail of any captured output and
    moves on to the next step.
    """

    def __init__(self, reason: str, output: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.output = output


class PreconditionError(SetupError):
    """An environment-level problem that makes the whole run pointless."""


class SetupCancelled(SetupError):
    """The operator declined to continue; the run ends with exit code 0."""
