"""
Exceptions raised by the seasonRange pipeline.
"""


class SeasonRangeError(Exception):
    """Base class for pipeline errors."""


class ParseError(SeasonRangeError, ValueError):
    """A malformed input line. Readers skip and count these."""

    def __init__(self, message: str, line: str = ""):
        super().__init__(message)
        self.line = line


class StageFailure(SeasonRangeError):
    """The engine gave up on a stage; later stages must not run."""

    def __init__(self, stage, cause: BaseException = None, progress=None):
        self.stage = stage
        self.cause = cause
        self.progress = progress
        name = getattr(stage, "label", stage)
        message = f"Stage '{name}' failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class InvalidTransition(SeasonRangeError):
    """A pipeline state change that would break stage ordering."""


class MissingStageInput(SeasonRangeError):
    """A stage was started without the output of its predecessor on disk."""
