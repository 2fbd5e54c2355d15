"""
Standardised error handling for ytarchive.
"""

from ytarchive.core.constants import ErrorCode, JOB_SCOPED_ERRORS, ERROR_STAGES


class JobError(Exception):
    """Raised when a run or a job encounters a known error condition."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

    @property
    def stage(self) -> str:
        return ERROR_STAGES.get(self.code, "unknown stage")

    @property
    def job_scoped(self) -> bool:
        return is_job_scoped(self.code)

    def describe(self) -> str:
        """One-line message for the error stream."""
        return f"{self.stage}: {self.message}"


def is_job_scoped(code: str) -> bool:
    return code in JOB_SCOPED_ERRORS
