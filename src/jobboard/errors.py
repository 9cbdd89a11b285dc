"""Exception types raised by the job board store."""

from __future__ import annotations


class JobBoardError(Exception):
    """Base class for all job board errors."""


class StorageError(JobBoardError):
    """A durable collection could not be read or written."""


class StoreClosedError(JobBoardError):
    """A mutation was attempted after the store session ended."""


# ---------------------------------------------------------------------------
# Submission rejections
# ---------------------------------------------------------------------------


class SubmissionRejected(JobBoardError):
    """An application or feedback failed a precondition.

    Nothing is written when this is raised.

    Parameters
    ----------
    job_id:
        The job the submission referred to.
    alumni_email:
        The submitting alumni, when known.
    """

    reason = "submission rejected"

    def __init__(self, job_id: str, alumni_email: str = "") -> None:
        self.job_id = job_id
        self.alumni_email = alumni_email
        super().__init__(self._message())

    def _message(self) -> str:
        who = f" ({self.alumni_email})" if self.alumni_email else ""
        return f"{self.reason}: job {self.job_id!r}{who}"


class JobNotFoundError(SubmissionRejected):
    reason = "no such job"


class JobClosedError(SubmissionRejected):
    reason = "job is no longer accepting applications"


class DuplicateApplicationError(SubmissionRejected):
    reason = "already applied to this job"


class DuplicateFeedbackError(SubmissionRejected):
    reason = "feedback already submitted for this job"


class ApplicationRequiredError(SubmissionRejected):
    reason = "feedback requires a prior application to this job"
