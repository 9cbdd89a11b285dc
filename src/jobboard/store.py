"""In-memory job board state mirrored to durable storage.

:class:`JobStore` owns the three collections (jobs, applications,
feedbacks) for one application session.  Every mutation updates the
in-memory list and then writes the whole affected collection back through
the storage adapter, so storage always holds the latest state.

Initialisation
--------------
* ``jobs`` is loaded from storage; when absent (or unreadable) the seed set
  is used and written back immediately.
* ``applications`` and ``feedbacks`` are loaded from storage; when absent
  they start empty.  They have no seed fallback.
* An unreadable collection is moved to ``<key>.corrupt`` and invalid
  records are copied to ``<key>.rejected``, so the next write never
  overwrites the only copy.

Submission rules
----------------
At most one application and one feedback per (job, alumni email) pair.
The store checks this itself and raises a
:class:`~jobboard.errors.SubmissionRejected` subclass without touching any
state when a submission is refused.

Typical usage
-------------
>>> with JobStore(MemoryStorage()) as store:
...     job = store.add_job(NewJob(title="SRE", company="Acme", openings_total=1))
...     store.apply_to_job(NewApplication(job_id=job.id, alumni_email="a@b.c"))
...     store.get_job_by_id(job.id).blocked
True
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Callable, Iterable, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from jobboard.errors import (
    ApplicationRequiredError,
    DuplicateApplicationError,
    DuplicateFeedbackError,
    JobClosedError,
    JobNotFoundError,
    StorageError,
    StoreClosedError,
)
from jobboard.models import (
    Application,
    Feedback,
    InterviewStatus,
    Job,
    NewApplication,
    NewFeedback,
    NewJob,
)
from jobboard.seed import seed_jobs
from jobboard.storage import MemoryStorage, build_storage

if TYPE_CHECKING:
    from jobboard.config import Settings
    from jobboard.storage import Storage

logger = logging.getLogger(__name__)

JOBS_KEY = "jobs"
APPLICATIONS_KEY = "applications"
FEEDBACKS_KEY = "feedbacks"

_JOB_FIELDS: frozenset[str] = frozenset(Job.model_fields) - {"id"}

R = TypeVar("R", bound=BaseModel)


def random_id(prefix: str) -> str:
    """Return ``<prefix>-<32 hex chars>`` from a random UUID."""
    return f"{prefix}-{uuid.uuid4().hex}"


def _same_email(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


class JobStore:
    """Session-scoped owner of jobs, applications and feedbacks.

    Parameters
    ----------
    storage:
        Durable key-value adapter (``MemoryStorage`` or ``JsonFileStorage``).
    seed:
        Jobs used when storage holds no ``jobs`` collection, and on
        :meth:`reinitialize`.  Defaults to :func:`~jobboard.seed.seed_jobs`.
    id_factory:
        Callable taking an id prefix (``"job"``, ``"app"``, ``"fb"``) and
        returning a new id.  Defaults to :func:`random_id`.  Override in
        tests for predictable ids.
    """

    def __init__(
        self,
        storage: Storage,
        *,
        seed: Iterable[Job] | None = None,
        id_factory: Callable[[str], str] = random_id,
    ) -> None:
        self._storage = storage
        self._seed: list[Job] = list(seed) if seed is not None else seed_jobs()
        self._new_id = id_factory
        self._closed = False

        self._jobs: list[Job] = []
        self._applications: list[Application] = []
        self._feedbacks: list[Feedback] = []
        self._load()

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "JobStore":
        """Open a store on the storage back end selected by *settings*."""
        return cls(build_storage(settings), **kwargs)

    @classmethod
    def in_memory(cls, **kwargs) -> "JobStore":
        return cls(MemoryStorage(), **kwargs)

    # ------------------------------------------------------------------
    # Session boundary
    # ------------------------------------------------------------------

    def __enter__(self) -> "JobStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """End the session.  Reads keep working; mutations raise."""
        self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError("job store session has been closed")

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    @property
    def jobs(self) -> tuple[Job, ...]:
        """All jobs, newest first."""
        return tuple(self._jobs)

    @property
    def applications(self) -> tuple[Application, ...]:
        return tuple(self._applications)

    @property
    def feedbacks(self) -> tuple[Feedback, ...]:
        return tuple(self._feedbacks)

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def add_job(self, draft: NewJob) -> Job:
        """Store *draft* under a fresh id and place it first in the list."""
        self._ensure_open()
        job = Job.model_validate(
            {**draft.model_dump(), "id": self._fresh_id("job", self._jobs)}
        )
        self._jobs.insert(0, job)
        self._save_jobs()
        logger.debug("Added job %s: %s @ %s", job.id, job.title, job.company)
        return job

    def update_job(self, job_id: str, **changes) -> Optional[Job]:
        """Merge *changes* into the job with *job_id*.

        Fields not named in *changes* keep their values, except that a job
        left with no openings is always blocked.  Returns the updated job, or
        ``None`` (without writing anything) when no job has that id.

        Raises
        ------
        ValueError
            If *changes* tries to set ``id`` or names an unknown field.
        pydantic.ValidationError
            If the merged job is invalid (e.g. ``openings_left`` out of range).
        """
        self._ensure_open()
        if "id" in changes:
            raise ValueError("job id cannot be changed")
        unknown = set(changes) - _JOB_FIELDS
        if unknown:
            raise ValueError(f"unknown job field(s): {', '.join(sorted(unknown))}")

        idx = self._job_index(job_id)
        if idx is None:
            logger.debug("update_job: no job with id %s", job_id)
            return None

        updated = Job.model_validate({**self._jobs[idx].model_dump(), **changes})
        self._jobs[idx] = updated
        self._save_jobs()
        logger.debug("Updated job %s: %s", job_id, sorted(changes))
        return updated

    def close_job(self, job_id: str) -> Optional[Job]:
        """Stop accepting applications without touching the openings count."""
        return self.update_job(job_id, blocked=True)

    def mark_filled(self, job_id: str) -> Optional[Job]:
        """Record that every opening has been filled."""
        return self.update_job(job_id, openings_left=0, blocked=True)

    def set_openings_left(self, job_id: str, openings_left: int) -> Optional[Job]:
        """Set the remaining openings by hand; the job is blocked exactly at zero.

        Raises
        ------
        ValueError
            If *openings_left* is outside ``[0, openings_total]``.
        """
        job = self.get_job_by_id(job_id)
        if job is None:
            return None
        if not 0 <= openings_left <= job.openings_total:
            raise ValueError(
                f"openings_left must be between 0 and {job.openings_total}"
            )
        return self.update_job(
            job_id, openings_left=openings_left, blocked=openings_left == 0
        )

    def set_interview_status(
        self,
        job_id: str,
        status: InterviewStatus,
        *,
        hires_met: bool | None = None,
    ) -> Optional[Job]:
        """Move a job through its interview stages.

        When the status becomes ``Interview Over``, *hires_met* decides what
        happens to the job: ``True`` closes it, ``False`` reopens it for new
        applications, ``None`` only records the status.
        """
        status = InterviewStatus(status)
        changes: dict = {"interview_status": status}
        if status == InterviewStatus.INTERVIEW_OVER and hires_met is not None:
            changes["blocked"] = hires_met
        return self.update_job(job_id, **changes)

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------

    def apply_to_job(self, draft: NewApplication) -> Application:
        """Record an application and take one opening from the job.

        The job's ``openings_left`` drops by one (never below zero) and the
        job becomes blocked when it reaches zero.  Applications are written
        before jobs.

        Raises
        ------
        JobNotFoundError
            No job has ``draft.job_id``.
        DuplicateApplicationError
            This email already applied to the job.
        JobClosedError
            The job is blocked or has no openings left.
        """
        self._ensure_open()
        idx = self._job_index(draft.job_id)
        if idx is None:
            raise JobNotFoundError(draft.job_id, draft.alumni_email)
        job = self._jobs[idx]
        if self.has_applied(job.id, draft.alumni_email):
            raise DuplicateApplicationError(job.id, draft.alumni_email)
        if not job.accepting_applications:
            raise JobClosedError(job.id, draft.alumni_email)

        application = Application.model_validate(
            {**draft.model_dump(), "id": self._fresh_id("app", self._applications)}
        )
        self._applications.append(application)
        self._save_applications()

        left = max(0, job.openings_left - 1)
        self._jobs[idx] = job.model_copy(
            update={"openings_left": left, "blocked": left == 0}
        )
        self._save_jobs()
        logger.debug(
            "Application %s: %s -> %s (%d opening(s) left)",
            application.id,
            application.alumni_email,
            job.id,
            left,
        )
        return application

    def has_applied(self, job_id: str, alumni_email: str) -> bool:
        return any(
            a.job_id == job_id and _same_email(a.alumni_email, alumni_email)
            for a in self._applications
        )

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def add_feedback(
        self,
        draft: NewFeedback,
        *,
        require_application: bool = False,
    ) -> Feedback:
        """Record a rating for a job.

        Parameters
        ----------
        draft:
            The feedback to store.
        require_application:
            When *True*, only alumni who applied to the job may leave
            feedback.

        Raises
        ------
        JobNotFoundError
            No job has ``draft.job_id``.
        ApplicationRequiredError
            *require_application* is set and the alumni never applied.
        DuplicateFeedbackError
            This email already left feedback for the job.
        """
        self._ensure_open()
        if self._job_index(draft.job_id) is None:
            raise JobNotFoundError(draft.job_id, draft.alumni_email)
        if require_application and not self.has_applied(
            draft.job_id, draft.alumni_email
        ):
            raise ApplicationRequiredError(draft.job_id, draft.alumni_email)
        if self.has_left_feedback(draft.job_id, draft.alumni_email):
            raise DuplicateFeedbackError(draft.job_id, draft.alumni_email)

        feedback = Feedback.model_validate(
            {**draft.model_dump(), "id": self._fresh_id("fb", self._feedbacks)}
        )
        self._feedbacks.append(feedback)
        self._save_feedbacks()
        logger.debug(
            "Feedback %s: %s rated %s %d/5",
            feedback.id,
            feedback.alumni_email,
            feedback.job_id,
            feedback.rating,
        )
        return feedback

    def has_left_feedback(self, job_id: str, alumni_email: str) -> bool:
        return any(
            f.job_id == job_id and _same_email(f.alumni_email, alumni_email)
            for f in self._feedbacks
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_job_by_id(self, job_id: str) -> Optional[Job]:
        idx = self._job_index(job_id)
        return None if idx is None else self._jobs[idx]

    def get_applications_for_job(self, job_id: str) -> list[Application]:
        return [a for a in self._applications if a.job_id == job_id]

    def get_feedbacks_for_job(self, job_id: str) -> list[Feedback]:
        return [f for f in self._feedbacks if f.job_id == job_id]

    def get_user_applications(self, alumni_email: str) -> list[Application]:
        """Applications submitted by *alumni_email* (case-insensitive)."""
        return [
            a for a in self._applications if _same_email(a.alumni_email, alumni_email)
        ]

    # ------------------------------------------------------------------
    # Whole-store operations
    # ------------------------------------------------------------------

    def reinitialize(self) -> None:
        """Reset jobs to the seed set and drop all applications and feedback."""
        self._ensure_open()
        self._jobs = list(self._seed)
        self._applications = []
        self._feedbacks = []
        self._save_jobs()
        self._storage.remove(APPLICATIONS_KEY)
        self._storage.remove(FEEDBACKS_KEY)
        logger.info("Store reinitialised with %d seed job(s)", len(self._jobs))

    def persist(self) -> None:
        """Write all three collections to storage."""
        self._save_jobs()
        self._save_applications()
        self._save_feedbacks()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self) -> None:
        jobs = self._load_collection(JOBS_KEY, Job)
        if jobs is None:
            self._jobs = list(self._seed)
            self._save_jobs()
            logger.info("No stored jobs found; seeded %d job(s)", len(self._jobs))
        else:
            self._jobs = jobs
        self._applications = self._load_collection(APPLICATIONS_KEY, Application) or []
        self._feedbacks = self._load_collection(FEEDBACKS_KEY, Feedback) or []
        logger.debug(
            "Loaded %d job(s), %d application(s), %d feedback(s)",
            len(self._jobs),
            len(self._applications),
            len(self._feedbacks),
        )

    def _load_collection(self, key: str, model: type[R]) -> Optional[list[R]]:
        """Return the records under *key*, or ``None`` if absent or unreadable.

        Nothing stored is thrown away:

        * an unreadable collection is moved to ``<key>.corrupt`` before it is
          treated as absent;
        * records that fail validation are skipped, copied to
          ``<key>.rejected`` and dropped from *key*.

        When the target key is taken, ``-1``, ``-2`` ... is appended.
        """
        try:
            raw = self._storage.load(key)
        except StorageError as exc:
            logger.warning("Ignoring stored %s: %s", key, exc)
            self._set_aside(key)
            return None
        if raw is None:
            return None
        if not isinstance(raw, list):
            logger.warning(
                "Ignoring stored %s: expected a list, found %s", key, type(raw).__name__
            )
            self._set_aside(key)
            return None

        records: list[R] = []
        rejected: list = []
        for i, item in enumerate(raw):
            try:
                records.append(model.model_validate(item))
            except ValidationError as exc:
                logger.warning(
                    "Skipping invalid %s record #%d: %s", key, i, exc.errors()[0]["msg"]
                )
                rejected.append(item)
        if rejected:
            target = self._free_key(f"{key}.rejected")
            self._storage.save(target, rejected)
            self._storage.save(key, [r.to_json() for r in records])
            logger.warning("Kept %d invalid %s record(s) in %s", len(rejected), key, target)
        return records

    def _set_aside(self, key: str) -> None:
        target = self._free_key(f"{key}.corrupt")
        self._storage.rename(key, target)
        logger.warning("Moved unreadable %s to %s", key, target)

    def _free_key(self, base: str) -> str:
        candidate, n = base, 0
        while self._storage.exists(candidate):
            n += 1
            candidate = f"{base}-{n}"
        return candidate

    def _save_jobs(self) -> None:
        self._storage.save(JOBS_KEY, [j.to_json() for j in self._jobs])

    def _save_applications(self) -> None:
        self._storage.save(APPLICATIONS_KEY, [a.to_json() for a in self._applications])

    def _save_feedbacks(self) -> None:
        self._storage.save(FEEDBACKS_KEY, [f.to_json() for f in self._feedbacks])

    def _job_index(self, job_id: str) -> Optional[int]:
        for i, job in enumerate(self._jobs):
            if job.id == job_id:
                return i
        return None

    def _fresh_id(self, prefix: str, records: Iterable) -> str:
        taken = {r.id for r in records}
        new_id = self._new_id(prefix)
        while new_id in taken:
            logger.debug("Id collision on %s; drawing again", new_id)
            new_id = self._new_id(prefix)
        return new_id
