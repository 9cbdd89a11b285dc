"""Core data models for the job board.

Three record types are persisted: :class:`Job`, :class:`Application` and
:class:`Feedback`.  Each has a matching *draft* model (``NewJob``,
``NewApplication``, ``NewFeedback``) carrying every field except ``id``;
the store assigns the identifier when the draft is added.

Attribute names are snake_case.  The stored JSON form uses camelCase keys
(``openingsTotal``, ``jobId``, ``alumniEmail`` ...) and either spelling is
accepted on input.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobSource(str, Enum):
    """Where a job listing came from.

    External sources are read-only listings; ``USER`` jobs are posted and
    managed locally.
    """

    LINKEDIN = "LinkedIn"
    INDEED = "Indeed"
    NAUKRI = "Naukri"
    GLASSDOOR = "Glassdoor"
    USER = "User"


class InterviewStatus(str, Enum):
    """Hiring progress of a job."""

    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    INTERVIEW_OVER = "Interview Over"


class _Record(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json(self) -> dict:
        """Return the camelCase, JSON-safe form used for storage."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


class NewJob(_Record):
    """A job opening before it has been given an id.

    Fields
    ------
    source:            Listing origin (see :class:`JobSource`).
    title:             Role title.
    company:           Hiring company name.
    description:       Free-text description.
    skills:            Required competencies (a tuple); order is irrelevant to matching.
    experience:        Years of experience required.
    openings_total:    Number of positions, fixed at creation.
    openings_left:     Positions still open.  Defaults to ``openings_total``.
    filled:            Confirmed hires.
    posted_by:         Display name or email of the poster.
    referral_code:     Code for locally posted jobs.
    source_referral:   Code carried by external listings.
    blocked:           True once the job stops accepting applications.
    interview_status:  Hiring progress.
    posted_at:         Creation timestamp.
    """

    source: JobSource = JobSource.USER
    title: str
    company: str
    description: str = ""
    skills: tuple[str, ...] = Field(default_factory=tuple)
    experience: int = Field(default=0, ge=0)
    openings_total: int = Field(default=1, ge=1)
    openings_left: Optional[int] = None
    filled: int = Field(default=0, ge=0)
    posted_by: str = ""
    referral_code: Optional[str] = None
    source_referral: Optional[str] = None
    blocked: bool = False
    interview_status: InterviewStatus = InterviewStatus.OPEN
    posted_at: datetime = Field(default_factory=utcnow)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("title", "company", mode="before")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v

    @field_validator("skills", mode="before")
    @classmethod
    def _clean_skills(cls, v: list[str]) -> tuple[str, ...]:
        if not isinstance(v, (list, tuple)):
            return v
        return tuple(s.strip() for s in v if isinstance(s, str) and s.strip())

    @model_validator(mode="after")
    def _check_openings(self) -> "NewJob":
        """Default ``openings_left`` and enforce the blocking rule.

        ``openings_left`` must lie in ``[0, openings_total]``.  A job with
        no openings left is always blocked; the reverse does not hold, a job
        can be closed by hand while openings remain.
        """
        if self.openings_left is None:
            object.__setattr__(self, "openings_left", self.openings_total)
        if not 0 <= self.openings_left <= self.openings_total:
            raise ValueError(
                f"openings_left must be between 0 and {self.openings_total}, "
                f"got {self.openings_left}"
            )
        if self.openings_left == 0 and not self.blocked:
            object.__setattr__(self, "blocked", True)
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def effective_referral_code(self) -> Optional[str]:
        """The code an applicant should use: local code first, then the source's."""
        return self.referral_code or self.source_referral

    @property
    def accepting_applications(self) -> bool:
        return not self.blocked and self.openings_left > 0


class Job(NewJob):
    """A stored job opening."""

    id: str


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------


class NewApplication(_Record):
    job_id: str
    alumni_email: str
    referral_code_used: Optional[str] = None
    applied_at: datetime = Field(default_factory=utcnow)

    @field_validator("alumni_email", mode="before")
    @classmethod
    def _strip_email(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v

    @field_validator("referral_code_used", mode="before")
    @classmethod
    def _blank_code(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class Application(NewApplication):
    """A stored application of one alumni to one job."""

    id: str


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------


class NewFeedback(_Record):
    """Post-process rating of a job's company by an alumni.

    ``rating`` is a whole number of stars between 1 and 5.  Blank ``title``
    and ``comments`` are stored as absent.
    """

    job_id: str
    alumni_email: str
    rating: int = Field(ge=1, le=5)
    title: Optional[str] = None
    comments: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("alumni_email", mode="before")
    @classmethod
    def _strip_email(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v

    @field_validator("title", "comments", mode="before")
    @classmethod
    def _blank_text(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class Feedback(NewFeedback):
    """A stored feedback entry."""

    id: str
