"""Dashboard aggregates computed from a store snapshot.

Everything here is a pure function of the collections passed in.  Nothing
is cached; each call walks the lists again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from jobboard.models import Application, Feedback, Job, JobSource


@dataclass(frozen=True)
class JobCounts:
    total: int
    open: int
    closed: int


@dataclass(frozen=True)
class CompanyRating:
    average_rating: float
    count: int


def is_open(job: Job) -> bool:
    """A job is open while it is not blocked and still short of hires."""
    return not job.blocked and job.filled < job.openings_total


def counts(jobs: Iterable[Job]) -> JobCounts:
    """Count all, open and closed jobs (see :func:`is_open`)."""
    total = open_ = 0
    for job in jobs:
        total += 1
        if is_open(job):
            open_ += 1
    return JobCounts(total=total, open=open_, closed=total - open_)


def average_rating(feedbacks: Iterable[Feedback]) -> float:
    """Mean star rating, or ``0.0`` when there is no feedback."""
    ratings = [f.rating for f in feedbacks]
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings)


def ratings_by_company(
    jobs: Iterable[Job], feedbacks: Iterable[Feedback]
) -> dict[str, CompanyRating]:
    """Average rating and feedback count per company.

    Feedback is attributed to the company of the job it refers to.  Entries
    for unknown jobs are ignored.  Companies appear in the order their first
    feedback was seen.
    """
    company_of = {j.id: j.company for j in jobs}
    totals: dict[str, list[int]] = {}
    for fb in feedbacks:
        company = company_of.get(fb.job_id)
        if company is None:
            continue
        totals.setdefault(company, []).append(fb.rating)
    return {
        company: CompanyRating(average_rating=sum(r) / len(r), count=len(r))
        for company, r in totals.items()
    }


def source_distribution(jobs: Iterable[Job]) -> dict[JobSource, int]:
    """Number of jobs per listing source.  Sources with no jobs are omitted."""
    dist: dict[JobSource, int] = {}
    for job in jobs:
        dist[job.source] = dist.get(job.source, 0) + 1
    return dist


def rating_distribution(feedbacks: Iterable[Feedback]) -> dict[int, int]:
    """Number of feedback entries for each star value 1 to 5."""
    dist = {star: 0 for star in range(1, 6)}
    for fb in feedbacks:
        dist[fb.rating] += 1
    return dist


# ---------------------------------------------------------------------------
# Dashboard summary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DashboardSummary:
    """Everything the admin dashboard shows, computed in one pass."""

    jobs: JobCounts
    total_applications: int
    average_rating: float
    company_ratings: dict[str, CompanyRating] = field(default_factory=dict)
    sources: dict[JobSource, int] = field(default_factory=dict)


def summarize(
    jobs: Sequence[Job],
    applications: Sequence[Application],
    feedbacks: Sequence[Feedback],
) -> DashboardSummary:
    return DashboardSummary(
        jobs=counts(jobs),
        total_applications=len(applications),
        average_rating=average_rating(feedbacks),
        company_ratings=ratings_by_company(jobs, feedbacks),
        sources=source_distribution(jobs),
    )
