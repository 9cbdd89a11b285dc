"""Skill matching between an alumni profile and job listings.

Matching rule
-------------
Comparison is case-insensitive.  A job skill counts as *matched* when it
is a substring of some candidate skill, or some candidate skill is a
substring of it.  So ``"React"`` is matched by ``"react developer"`` and
``"Machine Learning"`` is matched by ``"learning"``.

Blank skills are ignored on both sides; otherwise an empty candidate skill
would be a substring of every job skill.

Score
-----
``round(100 * matched / total)`` with halves rounded up.  A job that
requires no skills scores 0.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

from jobboard.models import Job


def _normalise(skills: Iterable[str]) -> list[str]:
    return [s.strip().lower() for s in skills if s and s.strip()]


def _skill_matches(job_skill: str, candidate: list[str]) -> bool:
    return any(job_skill in c or c in job_skill for c in candidate)


def matched_skills(
    job_skills: Sequence[str], candidate_skills: Sequence[str]
) -> list[str]:
    """Return the job skills satisfied by *candidate_skills*, in job order.

    The original spelling of each job skill is preserved.
    """
    candidate = _normalise(candidate_skills)
    if not candidate:
        return []
    return [
        s
        for s in job_skills
        if s and s.strip() and _skill_matches(s.strip().lower(), candidate)
    ]


def match_score(job_skills: Sequence[str], candidate_skills: Sequence[str]) -> int:
    """Return the percentage (0-100) of *job_skills* covered by *candidate_skills*.

    Examples
    --------
    >>> match_score(["React", "Node"], ["react developer"])
    50
    >>> match_score([], ["anything"])
    0
    """
    total = len(_normalise(job_skills))
    if total == 0:
        return 0
    matched = len(matched_skills(job_skills, candidate_skills))
    # Integer half-up rounding of 100 * matched / total.
    return (200 * matched + total) // (2 * total)


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class JobMatch:
    """A job paired with how well a candidate fits it."""

    job: Job
    score: int
    matched_skills: tuple[str, ...] = field(default_factory=tuple)


def rank_jobs(
    jobs: Iterable[Job],
    candidate_skills: Sequence[str],
    *,
    exclude_blocked: bool = False,
    show_all: bool = False,
) -> list[JobMatch]:
    """Score every job and return matches best first.

    Parameters
    ----------
    jobs:
        Jobs to consider.
    candidate_skills:
        The alumni's skills.
    exclude_blocked:
        Drop jobs that are blocked.
    show_all:
        Keep jobs scoring 0 as well.  By default only jobs with a positive
        score are returned.

    Jobs with equal scores keep their input order.
    """
    results: list[JobMatch] = []
    for job in jobs:
        if exclude_blocked and job.blocked:
            continue
        hits = matched_skills(job.skills, candidate_skills)
        score = match_score(job.skills, candidate_skills)
        if score > 0 or show_all:
            results.append(JobMatch(job=job, score=score, matched_skills=tuple(hits)))
    # list.sort is stable, so ties keep input order
    results.sort(key=lambda m: m.score, reverse=True)
    return results


def filter_by_skill_match(
    jobs: Iterable[Job],
    candidate_skills: Sequence[str],
    exclude_blocked: bool = False,
    *,
    show_all: bool = False,
) -> list[Job]:
    """Return the jobs of :func:`rank_jobs`, highest score first."""
    return [
        m.job
        for m in rank_jobs(
            jobs, candidate_skills, exclude_blocked=exclude_blocked, show_all=show_all
        )
    ]


# ---------------------------------------------------------------------------
# Browsing filters
# ---------------------------------------------------------------------------


def search_jobs(jobs: Iterable[Job], term: str) -> list[Job]:
    """Return jobs whose title, company, description or a skill contains *term*.

    Case-insensitive.  A blank *term* returns every job.
    """
    needle = term.strip().lower()
    if not needle:
        return list(jobs)
    return [
        j
        for j in jobs
        if needle in j.title.lower()
        or needle in j.company.lower()
        or needle in j.description.lower()
        or any(needle in s.lower() for s in j.skills)
    ]


class ExperienceBand(str, Enum):
    """Coarse experience levels used to browse listings."""

    FRESHER = "fresher"
    JUNIOR = "junior"
    MID = "mid"
    SENIOR = "senior"

    @property
    def years(self) -> range:
        return _BAND_YEARS[self]


# SENIOR has no upper bound; its range only caps what ``years`` can list.
_BAND_YEARS: dict[ExperienceBand, range] = {
    ExperienceBand.FRESHER: range(0, 1),
    ExperienceBand.JUNIOR: range(1, 3),
    ExperienceBand.MID: range(3, 6),
    ExperienceBand.SENIOR: range(6, sys.maxsize),
}


def experience_band(years: int) -> ExperienceBand:
    """Return the band containing *years*.  Anything from 6 up is SENIOR."""
    if years < 0:
        raise ValueError(f"experience must be non-negative, got {years}")
    if years >= _BAND_YEARS[ExperienceBand.SENIOR].start:
        return ExperienceBand.SENIOR
    return next(band for band, span in _BAND_YEARS.items() if years in span)


def filter_by_experience(jobs: Iterable[Job], band: ExperienceBand) -> list[Job]:
    band = ExperienceBand(band)
    return [j for j in jobs if experience_band(j.experience) == band]
