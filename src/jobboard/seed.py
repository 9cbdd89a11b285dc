"""Fixed seed set of job listings.

Used to populate the store the first time it runs against empty storage,
and again whenever the store is reinitialised.
"""

from __future__ import annotations

from datetime import datetime, timezone

from jobboard.models import InterviewStatus, Job, JobSource


def _posted(day: int) -> datetime:
    return datetime(2024, 9, day, 9, 0, tzinfo=timezone.utc)


SEED_JOBS: tuple[Job, ...] = (
    Job(
        id="ext-linkedin-1",
        source=JobSource.LINKEDIN,
        title="Frontend Developer",
        company="TechNova",
        description="Build responsive web interfaces for our SaaS dashboard.",
        skills=["React", "TypeScript", "CSS"],
        experience=2,
        openings_total=3,
        openings_left=3,
        posted_by="external",
        source_referral="LI-TN-2024",
        posted_at=_posted(2),
    ),
    Job(
        id="ext-indeed-1",
        source=JobSource.INDEED,
        title="Backend Engineer",
        company="DataBridge",
        description="Design REST APIs and data pipelines in Python.",
        skills=["Python", "Django", "PostgreSQL", "Docker"],
        experience=3,
        openings_total=2,
        openings_left=2,
        posted_by="external",
        source_referral="IN-DB-7781",
        posted_at=_posted(4),
    ),
    Job(
        id="ext-naukri-1",
        source=JobSource.NAUKRI,
        title="Full Stack Developer",
        company="Infosphere",
        description="Own features end to end across a Node and React stack.",
        skills=["Node", "React", "MongoDB"],
        experience=1,
        openings_total=4,
        openings_left=4,
        posted_by="external",
        source_referral="NK-IS-0042",
        posted_at=_posted(6),
    ),
    Job(
        id="ext-glassdoor-1",
        source=JobSource.GLASSDOOR,
        title="Data Analyst",
        company="Quantive",
        description="Turn product data into dashboards and weekly insight reports.",
        skills=["SQL", "Python", "Tableau"],
        experience=0,
        openings_total=1,
        openings_left=1,
        posted_by="external",
        source_referral="GD-QV-5510",
        posted_at=_posted(9),
    ),
    Job(
        id="ext-linkedin-2",
        source=JobSource.LINKEDIN,
        title="DevOps Engineer",
        company="CloudCrest",
        description="Automate infrastructure and keep deployments boring.",
        skills=["AWS", "Kubernetes", "Terraform", "Linux"],
        experience=4,
        openings_total=2,
        openings_left=0,
        filled=2,
        posted_by="external",
        source_referral="LI-CC-3090",
        blocked=True,
        interview_status=InterviewStatus.INTERVIEW_OVER,
        posted_at=_posted(11),
    ),
    Job(
        id="usr-seed-1",
        source=JobSource.USER,
        title="Machine Learning Intern",
        company="TechNova",
        description="Prototype recommendation models with the data science team.",
        skills=["Python", "Machine Learning", "Pandas"],
        experience=0,
        openings_total=2,
        openings_left=2,
        posted_by="Priya Sharma",
        referral_code="TNML2024",
        interview_status=InterviewStatus.IN_PROGRESS,
        posted_at=_posted(14),
    ),
)


def seed_jobs() -> list[Job]:
    """Return a fresh list of the seed jobs, newest first."""
    return sorted(SEED_JOBS, key=lambda j: j.posted_at, reverse=True)
