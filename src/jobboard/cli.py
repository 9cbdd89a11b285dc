"""CLI entry point for the job board.

Registered as the ``jobboard`` console script via pyproject.toml.  Every
command opens the store configured by ``JB_*`` settings, runs, and closes it.

Subcommands
-----------
jobs           List jobs, optionally searched and filtered.
show           Show one job with its applications and feedback.
recommend      Rank jobs against a set of skills.
stats          Print dashboard aggregates.
add-job        Post a new job.
apply          Apply to a job as an alumni.
feedback       Rate a job's company.
applications   List the applications of one alumni.
reset          Restore the seed jobs and drop applications and feedback.

Usage examples
--------------
$ jobboard jobs --open-only --search python
$ jobboard recommend --skill react --skill "node developer" --exclude-blocked
$ jobboard add-job --title "SRE" --company Acme --skill Linux --openings 2
$ jobboard apply usr-seed-1 --email alumni@example.edu
$ jobboard feedback usr-seed-1 --email alumni@example.edu --rating 4 --strict
"""

from __future__ import annotations

import argparse
import logging
import secrets
import sys

from jobboard import __version__

_LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"


# ---------------------------------------------------------------------------
# Parser construction
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser."""
    from jobboard.matching import ExperienceBand
    from jobboard.models import JobSource

    parser = argparse.ArgumentParser(
        prog="jobboard",
        description="Post jobs, match alumni skills, and track applications.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # --- jobs -------------------------------------------------------------
    jobs_parser = subparsers.add_parser("jobs", help="List job openings.")
    jobs_parser.add_argument(
        "--open-only",
        action="store_true",
        default=False,
        help="Hide jobs that no longer accept applications.",
    )
    jobs_parser.add_argument(
        "--search",
        default="",
        metavar="TERM",
        help="Case-insensitive text to look for in title, company, description or skills.",
    )
    jobs_parser.add_argument(
        "--experience",
        choices=[b.value for b in ExperienceBand],
        default=None,
        help="Only show jobs in this experience band.",
    )

    # --- show -------------------------------------------------------------
    show_parser = subparsers.add_parser("show", help="Show one job in detail.")
    show_parser.add_argument("job_id", metavar="JOB_ID")

    # --- recommend --------------------------------------------------------
    rec_parser = subparsers.add_parser(
        "recommend",
        help="Rank jobs by how well they match a set of skills.",
    )
    rec_parser.add_argument(
        "--skill",
        action="append",
        dest="skills",
        metavar="SKILL",
        default=[],
        required=True,
        help="Candidate skill (repeatable).",
    )
    rec_parser.add_argument(
        "--all",
        action="store_true",
        dest="show_all",
        default=False,
        help="Include jobs with a 0%% match.",
    )
    rec_parser.add_argument(
        "--exclude-blocked",
        action="store_true",
        default=False,
        help="Leave out jobs that are blocked.",
    )

    # --- stats ------------------------------------------------------------
    subparsers.add_parser("stats", help="Print dashboard aggregates.")

    # --- add-job ----------------------------------------------------------
    add_parser = subparsers.add_parser("add-job", help="Post a new job opening.")
    add_parser.add_argument("--title", required=True)
    add_parser.add_argument("--company", required=True)
    add_parser.add_argument("--description", default="")
    add_parser.add_argument(
        "--skill",
        action="append",
        dest="skills",
        metavar="SKILL",
        default=[],
        help="Required skill (repeatable).",
    )
    add_parser.add_argument("--experience", type=int, default=0, metavar="YEARS")
    add_parser.add_argument("--openings", type=int, default=1, metavar="N")
    add_parser.add_argument(
        "--source",
        choices=[s.value for s in JobSource],
        default=JobSource.USER.value,
    )
    add_parser.add_argument("--posted-by", default="")
    add_parser.add_argument(
        "--referral-code",
        default=None,
        help="Referral code for applicants (generated for User jobs when omitted).",
    )

    # --- apply ------------------------------------------------------------
    apply_parser = subparsers.add_parser("apply", help="Apply to a job.")
    apply_parser.add_argument("job_id", metavar="JOB_ID")
    apply_parser.add_argument("--email", required=True)
    apply_parser.add_argument(
        "--referral-code",
        default=None,
        help="Code to quote (defaults to the job's own referral code).",
    )

    # --- feedback ---------------------------------------------------------
    fb_parser = subparsers.add_parser("feedback", help="Leave feedback for a job.")
    fb_parser.add_argument("job_id", metavar="JOB_ID")
    fb_parser.add_argument("--email", required=True)
    fb_parser.add_argument("--rating", type=int, choices=range(1, 6), required=True)
    fb_parser.add_argument("--title", default=None)
    fb_parser.add_argument("--comments", default=None)
    fb_parser.add_argument(
        "--strict",
        action="store_true",
        default=False,
        help="Refuse feedback from alumni who never applied to the job.",
    )

    # --- applications -----------------------------------------------------
    apps_parser = subparsers.add_parser(
        "applications", help="List the applications of one alumni."
    )
    apps_parser.add_argument("--email", required=True)

    # --- reset ------------------------------------------------------------
    subparsers.add_parser(
        "reset", help="Restore the seed jobs and drop applications and feedback."
    )

    return parser


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _open_store():
    from jobboard.config import get_settings
    from jobboard.store import JobStore

    return JobStore.from_settings(get_settings())


def cmd_jobs(args: argparse.Namespace) -> int:
    """List jobs, newest first."""
    from jobboard.matching import ExperienceBand, filter_by_experience, search_jobs

    with _open_store() as store:
        jobs = search_jobs(store.jobs, args.search)
        if args.experience:
            jobs = filter_by_experience(jobs, ExperienceBand(args.experience))
        if args.open_only:
            jobs = [j for j in jobs if j.accepting_applications]
    _print_jobs(jobs)
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    from jobboard.analytics import average_rating

    with _open_store() as store:
        job = store.get_job_by_id(args.job_id)
        if job is None:
            print(f"Error: no job with id {args.job_id!r}.")
            return 1
        applications = store.get_applications_for_job(job.id)
        feedbacks = store.get_feedbacks_for_job(job.id)

    state = "blocked" if job.blocked else "accepting applications"
    print(f"{job.title} @ {job.company}  [{job.source.value}]  ({state})")
    print(f"  id:          {job.id}")
    print(f"  posted by:   {job.posted_by or '-'} on {job.posted_at.date()}")
    print(f"  skills:      {', '.join(job.skills) or '-'}")
    print(f"  experience:  {job.experience} year(s)")
    print(f"  openings:    {job.openings_left}/{job.openings_total} left, {job.filled} filled")
    print(f"  interview:   {job.interview_status.value}")
    print(f"  referral:    {job.effective_referral_code or '-'}")
    if job.description:
        print(f"\n  {job.description}")
    print(f"\n  {len(applications)} application(s)")
    for a in applications:
        print(f"    {a.applied_at.date()}  {a.alumni_email}")
    if feedbacks:
        print(
            f"\n  {len(feedbacks)} feedback(s), average {average_rating(feedbacks):.1f}/5"
        )
        for f in feedbacks:
            heading = f" {f.title}" if f.title else ""
            print(f"    {'*' * f.rating:<5}{heading}  ({f.alumni_email})")
            if f.comments:
                print(f"         {f.comments}")
    return 0


def cmd_recommend(args: argparse.Namespace) -> int:
    """Print jobs ranked by match score."""
    from jobboard.matching import rank_jobs

    with _open_store() as store:
        matches = rank_jobs(
            store.jobs,
            args.skills,
            exclude_blocked=args.exclude_blocked,
            show_all=args.show_all,
        )

    if not matches:
        print("No jobs match the given skills.")
        return 0

    print(f"\nFound {len(matches)} matching job(s):\n")
    for i, m in enumerate(matches, start=1):
        flag = "  (blocked)" if m.job.blocked else ""
        print(f"  {i:<3}  {m.score:>3}%  {m.job.title} @ {m.job.company}{flag}")
        print(f"       id: {m.job.id}   matched: {', '.join(m.matched_skills) or '-'}")
    return 0


def cmd_stats(_args: argparse.Namespace) -> int:
    from jobboard.analytics import summarize

    with _open_store() as store:
        summary = summarize(store.jobs, store.applications, store.feedbacks)

    print(
        f"Jobs: {summary.jobs.total} total, {summary.jobs.open} open, "
        f"{summary.jobs.closed} closed"
    )
    print(f"Applications: {summary.total_applications}")
    print(f"Average rating: {summary.average_rating:.1f}")
    if summary.sources:
        print("\nBy source:")
        for source, n in summary.sources.items():
            print(f"  {source.value:<10} {n}")
    if summary.company_ratings:
        print("\nCompany ratings:")
        for company, rating in summary.company_ratings.items():
            print(f"  {company:<25} {rating.average_rating:.1f}  ({rating.count})")
    return 0


def cmd_add_job(args: argparse.Namespace) -> int:
    from pydantic import ValidationError

    from jobboard.models import JobSource, NewJob

    source = JobSource(args.source)
    referral = args.referral_code
    if referral is None and source == JobSource.USER:
        referral = secrets.token_hex(4).upper()

    try:
        draft = NewJob(
            source=source,
            title=args.title,
            company=args.company,
            description=args.description,
            skills=args.skills,
            experience=args.experience,
            openings_total=args.openings,
            posted_by=args.posted_by,
            referral_code=referral if source == JobSource.USER else None,
            source_referral=referral if source != JobSource.USER else None,
        )
    except ValidationError as exc:
        print(f"Error: invalid job: {exc.errors()[0]['msg']}")
        return 1

    with _open_store() as store:
        job = store.add_job(draft)
    print(f"Posted {job.title} @ {job.company} as {job.id}")
    if job.effective_referral_code:
        print(f"Referral code: {job.effective_referral_code}")
    return 0


def cmd_apply(args: argparse.Namespace) -> int:
    from jobboard.errors import SubmissionRejected
    from jobboard.models import NewApplication

    with _open_store() as store:
        job = store.get_job_by_id(args.job_id)
        code = args.referral_code
        if code is None and job is not None:
            code = job.effective_referral_code
        try:
            application = store.apply_to_job(
                NewApplication(
                    job_id=args.job_id,
                    alumni_email=args.email,
                    referral_code_used=code,
                )
            )
        except SubmissionRejected as exc:
            print(f"Error: {exc}")
            return 1
        job = store.get_job_by_id(args.job_id)

    print(f"Applied to {job.title} @ {job.company} ({application.id}).")
    print(f"{job.openings_left} of {job.openings_total} opening(s) left.")
    return 0


def cmd_feedback(args: argparse.Namespace) -> int:
    from jobboard.errors import SubmissionRejected
    from jobboard.models import NewFeedback

    with _open_store() as store:
        try:
            feedback = store.add_feedback(
                NewFeedback(
                    job_id=args.job_id,
                    alumni_email=args.email,
                    rating=args.rating,
                    title=args.title,
                    comments=args.comments,
                ),
                require_application=args.strict,
            )
        except SubmissionRejected as exc:
            print(f"Error: {exc}")
            return 1

    print(f"Feedback recorded ({feedback.id}).")
    return 0


def cmd_applications(args: argparse.Namespace) -> int:
    with _open_store() as store:
        applications = store.get_user_applications(args.email)
        rows = [(a, store.get_job_by_id(a.job_id)) for a in applications]

    if not rows:
        print(f"No applications for {args.email}.")
        return 0

    for a, job in rows:
        label = f"{job.title} @ {job.company}" if job else f"(unknown job {a.job_id})"
        print(f"  {a.applied_at.date()}  {label}  code: {a.referral_code_used or '-'}")
    return 0


def cmd_reset(_args: argparse.Namespace) -> int:
    with _open_store() as store:
        store.reinitialize()
        n = len(store.jobs)
    print(f"Store reset: {n} seed job(s), no applications or feedback.")
    return 0


def _print_jobs(jobs: list) -> None:
    """Print a human-readable table of jobs."""
    if not jobs:
        print("No jobs matched the given filters.")
        return

    print(f"\nFound {len(jobs)} job(s):\n")
    header = f"  {'#':<3}  {'Source':<10}  {'Title':<32}  {'Company':<20}  {'Open':<7}  Status"
    print(header)
    print("  " + "-" * (len(header) - 2))

    for i, j in enumerate(jobs, start=1):
        title = (j.title[:30] + "..") if len(j.title) > 32 else j.title
        company = (j.company[:18] + "..") if len(j.company) > 20 else j.company
        openings = f"{j.openings_left}/{j.openings_total}"
        status = "blocked" if j.blocked else j.interview_status.value
        print(
            f"  {i:<3}  {j.source.value:<10}  {title:<32}  {company:<20}  {openings:<7}  {status}"
        )
        print(f"       {j.id}")


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

_HANDLERS = {
    "jobs": cmd_jobs,
    "show": cmd_show,
    "recommend": cmd_recommend,
    "stats": cmd_stats,
    "add-job": cmd_add_job,
    "apply": cmd_apply,
    "feedback": cmd_feedback,
    "applications": cmd_applications,
    "reset": cmd_reset,
}


def _configure_logging() -> None:
    from jobboard.config import get_settings

    level = getattr(logging, get_settings().log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def main(argv: list[str] | None = None) -> None:
    """Parse *argv* and dispatch to the appropriate command handler."""
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = _HANDLERS.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(0)

    _configure_logging()
    sys.exit(handler(args))


if __name__ == "__main__":
    main()
