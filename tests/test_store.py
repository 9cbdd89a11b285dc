"""Unit tests for jobboard.store.

All tests run against MemoryStorage (or JsonFileStorage under tmp_path)
with a counter-based id factory so ids are predictable.
"""

from __future__ import annotations

import itertools
import json

import pytest
from pydantic import ValidationError

from jobboard.errors import (
    ApplicationRequiredError,
    DuplicateApplicationError,
    DuplicateFeedbackError,
    JobClosedError,
    JobNotFoundError,
    StoreClosedError,
    SubmissionRejected,
)
from jobboard.models import (
    InterviewStatus,
    Job,
    JobSource,
    NewApplication,
    NewFeedback,
    NewJob,
)
from jobboard.seed import SEED_JOBS
from jobboard.storage import JsonFileStorage, MemoryStorage
from jobboard.store import (
    APPLICATIONS_KEY,
    FEEDBACKS_KEY,
    JOBS_KEY,
    JobStore,
    random_id,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _counter_ids():
    counter = itertools.count(1)
    return lambda prefix: f"{prefix}-{next(counter)}"


def _seed_job(job_id: str = "seed-1", **kwargs) -> Job:
    defaults = {
        "id": job_id,
        "source": JobSource.LINKEDIN,
        "title": "Frontend Developer",
        "company": "TechNova",
        "skills": ["React"],
        "openings_total": 2,
        "source_referral": "LI-1",
    }
    defaults.update(kwargs)
    return Job(**defaults)


def _store(storage=None, seed=None) -> JobStore:
    return JobStore(
        storage if storage is not None else MemoryStorage(),
        seed=seed if seed is not None else [_seed_job()],
        id_factory=_counter_ids(),
    )


def _draft(**kwargs) -> NewJob:
    defaults = {"title": "Data Analyst", "company": "Quantive", "openings_total": 1}
    defaults.update(kwargs)
    return NewJob(**defaults)


def _apply(store: JobStore, job_id: str, email: str = "alumni@uni.edu", **kwargs):
    return store.apply_to_job(NewApplication(job_id=job_id, alumni_email=email, **kwargs))


def _feedback(store: JobStore, job_id: str, email: str = "alumni@uni.edu", rating: int = 4, **kwargs):
    return store.add_feedback(
        NewFeedback(job_id=job_id, alumni_email=email, rating=rating),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Initialisation
# ---------------------------------------------------------------------------


class TestInitialisation:
    def test_empty_storage_seeds_jobs(self):
        store = _store()
        assert [j.id for j in store.jobs] == ["seed-1"]

    def test_seed_is_persisted(self):
        storage = MemoryStorage()
        _store(storage)
        assert [j["id"] for j in storage.load(JOBS_KEY)] == ["seed-1"]

    def test_empty_storage_has_no_applications_or_feedback(self):
        store = _store()
        assert store.applications == ()
        assert store.feedbacks == ()

    def test_applications_not_written_at_startup(self):
        storage = MemoryStorage()
        _store(storage)
        assert storage.load(APPLICATIONS_KEY) is None

    def test_stored_jobs_take_precedence_over_seed(self):
        storage = MemoryStorage()
        storage.save(JOBS_KEY, [_seed_job("stored").to_json()])
        assert [j.id for j in _store(storage).jobs] == ["stored"]

    def test_stored_empty_job_list_is_not_reseeded(self):
        storage = MemoryStorage()
        storage.save(JOBS_KEY, [])
        assert _store(storage).jobs == ()

    def test_default_seed_used_when_none_given(self):
        store = JobStore(MemoryStorage())
        assert {j.id for j in store.jobs} == {j.id for j in SEED_JOBS}

    def test_corrupt_jobs_reseeded(self, caplog):
        storage = MemoryStorage({JOBS_KEY: "not json"})
        store = _store(storage)
        assert [j.id for j in store.jobs] == ["seed-1"]
        assert "Ignoring stored jobs" in caplog.text

    def test_corrupt_applications_start_empty(self):
        storage = MemoryStorage({APPLICATIONS_KEY: "{"})
        assert _store(storage).applications == ()

    def test_non_list_collection_ignored(self):
        storage = MemoryStorage()
        storage.save(FEEDBACKS_KEY, {"oops": 1})
        assert _store(storage).feedbacks == ()

    def test_invalid_record_skipped(self, caplog):
        storage = MemoryStorage()
        storage.save(
            FEEDBACKS_KEY,
            [
                {"id": "fb-ok", "jobId": "seed-1", "alumniEmail": "a@x", "rating": 5,
                 "createdAt": "2024-09-01T00:00:00Z"},
                {"id": "fb-bad", "jobId": "seed-1", "alumniEmail": "b@x", "rating": 9,
                 "createdAt": "2024-09-01T00:00:00Z"},
            ],
        )
        store = _store(storage)
        assert [f.id for f in store.feedbacks] == ["fb-ok"]
        assert "Skipping invalid feedbacks record #1" in caplog.text

    def test_corrupt_applications_survive_next_write(self):
        original = '[{"id": "app-1", "jobId": "seed-1", "alumniEmail": "a@x"'
        storage = MemoryStorage({APPLICATIONS_KEY: original})
        store = _store(storage)
        _apply(store, "seed-1", "b@x")
        assert storage.raw(f"{APPLICATIONS_KEY}.corrupt") == original
        assert [a["alumniEmail"] for a in storage.load(APPLICATIONS_KEY)] == ["b@x"]

    def test_corrupt_feedbacks_file_moved_aside(self, tmp_path, caplog):
        (tmp_path / "feedbacks.json").write_text("[{")
        store = _store(JsonFileStorage(tmp_path))
        _feedback(store, "seed-1")
        assert (tmp_path / "feedbacks.corrupt.json").read_text() == "[{"
        assert "Moved unreadable feedbacks to feedbacks.corrupt" in caplog.text

    def test_second_corruption_does_not_replace_first(self):
        storage = MemoryStorage({APPLICATIONS_KEY: "first"})
        _store(storage)
        storage.save(APPLICATIONS_KEY, {"second": 2})
        _store(storage)
        assert storage.raw(f"{APPLICATIONS_KEY}.corrupt") == "first"
        assert storage.load(f"{APPLICATIONS_KEY}.corrupt-1") == {"second": 2}

    def test_non_list_collection_kept(self):
        storage = MemoryStorage()
        storage.save(FEEDBACKS_KEY, {"oops": 1})
        _store(storage)
        assert storage.load(f"{FEEDBACKS_KEY}.corrupt") == {"oops": 1}
        assert storage.load(FEEDBACKS_KEY) is None

    def test_invalid_record_kept_for_recovery(self):
        bad = {"id": "app-bad", "jobId": "seed-1"}
        good = {"id": "app-ok", "jobId": "seed-1", "alumniEmail": "a@x",
                "appliedAt": "2024-09-01T00:00:00Z"}
        storage = MemoryStorage()
        storage.save(APPLICATIONS_KEY, [good, bad])
        store = _store(storage)
        _apply(store, "seed-1", "b@x")
        assert storage.load(f"{APPLICATIONS_KEY}.rejected") == [bad]
        assert [a.id for a in store.applications] == ["app-ok", "app-1"]

    def test_clean_collections_leave_nothing_aside(self):
        storage = MemoryStorage()
        store = _store(storage)
        _apply(store, "seed-1")
        _store(storage)
        assert storage.keys() == [APPLICATIONS_KEY, JOBS_KEY]


# ---------------------------------------------------------------------------
# add_job / update_job
# ---------------------------------------------------------------------------


class TestAddJob:
    def test_assigns_id(self):
        job = _store().add_job(_draft())
        assert job.id == "job-1"

    def test_prepends_newest_first(self):
        store = _store()
        job = store.add_job(_draft())
        assert store.jobs[0] == job

    def test_persists_jobs(self):
        storage = MemoryStorage()
        store = _store(storage)
        job = store.add_job(_draft())
        assert storage.load(JOBS_KEY)[0]["id"] == job.id

    def test_keeps_draft_fields(self):
        job = _store().add_job(_draft(skills=["SQL"], experience=2, referral_code="Q1"))
        assert job.skills == ("SQL",)
        assert job.experience == 2
        assert job.referral_code == "Q1"
        assert job.openings_left == 1

    def test_colliding_id_redrawn(self):
        ids = iter(["seed-1", "seed-1", "job-fresh"])
        store = JobStore(MemoryStorage(), seed=[_seed_job()], id_factory=lambda p: next(ids))
        assert store.add_job(_draft()).id == "job-fresh"

    def test_random_ids_distinct(self):
        store = JobStore(MemoryStorage(), seed=[])
        ids = [store.add_job(_draft()).id for _ in range(50)]
        assert len(set(ids)) == 50

    def test_random_id_has_prefix(self):
        assert random_id("app").startswith("app-")


class TestUpdateJob:
    def test_merges_fields(self):
        store = _store()
        job = store.update_job("seed-1", interview_status=InterviewStatus.IN_PROGRESS)
        assert job.interview_status == InterviewStatus.IN_PROGRESS

    def test_other_fields_untouched(self):
        store = _store()
        before = store.get_job_by_id("seed-1")
        after = store.update_job("seed-1", description="New text")
        assert after.model_dump(exclude={"description"}) == before.model_dump(
            exclude={"description"}
        )

    def test_persists(self):
        storage = MemoryStorage()
        store = _store(storage)
        store.update_job("seed-1", title="Senior Frontend Developer")
        assert storage.load(JOBS_KEY)[0]["title"] == "Senior Frontend Developer"

    def test_unknown_id_is_noop(self):
        storage = MemoryStorage()
        store = _store(storage)
        before = storage.raw(JOBS_KEY)
        assert store.update_job("missing", title="X") is None
        assert storage.raw(JOBS_KEY) == before

    def test_id_cannot_change(self):
        with pytest.raises(ValueError):
            _store().update_job("seed-1", id="other")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="salary"):
            _store().update_job("seed-1", salary=100)

    def test_invalid_result_rejected(self):
        store = _store()
        with pytest.raises(ValidationError):
            store.update_job("seed-1", openings_left=5)
        assert store.get_job_by_id("seed-1").openings_left == 2

    def test_zero_openings_forces_blocked(self):
        job = _store().update_job("seed-1", openings_left=0, blocked=False)
        assert job.blocked is True


class TestJobLifecycle:
    def test_close_job_keeps_openings(self):
        job = _store().close_job("seed-1")
        assert job.blocked is True
        assert job.openings_left == 2

    def test_mark_filled(self):
        job = _store().mark_filled("seed-1")
        assert job.openings_left == 0
        assert job.blocked is True

    def test_set_openings_left_unblocks_above_zero(self):
        store = _store()
        store.close_job("seed-1")
        job = store.set_openings_left("seed-1", 1)
        assert job.openings_left == 1
        assert job.blocked is False

    def test_set_openings_left_zero_blocks(self):
        assert _store().set_openings_left("seed-1", 0).blocked is True

    def test_set_openings_left_out_of_range(self):
        with pytest.raises(ValueError):
            _store().set_openings_left("seed-1", 3)

    def test_set_openings_left_unknown_job(self):
        assert _store().set_openings_left("missing", 1) is None

    def test_interview_over_with_hires_met_blocks(self):
        job = _store().set_interview_status(
            "seed-1", InterviewStatus.INTERVIEW_OVER, hires_met=True
        )
        assert job.interview_status == InterviewStatus.INTERVIEW_OVER
        assert job.blocked is True

    def test_interview_over_without_hires_reopens(self):
        store = _store()
        store.close_job("seed-1")
        job = store.set_interview_status(
            "seed-1", InterviewStatus.INTERVIEW_OVER, hires_met=False
        )
        assert job.blocked is False

    def test_reopen_with_no_openings_stays_blocked(self):
        store = _store()
        store.mark_filled("seed-1")
        job = store.set_interview_status(
            "seed-1", InterviewStatus.INTERVIEW_OVER, hires_met=False
        )
        assert job.blocked is True

    def test_other_status_leaves_blocked_alone(self):
        store = _store()
        store.close_job("seed-1")
        job = store.set_interview_status("seed-1", "In Progress", hires_met=False)
        assert job.interview_status == InterviewStatus.IN_PROGRESS
        assert job.blocked is True


# ---------------------------------------------------------------------------
# apply_to_job
# ---------------------------------------------------------------------------


class TestApplyToJob:
    def test_records_application(self):
        store = _store()
        app = _apply(store, "seed-1", referral_code_used="LI-1")
        assert app.id == "app-1"
        assert store.applications == (app,)
        assert app.referral_code_used == "LI-1"

    def test_decrements_openings(self):
        store = _store()
        _apply(store, "seed-1")
        job = store.get_job_by_id("seed-1")
        assert job.openings_left == 1
        assert job.blocked is False

    def test_last_opening_blocks_job(self):
        store = _store(seed=[_seed_job(openings_total=1)])
        _apply(store, "seed-1")
        job = store.get_job_by_id("seed-1")
        assert job.openings_left == 0
        assert job.blocked is True

    def test_persists_both_collections(self):
        storage = MemoryStorage()
        store = _store(storage)
        _apply(store, "seed-1")
        assert len(storage.load(APPLICATIONS_KEY)) == 1
        assert storage.load(JOBS_KEY)[0]["openingsLeft"] == 1

    def test_openings_never_negative(self):
        store = _store(seed=[_seed_job(openings_total=3)])
        for i in range(5):
            try:
                _apply(store, "seed-1", email=f"a{i}@uni.edu")
            except JobClosedError:
                pass
        job = store.get_job_by_id("seed-1")
        assert job.openings_left == 0
        assert job.blocked is True
        assert len(store.applications) == 3

    def test_duplicate_rejected(self):
        store = _store()
        _apply(store, "seed-1")
        with pytest.raises(DuplicateApplicationError):
            _apply(store, "seed-1")

    def test_duplicate_check_ignores_case(self):
        store = _store()
        _apply(store, "seed-1", email="Alumni@Uni.edu")
        with pytest.raises(DuplicateApplicationError):
            _apply(store, "seed-1", email="alumni@uni.edu")

    def test_rejection_leaves_state_untouched(self):
        storage = MemoryStorage()
        store = _store(storage)
        _apply(store, "seed-1")
        jobs_before = storage.raw(JOBS_KEY)
        apps_before = storage.raw(APPLICATIONS_KEY)
        with pytest.raises(DuplicateApplicationError):
            _apply(store, "seed-1")
        assert storage.raw(JOBS_KEY) == jobs_before
        assert storage.raw(APPLICATIONS_KEY) == apps_before
        assert store.get_job_by_id("seed-1").openings_left == 1

    def test_blocked_job_rejected(self):
        store = _store()
        store.close_job("seed-1")
        with pytest.raises(JobClosedError):
            _apply(store, "seed-1")

    def test_unknown_job_rejected(self):
        with pytest.raises(JobNotFoundError) as excinfo:
            _apply(_store(), "missing")
        assert excinfo.value.job_id == "missing"

    def test_rejections_share_base_class(self):
        store = _store()
        with pytest.raises(SubmissionRejected):
            _apply(store, "missing")

    def test_same_alumni_different_jobs(self):
        store = _store(seed=[_seed_job("a"), _seed_job("b")])
        _apply(store, "a")
        _apply(store, "b")
        assert len(store.get_user_applications("alumni@uni.edu")) == 2

    def test_has_applied(self):
        store = _store()
        _apply(store, "seed-1")
        assert store.has_applied("seed-1", "alumni@uni.edu") is True
        assert store.has_applied("seed-1", "other@uni.edu") is False


# ---------------------------------------------------------------------------
# add_feedback
# ---------------------------------------------------------------------------


class TestAddFeedback:
    def test_records_feedback(self):
        store = _store()
        fb = _feedback(store, "seed-1", rating=5)
        assert fb.id == "fb-1"
        assert store.feedbacks == (fb,)

    def test_persists(self):
        storage = MemoryStorage()
        _feedback(_store(storage), "seed-1")
        assert storage.load(FEEDBACKS_KEY)[0]["rating"] == 4

    def test_loose_mode_needs_no_application(self):
        assert _feedback(_store(), "seed-1") is not None

    def test_strict_mode_requires_application(self):
        with pytest.raises(ApplicationRequiredError):
            _feedback(_store(), "seed-1", require_application=True)

    def test_strict_mode_after_applying(self):
        store = _store()
        _apply(store, "seed-1")
        assert _feedback(store, "seed-1", require_application=True).job_id == "seed-1"

    def test_duplicate_rejected(self):
        store = _store()
        _feedback(store, "seed-1")
        with pytest.raises(DuplicateFeedbackError):
            _feedback(store, "seed-1", rating=1)
        assert len(store.feedbacks) == 1

    def test_unknown_job_rejected(self):
        with pytest.raises(JobNotFoundError):
            _feedback(_store(), "missing")

    def test_has_left_feedback(self):
        store = _store()
        _feedback(store, "seed-1")
        assert store.has_left_feedback("seed-1", "ALUMNI@uni.edu") is True


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_get_job_by_id(self):
        assert _store().get_job_by_id("seed-1").title == "Frontend Developer"

    def test_get_job_by_id_missing(self):
        assert _store().get_job_by_id("nope") is None

    def test_applications_for_job_isolated(self):
        store = _store(seed=[_seed_job("a"), _seed_job("b")])
        first = _apply(store, "a")
        _apply(store, "b")
        assert store.get_applications_for_job("a") == [first]

    def test_feedbacks_for_job_isolated(self):
        store = _store(seed=[_seed_job("a"), _seed_job("b")])
        _feedback(store, "a")
        fb_b = _feedback(store, "b")
        assert store.get_feedbacks_for_job("b") == [fb_b]

    def test_user_applications(self):
        store = _store(seed=[_seed_job("a"), _seed_job("b")])
        mine = _apply(store, "a", email="me@uni.edu")
        _apply(store, "b", email="you@uni.edu")
        assert store.get_user_applications("me@uni.edu") == [mine]

    def test_queries_do_not_mutate(self):
        storage = MemoryStorage()
        store = _store(storage)
        before = {k: storage.raw(k) for k in (JOBS_KEY, APPLICATIONS_KEY, FEEDBACKS_KEY)}
        store.get_job_by_id("seed-1")
        store.get_applications_for_job("seed-1")
        store.get_feedbacks_for_job("seed-1")
        store.get_user_applications("x@y")
        after = {k: storage.raw(k) for k in (JOBS_KEY, APPLICATIONS_KEY, FEEDBACKS_KEY)}
        assert before == after

    def test_snapshots_are_tuples(self):
        store = _store()
        assert isinstance(store.jobs, tuple)
        assert isinstance(store.applications, tuple)


# ---------------------------------------------------------------------------
# reinitialize / persist
# ---------------------------------------------------------------------------


class TestReinitialize:
    def test_restores_seed_and_clears(self):
        storage = MemoryStorage()
        store = _store(storage)
        store.add_job(_draft())
        _apply(store, "seed-1")
        _feedback(store, "seed-1")
        store.reinitialize()
        assert [j.id for j in store.jobs] == ["seed-1"]
        assert store.get_job_by_id("seed-1").openings_left == 2
        assert store.applications == ()
        assert store.feedbacks == ()

    def test_removes_stored_applications_and_feedback(self):
        storage = MemoryStorage()
        store = _store(storage)
        _apply(store, "seed-1")
        _feedback(store, "seed-1")
        store.reinitialize()
        assert storage.load(APPLICATIONS_KEY) is None
        assert storage.load(FEEDBACKS_KEY) is None
        assert [j["id"] for j in storage.load(JOBS_KEY)] == ["seed-1"]


class TestPersistence:
    def test_reload_sees_all_mutations(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        store = _store(storage)
        job = store.add_job(_draft())
        _apply(store, job.id)
        _feedback(store, job.id, rating=2)

        reloaded = _store(JsonFileStorage(tmp_path))
        assert reloaded.jobs == store.jobs
        assert reloaded.applications == store.applications
        assert reloaded.feedbacks == store.feedbacks

    def test_load_then_persist_is_byte_identical(self):
        storage = MemoryStorage()
        store = _store(storage)
        job = store.add_job(_draft(skills=["SQL", "Python"]))
        _apply(store, job.id, referral_code_used="X1")
        _feedback(store, job.id, rating=3)
        snapshot = {k: storage.raw(k) for k in (JOBS_KEY, APPLICATIONS_KEY, FEEDBACKS_KEY)}

        copy = MemoryStorage(dict(snapshot))
        _store(copy).persist()
        assert {k: copy.raw(k) for k in snapshot} == snapshot

    def test_stored_json_uses_camel_case(self, tmp_path):
        store = _store(JsonFileStorage(tmp_path))
        _apply(store, "seed-1")
        data = json.loads((tmp_path / "applications.json").read_text())
        assert set(data[0]) >= {"id", "jobId", "alumniEmail", "appliedAt"}


# ---------------------------------------------------------------------------
# Session boundary
# ---------------------------------------------------------------------------


class TestSession:
    def test_context_manager_closes(self):
        with _store() as store:
            assert store.closed is False
        assert store.closed is True

    def test_mutation_after_close_raises(self):
        store = _store()
        store.close()
        with pytest.raises(StoreClosedError):
            store.add_job(_draft())
        with pytest.raises(StoreClosedError):
            _apply(store, "seed-1")

    def test_reads_after_close_still_work(self):
        store = _store()
        store.close()
        assert store.get_job_by_id("seed-1") is not None

    def test_from_settings(self, tmp_path):
        from jobboard.config import Settings

        store = JobStore.from_settings(Settings(data_dir=tmp_path), seed=[_seed_job()])
        assert (tmp_path / "jobs.json").exists()
        assert store.jobs[0].id == "seed-1"

    def test_in_memory(self):
        assert JobStore.in_memory(seed=[]).jobs == ()
