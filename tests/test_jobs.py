"""Tests for the render job lifecycle."""

import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from slidecompose.errors import JobStateError, NotFoundError, RenderFailure, ValidationError
from slidecompose.jobs import (
    PROGRESS,
    JobStatus,
    JobStore,
    RenderJob,
    RenderJobManager,
    RetentionPolicy,
)
from slidecompose.render import MoviepyRenderer


class RecordingRenderer:
    """Writes an empty artifact and remembers what it was asked to render."""

    def __init__(self):
        self.calls = []

    def render(self, composition, output_path):
        self.calls.append((composition, Path(output_path)))
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_bytes(b"")


class FailingRenderer:
    def render(self, composition, output_path):
        raise RenderFailure("encoder exited with status 1")


class GatedRenderer:
    """Blocks inside render() until released."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()

    def render(self, composition, output_path):
        self.started.set()
        self.release.wait(5)


def _finish(store, job_id, status=JobStatus.COMPLETED):
    store.transition(job_id, JobStatus.RENDERING)
    return store.transition(job_id, status)


class TestJobStatus:
    def test_values(self):
        assert [s.value for s in JobStatus] == ["processing", "rendering", "completed", "error"]

    def test_progress(self):
        assert PROGRESS == {
            JobStatus.PROCESSING: 25,
            JobStatus.RENDERING: 50,
            JobStatus.COMPLETED: 100,
            JobStatus.ERROR: 0,
        }

    def test_terminal(self):
        assert JobStatus.COMPLETED.is_terminal
        assert JobStatus.ERROR.is_terminal
        assert not JobStatus.PROCESSING.is_terminal
        assert not JobStatus.RENDERING.is_terminal


class TestRenderJobToDict:
    def test_in_flight(self):
        job = RenderJob(id="abc")
        assert job.to_dict() == {"jobId": "abc", "status": "processing", "progress": 25}

    def test_completed(self):
        job = RenderJob(
            id="abc", status=JobStatus.COMPLETED, progress=100,
            artifact_location="/out/abc.mp4", duration_seconds=23,
        )
        assert job.to_dict() == {
            "jobId": "abc", "status": "completed", "progress": 100,
            "videoUrl": "/out/abc.mp4", "duration": 23,
        }

    def test_error(self):
        job = RenderJob(id="abc", status=JobStatus.ERROR, progress=0, error_detail="boom")
        assert job.to_dict() == {"jobId": "abc", "status": "error", "progress": 0, "error": "boom"}


class TestJobStore:
    def test_create(self):
        store = JobStore()
        job = store.create("a")
        assert job.status is JobStatus.PROCESSING
        assert job.progress == 25
        assert "a" in store
        assert len(store) == 1

    def test_duplicate_id_raises(self):
        store = JobStore()
        store.create("a")
        with pytest.raises(JobStateError, match="already exists"):
            store.create("a")

    def test_unknown_id_raises(self):
        with pytest.raises(NotFoundError, match="Job not found: nope"):
            JobStore().get("nope")

    def test_forward_transitions(self):
        store = JobStore()
        store.create("a")
        job = _finish(store, "a")
        assert job.status is JobStatus.COMPLETED
        assert job.progress == 100
        assert job.history == (JobStatus.PROCESSING, JobStatus.RENDERING, JobStatus.COMPLETED)
        assert job.updated_at >= job.created_at

    @pytest.mark.parametrize("target", [JobStatus.COMPLETED, JobStatus.ERROR, JobStatus.PROCESSING])
    def test_cannot_skip_rendering(self, target):
        store = JobStore()
        store.create("a")
        with pytest.raises(JobStateError, match="illegal transition"):
            store.transition("a", target)

    @pytest.mark.parametrize("terminal", [JobStatus.COMPLETED, JobStatus.ERROR])
    def test_terminal_states_are_final(self, terminal):
        store = JobStore()
        store.create("a")
        _finish(store, "a", terminal)
        for target in JobStatus:
            with pytest.raises(JobStateError):
                store.transition("a", target)

    def test_snapshots_are_copies(self):
        store = JobStore()
        store.create("a")
        snapshot = store.get("a")
        snapshot.status = JobStatus.ERROR
        assert store.get("a").status is JobStatus.PROCESSING


class TestRetention:
    def test_unbounded_by_default(self):
        store = JobStore()
        for i in range(50):
            store.create(str(i))
            _finish(store, str(i))
        assert len(store) == 50

    def test_max_jobs_evicts_oldest_terminal(self):
        store = JobStore(RetentionPolicy(max_jobs=2))
        store.create("a")
        _finish(store, "a")
        store.create("b")
        _finish(store, "b", JobStatus.ERROR)
        store.create("c")
        assert "a" not in store
        assert "b" in store
        assert "c" in store
        with pytest.raises(NotFoundError):
            store.get("a")

    def test_in_flight_jobs_never_evicted(self):
        store = JobStore(RetentionPolicy(max_jobs=1))
        store.create("a")
        store.create("b")
        assert "a" in store
        assert len(store) == 2

    def test_ttl_expires_terminal_jobs(self):
        store = JobStore(RetentionPolicy(ttl_seconds=0))
        store.create("done")
        _finish(store, "done")
        store.create("running")
        store.create("next")
        assert "done" not in store
        assert "running" in store

    def test_ttl_checked_on_get(self):
        store = JobStore(RetentionPolicy(ttl_seconds=0))
        store.create("done")
        store.create("running")
        _finish(store, "done")
        with pytest.raises(NotFoundError):
            store.get("done")
        assert store.get("running").status is JobStatus.PROCESSING

    def test_ttl_keeps_fresh_jobs_readable(self):
        store = JobStore(RetentionPolicy(ttl_seconds=3600))
        store.create("done")
        _finish(store, "done")
        assert store.get("done").status is JobStatus.COMPLETED


class TestRenderJobManager:
    def test_successful_render(self, tmp_path, raw_sections, immediate_executor):
        renderer = RecordingRenderer()
        manager = RenderJobManager(renderer, tmp_path, executor=immediate_executor)

        job_id = manager.submit(raw_sections)
        job = manager.get_status(job_id)

        assert job.status is JobStatus.COMPLETED
        assert job.progress == 100
        assert job.artifact_location == str(tmp_path / f"{job_id}.mp4")
        assert job.duration_seconds == 23
        assert job.error_detail is None
        assert job.history == (JobStatus.PROCESSING, JobStatus.RENDERING, JobStatus.COMPLETED)

        composition, path = renderer.calls[0]
        assert composition.total_duration_frames == 690
        assert path == manager.artifact_path(job_id)

    def test_duration_rounds_up_to_whole_seconds(self, tmp_path, immediate_executor):
        manager = RenderJobManager(RecordingRenderer(), tmp_path, executor=immediate_executor)
        job_id = manager.submit([{"type": "conclusion", "duration": 1.25}])
        assert manager.get_status(job_id).duration_seconds == 2

    def test_render_failure_recorded(self, tmp_path, raw_sections, immediate_executor, caplog):
        manager = RenderJobManager(FailingRenderer(), tmp_path, executor=immediate_executor)

        with caplog.at_level(logging.ERROR, logger="slidecompose.jobs"):
            job_id = manager.submit(raw_sections)
        job = manager.get_status(job_id)

        assert job.status is JobStatus.ERROR
        assert job.progress == 0
        assert job.error_detail == "encoder exited with status 1"
        assert job.artifact_location is None
        assert job.history == (JobStatus.PROCESSING, JobStatus.RENDERING, JobStatus.ERROR)
        assert "render failed" in caplog.text

    def test_invalid_input_creates_no_job(self, tmp_path, immediate_executor):
        renderer = RecordingRenderer()
        manager = RenderJobManager(renderer, tmp_path, executor=immediate_executor)

        with pytest.raises(ValidationError, match="Unknown section type"):
            manager.submit([{"type": "title", "title": "ok"}, {"type": "chart"}])
        with pytest.raises(ValidationError, match="sections array is required"):
            manager.submit(None)
        with pytest.raises(ValidationError, match="too long"):
            manager.submit([{"type": "conclusion", "duration": 1e308}])

        assert len(manager.store) == 0
        assert renderer.calls == []

    def test_unknown_job_id(self, tmp_path, immediate_executor):
        manager = RenderJobManager(RecordingRenderer(), tmp_path, executor=immediate_executor)
        with pytest.raises(NotFoundError):
            manager.get_status(uuid.uuid4().hex)

    def test_empty_submission_ends_in_error(self, tmp_path, immediate_executor):
        manager = RenderJobManager(
            MoviepyRenderer(resolution=(160, 90)), tmp_path, executor=immediate_executor,
        )
        job_id = manager.submit([])
        job = manager.get_status(job_id)
        assert job.status is JobStatus.ERROR
        assert "no frames" in job.error_detail

    def test_status_while_rendering(self, tmp_path, raw_sections):
        renderer = GatedRenderer()
        manager = RenderJobManager(renderer, tmp_path)
        try:
            job_id = manager.submit(raw_sections)
            assert renderer.started.wait(5)

            job = manager.get_status(job_id)
            assert job.status is JobStatus.RENDERING
            assert job.progress == 50
            assert job.artifact_location is None

            renderer.release.set()
            job = manager.wait(job_id, timeout=5, poll_interval=0.01)
            assert job.status is JobStatus.COMPLETED
        finally:
            renderer.release.set()
            manager.shutdown()

    def test_wait_times_out(self, tmp_path, raw_sections):
        renderer = GatedRenderer()
        manager = RenderJobManager(renderer, tmp_path)
        try:
            job_id = manager.submit(raw_sections)
            with pytest.raises(TimeoutError, match="still rendering"):
                manager.wait(job_id, timeout=0.05, poll_interval=0.01)
        finally:
            renderer.release.set()
            manager.shutdown()

    def test_concurrent_jobs_are_independent(self, tmp_path, raw_sections):
        executor = ThreadPoolExecutor(max_workers=3)
        manager = RenderJobManager(RecordingRenderer(), tmp_path, executor=executor)
        try:
            ids = [manager.submit(raw_sections) for _ in range(3)]
            jobs = [manager.wait(job_id, timeout=5, poll_interval=0.01) for job_id in ids]
        finally:
            executor.shutdown()

        assert len(set(ids)) == 3
        assert all(job.status is JobStatus.COMPLETED for job in jobs)
        assert len({job.artifact_location for job in jobs}) == 3

    def test_scheduling_failure_recorded(self, tmp_path, raw_sections):
        executor = ThreadPoolExecutor(max_workers=1)
        executor.shutdown()
        manager = RenderJobManager(RecordingRenderer(), tmp_path, executor=executor)

        job = manager.get_status(manager.submit(raw_sections))
        assert job.status is JobStatus.ERROR
        assert "shutdown" in job.error_detail

    def test_shutdown_leaves_injected_executor_running(self, tmp_path):
        executor = ThreadPoolExecutor(max_workers=1)
        manager = RenderJobManager(RecordingRenderer(), tmp_path, executor=executor)
        manager.shutdown()
        try:
            assert executor.submit(lambda: 42).result(timeout=5) == 42
        finally:
            executor.shutdown()

    def test_list_section_types(self, tmp_path, immediate_executor):
        manager = RenderJobManager(RecordingRenderer(), tmp_path, executor=immediate_executor)
        types = manager.list_section_types()
        assert "results" in types
        assert types["comparison"] == "Side-by-side comparison"
