import copy
import os
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import pytest

from visual_worker.adapters.base import JobStoreAdapter, BlobStoreAdapter
from visual_worker.config import WorkerConfig
from visual_worker.errors import OracleError
from visual_worker.models import Frame, Job, JobStatus, SourceMedia, VisualAnalysis
from visual_worker.oracle import Oracle, OracleRequest

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


class InMemoryJobStore(JobStoreAdapter):
    def __init__(self, max_attempts: int = 3):
        self.max_attempts = max_attempts
        self.jobs: Dict[str, Job] = {}
        self.media: Dict[str, SourceMedia] = {}
        self.job_analysis: Dict[str, dict] = {}
        self.job_frames: Dict[str, List[str]] = {}
        self.simulation_analysis: Dict[str, dict] = {}
        self.fail_persist = False
        self.status_updates: List[tuple] = []

    def add_job(self, job_id, simulation_id, status=JobStatus.PENDING, attempts=0, minutes=0):
        self.jobs[job_id] = Job(
            id=job_id, simulation_id=simulation_id, status=status,
            attempts=attempts, created_at=BASE_TIME + timedelta(minutes=minutes),
        )
        return self.jobs[job_id]

    def add_media(self, simulation_id, video_url="https://cdn.example.com/v.mp4",
                  transcript="hello there", duration_seconds=None):
        self.media[simulation_id] = SourceMedia(
            simulation_id=simulation_id, video_url=video_url,
            transcript=transcript, duration_seconds=duration_seconds,
        )

    def _eligible(self, job: Job) -> bool:
        if job.status == JobStatus.PENDING:
            return True
        if job.status == JobStatus.FAILED:
            return self.max_attempts <= 0 or job.attempts < self.max_attempts
        return False

    def _ordered(self) -> List[Job]:
        return sorted(
            (j for j in self.jobs.values() if self._eligible(j)),
            key=lambda j: (j.created_at, j.id),
        )

    def claim_job(self) -> Optional[Job]:
        eligible = self._ordered()
        if not eligible:
            return None
        job = eligible[0]
        job.status = JobStatus.PROCESSING
        job.error_message = None
        job.attempts += 1
        return copy.copy(job)

    def update_job_status(self, job_id, status, error_message=None):
        self.status_updates.append((job_id, status))
        self.jobs[job_id].status = status
        self.jobs[job_id].error_message = error_message

    def fetch_source_media(self, simulation_id):
        return self.media.get(simulation_id)

    def persist_visual_analysis(self, job_id, simulation_id, analysis: VisualAnalysis):
        if self.fail_persist:
            raise ConnectionError("connection lost")
        self.job_analysis[job_id] = analysis.to_dict()
        self.job_frames[job_id] = analysis.frame_urls
        self.simulation_analysis[simulation_id] = analysis.to_dict()
        self.jobs[job_id].status = JobStatus.COMPLETE
        self.jobs[job_id].error_message = None

    def get_pending_jobs(self, limit=10):
        return self._ordered()[:limit]


class FakeBlobStore(BlobStoreAdapter):
    def __init__(self, fail_on: Optional[str] = None):
        self.fail_on = fail_on
        self.objects: Dict[str, bytes] = {}
        self.upload_order: List[str] = []

    def upload(self, path, data, content_type):
        if self.fail_on and path.endswith(self.fail_on):
            raise IOError("storage unavailable")
        self.objects[path] = data
        self.upload_order.append(path)

    def public_url(self, path):
        return f"https://blobs.example.com/{path}"


class StubOracle(Oracle):
    """Answers scoring and analysis requests from canned payloads"""

    def __init__(self, analysis=None, scores=None, scoring_error=False, analysis_error=False):
        self.analysis = analysis if analysis is not None else {
            "visual_style": "handheld selfie",
            "pacing_description": "fast cuts",
            "on_screen_text_usage": "captions",
            "on_screen_text": ["WAIT FOR IT"],
            "aesthetic_tags": ["bright", "casual"],
            "scene_summary": "A person reacts to a surprise.",
            "quality_assessment": {"resolution_ok": True, "lighting_ok": "good", "edit_quality": "basic"},
            "visual_events": [
                {"label": "Hook", "start_frame_index": 0, "end_frame_index": 1, "notes_for_editor": ["tighten"]},
                {"label": "Reveal", "start_frame_index": 2, "end_frame_index": 99},
            ],
        }
        self.scores = scores
        self.scoring_error = scoring_error
        self.analysis_error = analysis_error
        self.requests: List[OracleRequest] = []

    def describe(self, request: OracleRequest):
        self.requests.append(request)
        if "retention" in request.system:
            if self.scoring_error:
                raise OracleError("Empty oracle response")
            return self.scores if self.scores is not None else {"frames": []}
        if self.analysis_error:
            raise OracleError("Unparsable oracle response")
        return self.analysis


def make_decoder(count: int, calls: Optional[list] = None):
    """Decoder stub that writes ``count`` numbered jpg files"""
    def decoder(video_path, output_dir, fps, width):
        if calls is not None:
            calls.append((video_path, output_dir, fps, width))
        for i in range(1, count + 1):
            with open(os.path.join(output_dir, f"frame-{i:0{width}d}.jpg"), "wb") as f:
                f.write(b"\xff\xd8" + str(i).encode())
    return decoder


def fake_fetch(url, dest_path, timeout):
    with open(dest_path, "wb") as f:
        f.write(b"\x00\x00\x00\x1cftypisom")
    return dest_path


def make_timeline(count: int, step: float = 1.0) -> List[Frame]:
    return [
        Frame(index=i, url=f"https://blobs.example.com/f{i}.jpg", timestamp_seconds=round((i + 0.5) * step, 2))
        for i in range(count)
    ]


@pytest.fixture
def config(tmp_path):
    return WorkerConfig(
        DATA_DIR=str(tmp_path / "data"),
        SAMPLING_FPS=1.0,
        MAX_FRAMES_PER_VIDEO=5,
        ANALYSIS_IMAGE_LIMIT=2,
        POLL_INTERVAL_MS=3000,
        MAX_ATTEMPTS=3,
    )


@pytest.fixture
def job_store():
    return InMemoryJobStore()


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def oracle():
    return StubOracle()
