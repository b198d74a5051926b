"""
Visual analysis pipeline.

Runs the stages for one claimed job and returns the finished
VisualAnalysis. Stages raise on failure; the orchestrator decides
what that means for the job.
"""

import os
import time
import logging
from typing import List, Optional

from .models import Job, SourceMedia, VisualAnalysis
from .adapters.base import JobStoreAdapter, BlobStoreAdapter
from .config import WorkerConfig
from .errors import PreconditionError
from .oracle import Oracle
from .pipeline.download import download_video
from .pipeline.frames import Decoder, run_decoder, probe_duration, sample_frames
from .pipeline.publish import FramePublisher
from .pipeline.scoring import QualityScorer
from .pipeline.analysis import VisualAnalyzer
from .pipeline.events import reconcile_events
from .pipeline.util import prepare_job_dir, cleanup_job_dir

logger = logging.getLogger("visual_worker")


class VisualProcessor:
    """Handles pipeline execution for a single job"""

    def __init__(self, config: WorkerConfig, job_store: JobStoreAdapter, blob_store: BlobStoreAdapter,
                 oracle: Oracle, decoder: Decoder = run_decoder, fetch_video=download_video):
        self.config = config
        self.job_store = job_store
        self.decoder = decoder
        self.fetch_video = fetch_video
        self.publisher = FramePublisher(blob_store)
        self.scorer = QualityScorer(oracle)
        self.analyzer = VisualAnalyzer(oracle, image_limit=config.ANALYSIS_IMAGE_LIMIT)
        self.stages_completed: List[str] = []

    def load_source(self, job: Job) -> SourceMedia:
        """Fetch the source record, failing fast when there is no video"""
        media = self.job_store.fetch_source_media(job.simulation_id)
        if media is None:
            raise PreconditionError(f"Simulation {job.simulation_id} not found")
        if not media.video_url:
            raise PreconditionError(f"No video_url on simulation {job.simulation_id}")
        return media

    def process(self, job: Job) -> VisualAnalysis:
        """
        Run every stage for ``job``.

        Returns:
            The reconciled VisualAnalysis
        """
        self.stages_completed = []
        start_time = time.time()

        media = self.load_source(job)
        self.stages_completed.append("source")

        job_dir = prepare_job_dir(self.config.scratch_root, job.id)
        try:
            logger.info(f"DOWNLOAD: Fetching video for job {job.id}")
            video_path = self.fetch_video(
                media.video_url, os.path.join(job_dir, "video.mp4"), self.config.DOWNLOAD_TIMEOUT_SEC
            )
            self.stages_completed.append("download")

            duration = self._resolve_duration(media, video_path)

            logger.info(f"FRAMES: Sampling frames for job {job.id}")
            sampled = sample_frames(
                video_path,
                os.path.join(job_dir, "frames"),
                self.config.SAMPLING_FPS,
                self.config.MAX_FRAMES_PER_VIDEO,
                duration=duration,
                decoder=self.decoder
            )
            self.stages_completed.append("frames")

            logger.info(f"PUBLISH: Uploading {len(sampled)} frames for job {job.id}")
            timeline = self.publisher.publish(job, sampled)
            self.stages_completed.append("publish")
        finally:
            if not self.config.KEEP_SCRATCH:
                cleanup_job_dir(self.config.scratch_root, job.id)

        if self.config.ENABLE_QUALITY_SCORING:
            logger.info(f"SCORING: Scoring {len(timeline)} frames for job {job.id}")
            timeline = self.scorer.score(timeline, media.transcript)
            self.stages_completed.append("scoring")

        logger.info(f"ANALYSIS: Requesting visual analysis for job {job.id}")
        response = self.analyzer.analyze(timeline, media.transcript)
        self.stages_completed.append("analysis")

        events = reconcile_events(response.visual_events, timeline)
        logger.info(f"EVENTS: Reconciled {len(events)} of {len(response.visual_events)} visual events for job {job.id}")
        self.stages_completed.append("events")

        logger.info(f"READY: Pipeline completed for job {job.id} in {time.time() - start_time:.2f}s")

        return VisualAnalysis(
            visual_style=response.visual_style,
            pacing_description=response.pacing_description,
            on_screen_text_usage=response.on_screen_text_usage,
            on_screen_text=response.on_screen_text,
            aesthetic_tags=response.aesthetic_tags,
            scene_summary=response.scene_summary,
            quality_assessment=response.quality_assessment.model_dump(),
            frames=timeline,
            visual_events=events
        )

    def _resolve_duration(self, media: SourceMedia, video_path: str) -> Optional[float]:
        if media.duration_seconds and media.duration_seconds > 0:
            return media.duration_seconds
        if self.config.PROBE_DURATION:
            return probe_duration(video_path)
        return None
