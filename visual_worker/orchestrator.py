"""
Job orchestration.

Claims jobs, runs the processor, and records the outcome as a job
status transition. Every stage failure is caught here exactly once.
"""

import time
import logging
from typing import Optional, Dict, Any
from datetime import datetime

from .models import Job, JobStatus, ProcessingResult
from .adapters.base import JobStoreAdapter
from .processor import VisualProcessor
from .config import WorkerConfig
from .errors import InvalidTransitionError
from .logging_setup import log_exception

logger = logging.getLogger("visual_worker")


def describe_error(error: Exception) -> str:
    """Human-readable message stored on a failed job"""
    message = str(error).strip()
    return f"{type(error).__name__}: {message}" if message else type(error).__name__


class JobOrchestrator:
    """Drives one job at a time through the pipeline"""

    def __init__(self, config: WorkerConfig, job_store: JobStoreAdapter, processor: VisualProcessor):
        self.config = config
        self.job_store = job_store
        self.processor = processor
        self.stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            'jobs_processed': 0,
            'jobs_failed': 0,
            'total_processing_time': 0.0,
            'start_time': datetime.now()
        }

    def claim_next_job(self) -> Optional[Job]:
        """Claim the next eligible job, or None when there is no work"""
        job = self.job_store.claim_job()
        if job is not None and job.status != JobStatus.PROCESSING:
            raise RuntimeError(f"Job store returned job {job.id} in state {job.status.value}")
        return job

    def run_job(self, job: Job) -> ProcessingResult:
        """
        Execute the complete pipeline for a claimed job.

        Args:
            job: Job in ``processing`` state

        Returns:
            ProcessingResult with execution details
        """
        start_time = time.time()
        logger.info(f"Executing pipeline for job {job.id}, simulation {job.simulation_id} (attempt {job.attempts})")

        try:
            analysis = self.processor.process(job)
            if not job.status.can_transition_to(JobStatus.COMPLETE):
                raise InvalidTransitionError(f"Job {job.id} cannot complete from {job.status.value}")
            self.job_store.persist_visual_analysis(job.id, job.simulation_id, analysis)
            job.transition(JobStatus.COMPLETE)
        except Exception as e:
            error_msg = describe_error(e)
            log_exception(logger, f"Pipeline failed for job {job.id}: {error_msg}")
            self._handle_failure(job, error_msg)
            self.stats['jobs_failed'] += 1
            return ProcessingResult(
                success=False,
                stages_completed=list(self.processor.stages_completed),
                error=error_msg,
                metrics={'processing_time_sec': time.time() - start_time}
            )

        processing_time = time.time() - start_time
        self.stats['jobs_processed'] += 1
        self.stats['total_processing_time'] += processing_time
        logger.info(f"Pipeline completed successfully for job {job.id}")

        return ProcessingResult(
            success=True,
            stages_completed=list(self.processor.stages_completed),
            metrics={
                'processing_time_sec': processing_time,
                'frames_count': len(analysis.frames),
                'events_count': len(analysis.visual_events)
            },
            analysis=analysis
        )

    def _handle_failure(self, job: Job, error: str) -> None:
        """Record the failure; the job stays claimable until it runs out of attempts"""
        try:
            if job.status == JobStatus.PROCESSING:
                job.transition(JobStatus.FAILED, error)
            else:
                job.status = JobStatus.FAILED
                job.error_message = error

            max_attempts = self.config.MAX_ATTEMPTS
            if max_attempts > 0 and job.attempts >= max_attempts:
                logger.error(f"Job {job.id} failed permanently after {job.attempts} attempts: {error}")
            else:
                logger.warning(f"Job {job.id} failed (attempt {job.attempts}), eligible for retry: {error}")

            self.job_store.update_job_status(job.id, JobStatus.FAILED, error)
        except Exception as e:
            log_exception(logger, f"Error handling job failure for {job.id}: {e}")

    def get_stats(self) -> Dict[str, Any]:
        """Get orchestrator statistics"""
        uptime = (datetime.now() - self.stats['start_time']).total_seconds()
        processed = self.stats['jobs_processed']
        failed = self.stats['jobs_failed']

        return {
            'jobs_processed': processed,
            'jobs_failed': failed,
            'total_processing_time': self.stats['total_processing_time'],
            'average_processing_time': self.stats['total_processing_time'] / processed if processed else 0,
            'uptime_seconds': uptime,
            'success_rate': processed / (processed + failed) if (processed + failed) else 0
        }
