"""
Main worker service.

Wires configuration, adapters, oracle and orchestrator together and
runs the single-consumer polling loop.
"""

import time
import signal
import sys
import logging
from typing import Optional, Dict, Any

from .config import WorkerConfig
from .adapters.base import JobStoreAdapter, BlobStoreAdapter
from .adapters.postgres_adapter import PostgresJobStoreAdapter
from .adapters.s3_adapter import S3BlobStoreAdapter
from .oracle import Oracle, OpenAIOracle
from .orchestrator import JobOrchestrator
from .processor import VisualProcessor
from .logging_setup import setup_logging, log_exception
from .http_server import start_health_server

logger = logging.getLogger("visual_worker")


class WorkerService:
    """Main worker service"""

    def __init__(self, config: Optional[WorkerConfig] = None, job_store: Optional[JobStoreAdapter] = None,
                 blob_store: Optional[BlobStoreAdapter] = None, oracle: Optional[Oracle] = None,
                 sleep=time.sleep):
        self.config = config or WorkerConfig.from_env()
        self.job_store = job_store
        self.blob_store = blob_store
        self.oracle = oracle
        self.orchestrator: Optional[JobOrchestrator] = None
        self.health_server = None
        self.running = False
        self._sleep = sleep

    def initialize(self):
        """Initialize logging, adapters, orchestrator and health server"""
        try:
            setup_logging(self.config.LOG_LEVEL, self.config.log_dir)

            if self.job_store is None or self.blob_store is None or self.oracle is None:
                self.config.validate()
                self._initialize_adapters()

            processor = VisualProcessor(self.config, self.job_store, self.blob_store, self.oracle)
            self.orchestrator = JobOrchestrator(self.config, self.job_store, processor)

            self.health_server = start_health_server(self)

            logger.info("Worker service initialized successfully")

        except Exception as e:
            log_exception(logger, f"Failed to initialize worker service: {e}")
            raise

    def _initialize_adapters(self):
        """Create whatever collaborators were not injected"""
        if self.job_store is None:
            self.job_store = PostgresJobStoreAdapter(
                database_url=self.config.DATABASE_URL,
                pool_size=self.config.POSTGRES_POOL_SIZE,
                timeout=self.config.POSTGRES_TIMEOUT,
                max_attempts=self.config.MAX_ATTEMPTS
            )
            self.job_store.connect()

        if self.blob_store is None:
            self.blob_store = S3BlobStoreAdapter(
                bucket=self.config.S3_BUCKET,
                region=self.config.S3_REGION,
                prefix=self.config.S3_PREFIX,
                endpoint_url=self.config.S3_ENDPOINT_URL,
                public_base_url=self.config.S3_PUBLIC_BASE_URL
            )
            self.blob_store.connect()

        if self.oracle is None:
            self.oracle = OpenAIOracle(
                model=self.config.OPENAI_MODEL,
                api_key=self.config.OPENAI_API_KEY,
                timeout=self.config.ORACLE_TIMEOUT_SEC
            )

        logger.info(f"Initialized adapters: postgres job store, s3 blob store ({self.config.S3_BUCKET}), oracle {self.config.OPENAI_MODEL}")

    def start(self):
        """Start the polling loop (blocks until stopped)"""
        if self.running:
            logger.warning("Worker service is already running")
            return

        self.running = True
        logger.info("Visual worker running, polling for jobs...")

        while self.running:
            try:
                if not self.run_once():
                    self._sleep(self.config.poll_interval_sec)
            except KeyboardInterrupt:
                logger.info("Received interrupt signal, shutting down...")
                break
            except Exception as e:
                log_exception(logger, f"Unexpected error in worker loop: {e}")
                self._sleep(self.config.poll_interval_sec)

        logger.info("Worker polling loop stopped")

    def run_once(self) -> bool:
        """
        Run one iteration of the worker loop.

        Returns:
            True if a job was claimed and run, False if there was no work
        """
        job = self.orchestrator.claim_next_job()
        if job is None:
            logger.debug("No pending/failed jobs")
            return False

        result = self.orchestrator.run_job(job)
        if not result.success:
            logger.error(f"Job {job.id} failed after stages {result.stages_completed}: {result.error}")
        return True

    def stop(self):
        """Stop the worker service"""
        self.running = False

        if self.health_server:
            self.health_server.stop()

        if self.job_store:
            self.job_store.close()
        if self.blob_store:
            self.blob_store.close()

        logger.info("Worker service stopped")

    def get_stats(self) -> Dict[str, Any]:
        """Get worker statistics"""
        stats = {
            'running': self.running,
            'config': {
                'sampling_fps': self.config.SAMPLING_FPS,
                'max_frames_per_video': self.config.MAX_FRAMES_PER_VIDEO,
                'poll_interval_ms': self.config.POLL_INTERVAL_MS,
                'max_attempts': self.config.MAX_ATTEMPTS
            }
        }

        if self.orchestrator:
            stats['orchestrator'] = self.orchestrator.get_stats()
        if self.job_store:
            stats['store'] = self.job_store.get_stats()

        return stats


def signal_handler(signum, frame):
    """Handle shutdown signals"""
    logger.info(f"Received signal {signum}, shutting down...")
    sys.exit(0)


def main():
    """Main entry point"""
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    worker = WorkerService()

    try:
        worker.initialize()
        worker.start()
    except Exception as e:
        log_exception(logger, f"Worker failed to start: {e}")
        sys.exit(1)
    finally:
        worker.stop()


if __name__ == "__main__":
    main()
