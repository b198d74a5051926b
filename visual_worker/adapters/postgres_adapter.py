"""
Postgres job store adapter.

Claims jobs from ``visual_jobs`` with row locking, reads the source
video from ``simulations`` and writes the finished analysis back to
both tables.
"""

import logging
from typing import Optional, Dict, Any, List

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from .base import JobStoreAdapter
from ..models import Job, JobStatus, SourceMedia, VisualAnalysis
from ..logging_setup import log_exception

logger = logging.getLogger("visual_worker")

# Eligible rows: pending, or failed and still under the attempt bound (0 = unbounded)
ELIGIBLE_CONDITION = """
    (status = 'pending'
     OR (status = 'failed' AND (%(max_attempts)s <= 0 OR COALESCE(attempts, 0) < %(max_attempts)s)))
"""


def _row_to_job(row: Dict[str, Any]) -> Job:
    return Job(
        id=str(row['id']),
        simulation_id=str(row['simulation_id']),
        status=JobStatus(row['status']),
        error_message=row.get('error_message'),
        attempts=row.get('attempts') or 0,
        created_at=row.get('created_at')
    )


class PostgresJobStoreAdapter(JobStoreAdapter):
    """Postgres implementation of the job store"""

    def __init__(self, database_url: str, pool_size: int = 5, timeout: int = 10, max_attempts: int = 3):
        self.database_url = database_url
        self.pool_size = pool_size
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.pool = None

    def connect(self):
        """Initialize connection pool"""
        try:
            self.pool = ConnectionPool(
                self.database_url,
                min_size=1,
                max_size=self.pool_size,
                kwargs={
                    "connect_timeout": self.timeout,
                    "application_name": "visual_worker"
                }
            )
            logger.info("Postgres job store connection pool initialized")
            self._bootstrap_schema()
        except Exception as e:
            log_exception(logger, f"Failed to connect to Postgres job store: {e}")
            raise

    def _bootstrap_schema(self):
        """Add the columns the worker writes if an older schema lacks them"""
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("ALTER TABLE visual_jobs ADD COLUMN IF NOT EXISTS attempts INTEGER NOT NULL DEFAULT 0;")
                cur.execute("ALTER TABLE visual_jobs ADD COLUMN IF NOT EXISTS error_message TEXT;")
                cur.execute("ALTER TABLE visual_jobs ADD COLUMN IF NOT EXISTS frames JSONB;")
                cur.execute("ALTER TABLE visual_jobs ADD COLUMN IF NOT EXISTS visual_analysis JSONB;")
                cur.execute("ALTER TABLE simulations ADD COLUMN IF NOT EXISTS visual_analysis JSONB;")
                cur.execute("ALTER TABLE simulations ADD COLUMN IF NOT EXISTS video_duration_seconds DOUBLE PRECISION;")
                conn.commit()
                logger.info("Postgres job store schema validated")

    def claim_job(self) -> Optional[Job]:
        """Atomically claim the oldest eligible job and mark it processing"""
        with self.pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(f"""
                    WITH j AS (
                        SELECT id
                        FROM visual_jobs
                        WHERE {ELIGIBLE_CONDITION}
                        ORDER BY created_at, id
                        FOR UPDATE SKIP LOCKED
                        LIMIT 1
                    )
                    UPDATE visual_jobs
                    SET status = 'processing',
                        error_message = NULL,
                        attempts = COALESCE(attempts, 0) + 1
                    FROM j
                    WHERE visual_jobs.id = j.id
                    RETURNING visual_jobs.id, visual_jobs.simulation_id, visual_jobs.status,
                              visual_jobs.error_message, visual_jobs.attempts, visual_jobs.created_at;
                """, {"max_attempts": self.max_attempts})
                result = cur.fetchone()
                conn.commit()
                if result:
                    logger.info(f"Claimed job {result['id']} for simulation {result['simulation_id']} (attempt {result['attempts']})")
                    return _row_to_job(result)
                return None

    def update_job_status(self, job_id: str, status: JobStatus, error_message: Optional[str] = None) -> None:
        """Set job status and error message"""
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE visual_jobs SET status = %s, error_message = %s WHERE id = %s",
                    (status.value, error_message, job_id)
                )
                conn.commit()
                if status == JobStatus.FAILED:
                    logger.error(f"Job {job_id} failed: {error_message}")
                else:
                    logger.info(f"Job {job_id} -> {status.value}")

    def fetch_source_media(self, simulation_id: str) -> Optional[SourceMedia]:
        """Get video_url, transcript and duration for a simulation"""
        with self.pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute("""
                    SELECT id, video_url, transcript, video_duration_seconds
                    FROM simulations WHERE id = %s
                """, (simulation_id,))
                result = cur.fetchone()
                if not result:
                    logger.error(f"No simulation found with id {simulation_id}")
                    return None

                duration = result.get('video_duration_seconds')
                return SourceMedia(
                    simulation_id=str(result['id']),
                    video_url=result.get('video_url'),
                    transcript=result.get('transcript'),
                    duration_seconds=float(duration) if duration is not None else None
                )

    def persist_visual_analysis(self, job_id: str, simulation_id: str, analysis: VisualAnalysis) -> None:
        """Write the analysis to the job and its simulation and complete the job in one transaction"""
        document = analysis.to_dict()
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    UPDATE visual_jobs
                    SET frames = %s, visual_analysis = %s,
                        status = 'complete', error_message = NULL
                    WHERE id = %s
                """, (Jsonb(analysis.frame_urls), Jsonb(document), job_id))
                cur.execute(
                    "UPDATE simulations SET visual_analysis = %s WHERE id = %s",
                    (Jsonb(document), simulation_id)
                )
                conn.commit()
                logger.info(f"Stored visual analysis for job {job_id}, simulation {simulation_id}; job -> complete")

    def get_pending_jobs(self, limit: int = 10) -> List[Job]:
        """Get claimable jobs in claim order"""
        with self.pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(f"""
                    SELECT id, simulation_id, status, error_message, attempts, created_at
                    FROM visual_jobs
                    WHERE {ELIGIBLE_CONDITION}
                    ORDER BY created_at, id
                    LIMIT %(limit)s
                """, {"max_attempts": self.max_attempts, "limit": limit})
                return [_row_to_job(row) for row in cur.fetchall()]

    def get_stats(self) -> Dict[str, Any]:
        """Get job counts by status"""
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    SELECT status, COUNT(*) as count
                    FROM visual_jobs
                    GROUP BY status
                """)
                return {"jobs": {row[0]: row[1] for row in cur.fetchall()}}

    def ping(self) -> None:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()

    def close(self):
        """Close connection pool"""
        if self.pool:
            self.pool.close()
            logger.info("Postgres job store connection pool closed")
