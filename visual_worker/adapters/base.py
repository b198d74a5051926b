"""
Abstract base classes for the job store and blob store adapters.

Defines the interface that all adapters must implement, so the
pipeline never talks to Postgres or S3 directly and tests can swap
in in-memory stores.
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, List

from ..models import Job, JobStatus, SourceMedia, VisualAnalysis


class JobStoreAdapter(ABC):
    """Abstract base class for job store adapters"""

    def connect(self) -> None:
        """Open connections (no-op by default)"""

    def close(self) -> None:
        """Release connections (no-op by default)"""

    @abstractmethod
    def claim_job(self) -> Optional[Job]:
        """
        Atomically claim the next eligible job.

        Eligible jobs are ``pending`` ones and ``failed`` ones still under
        the attempt bound, oldest first. The claimed job is moved to
        ``processing`` with its error cleared.

        Returns:
            Job object if available, None if there is no work
        """
        pass

    @abstractmethod
    def update_job_status(self, job_id: str, status: JobStatus, error_message: Optional[str] = None) -> None:
        """
        Set a job's status and error message.

        Args:
            job_id: ID of the job
            status: New status
            error_message: Message to store, None clears it
        """
        pass

    @abstractmethod
    def fetch_source_media(self, simulation_id: str) -> Optional[SourceMedia]:
        """
        Load the source record a job points at.

        Args:
            simulation_id: ID of the owning simulation

        Returns:
            SourceMedia if the record exists, None otherwise
        """
        pass

    @abstractmethod
    def persist_visual_analysis(self, job_id: str, simulation_id: str, analysis: VisualAnalysis) -> None:
        """
        Store the finished analysis on the job and its simulation and mark
        the job complete, all in one transaction.

        Args:
            job_id: ID of the job
            simulation_id: ID of the owning simulation
            analysis: Reconciled visual analysis
        """
        pass

    @abstractmethod
    def get_pending_jobs(self, limit: int = 10) -> List[Job]:
        """
        Get claimable jobs (for monitoring/debugging).

        Returns:
            List of jobs in claim order
        """
        pass

    def get_stats(self) -> Dict[str, Any]:
        """Get store statistics for monitoring"""
        return {}

    def ping(self) -> None:
        """Raise if the store is unreachable"""


class BlobStoreAdapter(ABC):
    """Abstract base class for frame image storage"""

    def connect(self) -> None:
        """Open connections (no-op by default)"""

    def close(self) -> None:
        """Release connections (no-op by default)"""

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str) -> None:
        """
        Upload bytes to ``path``, overwriting any existing object.

        Raises:
            Exception: if the upload did not succeed
        """
        pass

    @abstractmethod
    def public_url(self, path: str) -> str:
        """Resolve the public URL of an uploaded object"""
        pass
