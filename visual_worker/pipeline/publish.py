import logging
from typing import List

from ..adapters.base import BlobStoreAdapter
from ..errors import TransferError
from ..models import Frame, Job, SampledFrame

logger = logging.getLogger("visual_worker")


def blob_path(simulation_id: str, job_id: str, filename: str) -> str:
    return f"{simulation_id}/{job_id}/{filename}"


class FramePublisher:
    """Uploads sampled frames and builds the frame timeline"""

    def __init__(self, blob_store: BlobStoreAdapter, content_type: str = "image/jpeg"):
        self.blob_store = blob_store
        self.content_type = content_type

    def publish(self, job: Job, sampled: List[SampledFrame]) -> List[Frame]:
        """
        Upload every frame in index order.

        Any failed upload aborts the whole set, since a truncated
        timeline would shift every later index.

        Raises:
            TransferError: if a frame cannot be read or uploaded
        """
        logger.info(f"Uploading {len(sampled)} frames for job {job.id}")
        timeline = []

        for frame in sampled:
            path = blob_path(job.simulation_id, job.id, frame.filename)
            try:
                with open(frame.path, "rb") as f:
                    data = f.read()
                self.blob_store.upload(path, data, self.content_type)
                url = self.blob_store.public_url(path)
            except Exception as e:
                raise TransferError(f"Failed to upload frame {frame.filename}: {e}") from e

            timeline.append(Frame(
                index=frame.index,
                url=url,
                timestamp_seconds=frame.timestamp_seconds
            ))

        return timeline
