import logging
import os

import requests

from ..errors import TransferError

logger = logging.getLogger("visual_worker")

CHUNK_SIZE = 1024 * 1024


def download_video(video_url: str, dest_path: str, timeout: float = 120.0) -> str:
    """
    Download the source video to ``dest_path``.

    Returns:
        The local path

    Raises:
        TransferError: on a non-success status or a network failure
    """
    logger.info(f"Downloading video: {video_url}")
    try:
        with requests.get(video_url, stream=True, timeout=timeout) as response:
            if not response.ok:
                raise TransferError(f"Failed to fetch video: {response.status_code} {response.reason}")

            with open(dest_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
    except requests.RequestException as e:
        raise TransferError(f"Failed to fetch video: {e}") from e

    size_mb = os.path.getsize(dest_path) / (1024 * 1024)
    logger.info(f"Downloaded video to {dest_path} ({size_mb:.2f} MB)")
    return dest_path
