import json
import math
import os
import shutil
from typing import Any, List, Optional

from ..models import Frame


def get_job_dir(scratch_root: str, job_id: str) -> str:
    """Scratch directory owned by one job"""
    return os.path.join(scratch_root, str(job_id))


def prepare_job_dir(scratch_root: str, job_id: str) -> str:
    """Create an empty scratch directory, wiping leftovers from a previous attempt"""
    job_dir = get_job_dir(scratch_root, job_id)
    if os.path.exists(job_dir):
        shutil.rmtree(job_dir)
    os.makedirs(os.path.join(job_dir, "frames"), exist_ok=True)
    return job_dir


def cleanup_job_dir(scratch_root: str, job_id: str) -> None:
    """Remove a job's scratch directory if present"""
    shutil.rmtree(get_job_dir(scratch_root, job_id), ignore_errors=True)


def coerce_float(value: Any) -> Optional[float]:
    """Finite float from a number or numeric string, else None (bools are not numbers)"""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def coerce_int(value: Any) -> Optional[int]:
    """Integer from a number or numeric string (truncated), else None"""
    number = coerce_float(value)
    return int(number) if number is not None else None


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def timeline_json(frames: List[Frame]) -> str:
    """Frame timeline as the JSON listing sent to the oracle"""
    return json.dumps(
        [
            {"index": f.index, "timestamp_seconds": f.timestamp_seconds, "url": f.url}
            for f in frames
        ],
        indent=2
    )
