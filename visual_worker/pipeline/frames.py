import math
import os
import logging
from typing import Callable, List, Optional

import ffmpeg

from ..errors import DecodeError
from ..models import SampledFrame

logger = logging.getLogger("visual_worker")

FRAME_PREFIX = "frame-"
FRAME_SUFFIX = ".jpg"
MIN_PATTERN_WIDTH = 6

Decoder = Callable[[str, str, float, int], None]


def expected_frame_count(duration: Optional[float], fps: float) -> Optional[int]:
    """Upper bound on frames the decoder emits, if the duration is known"""
    if not duration or duration <= 0:
        return None
    return int(math.ceil(duration * fps)) + 1


def frame_pattern_width(expected_count: Optional[int]) -> int:
    """Zero padding needed for frame numbers to sort lexicographically"""
    if not expected_count:
        return MIN_PATTERN_WIDTH
    return max(MIN_PATTERN_WIDTH, len(str(expected_count)))


def run_decoder(video_path: str, output_dir: str, fps: float, pattern_width: int) -> None:
    """Write frames at ``fps`` to ``output_dir`` as frame-000001.jpg, ..."""
    pattern = os.path.join(output_dir, f"{FRAME_PREFIX}%0{pattern_width}d{FRAME_SUFFIX}")
    try:
        (
            ffmpeg
            .input(video_path)
            .filter('fps', fps=fps)
            .output(pattern, **{'q:v': 2})
            .overwrite_output()
            .run(quiet=True)
        )
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="replace") if e.stderr else ""
        raise DecodeError(f"ffmpeg failed extracting frames from {video_path}: {stderr.strip()[-500:]}") from e


def probe_duration(video_path: str) -> Optional[float]:
    """Container duration in seconds, or None if ffprobe cannot tell"""
    try:
        probe = ffmpeg.probe(video_path)
        duration = probe.get('format', {}).get('duration')
        if duration is None:
            video_stream = next(s for s in probe['streams'] if s['codec_type'] == 'video')
            duration = video_stream.get('duration')
        return float(duration) if duration else None
    except Exception as e:
        logger.warning(f"Could not probe duration of {video_path}: {e}")
        return None


def list_frame_files(frames_dir: str) -> List[str]:
    """Decoded frame paths in chronological (lexicographic) order"""
    names = sorted(
        name for name in os.listdir(frames_dir)
        if name.startswith(FRAME_PREFIX) and name.endswith(FRAME_SUFFIX)
    )
    return [os.path.join(frames_dir, name) for name in names]


def downsample(items: List, max_frames: int) -> List:
    """Keep every ceil(n / max_frames)-th item, starting with the first"""
    if max_frames <= 0 or len(items) <= max_frames:
        return list(items)
    stride = math.ceil(len(items) / max_frames)
    return items[::stride]


def assign_timestamps(frame_count: int, fps: float, duration: Optional[float] = None) -> List[float]:
    """
    Timestamps for ``frame_count`` evenly sampled frames.

    With a known duration the frames are spread strictly inside it,
    otherwise each frame sits at the midpoint of its sampling slot.
    """
    if duration and duration > 0:
        return [round(duration * (i + 1) / (frame_count + 1), 2) for i in range(frame_count)]
    return [round((i + 0.5) / fps, 2) for i in range(frame_count)]


def sample_frames(
    video_path: str,
    frames_dir: str,
    fps: float,
    max_frames: int,
    duration: Optional[float] = None,
    decoder: Decoder = run_decoder
) -> List[SampledFrame]:
    """
    Decode, downsample and timestamp frames for one video.

    Returns:
        SampledFrame list indexed 0..N-1 in chronological order

    Raises:
        DecodeError: if the decoder fails or yields no frames
    """
    os.makedirs(frames_dir, exist_ok=True)
    width = frame_pattern_width(expected_frame_count(duration, fps))

    logger.info(f"Extracting frames at {fps} fps from {video_path}")
    decoder(video_path, frames_dir, fps, width)

    raw = list_frame_files(frames_dir)
    if not raw:
        raise DecodeError(f"Decoder produced no frames for {video_path}")

    kept = downsample(raw, max_frames)
    timestamps = assign_timestamps(len(kept), fps, duration)

    logger.info(f"Sampled {len(kept)} of {len(raw)} raw frames (cap {max_frames})")

    return [
        SampledFrame(index=i, path=path, timestamp_seconds=ts)
        for i, (path, ts) in enumerate(zip(kept, timestamps))
    ]
