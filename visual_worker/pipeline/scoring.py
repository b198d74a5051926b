import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from ..errors import OracleError
from ..models import Frame
from ..oracle import Oracle, OracleRequest
from .util import clamp, coerce_float, coerce_int, timeline_json

logger = logging.getLogger("visual_worker")

NEUTRAL_SCORE = 0.5

SCORING_SYSTEM_PROMPT = (
    "You estimate scroll retention for short-form video. "
    "For each frame, judge how likely a viewer is to keep watching at that moment."
)

SCORING_INSTRUCTIONS = """Score every frame listed below.
A score is a float between 0 and 1: 0 means a likely "swipe away" moment, 1 means maximally engaging.
Refer to frames only by their "index".

Return ONLY JSON with this schema:
{
  "frames": [
    {"index": 0, "score": 0.0, "reason": "string"}
  ]
}"""


def normalize_score(value: Any) -> float:
    """Clamp a score into [0, 1]; anything non-numeric becomes neutral"""
    number = coerce_float(value)
    if number is None:
        return NEUTRAL_SCORE
    return clamp(number, 0.0, 1.0)


def parse_scores(response: Dict[str, Any], frame_count: int) -> Dict[int, float]:
    """Map frame index -> score for the in-range entries of a scoring response"""
    entries = response.get("frames")
    if not isinstance(entries, list):
        return {}

    scores = {}
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        index = coerce_int(entry.get("index"))
        if index is None or not 0 <= index < frame_count:
            continue
        scores[index] = normalize_score(entry.get("score"))
    return scores


def build_scoring_request(timeline: List[Frame], transcript: Optional[str]) -> OracleRequest:
    text = "\n".join([
        SCORING_INSTRUCTIONS,
        "",
        "Frames:",
        timeline_json(timeline),
        "",
        "Transcript:",
        transcript or "",
    ])
    return OracleRequest(system=SCORING_SYSTEM_PROMPT, text=text)


class QualityScorer:
    """Adds per-frame retention scores to a timeline"""

    def __init__(self, oracle: Oracle):
        self.oracle = oracle

    def score(self, timeline: List[Frame], transcript: Optional[str] = None) -> List[Frame]:
        """
        Return a new timeline with scores applied.

        Never raises on oracle trouble: unscored frames keep the
        neutral default.
        """
        if not timeline:
            return []

        try:
            response = self.oracle.describe(build_scoring_request(timeline, transcript))
        except OracleError as e:
            logger.warning(f"Quality scoring unavailable, keeping neutral scores: {e}")
            return list(timeline)

        scores = parse_scores(response, len(timeline))
        if len(scores) < len(timeline):
            logger.warning(f"Quality scoring covered {len(scores)} of {len(timeline)} frames")

        return [
            replace(frame, quality_score=scores[frame.index]) if frame.index in scores else frame
            for frame in timeline
        ]
