import logging
from typing import Any, Dict, Iterable, List

from ..models import Frame, VisualEvent
from .util import coerce_int

logger = logging.getLogger("visual_worker")


def _clamp_index(index: int, max_index: int) -> int:
    return max(0, min(max_index, index))


def _clean_notes(notes: Any) -> List[str]:
    if not isinstance(notes, list):
        return []
    return [note.strip() for note in notes if isinstance(note, str) and note.strip()]


def reconcile_event(candidate: Dict[str, Any], timeline: List[Frame]):
    """
    Turn one oracle event into a VisualEvent, or None if it has no label.

    Indices are clamped into the timeline rather than rejected; times
    come from the timeline itself.
    """
    label = candidate.get("label")
    label = label.strip() if isinstance(label, str) else ""
    if not label:
        return None

    max_index = len(timeline) - 1
    start = coerce_int(candidate.get("start_frame_index"))
    if start is None:
        start = 0
    end = coerce_int(candidate.get("end_frame_index"))
    if end is None:
        end = start

    start = _clamp_index(start, max_index)
    end = max(_clamp_index(end, max_index), start)

    return VisualEvent(
        label=label,
        start_frame_index=start,
        end_frame_index=end,
        start_seconds=timeline[start].timestamp_seconds,
        end_seconds=timeline[end].timestamp_seconds,
        notes_for_editor=_clean_notes(candidate.get("notes_for_editor"))
    )


def reconcile_events(candidates: Iterable[Any], timeline: List[Frame]) -> List[VisualEvent]:
    """Reconcile every candidate against the timeline, dropping unlabeled ones"""
    if not timeline:
        return []

    events = []
    dropped = 0
    for candidate in candidates or []:
        event = reconcile_event(candidate, timeline) if isinstance(candidate, dict) else None
        if event is None:
            dropped += 1
            continue
        events.append(event)

    if dropped:
        logger.warning(f"Dropped {dropped} visual events without a label")
    return events
