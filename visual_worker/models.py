"""
Domain models for the visual analysis worker.

Defines the core data structures used throughout the system,
providing type safety and clear interfaces between components.
"""

import os
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List

from .errors import InvalidTransitionError


class JobStatus(str, Enum):
    """Lifecycle states of a visual job"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETE = "complete"
    FAILED = "failed"

    def can_transition_to(self, target: "JobStatus") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.PROCESSING},
    JobStatus.FAILED: {JobStatus.PROCESSING},
    JobStatus.PROCESSING: {JobStatus.COMPLETE, JobStatus.FAILED},
    JobStatus.COMPLETE: set(),
}


@dataclass
class Job:
    """Represents a visual analysis job"""
    id: str
    simulation_id: str
    status: JobStatus
    error_message: Optional[str] = None
    attempts: int = 0
    created_at: Optional[datetime] = None

    def transition(self, target: JobStatus, error_message: Optional[str] = None) -> None:
        """Move to ``target`` or raise InvalidTransitionError"""
        if not self.status.can_transition_to(target):
            raise InvalidTransitionError(
                f"Job {self.id}: illegal transition {self.status.value} -> {target.value}"
            )
        self.status = target
        self.error_message = error_message


@dataclass
class SourceMedia:
    """Read-only source record for a job"""
    simulation_id: str
    video_url: Optional[str]
    transcript: Optional[str] = None
    duration_seconds: Optional[float] = None


@dataclass
class SampledFrame:
    """A local frame that survived downsampling"""
    index: int
    path: str
    timestamp_seconds: float

    @property
    def filename(self) -> str:
        return os.path.basename(self.path)


@dataclass(frozen=True)
class Frame:
    """A published frame on the timeline"""
    index: int
    url: str
    timestamp_seconds: float
    quality_score: float = 0.5


@dataclass
class VisualEvent:
    """A labelled span of the frame timeline"""
    label: str
    start_frame_index: int
    end_frame_index: int
    start_seconds: float
    end_seconds: float
    notes_for_editor: List[str] = field(default_factory=list)


@dataclass
class VisualAnalysis:
    """Aggregate result persisted for a job"""
    visual_style: str = ""
    pacing_description: str = ""
    on_screen_text_usage: str = ""
    on_screen_text: List[str] = field(default_factory=list)
    aesthetic_tags: List[str] = field(default_factory=list)
    scene_summary: str = ""
    quality_assessment: Dict[str, Any] = field(default_factory=dict)
    frames: List[Frame] = field(default_factory=list)
    visual_events: List[VisualEvent] = field(default_factory=list)

    @property
    def frame_urls(self) -> List[str]:
        return [frame.url for frame in self.frames]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ProcessingResult:
    """Represents the result of processing one job"""
    success: bool
    stages_completed: List[str]
    error: Optional[str] = None
    metrics: Dict[str, Any] = None
    analysis: Optional[VisualAnalysis] = None
