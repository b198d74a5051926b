import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import OracleError
from ..models import Frame
from ..oracle import Oracle, OracleRequest
from .util import timeline_json

logger = logging.getLogger("visual_worker")


def _text_or_empty(value) -> str:
    """Free-form description fields: keep strings, stringify scalars, drop anything else"""
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return str(value)
    return ""


class QualityAssessment(BaseModel):
    """Overall production quality"""
    model_config = ConfigDict(extra="ignore")

    resolution_ok: Optional[bool] = Field(default=None, description="Whether the resolution looks acceptable")
    lighting_ok: Optional[str] = Field(default=None, description="good | okay | poor")
    edit_quality: Optional[str] = Field(default=None, description="simple | basic | advanced | chaotic")

    @field_validator("resolution_ok", mode="before")
    @classmethod
    def _bool_or_none(cls, value):
        return value if isinstance(value, bool) else None

    @field_validator("lighting_ok", "edit_quality", mode="before")
    @classmethod
    def _text_or_none(cls, value):
        return _text_or_empty(value) or None


class VisualEventCandidate(BaseModel):
    """Shape of one event as requested from the oracle (documentation only)"""
    label: str = Field(description="Short name of the visual beat")
    start_frame_index: int = Field(description="Index of the first frame of the beat")
    end_frame_index: int = Field(description="Index of the last frame of the beat (inclusive)")
    notes_for_editor: List[str] = Field(description="Short editing notes for this beat")


class VisualAnalysisResponse(BaseModel):
    """Structured output from the visual analysis call"""
    model_config = ConfigDict(extra="ignore")

    visual_style: str = Field(default="", description="Overall visual style")
    pacing_description: str = Field(default="", description="How fast the visuals move")
    on_screen_text_usage: str = Field(default="", description="How on-screen text is used")
    on_screen_text: List[str] = Field(default_factory=list, description="Text read from the frames")
    aesthetic_tags: List[str] = Field(default_factory=list, description="Short aesthetic tags")
    scene_summary: str = Field(default="", description="What happens in the video")
    quality_assessment: QualityAssessment = Field(default_factory=QualityAssessment)
    # Left untyped: the event reconciler salvages malformed entries
    visual_events: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("visual_style", "pacing_description", "on_screen_text_usage", "scene_summary", mode="before")
    @classmethod
    def _text(cls, value):
        return _text_or_empty(value)

    @field_validator("on_screen_text", "aesthetic_tags", mode="before")
    @classmethod
    def _string_list(cls, value):
        if not isinstance(value, list):
            return []
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]

    @field_validator("quality_assessment", mode="before")
    @classmethod
    def _object_or_empty(cls, value):
        return value if isinstance(value, dict) else {}

    @field_validator("visual_events", mode="before")
    @classmethod
    def _event_dicts(cls, value):
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]


def response_schema() -> Dict[str, Any]:
    """JSON schema shown to the oracle, with typed events"""
    schema = VisualAnalysisResponse.model_json_schema()
    schema["properties"]["visual_events"] = {
        "type": "array",
        "items": VisualEventCandidate.model_json_schema(),
    }
    return schema


ANALYSIS_SYSTEM_PROMPT = "You analyze short-form video frames visually."

ANALYSIS_INSTRUCTIONS = """Frames are listed below in chronological order, each with an "index".
Group consecutive frames into {min_events}-{max_events} visual events (scene beats).
Reference frames ONLY by "start_frame_index" and "end_frame_index" (inclusive). Never use timestamps.
Read any on-screen text you can see into "on_screen_text"."""


def build_analysis_request(timeline: List[Frame], transcript: Optional[str], image_limit: int = 0,
                           min_events: int = 3, max_events: int = 8) -> OracleRequest:
    text = "\n".join([
        ANALYSIS_INSTRUCTIONS.format(min_events=min_events, max_events=max_events),
        "",
        "Frames:",
        timeline_json(timeline),
        "",
        "Transcript:",
        transcript or "",
        "",
        "Return ONLY a JSON object matching this schema:",
        json.dumps(response_schema(), indent=2),
    ])
    image_urls = [frame.url for frame in timeline[:max(image_limit, 0)]]
    return OracleRequest(system=ANALYSIS_SYSTEM_PROMPT, text=text, image_urls=image_urls)


class VisualAnalyzer:
    """Asks the oracle for the description and index-based visual events"""

    def __init__(self, oracle: Oracle, image_limit: int = 0, min_events: int = 3, max_events: int = 8):
        self.oracle = oracle
        self.image_limit = image_limit
        self.min_events = min_events
        self.max_events = max_events

    def analyze(self, timeline: List[Frame], transcript: Optional[str] = None) -> VisualAnalysisResponse:
        """
        Run the analysis call.

        Raises:
            OracleError: if the response is empty, unparsable or not a JSON object
        """
        request = build_analysis_request(
            timeline, transcript, self.image_limit, self.min_events, self.max_events
        )
        logger.info(f"Requesting visual analysis for {len(timeline)} frames ({len(request.image_urls)} attached)")

        data = self.oracle.describe(request)
        try:
            return VisualAnalysisResponse.model_validate(data)
        except ValidationError as e:
            raise OracleError(f"Visual analysis response is not a JSON object: {e}") from e
