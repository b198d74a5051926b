import json

import pytest

from visual_worker.errors import OracleError
from visual_worker.pipeline.analysis import VisualAnalyzer, build_analysis_request, response_schema

from conftest import StubOracle, make_timeline


def test_request_attaches_bounded_image_prefix():
    timeline = make_timeline(5)
    request = build_analysis_request(timeline, "transcript text", image_limit=2)

    assert request.image_urls == [timeline[0].url, timeline[1].url]
    assert "3-8 visual events" in request.text
    assert "Never use timestamps" in request.text
    assert "transcript text" in request.text


def test_request_without_images():
    assert build_analysis_request(make_timeline(3), None, image_limit=0).image_urls == []


def test_schema_describes_index_based_events():
    schema = response_schema()
    event_props = schema["properties"]["visual_events"]["items"]["properties"]
    assert {"label", "start_frame_index", "end_frame_index", "notes_for_editor"} <= set(event_props)
    json.dumps(schema)


def test_analyze_parses_response(oracle):
    response = VisualAnalyzer(oracle, image_limit=1).analyze(make_timeline(3), "hi")

    assert response.visual_style == "handheld selfie"
    assert response.on_screen_text == ["WAIT FOR IT"]
    assert response.quality_assessment.lighting_ok == "good"
    assert len(response.visual_events) == 2
    assert len(oracle.requests[0].image_urls) == 1


def test_analyze_tolerates_loose_fields():
    oracle = StubOracle(analysis={
        "visual_style": None,
        "aesthetic_tags": "not a list",
        "on_screen_text": ["  SALE ", "", 7],
        "quality_assessment": "fine",
        "visual_events": {"label": "oops"},
        "unexpected": True,
    })
    response = VisualAnalyzer(oracle).analyze(make_timeline(2))

    assert response.visual_style == ""
    assert response.aesthetic_tags == []
    assert response.on_screen_text == ["SALE"]
    assert response.quality_assessment.resolution_ok is None
    assert response.visual_events == []


def test_analyze_propagates_oracle_failure():
    with pytest.raises(OracleError):
        VisualAnalyzer(StubOracle(analysis_error=True)).analyze(make_timeline(2))


def test_mistyped_descriptive_fields_are_coerced():
    oracle = StubOracle(analysis={
        "visual_style": 42,
        "scene_summary": {"text": "nested"},
        "quality_assessment": {"resolution_ok": "maybe", "lighting_ok": True, "edit_quality": ["basic"]},
        "visual_events": [{"label": "Hook", "start_frame_index": 0, "end_frame_index": 1}],
    })
    response = VisualAnalyzer(oracle).analyze(make_timeline(2))

    assert response.visual_style == "42"
    assert response.scene_summary == ""
    assert response.quality_assessment.resolution_ok is None
    assert response.quality_assessment.lighting_ok == "True"
    assert response.quality_assessment.edit_quality is None
    assert response.visual_events[0]["label"] == "Hook"


def test_non_object_response_is_oracle_error():
    oracle = StubOracle(analysis=["not", "an", "object"])
    with pytest.raises(OracleError, match="not a JSON object"):
        VisualAnalyzer(oracle).analyze(make_timeline(2))
