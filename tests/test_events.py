import pytest

from visual_worker.pipeline.events import reconcile_events

from conftest import make_timeline


def test_out_of_range_indices_are_clamped():
    timeline = make_timeline(10)
    [event] = reconcile_events(
        [{"label": "Everything", "start_frame_index": -5, "end_frame_index": 999}], timeline
    )

    assert event.start_frame_index == 0
    assert event.end_frame_index == 9
    assert event.start_seconds == timeline[0].timestamp_seconds
    assert event.end_seconds == timeline[9].timestamp_seconds


def test_inverted_range_collapses_to_start():
    timeline = make_timeline(10)
    [event] = reconcile_events(
        [{"label": "Backwards", "start_frame_index": 7, "end_frame_index": 2}], timeline
    )
    assert (event.start_frame_index, event.end_frame_index) == (7, 7)
    assert event.start_seconds == event.end_seconds == timeline[7].timestamp_seconds


@pytest.mark.parametrize("label", ["", "   ", None, 42])
def test_events_without_label_are_dropped(label):
    events = reconcile_events(
        [{"label": label, "start_frame_index": 0, "end_frame_index": 1},
         {"label": "Kept", "start_frame_index": 1}],
        make_timeline(3),
    )
    assert [e.label for e in events] == ["Kept"]


def test_missing_notes_become_empty_list():
    [event] = reconcile_events([{"label": "Beat", "start_frame_index": 0}], make_timeline(3))
    assert event.notes_for_editor == []


def test_notes_are_trimmed_and_filtered():
    [event] = reconcile_events(
        [{"label": "  Beat ", "notes_for_editor": [" cut here ", "", "  ", 3, None, "zoom"]}],
        make_timeline(3),
    )
    assert event.label == "Beat"
    assert event.notes_for_editor == ["cut here", "zoom"]


def test_missing_or_non_numeric_indices_use_defaults():
    timeline = make_timeline(5)
    events = reconcile_events(
        [
            {"label": "No indices"},
            {"label": "Only start", "start_frame_index": 3},
            {"label": "Garbage", "start_frame_index": "soon", "end_frame_index": {"x": 1}},
            {"label": "Strings", "start_frame_index": "1", "end_frame_index": "2.0"},
            {"label": "Floats", "start_frame_index": 1.9, "end_frame_index": 3.2},
        ],
        timeline,
    )
    spans = [(e.start_frame_index, e.end_frame_index) for e in events]
    assert spans == [(0, 0), (3, 3), (0, 0), (1, 2), (1, 3)]


def test_reconciled_events_respect_timeline_bounds():
    timeline = make_timeline(6)
    candidates = [
        {"label": f"e{s}_{e}", "start_frame_index": s, "end_frame_index": e}
        for s in range(-3, 10, 2) for e in range(-4, 12, 3)
    ]
    for event in reconcile_events(candidates, timeline):
        assert 0 <= event.start_frame_index <= event.end_frame_index <= 5
        assert event.start_seconds <= event.end_seconds


def test_non_dict_candidates_and_empty_timeline():
    assert reconcile_events(["Hook", None, 5], make_timeline(3)) == []
    assert reconcile_events([{"label": "Hook"}], []) == []
