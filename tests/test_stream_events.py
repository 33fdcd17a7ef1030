import json

from app.modules.media.schemas import StreamEvent


def _frame(event: StreamEvent):
    return event.to_sse().split("\n")


def test_progress_frame_keeps_multiline_output_in_one_data_line():
    lines = _frame(StreamEvent.progress("[download] 5.0%\nWARNING: slow"))

    assert lines[0] == "event: progress"
    assert lines[1].startswith("data: ")
    assert json.loads(lines[1][len("data: "):]) == {
        "type": "progress",
        "message": "[download] 5.0%\nWARNING: slow",
    }
    assert lines[2:] == ["", ""]


def test_completed_frame_carries_end_sentinel():
    lines = _frame(StreamEvent.completed(0))

    assert lines[0] == "event: completed"
    assert json.loads(lines[1][len("data: "):]) == {"type": "completed", "message": "[END]", "returncode": 0}


def test_identifier_and_error_frames():
    identifier = _frame(StreamEvent.identifier("zdj7Wabc"))
    error = _frame(StreamEvent.error("Failed to upload media to Codex"))

    assert identifier[0] == "event: identifier"
    assert json.loads(identifier[1][len("data: "):]) == {"type": "identifier", "cid": "zdj7Wabc"}
    assert error[0] == "event: error"
    assert json.loads(error[1][len("data: "):])["message"] == "Failed to upload media to Codex"
