"""Tests for timelinekit.cli — commands run as subprocesses."""

from __future__ import annotations

import json
import subprocess
import sys
from typing import Optional

import pytest


def _run_cli(*args: str, input_text: Optional[str] = None) -> subprocess.CompletedProcess:
    """Run timelinekit CLI as a subprocess and return the result."""
    cmd = [sys.executable, "-m", "timelinekit"] + list(args)
    return subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        input=input_text,
        timeout=60,
    )


@pytest.fixture
def doc_file(basic_doc, tmp_path):
    path = tmp_path / "timeline.json"
    path.write_text(json.dumps(basic_doc))
    return str(path)


@pytest.fixture
def script_json(basic_doc):
    return json.dumps({
        "version": "1.0",
        "timeline": basic_doc,
        "operations": [
            {"op": "split", "clip": "v1", "at": "00:00:05"},
            {"op": "fade", "clip": "t1", "fade_in": 15},
        ],
    })


class TestCapabilities:
    def test_lists_operations(self):
        result = _run_cli("capabilities")
        assert result.returncode == 0
        data = json.loads(result.stdout)
        assert "split" in data["operations"]
        assert "merge" in data["operations"]
        assert data["thresholds"]["max_gap_frames"] == 90
        assert data["exit_codes"]["1"] == "validation_error"


class TestValidateCommand:
    def test_validate_file(self, doc_file):
        result = _run_cli("validate", doc_file)
        assert result.returncode == 0
        data = json.loads(result.stdout)
        assert data["valid"] is True
        assert data["duration_in_frames"] == 900

    def test_validate_inline_json(self, basic_doc):
        result = _run_cli("validate", "--json", json.dumps(basic_doc))
        assert result.returncode == 0
        assert json.loads(result.stdout)["valid"] is True

    def test_validate_stdin(self, basic_doc):
        result = _run_cli("validate", "-", input_text=json.dumps(basic_doc))
        assert result.returncode == 0

    def test_invalid_timeline_exit_code(self, basic_doc):
        basic_doc["timeline"][0]["clips"][0]["durationInFrames"] = -1
        result = _run_cli("validate", "--json", json.dumps(basic_doc))
        assert result.returncode == 1
        data = json.loads(result.stdout)
        assert data["valid"] is False
        assert data["errors"][0]["code"] == "NON_POSITIVE_DURATION"

    def test_no_input_provided(self):
        result = _run_cli("validate")
        assert result.returncode == 1
        assert json.loads(result.stdout)["code"] == "MISSING_FIELD"

    def test_missing_file(self, tmp_path):
        result = _run_cli("validate", str(tmp_path / "nope.json"))
        assert result.returncode == 1
        assert json.loads(result.stdout)["code"] == "INPUT_NOT_FOUND"


class TestDoctorCommand:
    def test_doctor_returns_json(self, doc_file):
        result = _run_cli("doctor", doc_file)
        assert result.returncode == 0
        data = json.loads(result.stdout)
        assert data["healthy"] is True
        assert data["stats"]["clip_count"] == 5

    def test_doctor_unhealthy(self):
        result = _run_cli("doctor", "--json", "{}")
        assert result.returncode == 1
        assert json.loads(result.stdout)["healthy"] is False


class TestApplyCommand:
    def test_apply(self, script_json):
        result = _run_cli("apply", "--json", script_json, "-q")
        assert result.returncode == 0
        data = json.loads(result.stdout)
        assert data["success"] is True
        video = data["timeline"]["timeline"][0]
        assert [c["durationInFrames"] for c in video["clips"]] == [150, 150, 300]

    def test_progress_on_stderr(self, script_json):
        result = _run_cli("apply", "--json", script_json)
        assert result.returncode == 0
        lines = [json.loads(line) for line in result.stderr.splitlines() if line.startswith("{")]
        assert [p["progress"]["status"] for p in lines] == ["running", "done", "running", "done"]
        assert lines[0]["progress"]["op"] == "split"
        assert lines[0]["progress"]["total"] == 2

    def test_quiet_suppresses_progress(self, script_json):
        result = _run_cli("apply", "--json", script_json, "-q")
        assert '"progress"' not in result.stderr

    def test_failed_operation_exit_code(self, basic_doc):
        script = json.dumps({
            "version": "1.0",
            "timeline": basic_doc,
            "operations": [{"op": "split", "clip": "v1", "at": 5000}],
        })
        result = _run_cli("apply", "--json", script, "-q")
        assert result.returncode == 2
        data = json.loads(result.stdout)
        assert data["code"] == "CUT_OUTSIDE_CLIP"
        assert data["context"]["operation_index"] == 0

    def test_non_object_operation_exit_code(self, basic_doc):
        script = json.dumps({"version": "1.0", "timeline": basic_doc, "operations": ["split"]})
        result = _run_cli("apply", "--json", script, "-q")
        assert result.returncode == 1
        assert json.loads(result.stdout)["code"] == "INVALID_JSON"

    def test_unknown_operation_exit_code(self, basic_doc):
        script = json.dumps({"version": "1.0", "timeline": basic_doc, "operations": [{"op": "warp"}]})
        result = _run_cli("apply", "--json", script, "-q")
        assert result.returncode == 1
        assert json.loads(result.stdout)["code"] == "UNKNOWN_OPERATION"


class TestAcceptCommand:
    def test_accept_response(self, basic_doc):
        response = f"Moved the title.\n```json\n{json.dumps(basic_doc)}\n```\n"
        result = _run_cli("accept", "-", input_text=response)
        assert result.returncode == 0
        data = json.loads(result.stdout)
        assert data["accepted"] is True
        assert data["message"] == "Moved the title."
        assert data["warnings"] == []

    def test_reject_response(self, basic_doc):
        del basic_doc["project"]
        response = f"```json\n{json.dumps(basic_doc)}\n```"
        result = _run_cli("accept", "-", input_text=response)
        assert result.returncode == 1
        assert json.loads(result.stdout)["code"] == "INVALID_TIMELINE"

    def test_no_timeline_in_response(self):
        result = _run_cli("accept", "-", input_text="I could not do that.")
        assert result.returncode == 1
        assert json.loads(result.stdout)["code"] == "NO_TIMELINE_IN_RESPONSE"


class TestFrameCommand:
    def test_frame_by_number(self, doc_file):
        result = _run_cli("frame", doc_file, "--at", "90")
        assert result.returncode == 0
        data = json.loads(result.stdout)
        assert data["frame"] == 90
        assert [c["clip_id"] for c in data["clips"]] == ["v1", "t2", "a1"]

    def test_frame_by_time(self, doc_file):
        result = _run_cli("frame", doc_file, "--at", "00:00:10")
        assert result.returncode == 0
        assert json.loads(result.stdout)["frame"] == 300

    def test_bad_frame(self, doc_file):
        result = _run_cli("frame", doc_file, "--at", "later")
        assert result.returncode == 1
        assert json.loads(result.stdout)["code"] == "INVALID_PARAMETER"


class TestVersionFlag:
    def test_version_output(self):
        result = _run_cli("--version")
        assert result.returncode == 0
        assert result.stdout.strip() == "timelinekit 0.1.0"
