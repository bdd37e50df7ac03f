import logging

from fastapi.testclient import TestClient

from continuo import main as main_module
from continuo.logging_utils import RequestContextFilter, StructuredFormatter, clear_request_context, set_request_context
from continuo.main import app

client = TestClient(app)


def _c_f_g_c_payload():
    return {
        "chords": [
            {"bass": "C3", "chord_tones": ["C3", "E3", "G3"]},
            {"bass": 53, "chord_tones": [53, 57, 60]},
            {"bass": 55, "chord_tones": [55, 59, 62]},
            {"bass": 48, "chord_tones": [48, 52, 55]},
        ]
    }


def test_voice_ranges_endpoint_returns_defaults():
    res = client.get("/api/voice-ranges")

    assert res.status_code == 200
    assert res.json()["soprano"] == {"low": 60, "high": 79}
    assert res.json()["bass"] == {"low": 40, "high": 60}


def test_realize_endpoint_returns_aligned_voicings_and_analysis():
    res = client.post("/api/realize", json=_c_f_g_c_payload())

    assert res.status_code == 200
    payload = res.json()
    assert len(payload["voicings"]) == 4
    first = payload["voicings"][0]
    assert (first["soprano"], first["alto"], first["tenor"], first["bass"]) == (67, 64, 60, 48)
    assert first["names"] == {"soprano": "G4", "alto": "E4", "tenor": "C4", "bass": "C3"}
    assert abs(first["score"]["total"] - 19.4) < 1e-9
    assert [v["bass"] for v in payload["voicings"]] == [48, 53, 55, 48]
    assert payload["analysis"]["clean"] is True
    assert payload["analysis"]["parallel_warnings"] == []
    assert res.headers["X-Request-ID"]


def test_realize_endpoint_reports_failing_chord_index():
    body = {
        "chords": [
            {"bass": 48, "chord_tones": [48, 52, 55]},
            {"bass": 48, "chord_tones": [48, 50, 52, 55, 59]},
        ]
    }
    res = client.post("/api/realize", json=body, headers={"X-Request-ID": "req-42"})

    assert res.status_code == 422
    detail = res.json()["detail"]
    assert detail["chord_index"] == 1
    assert "Realization failed" in detail["message"]
    assert detail["request_id"] == "req-42"
    assert res.headers["X-Request-ID"] == "req-42"


def test_realize_endpoint_honours_custom_voice_ranges():
    narrow = {"low": 60, "high": 64}
    body = {
        "chords": [{"bass": 55, "chord_tones": [48, 52, 55]}, {"bass": 50, "chord_tones": [50, 54, 57]}],
        "voice_ranges": {"soprano": narrow, "alto": narrow, "tenor": narrow},
    }
    res = client.post("/api/realize", json=body)

    assert res.status_code == 422
    assert res.json()["detail"]["chord_index"] == 1


def test_realize_endpoint_rejects_bass_outside_bass_range():
    res = client.post("/api/realize", json={"chords": [{"bass": 30, "chord_tones": [30, 34, 37]}]})

    assert res.status_code == 422


def test_realize_endpoint_rejects_bad_pitch_names_and_empty_input():
    assert client.post("/api/realize", json={"chords": [{"bass": "H3", "chord_tones": [48]}]}).status_code == 422
    assert client.post("/api/realize", json={"chords": []}).status_code == 422
    assert client.post("/api/realize", json={"chords": [{"bass": 48, "chord_tones": []}]}).status_code == 422


def test_realize_endpoint_rejects_inverted_range():
    body = {**_c_f_g_c_payload(), "voice_ranges": {"alto": {"low": 72, "high": 55}}}
    assert client.post("/api/realize", json=body).status_code == 422


def test_analyze_endpoint_flags_parallel_fifths():
    body = {
        "voicings": [
            {"soprano": 67, "alto": 64, "tenor": 55, "bass": 48},
            {"soprano": "A#4", "alto": "F4", "tenor": "A3", "bass": "D3"},
        ]
    }
    res = client.post("/api/analyze", json=body)

    assert res.status_code == 200
    analysis = res.json()["analysis"]
    assert analysis["clean"] is False
    assert analysis["parallel_warnings"] == ["Parallel fifths between chords 1 and 2 (tenor/bass)."]
    assert analysis["total_voice_motion"] == 6


def test_unhandled_errors_return_500_with_request_id(monkeypatch):
    def boom(*_args, **_kwargs):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(main_module, "realize_progression_detailed", boom)
    failing_client = TestClient(app, raise_server_exceptions=False)

    res = failing_client.post("/api/realize", json=_c_f_g_c_payload(), headers={"X-Request-ID": "req-500"})

    assert res.status_code == 500
    assert res.json()["request_id"] == "req-500"
    assert res.headers["X-Request-ID"] == "req-500"


def test_structured_formatter_emits_event_fields_as_json():
    record = logging.makeLogRecord(
        {"name": "continuo.test", "levelname": "INFO", "msg": "chord_realized", "event": "chord_realized", "chord_index": 2}
    )
    line = StructuredFormatter(json_output=True).format(record)

    assert '"event": "chord_realized"' in line
    assert '"chord_index": 2' in line
    assert '"message"' not in line


def test_request_context_filter_attaches_method_and_route():
    set_request_context(request_id="req-7", route="/api/realize", method="POST")
    try:
        record = logging.makeLogRecord({"name": "continuo.test", "levelname": "INFO", "msg": "request_started"})
        RequestContextFilter().filter(record)
    finally:
        clear_request_context()

    assert record.request_id == "req-7"
    assert record.route == "/api/realize"
    assert record.method == "POST"
    line = StructuredFormatter(json_output=False).format(record)
    assert "method=POST" in line
    assert "event=request_started" in line
