import importlib.util
import json
import sys
from pathlib import Path

SCRIPT_PATH = Path(__file__).resolve().parents[1] / "scripts" / "realize_progression.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("realize_progression", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_demo_progression_prints_voicings_and_analysis(monkeypatch, capsys):
    script = _load_script()
    monkeypatch.setattr(sys, "argv", ["realize_progression.py"])

    assert script.main() == 0

    out = capsys.readouterr().out
    assert "Chord 1: S:G4 A:E4 T:C4 B:C3" in out
    assert "Chord 2: S:F4 A:C4 T:A3 B:F3" in out
    assert "Chord 3: S:D4 A:B3 T:G3 B:G3" in out
    assert "Chord 4: S:E4 A:C4 T:G3 B:C3" in out
    assert "Total voice motion: 18 semitones" in out
    assert "Warning:" not in out


def test_json_input_failure_reports_chord_index(monkeypatch, capsys, tmp_path):
    script = _load_script()
    chords = [
        {"bass": "C3", "chord_tones": ["C3", "E3", "G3"]},
        {"bass": "C3", "chord_tones": [48, 50, 52, 55, 59]},
    ]
    input_path = tmp_path / "chords.json"
    input_path.write_text(json.dumps({"chords": chords}), encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["realize_progression.py", "--input", str(input_path), "--json"])

    assert script.main() == 1

    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "failure"
    assert payload["chord_index"] == 1


def test_malformed_json_input_reports_error(monkeypatch, capsys, tmp_path):
    script = _load_script()
    input_path = tmp_path / "chords.json"
    input_path.write_text('{"chords": [', encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["realize_progression.py", "--input", str(input_path)])

    assert script.main() == 1

    assert capsys.readouterr().out.startswith("Error:")


def test_invalid_chord_input_reports_error_as_json(monkeypatch, capsys, tmp_path):
    script = _load_script()
    input_path = tmp_path / "chords.json"
    input_path.write_text(json.dumps({"chords": [{"bass": "H3", "chord_tones": []}]}), encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["realize_progression.py", "--input", str(input_path), "--json"])

    assert script.main() == 1

    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "failure"
    assert "chord_index" not in payload
    assert payload["error"]


def test_input_without_chords_key_reports_error(monkeypatch, capsys, tmp_path):
    script = _load_script()
    input_path = tmp_path / "chords.json"
    input_path.write_text(json.dumps({"voicings": []}), encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["realize_progression.py", "--input", str(input_path)])

    assert script.main() == 1
    assert "Error:" in capsys.readouterr().out
