from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from continuo.logging_utils import configure_logging, log_event
from continuo.models import ChordPayload
from continuo.services.analysis import analyze_realization
from continuo.services.realizer import NoValidVoicingError, realize_progression
from continuo.services.voicing import ChordSpec

logger = logging.getLogger(__name__)

# C major -> F major -> G major -> C major
DEMO_PROGRESSION = [
    ChordSpec.from_midi(48, [48, 52, 55]),
    ChordSpec.from_midi(53, [53, 57, 60]),
    ChordSpec.from_midi(55, [55, 59, 62]),
    ChordSpec.from_midi(48, [48, 52, 55]),
]


def load_progression(path: Path) -> list[ChordSpec]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    chords = raw["chords"] if isinstance(raw, dict) else raw
    return [ChordPayload.model_validate(chord).to_chord_spec() for chord in chords]


def _report_failure(error: Exception, as_json: bool, **fields) -> int:
    if as_json:
        print(json.dumps({"status": "failure", **fields, "error": str(error)}, indent=2))
    else:
        print(f"Error: {error}")
    return 1


def main() -> int:
    parser = argparse.ArgumentParser(description="Realize a resolved figured-bass progression into SATB voicings.")
    parser.add_argument("--input", help='JSON file with a list of {"bass": ..., "chord_tones": [...]} chords')
    parser.add_argument("--json", action="store_true", help="Print a JSON payload instead of text")
    args = parser.parse_args()

    configure_logging(stream=sys.stderr)
    try:
        chords = load_progression(Path(args.input)) if args.input else DEMO_PROGRESSION
    except (OSError, ValueError, KeyError, TypeError) as exc:
        # ValueError covers JSONDecodeError and pydantic ValidationError.
        log_event(logger, "progression_rejected", level=logging.WARNING, source=args.input, error_type=type(exc).__name__)
        return _report_failure(exc, args.json)
    log_event(logger, "progression_loaded", source=args.input or "demo", chord_count=len(chords))

    try:
        voicings = realize_progression(chords)
    except NoValidVoicingError as exc:
        return _report_failure(exc, args.json, chord_index=exc.chord_index)

    report = analyze_realization(voicings)
    if args.json:
        payload = {
            "status": "success",
            "voicings": [
                {"soprano": v.soprano.midi, "alto": v.alto.midi, "tenor": v.tenor.midi, "bass": v.bass.midi, "display": v.describe()}
                for v in voicings
            ],
            "parallel_warnings": report.parallel_warnings,
            "total_voice_motion": report.total_voice_motion,
        }
        print(json.dumps(payload, indent=2))
        return 0

    print("Realizing figured bass progression...\n")
    for idx, voicing in enumerate(voicings, start=1):
        print(f"Chord {idx}: {voicing.describe()}")
    print("\n--- Analysis ---")
    for warning in report.parallel_warnings:
        print(f"Warning: {warning}")
    print(f"Total voice motion: {report.total_voice_motion} semitones")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
