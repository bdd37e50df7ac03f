from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from continuo.services.music_theory import DEFAULT_VOICE_RANGES, VOICE_NAMES, VoiceRanges
from continuo.services.scoring import find_parallel_motion, upper_voice_motion
from continuo.services.voicing import MAX_UPPER_VOICE_GAP, Voicing

INTERVAL_NAMES = {7: "fifths", 12: "octaves"}


@dataclass
class RealizationReport:
    parallel_warnings: list[str] = field(default_factory=list)
    structural_errors: list[str] = field(default_factory=list)
    total_voice_motion: int = 0

    @property
    def clean(self) -> bool:
        return not self.parallel_warnings and not self.structural_errors


def check_voicing(voicing: Voicing, ranges: VoiceRanges = DEFAULT_VOICE_RANGES, *, label: str = "Voicing") -> list[str]:
    errors: list[str] = []
    s, a, t, b = (p.midi for p in voicing.pitches())
    if not (s >= a >= t >= b):
        errors.append(f"{label}: voice crossing, S/A/T/B not ordered.")
    if s - a > MAX_UPPER_VOICE_GAP:
        errors.append(f"{label}: soprano-alto spacing exceeds an octave.")
    if a - t > MAX_UPPER_VOICE_GAP:
        errors.append(f"{label}: alto-tenor spacing exceeds an octave.")
    for voice, pitch in zip(VOICE_NAMES, voicing.pitches()):
        if not ranges.for_voice(voice).contains(pitch.midi):
            errors.append(f"{label}: {voice} {pitch.name} out of range.")
    return errors


def analyze_realization(voicings: Sequence[Voicing], ranges: VoiceRanges = DEFAULT_VOICE_RANGES) -> RealizationReport:
    """Summarize the voice leading of a realized progression.

    Chord numbers in messages are 1-based, matching how the progression is
    printed.
    """
    report = RealizationReport()
    for idx, voicing in enumerate(voicings):
        report.structural_errors.extend(check_voicing(voicing, ranges, label=f"Chord {idx + 1}"))

    for idx in range(1, len(voicings)):
        previous, current = voicings[idx - 1], voicings[idx]
        parallel = find_parallel_motion(previous, current)
        if parallel is not None:
            report.parallel_warnings.append(
                f"Parallel {INTERVAL_NAMES[parallel.interval]} between chords {idx} and {idx + 1} "
                f"({parallel.upper}/{parallel.lower})."
            )
        report.total_voice_motion += upper_voice_motion(previous, current)

    return report
