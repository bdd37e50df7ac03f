from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction

from continuo.services.music_theory import DEFAULT_VOICE_RANGES, VOICE_NAMES, Pitch, VoiceRanges
from continuo.services.voicing import Voicing

# Terms are kept as exact fractions so equal scores compare equal.
ROOT_DOUBLING_BONUS = 10
SPACING_THRESHOLD = 7
SPACING_PENALTY_PER_SEMITONE = 2
RANGE_COMFORT_WEIGHT = Fraction(1, 10)
PARALLEL_MOTION_PENALTY = -1000
PERFECT_INTERVALS = frozenset({7, 12})
VOICE_MOTION_WEIGHT = Fraction(1, 2)
CONTRARY_MOTION_BONUS = 5
ZERO = Fraction(0)


@dataclass(frozen=True)
class ParallelMotion:
    upper: str
    lower: str
    interval: int


@dataclass(frozen=True)
class ScoreBreakdown:
    doubling: Fraction
    spacing: Fraction
    range_comfort: Fraction
    parallel_motion: Fraction = ZERO
    voice_motion: Fraction = ZERO
    contrary_motion: Fraction = ZERO

    @property
    def total(self) -> Fraction:
        return (
            self.doubling
            + self.spacing
            + self.range_comfort
            + self.parallel_motion
            + self.voice_motion
            + self.contrary_motion
        )

    def as_floats(self) -> dict[str, float]:
        return {
            "doubling": float(self.doubling),
            "spacing": float(self.spacing),
            "range_comfort": float(self.range_comfort),
            "parallel_motion": float(self.parallel_motion),
            "voice_motion": float(self.voice_motion),
            "contrary_motion": float(self.contrary_motion),
            "total": float(self.total),
        }


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def doubling_score(voicing: Voicing, root: Pitch) -> Fraction:
    return Fraction(ROOT_DOUBLING_BONUS * sum(1 for p in voicing.pitches() if p.pitch_class == root.pitch_class))


def spacing_score(voicing: Voicing) -> Fraction:
    score = ZERO
    for gap in (voicing.soprano.midi - voicing.alto.midi, voicing.alto.midi - voicing.tenor.midi):
        if gap > SPACING_THRESHOLD:
            score -= (gap - SPACING_THRESHOLD) * SPACING_PENALTY_PER_SEMITONE
    return score


def range_comfort_score(voicing: Voicing, ranges: VoiceRanges = DEFAULT_VOICE_RANGES) -> Fraction:
    distance = sum(
        abs(getattr(voicing, voice).midi - ranges.for_voice(voice).midpoint)
        for voice in ("soprano", "alto", "tenor")
    )
    return -RANGE_COMFORT_WEIGHT * distance


def find_parallel_motion(previous: Voicing, current: Voicing) -> ParallelMotion | None:
    """Return the first voice pair moving in parallel fifths or octaves, if any."""
    before = previous.pitches()
    after = current.pitches()
    for i in range(len(VOICE_NAMES)):
        for j in range(i + 1, len(VOICE_NAMES)):
            interval_before = abs(before[i].midi - before[j].midi)
            interval_after = abs(after[i].midi - after[j].midi)
            if interval_before not in PERFECT_INTERVALS or interval_before != interval_after:
                continue
            motion_i = after[i].midi - before[i].midi
            motion_j = after[j].midi - before[j].midi
            if motion_i != 0 and motion_j != 0 and _sign(motion_i) == _sign(motion_j):
                return ParallelMotion(upper=VOICE_NAMES[i], lower=VOICE_NAMES[j], interval=interval_before)
    return None


def parallel_motion_penalty(previous: Voicing, current: Voicing) -> Fraction:
    return Fraction(PARALLEL_MOTION_PENALTY) if find_parallel_motion(previous, current) else ZERO


def upper_voice_motion(previous: Voicing, current: Voicing) -> int:
    return (
        abs(current.soprano.midi - previous.soprano.midi)
        + abs(current.alto.midi - previous.alto.midi)
        + abs(current.tenor.midi - previous.tenor.midi)
    )


def voice_motion_score(previous: Voicing, current: Voicing) -> Fraction:
    return -VOICE_MOTION_WEIGHT * upper_voice_motion(previous, current)


def contrary_motion_score(previous: Voicing, current: Voicing) -> Fraction:
    soprano_motion = current.soprano.midi - previous.soprano.midi
    bass_motion = current.bass.midi - previous.bass.midi
    if soprano_motion != 0 and bass_motion != 0 and _sign(soprano_motion) != _sign(bass_motion):
        return Fraction(CONTRARY_MOTION_BONUS)
    return ZERO


def score_breakdown(
    candidate: Voicing,
    previous: Voicing | None,
    root: Pitch,
    ranges: VoiceRanges = DEFAULT_VOICE_RANGES,
) -> ScoreBreakdown:
    static = dict(
        doubling=doubling_score(candidate, root),
        spacing=spacing_score(candidate),
        range_comfort=range_comfort_score(candidate, ranges),
    )
    if previous is None:
        return ScoreBreakdown(**static)
    return ScoreBreakdown(
        **static,
        parallel_motion=parallel_motion_penalty(previous, candidate),
        voice_motion=voice_motion_score(previous, candidate),
        contrary_motion=contrary_motion_score(previous, candidate),
    )


def score_voicing(
    candidate: Voicing,
    previous: Voicing | None,
    root: Pitch,
    ranges: VoiceRanges = DEFAULT_VOICE_RANGES,
) -> float:
    """Additive voice-leading desirability of ``candidate``; higher is better.

    ``root`` is the pitch whose class is rewarded for doubling. Callers pass
    the chord's bass, so inverted chords double the bass note.
    """
    return float(score_breakdown(candidate, previous, root, ranges).total)
