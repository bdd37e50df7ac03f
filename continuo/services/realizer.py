from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from continuo.logging_utils import log_event
from continuo.services.music_theory import DEFAULT_VOICE_RANGES, Pitch, VoiceRanges
from continuo.services.scoring import ScoreBreakdown, score_breakdown
from continuo.services.voicing import ChordSpec, Voicing, iter_voicings

logger = logging.getLogger(__name__)


class NoValidVoicingError(ValueError):
    def __init__(self, chord_index: int, chord: ChordSpec):
        self.chord_index = chord_index
        self.chord = chord
        super().__init__(
            f"No valid voicing for chord {chord_index} "
            f"(bass {chord.bass.name}, pitch classes {sorted(chord.pitch_classes)})."
        )


@dataclass(frozen=True)
class ScoredVoicing:
    voicing: Voicing
    breakdown: ScoreBreakdown

    @property
    def score(self) -> float:
        return float(self.breakdown.total)


@dataclass(frozen=True)
class RealizedChord:
    index: int
    chord: ChordSpec
    voicing: Voicing
    breakdown: ScoreBreakdown
    candidate_count: int


def select_best(
    candidates: Iterable[Voicing],
    previous: Voicing | None,
    root: Pitch,
    ranges: VoiceRanges = DEFAULT_VOICE_RANGES,
) -> tuple[ScoredVoicing | None, int]:
    """Pick the highest-scoring candidate; earlier candidates win ties.

    Returns the winner (``None`` for an empty input) and how many candidates
    were scored.
    """
    best: ScoredVoicing | None = None
    count = 0
    for candidate in candidates:
        count += 1
        scored = ScoredVoicing(candidate, score_breakdown(candidate, previous, root, ranges))
        if best is None or scored.breakdown.total > best.breakdown.total:
            best = scored
    return best, count


def realize_progression_detailed(
    chords: Sequence[ChordSpec],
    ranges: VoiceRanges = DEFAULT_VOICE_RANGES,
) -> list[RealizedChord]:
    log_event(logger, "realization_started", chord_count=len(chords))
    realized: list[RealizedChord] = []
    previous: Voicing | None = None

    for index, chord in enumerate(chords):
        best, candidate_count = select_best(iter_voicings(chord, ranges), previous, chord.bass, ranges)
        if best is None:
            log_event(
                logger,
                "realization_failed",
                level=logging.WARNING,
                chord_index=index,
                bass=chord.bass.name,
                pitch_classes=sorted(chord.pitch_classes),
            )
            raise NoValidVoicingError(index, chord)

        log_event(
            logger,
            "chord_realized",
            level=logging.DEBUG,
            chord_index=index,
            voicing=best.voicing.describe(),
            score=round(best.score, 3),
            candidate_count=candidate_count,
        )
        realized.append(
            RealizedChord(
                index=index,
                chord=chord,
                voicing=best.voicing,
                breakdown=best.breakdown,
                candidate_count=candidate_count,
            )
        )
        previous = best.voicing

    log_event(logger, "realization_completed", chord_count=len(realized))
    return realized


def realize_progression(
    chords: Sequence[ChordSpec],
    ranges: VoiceRanges = DEFAULT_VOICE_RANGES,
) -> list[Voicing]:
    return [step.voicing for step in realize_progression_detailed(chords, ranges)]
