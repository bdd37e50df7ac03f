from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from itertools import product

from continuo.services.music_theory import DEFAULT_VOICE_RANGES, Pitch, VoiceRange, VoiceRanges

MAX_UPPER_VOICE_GAP = 12


@dataclass(frozen=True)
class ChordSpec:
    """Bass pitch plus the pitch classes every realization must contain."""

    bass: Pitch
    pitch_classes: frozenset[int]

    @classmethod
    def from_midi(cls, bass: int, chord_tones: Iterable[int]) -> ChordSpec:
        return cls(bass=Pitch(bass), pitch_classes=frozenset(tone % 12 for tone in chord_tones))


@dataclass(frozen=True)
class Voicing:
    soprano: Pitch
    alto: Pitch
    tenor: Pitch
    bass: Pitch

    def pitches(self) -> tuple[Pitch, Pitch, Pitch, Pitch]:
        return (self.soprano, self.alto, self.tenor, self.bass)

    def pitch_classes(self) -> set[int]:
        return {p.pitch_class for p in self.pitches()}

    def describe(self) -> str:
        return f"S:{self.soprano.name} A:{self.alto.name} T:{self.tenor.name} B:{self.bass.name}"


def notes_in_range(pitch_classes: Iterable[int], voice_range: VoiceRange) -> list[Pitch]:
    notes: set[int] = set()
    for pc in pitch_classes:
        midi = pc % 12
        while midi < voice_range.low:
            midi += 12
        while midi <= voice_range.high:
            notes.add(midi)
            midi += 12
    return [Pitch(midi) for midi in sorted(notes)]


def is_valid_voicing(voicing: Voicing, chord: ChordSpec) -> bool:
    s, a, t, b = (p.midi for p in voicing.pitches())
    if not (s >= a >= t >= b):
        return False
    if s - a > MAX_UPPER_VOICE_GAP or a - t > MAX_UPPER_VOICE_GAP:
        return False
    return chord.pitch_classes <= voicing.pitch_classes()


def iter_voicings(chord: ChordSpec, ranges: VoiceRanges = DEFAULT_VOICE_RANGES) -> Iterator[Voicing]:
    """Yield valid voicings in canonical order: soprano outer, alto middle, tenor inner.

    The bass is taken from the chord as given. Upper voices only ever hold
    chord tones inside their own range, so range containment holds by
    construction; the remaining constraints are checked per combination.
    """
    soprano_notes = notes_in_range(chord.pitch_classes, ranges.soprano)
    alto_notes = notes_in_range(chord.pitch_classes, ranges.alto)
    tenor_notes = notes_in_range(chord.pitch_classes, ranges.tenor)

    combos = (
        Voicing(soprano=s, alto=a, tenor=t, bass=chord.bass)
        for s, a, t in product(soprano_notes, alto_notes, tenor_notes)
    )
    return (voicing for voicing in combos if is_valid_voicing(voicing, chord))


def generate_voicings(chord: ChordSpec, ranges: VoiceRanges = DEFAULT_VOICE_RANGES) -> list[Voicing]:
    return list(iter_voicings(chord, ranges))
