from __future__ import annotations

import re
from dataclasses import dataclass

NOTE_TO_SEMITONE = {
    "C": 0,
    "C#": 1,
    "Db": 1,
    "D": 2,
    "D#": 3,
    "Eb": 3,
    "E": 4,
    "F": 5,
    "F#": 6,
    "Gb": 6,
    "G": 7,
    "G#": 8,
    "Ab": 8,
    "A": 9,
    "A#": 10,
    "Bb": 10,
    "B": 11,
}
SEMITONE_TO_NOTE = {v: k for k, v in NOTE_TO_SEMITONE.items() if len(k) == 1 or "#" in k}

VOICE_NAMES = ("soprano", "alto", "tenor", "bass")

_PITCH_NAME_RE = re.compile(r"([A-Ga-g])([#b]?)(-?\d+)")


@dataclass(frozen=True, order=True)
class Pitch:
    """Absolute pitch on the MIDI note-number scale (60 = middle C)."""

    midi: int

    @property
    def pitch_class(self) -> int:
        return self.midi % 12

    @property
    def name(self) -> str:
        return midi_to_pitch(self.midi)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class VoiceRange:
    low: int
    high: int

    @property
    def midpoint(self) -> int:
        return (self.low + self.high) // 2

    def contains(self, midi: int) -> bool:
        return self.low <= midi <= self.high


@dataclass(frozen=True)
class VoiceRanges:
    """Inclusive absolute range for each of the four voices."""

    soprano: VoiceRange
    alto: VoiceRange
    tenor: VoiceRange
    bass: VoiceRange

    def for_voice(self, voice: str) -> VoiceRange:
        if voice not in VOICE_NAMES:
            raise KeyError(f"Unknown voice: {voice}")
        return getattr(self, voice)

    def as_dict(self) -> dict[str, tuple[int, int]]:
        return {voice: (self.for_voice(voice).low, self.for_voice(voice).high) for voice in VOICE_NAMES}


DEFAULT_VOICE_RANGES = VoiceRanges(
    soprano=VoiceRange(60, 79),  # C4 - G5
    alto=VoiceRange(55, 72),  # G3 - C5
    tenor=VoiceRange(48, 67),  # C3 - G4
    bass=VoiceRange(40, 60),  # E2 - C4
)


def midi_to_pitch(midi: int) -> str:
    octave = (midi // 12) - 1
    return f"{SEMITONE_TO_NOTE[midi % 12]}{octave}"


def pitch_to_midi(pitch: str) -> int:
    m = _PITCH_NAME_RE.fullmatch(pitch.strip())
    if not m:
        raise ValueError(f"Invalid pitch name {pitch!r}. Use forms like C4, F#3, Bb2.")
    name = f"{m.group(1).upper()}{m.group(2)}"
    if name not in NOTE_TO_SEMITONE:
        raise ValueError(f"Unsupported note spelling {name!r}.")
    octave = int(m.group(3))
    return NOTE_TO_SEMITONE[name] + (octave + 1) * 12
