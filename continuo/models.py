from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from continuo.services.analysis import RealizationReport
from continuo.services.music_theory import (
    DEFAULT_VOICE_RANGES,
    Pitch,
    VoiceRange,
    VoiceRanges,
    midi_to_pitch,
    pitch_to_midi,
)
from continuo.services.voicing import ChordSpec, Voicing

VoiceName = Literal["soprano", "alto", "tenor", "bass"]
MidiNumber = Annotated[int, Field(ge=0, le=127)]


def _coerce_pitch(value):
    if isinstance(value, str):
        cleaned = value.strip()
        if cleaned.lstrip("-").isdigit():
            return int(cleaned)
        return pitch_to_midi(cleaned)
    return value


class VoiceRangePayload(BaseModel):
    low: MidiNumber
    high: MidiNumber

    @field_validator("low", "high", mode="before")
    @classmethod
    def parse_pitch_names(cls, value):
        return _coerce_pitch(value)

    @model_validator(mode="after")
    def validate_order(self):
        if self.low > self.high:
            raise ValueError(f"Voice range low ({self.low}) must not exceed high ({self.high}).")
        return self

    @classmethod
    def from_voice_range(cls, voice_range: VoiceRange) -> VoiceRangePayload:
        return cls(low=voice_range.low, high=voice_range.high)

    def to_voice_range(self) -> VoiceRange:
        return VoiceRange(self.low, self.high)


class VoiceRangesPayload(BaseModel):
    soprano: VoiceRangePayload = Field(default_factory=lambda: VoiceRangePayload.from_voice_range(DEFAULT_VOICE_RANGES.soprano))
    alto: VoiceRangePayload = Field(default_factory=lambda: VoiceRangePayload.from_voice_range(DEFAULT_VOICE_RANGES.alto))
    tenor: VoiceRangePayload = Field(default_factory=lambda: VoiceRangePayload.from_voice_range(DEFAULT_VOICE_RANGES.tenor))
    bass: VoiceRangePayload = Field(default_factory=lambda: VoiceRangePayload.from_voice_range(DEFAULT_VOICE_RANGES.bass))

    def to_voice_ranges(self) -> VoiceRanges:
        return VoiceRanges(
            soprano=self.soprano.to_voice_range(),
            alto=self.alto.to_voice_range(),
            tenor=self.tenor.to_voice_range(),
            bass=self.bass.to_voice_range(),
        )


class ChordPayload(BaseModel):
    bass: MidiNumber = Field(description="Bass pitch as a MIDI number or a name like C3")
    chord_tones: list[MidiNumber] = Field(min_length=1, description="Chord tones; only their pitch classes matter")

    @field_validator("bass", mode="before")
    @classmethod
    def parse_bass(cls, value):
        return _coerce_pitch(value)

    @field_validator("chord_tones", mode="before")
    @classmethod
    def parse_chord_tones(cls, value):
        if isinstance(value, list):
            return [_coerce_pitch(v) for v in value]
        return value

    def to_chord_spec(self) -> ChordSpec:
        return ChordSpec.from_midi(self.bass, self.chord_tones)


class RealizeRequest(BaseModel):
    chords: list[ChordPayload] = Field(min_length=1)
    voice_ranges: VoiceRangesPayload = Field(default_factory=VoiceRangesPayload)

    @model_validator(mode="after")
    def validate_bass_in_range(self):
        bass_range = self.voice_ranges.bass
        for idx, chord in enumerate(self.chords):
            if not bass_range.low <= chord.bass <= bass_range.high:
                raise ValueError(
                    f"Chord {idx} bass {midi_to_pitch(chord.bass)} is outside the bass range "
                    f"{midi_to_pitch(bass_range.low)}-{midi_to_pitch(bass_range.high)}."
                )
        return self


class VoicingPayload(BaseModel):
    soprano: MidiNumber
    alto: MidiNumber
    tenor: MidiNumber
    bass: MidiNumber

    @field_validator("soprano", "alto", "tenor", "bass", mode="before")
    @classmethod
    def parse_pitch_names(cls, value):
        return _coerce_pitch(value)

    def to_voicing(self) -> Voicing:
        return Voicing(soprano=Pitch(self.soprano), alto=Pitch(self.alto), tenor=Pitch(self.tenor), bass=Pitch(self.bass))


class ScoreBreakdownPayload(BaseModel):
    doubling: float
    spacing: float
    range_comfort: float
    parallel_motion: float
    voice_motion: float
    contrary_motion: float
    total: float


class RealizedVoicingPayload(VoicingPayload):
    names: dict[VoiceName, str]
    score: ScoreBreakdownPayload
    candidate_count: int = Field(ge=1)

    @classmethod
    def from_voicing(cls, voicing: Voicing, score: ScoreBreakdownPayload, candidate_count: int) -> RealizedVoicingPayload:
        return cls(
            soprano=voicing.soprano.midi,
            alto=voicing.alto.midi,
            tenor=voicing.tenor.midi,
            bass=voicing.bass.midi,
            names={
                "soprano": voicing.soprano.name,
                "alto": voicing.alto.name,
                "tenor": voicing.tenor.name,
                "bass": voicing.bass.name,
            },
            score=score,
            candidate_count=candidate_count,
        )


class AnalysisPayload(BaseModel):
    clean: bool
    parallel_warnings: list[str] = Field(default_factory=list)
    structural_errors: list[str] = Field(default_factory=list)
    total_voice_motion: int = Field(ge=0)

    @classmethod
    def from_report(cls, report: RealizationReport) -> AnalysisPayload:
        return cls(
            clean=report.clean,
            parallel_warnings=list(report.parallel_warnings),
            structural_errors=list(report.structural_errors),
            total_voice_motion=report.total_voice_motion,
        )


class RealizeResponse(BaseModel):
    voicings: list[RealizedVoicingPayload]
    analysis: AnalysisPayload


class AnalyzeRequest(BaseModel):
    voicings: list[VoicingPayload] = Field(min_length=1)
    voice_ranges: VoiceRangesPayload = Field(default_factory=VoiceRangesPayload)


class AnalyzeResponse(BaseModel):
    analysis: AnalysisPayload
