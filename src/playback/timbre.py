"""
Per-instrument synthesis parameters.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class TimbreProfile:
    """
    Fixed synthesis parameter set for one instrument.

    Attributes:
        waveform: Oscillator waveform ('sawtooth', 'square', 'triangle', 'sine')
        gain: Base gain applied to every harmonic
        attack: Seconds to ramp 0 -> 1
        decay: Seconds to ramp 1 -> sustain
        sustain: Sustain level (0-1)
        release: Seconds to ramp sustain -> 0 at the end of the note
        harmonics: Amplitude multipliers for the fundamental and overtones
        vibrato_rate: Vibrato LFO rate in Hz
        vibrato_depth: Vibrato depth in Hz
        filter_freq: Low-pass cutoff in Hz
    """
    waveform: str
    gain: float
    attack: float
    decay: float
    sustain: float
    release: float
    harmonics: Tuple[float, ...]
    vibrato_rate: float
    vibrato_depth: float
    filter_freq: float

    def __post_init__(self):
        if not 0.0 <= self.sustain <= 1.0:
            raise ValueError(f"sustain must be in [0, 1], got {self.sustain}")
        if min(self.attack, self.decay, self.release) < 0:
            raise ValueError("Envelope stage durations must be non-negative")
        if not self.harmonics:
            raise ValueError("At least one harmonic is required")


TIMBRES: Dict[str, TimbreProfile] = {
    'violin1': TimbreProfile(
        waveform='sawtooth', gain=0.12,
        attack=0.04, decay=0.08, sustain=0.7, release=0.12,
        harmonics=(1, 0.5, 0.3),
        vibrato_rate=5.5, vibrato_depth=3, filter_freq=4000,
    ),
    'violin2': TimbreProfile(
        waveform='sawtooth', gain=0.1,
        attack=0.05, decay=0.08, sustain=0.65, release=0.12,
        harmonics=(1, 0.4, 0.25),
        vibrato_rate=5.2, vibrato_depth=2.5, filter_freq=3500,
    ),
    'viola': TimbreProfile(
        waveform='sawtooth', gain=0.11,
        attack=0.06, decay=0.1, sustain=0.6, release=0.15,
        harmonics=(1, 0.5, 0.35, 0.15),
        vibrato_rate=5.0, vibrato_depth=2.5, filter_freq=2800,
    ),
    'cello': TimbreProfile(
        waveform='sawtooth', gain=0.13,
        attack=0.07, decay=0.12, sustain=0.6, release=0.18,
        harmonics=(1, 0.6, 0.4, 0.2),
        vibrato_rate=4.5, vibrato_depth=2, filter_freq=2000,
    ),
    'contrabass': TimbreProfile(
        waveform='sawtooth', gain=0.14,
        attack=0.08, decay=0.15, sustain=0.55, release=0.2,
        harmonics=(1, 0.7, 0.4, 0.2, 0.1),
        vibrato_rate=4.0, vibrato_depth=1.5, filter_freq=1200,
    ),
}

DEFAULT_TIMBRE = 'violin1'


def timbre_for(instrument_id: str) -> TimbreProfile:
    """Timbre of an instrument; unknown instruments sound like the first violin."""
    return TIMBRES.get(instrument_id, TIMBRES[DEFAULT_TIMBRE])
