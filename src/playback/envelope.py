"""
ADSR gain envelopes.

An envelope for a note starting at t0 with sounding duration d ramps
0 -> 1 over the attack, 1 -> sustain over the decay, holds until
t0 + d - release and ramps to 0 by t0 + d.
"""

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from .timbre import TimbreProfile


@dataclass(frozen=True)
class Envelope:
    """
    Absolute-time gain breakpoints of one note.

    Attributes:
        start: Note start time in seconds
        attack_end: End of the attack ramp
        decay_end: End of the decay ramp
        release_start: Start of the release ramp
        end: Note end time (gain reaches 0)
        sustain: Sustain level
        compressed: True if the stages were scaled down to fit the note
    """
    start: float
    attack_end: float
    decay_end: float
    release_start: float
    end: float
    sustain: float
    compressed: bool = False

    @property
    def breakpoints(self) -> List[Tuple[float, float]]:
        """(time, gain) pairs joined by linear ramps."""
        return [
            (self.start, 0.0),
            (self.attack_end, 1.0),
            (self.decay_end, self.sustain),
            (self.release_start, self.sustain),
            (self.end, 0.0),
        ]

    @property
    def hold(self) -> float:
        return self.release_start - self.decay_end

    def gain_at(self, times: np.ndarray) -> np.ndarray:
        """Envelope gain sampled at absolute times (0 outside the note)."""
        points = self.breakpoints
        xs = np.array([p[0] for p in points])
        ys = np.array([p[1] for p in points])
        # np.interp needs strictly increasing xs when a stage has zero length
        xs = xs + np.arange(len(xs)) * 1e-9
        return np.interp(times, xs, ys, left=0.0, right=0.0)


def build_envelope(timbre: TimbreProfile, start: float, duration: float) -> Envelope:
    """
    Compute the envelope of a note.

    When attack + decay + release exceed the sounding duration, all three
    stages are scaled by duration / (attack + decay + release), leaving a
    zero-length hold instead of a negative one.
    """
    attack, decay, release = timbre.attack, timbre.decay, timbre.release
    stages = attack + decay + release
    compressed = False
    if duration <= 0:
        attack = decay = release = 0.0
        duration = 0.0
    elif stages > duration:
        ratio = duration / stages
        attack, decay, release = attack * ratio, decay * ratio, release * ratio
        compressed = True

    end = start + duration
    return Envelope(
        start=start,
        attack_end=start + attack,
        decay_end=start + attack + decay,
        release_start=max(start + attack + decay, end - release),
        end=end,
        sustain=timbre.sustain,
        compressed=compressed,
    )
