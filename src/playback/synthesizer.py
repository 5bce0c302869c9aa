"""
Offline synthesis of playback schedules.

Renders every scheduled note with its instrument's timbre (harmonic
oscillator bank, vibrato, low-pass filter, ADSR gain) into a mono
waveform and writes it to disk.
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np
import soundfile as sf

from .engine import AudioSink
from .scheduler import PlaybackSchedule, ScheduledNote


def oscillator(waveform: str, phase: np.ndarray) -> np.ndarray:
    """Evaluate a periodic waveform at the given phases (radians)."""
    if waveform == 'sine':
        return np.sin(phase)
    cycle = np.mod(phase / (2 * np.pi), 1.0)
    if waveform == 'square':
        return np.where(cycle < 0.5, 1.0, -1.0)
    if waveform == 'triangle':
        return 1.0 - 4.0 * np.abs(cycle - 0.5)
    # sawtooth
    return 2.0 * cycle - 1.0


def lowpass(signal: np.ndarray, sample_rate: int, cutoff: float, q: float = 1.0) -> np.ndarray:
    """
    Apply a second-order low-pass magnitude response in the frequency domain.
    """
    if len(signal) == 0 or cutoff <= 0:
        return signal
    spectrum = np.fft.rfft(signal)
    freqs = np.fft.rfftfreq(len(signal), d=1.0 / sample_rate)
    ratio = freqs / cutoff
    response = 1.0 / np.sqrt((1.0 - ratio ** 2) ** 2 + (ratio / q) ** 2)
    return np.fft.irfft(spectrum * response, n=len(signal))


class Synthesizer(AudioSink):
    """
    Renders scheduled notes to audio.

    Also usable as the engine's audio sink: scheduled notes accumulate
    until rendered, stop_all() discards them.
    """

    def __init__(self, sample_rate: int = 44100, gain: float = 1.0, normalize: bool = True):
        """
        Initialize Synthesizer.

        Args:
            sample_rate: Output audio sample rate in Hz
            gain: Overall gain applied to the mix
            normalize: Whether to normalize the mix to [-1, 1]
        """
        if sample_rate <= 0:
            raise ValueError(f"Invalid sample_rate: {sample_rate}. Must be > 0.")
        self.sample_rate = sample_rate
        self.gain = gain
        self.normalize = normalize
        self.pending = []
        self.logger = logging.getLogger(__name__)

    def schedule(self, event: ScheduledNote, at_time: float) -> None:
        self.pending.append(event)

    def stop_all(self) -> None:
        self.pending = []

    def render_note(self, event: ScheduledNote) -> np.ndarray:
        """Samples of one note from its onset to its oscillator stop time."""
        count = int(round((event.stop_time - event.start) * self.sample_rate))
        if count <= 0:
            return np.zeros(0)
        t = np.arange(count) / self.sample_rate
        timbre = event.timbre

        vibrato = timbre.vibrato_depth * np.sin(2 * np.pi * timbre.vibrato_rate * t)
        voice = np.zeros(count)
        for frequency, amplitude in event.partials():
            if frequency >= self.sample_rate / 2:
                continue
            phase = 2 * np.pi * np.cumsum(frequency + vibrato) / self.sample_rate
            voice += amplitude * oscillator(timbre.waveform, phase)

        voice = lowpass(voice, self.sample_rate, timbre.filter_freq)
        return voice * event.envelope.gain_at(event.start + t)

    def render(self, schedule: PlaybackSchedule) -> np.ndarray:
        """
        Mix every note of a schedule.

        Returns:
            Mono float32 audio covering the whole schedule
        """
        events = schedule.events
        last_stop = max((e.stop_time for e in events), default=0.0)
        length = int(np.ceil(max(schedule.total_duration, last_stop) * self.sample_rate))
        mix = np.zeros(length)

        for event in events:
            samples = self.render_note(event)
            offset = int(round(event.start * self.sample_rate))
            end = min(length, offset + len(samples))
            if end > offset:
                mix[offset:end] += samples[:end - offset]

        mix *= self.gain
        if self.normalize:
            peak = np.max(np.abs(mix)) if length else 0.0
            if peak > 1.0:
                mix = mix / peak
        mix = np.clip(mix, -1.0, 1.0)

        self.logger.debug(f"Rendered {len(events)} notes: {length} samples, {length / self.sample_rate:.2f}s")
        return mix.astype(np.float32)

    def render_to_file(self, schedule: PlaybackSchedule, output_path: Union[str, Path]) -> np.ndarray:
        """
        Render a schedule and write it as a WAV file.

        Args:
            schedule: Playback schedule to render
            output_path: Output audio file path

        Returns:
            Audio data as numpy array
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        audio = self.render(schedule)
        sf.write(str(output_path), audio, self.sample_rate)
        self.logger.info(f"Wrote {len(audio) / self.sample_rate:.2f}s of audio to {output_path}")
        return audio
