"""
Playback engine.

Commits a playback schedule to an audio sink and drives a cooperative
progress loop that reports the current measure and the fraction of the
measure elapsed until playback completes or is stopped.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..notation.note import ScoreData
from .scheduler import (
    DEFAULT_MAX_VOICES, PlaybackFilters, PlaybackSchedule, ScheduledNote, schedule_playback
)


logger = logging.getLogger(__name__)


@dataclass
class ProgressUpdate:
    """Progress signal sent on every tick, or once with stopped=True."""
    measure: Optional[int] = None
    beat_fraction: float = 0.0
    stopped: bool = False


class AudioSink(ABC):
    """Destination for scheduled notes (an audio graph, a renderer, a recorder)."""

    @abstractmethod
    def schedule(self, event: ScheduledNote, at_time: float) -> None:
        """
        Start an event's oscillators at an absolute clock time.

        Args:
            event: Scheduled note with its timbre and envelope
            at_time: Clock time of the note onset
        """
        pass

    @abstractmethod
    def stop_all(self) -> None:
        """Immediately silence every scheduled or sounding oscillator."""
        pass


class RecordingSink(AudioSink):
    """Sink that only records what was scheduled."""

    def __init__(self):
        self.scheduled: List[tuple] = []
        self.stop_count = 0

    def schedule(self, event: ScheduledNote, at_time: float) -> None:
        self.scheduled.append((at_time, event))

    def stop_all(self) -> None:
        self.scheduled.clear()
        self.stop_count += 1


class PlaybackEngine:
    """
    Plays a score through an audio sink.

    There is no pause: stop() halts everything and play() restarts from a
    measure.
    """

    def __init__(
        self,
        sink: Optional[AudioSink] = None,
        clock: Callable[[], float] = time.monotonic,
        frame_interval: float = 1 / 60,
        max_voices: int = DEFAULT_MAX_VOICES
    ):
        """
        Initialize playback engine.

        Args:
            sink: Where scheduled notes are sent (records only by default)
            clock: Monotonic clock in seconds shared with the sink
            frame_interval: Seconds between progress ticks in run()
            max_voices: Cap on oscillators scheduled per play()
        """
        self.sink = sink or RecordingSink()
        self.clock = clock
        self.frame_interval = frame_interval
        self.max_voices = max_voices
        self.filters = PlaybackFilters()

        self.playing = False
        self.start_time = 0.0
        self.start_measure = 1
        self.schedule: Optional[PlaybackSchedule] = None
        self._current_measure: Optional[int] = None

        self.on_tick: Optional[Callable[[ProgressUpdate], None]] = None
        self.on_measure_change: Optional[Callable[[int], None]] = None

    def toggle_mute(self, instrument_id: str) -> None:
        self.filters.toggle_mute(instrument_id)

    def toggle_solo(self, instrument_id: str) -> None:
        self.filters.toggle_solo(instrument_id)

    def play(self, data: ScoreData, from_measure: int = 1) -> PlaybackSchedule:
        """
        Schedule the whole score from a measure and start the progress clock.

        Args:
            data: Score with all notes
            from_measure: Measure to start at

        Returns:
            The committed schedule
        """
        self.stop()

        schedule = schedule_playback(
            data.score, data.notes, from_measure, self.filters, self.max_voices
        )
        self.schedule = schedule
        self.start_measure = from_measure
        self.start_time = self.clock()
        self._current_measure = None
        self.playing = True

        for event in schedule.events:
            self.sink.schedule(event, self.start_time + event.start)

        logger.info(
            f"Playing {len(schedule.events)} notes from measure {from_measure} "
            f"({schedule.total_duration:.1f}s)"
        )
        return schedule

    def stop(self) -> None:
        """Halt all sound generators and cancel the progress loop."""
        was_playing = self.playing
        self.playing = False
        self.sink.stop_all()
        if was_playing:
            logger.debug("Playback stopped")
            self._emit(ProgressUpdate(stopped=True))

    def tick(self) -> Optional[ProgressUpdate]:
        """
        Advance the progress loop by one frame.

        Returns:
            The update sent to listeners, None when not playing
        """
        if not self.playing or self.schedule is None:
            return None

        elapsed = self.clock() - self.start_time
        if elapsed >= self.schedule.total_duration:
            self.stop()
            if self.on_measure_change:
                self.on_measure_change(self.start_measure)
            return ProgressUpdate(stopped=True)

        measure, beat_fraction = self.schedule.position_at(elapsed)
        if measure != self._current_measure:
            self._current_measure = measure
            if self.on_measure_change:
                self.on_measure_change(measure)

        update = ProgressUpdate(measure=measure, beat_fraction=beat_fraction)
        self._emit(update)
        return update

    def run(self, sleep: Callable[[float], None] = time.sleep) -> None:
        """Drive tick() every frame until playback completes or is stopped."""
        while self.playing:
            self.tick()
            if self.playing:
                sleep(self.frame_interval)

    def _emit(self, update: ProgressUpdate) -> None:
        if self.on_tick:
            self.on_tick(update)
