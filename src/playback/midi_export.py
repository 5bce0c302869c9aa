"""
MIDI export of playback schedules.
"""

import logging
from pathlib import Path
from typing import Dict, List, Tuple, Union

import mido

from ..notation.note import Score
from .scheduler import PlaybackSchedule


logger = logging.getLogger(__name__)

# General MIDI programs for the string section
GM_PROGRAMS = {
    'violin1': 40,
    'violin2': 40,
    'viola': 41,
    'cello': 42,
    'contrabass': 43,
}


class MIDIConverter:
    """Converts a playback schedule to a type-1 MIDI file, one track per instrument."""

    def __init__(self, ticks_per_beat: int = 480):
        self.ticks_per_beat = ticks_per_beat

    def _to_ticks(self, seconds: float, seconds_per_beat: float) -> int:
        return int(round(seconds / seconds_per_beat * self.ticks_per_beat))

    def build(self, schedule: PlaybackSchedule, score: Score) -> mido.MidiFile:
        midi = mido.MidiFile(type=1, ticks_per_beat=self.ticks_per_beat)

        conductor = mido.MidiTrack()
        conductor.append(mido.MetaMessage('track_name', name=score.title, time=0))
        conductor.append(mido.MetaMessage('set_tempo', tempo=mido.bpm2tempo(score.tempo), time=0))
        numerator, denominator = score.time_signature
        conductor.append(mido.MetaMessage(
            'time_signature',
            numerator=numerator,
            denominator=denominator,
            time=0
        ))
        midi.tracks.append(conductor)

        by_instrument: Dict[str, List[Tuple[int, mido.Message]]] = {}
        for event in schedule.events:
            note_number = event.pitch.midi_number
            if not 0 <= note_number <= 127:
                logger.warning(f"Skipping {event.pitch} in {event.instrument_id}: "
                               f"MIDI note {note_number} out of range")
                continue
            if event.instrument_id not in by_instrument:
                by_instrument[event.instrument_id] = [(0, mido.Message(
                    'program_change',
                    program=GM_PROGRAMS.get(event.instrument_id, 40),
                    time=0
                ))]
            messages = by_instrument[event.instrument_id]
            start = self._to_ticks(event.start, schedule.seconds_per_beat)
            end = self._to_ticks(event.end, schedule.seconds_per_beat)
            messages.append((start, mido.Message('note_on', note=note_number,
                                                 velocity=event.velocity, time=0)))
            messages.append((end, mido.Message('note_off', note=note_number,
                                               velocity=0, time=0)))

        for channel, (instrument_id, messages) in enumerate(by_instrument.items()):
            track = mido.MidiTrack()
            track.append(mido.MetaMessage('track_name', name=instrument_id, time=0))
            # note_off before note_on at the same tick
            messages.sort(key=lambda m: (m[0], m[1].type == 'note_on'))
            current = 0
            for tick, msg in messages:
                track.append(msg.copy(time=max(0, tick - current), channel=channel % 16))
                current = tick
            midi.tracks.append(track)

        return midi

    def convert(self, schedule: PlaybackSchedule, score: Score, output_path: Union[str, Path]) -> None:
        """
        Export a schedule to a MIDI file.

        Args:
            schedule: Schedule to export
            score: Score metadata (tempo, time signature, title)
            output_path: Output MIDI file path
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        midi = self.build(schedule, score)
        midi.save(str(output_path))
        logger.info(f"Wrote {len(schedule.events)} notes to {output_path}")
