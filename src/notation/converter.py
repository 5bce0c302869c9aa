"""
Format converters for completed scores.

Exports the gap-filled measures of every instrument to JSON or MusicXML.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Union

from .measure import MeasureEvent, complete_measure
from .note import ScoreData


logger = logging.getLogger(__name__)


def complete_score(data: ScoreData) -> Dict[str, List[List[MeasureEvent]]]:
    """
    Complete every measure of every instrument.

    Returns:
        Instrument id -> list of measures (index 0 is measure 1) of events
    """
    groups = data.group_notes()
    beats = data.score.beats_per_measure
    key_map = data.score.key_map
    completed = {}
    for instrument in data.instruments:
        completed[instrument.id] = [
            complete_measure(groups.get((instrument.id, number), []), instrument.clef, key_map, beats)
            for number in range(1, data.score.total_measures + 1)
        ]
    return completed


class Converter(ABC):
    """Abstract base class for format converters."""

    @abstractmethod
    def convert(self, data: ScoreData, output_path: Union[str, Path]) -> None:
        """
        Convert a score to the target format.

        Args:
            data: Score with instruments and notes
            output_path: Output file path
        """
        pass


class JSONConverter(Converter):
    """Converts completed measures to JSON format."""

    def to_dict(self, data: ScoreData) -> Dict[str, Any]:
        completed = complete_score(data)
        parts = []
        for instrument in data.instruments:
            parts.append({
                **instrument.to_dict(),
                'measures': [
                    {'number': number, 'events': [event.to_dict() for event in events]}
                    for number, events in enumerate(completed[instrument.id], start=1)
                ],
            })
        return {
            'score': data.score.to_dict(),
            'note_count': data.note_count,
            'parts': parts,
        }

    def convert(self, data: ScoreData, output_path: Union[str, Path]) -> None:
        """
        Export completed measures to a JSON file.

        Args:
            data: Score to export
            output_path: Output JSON file path
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(data), f, indent=2, ensure_ascii=False)

    @staticmethod
    def load(file_path: Union[str, Path]) -> dict:
        """
        Load JSON file.

        Args:
            file_path: Path to JSON file

        Returns:
            Dictionary with score data
        """
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)


class MusicXMLConverter(Converter):
    """Converts completed measures to MusicXML format."""

    def build(self, data: ScoreData):
        """Build a music21 Score with one part per instrument."""
        from music21 import clef, dynamics, key, meter, metadata, note, stream, tempo

        clef_classes = {
            'treble': clef.TrebleClef,
            'alto': clef.AltoClef,
            'bass': clef.BassClef,
        }

        m21_score = stream.Score()
        m21_score.metadata = metadata.Metadata()
        m21_score.metadata.title = data.score.title

        completed = complete_score(data)
        numerator, denominator = data.score.time_signature

        for instrument in data.instruments:
            part = stream.Part()
            part.partName = instrument.name
            part.partAbbreviation = instrument.abbreviation
            current_dynamic = None

            for number, events in enumerate(completed[instrument.id], start=1):
                measure = stream.Measure(number=number)
                if number == 1:
                    measure.insert(0, clef_classes[instrument.clef.label]())
                    measure.insert(0, key.KeySignature(data.score.key_signature.fifths))
                    measure.insert(0, meter.TimeSignature(f'{numerator}/{denominator}'))
                    measure.insert(0, tempo.MetronomeMark(number=data.score.tempo))

                for event in events:
                    offset = float(event.beat - 1)
                    if event.is_rest or event.note is None or event.note.pitch is None:
                        measure.insert(offset, note.Rest(quarterLength=float(event.beats)))
                        continue

                    pitch = event.note.pitch
                    symbol = {'#': '#', 'b': '-'}.get(pitch.accidental.value, '') if pitch.accidental else ''
                    m21_note = note.Note(f"{pitch.letter}{symbol}{pitch.octave}",
                                         quarterLength=float(event.beats))
                    if event.note.dynamic != current_dynamic:
                        current_dynamic = event.note.dynamic
                        measure.insert(offset, dynamics.Dynamic(current_dynamic.value))
                    measure.insert(offset, m21_note)

                part.append(measure)
            m21_score.insert(0, part)

        return m21_score

    def convert(self, data: ScoreData, output_path: Union[str, Path]) -> None:
        """
        Export completed measures to a MusicXML file.

        Args:
            data: Score to export
            output_path: Output MusicXML file path
        """
        try:
            import music21  # noqa: F401
        except ImportError:
            raise ImportError(
                "music21 library required for MusicXML export. "
                "Install with: pip install music21"
            )

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        m21_score = self.build(data)
        m21_score.write('musicxml', fp=str(output_path))
        logger.info(f"Wrote MusicXML for {len(data.instruments)} parts to {output_path}")
