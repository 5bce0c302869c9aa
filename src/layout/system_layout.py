"""
Multi-measure score layout.

Groups measures into systems (rows) of a fixed size, stacks one stave per
instrument inside each system and keeps a stave map for hit-testing and
playhead placement.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from ..notation.note import Clef, Instrument, ScoreData
from .geometry import MeasureGeometry, StaffGeometry


logger = logging.getLogger(__name__)


@dataclass
class LayoutConfig:
    """Pixel metrics of the full-score view."""
    measures_per_system: int = 4
    stave_spacing: float = 75.0
    system_gap: float = 35.0
    left_margin: float = 40.0
    right_margin: float = 20.0
    top_margin: float = 20.0
    bottom_margin: float = 40.0
    first_stave_extra: float = 80.0  # clef + key signature (+ time signature) glyphs
    time_signature_extra: float = 20.0
    note_padding: float = 15.0
    staff_top_offset: float = 20.0
    line_spacing: float = 8.0
    min_width: float = 800.0

    def __post_init__(self):
        if self.measures_per_system <= 0:
            raise ValueError(f"measures_per_system must be positive, got {self.measures_per_system}")
        if self.line_spacing <= 0:
            raise ValueError(f"line_spacing must be positive, got {self.line_spacing}")


@dataclass
class StaveEntry:
    """
    One instrument's stave for one measure.

    Attributes:
        instrument_id: Instrument drawn on this stave
        instrument_name: Display name of the instrument
        clef: Clef of the instrument
        measure: Measure number
        x, y: Top-left corner of the stave box
        width, height: Size of the stave box
        system: 0-based system (row) index
        is_system_start: True for the first measure of a system
        staff: Vertical staff geometry
        geometry: Horizontal note-area geometry
    """
    instrument_id: str
    instrument_name: str
    clef: Clef
    measure: int
    x: float
    y: float
    width: float
    height: float
    system: int
    is_system_start: bool
    staff: StaffGeometry
    geometry: MeasureGeometry

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height


@dataclass
class SystemBounds:
    """Area a measure spans across all instruments, used for the playhead."""
    note_start_x: float
    note_end_x: float
    top_y: float
    bottom_y: float


@dataclass
class ScoreLayout:
    """Computes and stores the stave map of the full score."""
    config: LayoutConfig = field(default_factory=LayoutConfig)
    staves: List[StaveEntry] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0

    def layout(self, data: ScoreData, container_width: float = 0.0) -> List[StaveEntry]:
        """
        Lay out every measure of every instrument.

        Args:
            data: Score with its instruments
            container_width: Available width in pixels

        Returns:
            The stave map, system by system, instrument by instrument
        """
        cfg = self.config
        self.staves = []
        self.width = max(container_width, cfg.min_width)

        total = data.score.total_measures
        beats = data.score.beats_per_measure
        systems = math.ceil(total / cfg.measures_per_system)
        system_height = len(data.instruments) * cfg.stave_spacing
        available = self.width - cfg.left_margin - cfg.right_margin

        for system in range(systems):
            start_measure = system * cfg.measures_per_system + 1
            count = min(cfg.measures_per_system, total - start_measure + 1)
            system_y = system * (system_height + cfg.system_gap) + cfg.top_margin

            normal_width = (available - cfg.first_stave_extra) / count
            for row, instrument in enumerate(data.instruments):
                y = system_y + row * cfg.stave_spacing
                x = cfg.left_margin
                for m in range(count):
                    is_first = m == 0
                    stave_width = normal_width + (cfg.first_stave_extra if is_first else 0)
                    self.staves.append(self._entry(instrument, start_measure + m, system, is_first,
                                                   x, y, stave_width, beats))
                    x += stave_width

        self.height = systems * (system_height + cfg.system_gap) + cfg.bottom_margin + cfg.top_margin
        logger.debug(f"Laid out {total} measures in {systems} systems ({len(self.staves)} staves)")
        return self.staves

    def _entry(self, instrument: Instrument, measure: int, system: int, is_first: bool,
               x: float, y: float, width: float, beats: int) -> StaveEntry:
        cfg = self.config
        glyph_space = 0.0
        if is_first:
            glyph_space = cfg.first_stave_extra
            if system == 0:
                glyph_space += cfg.time_signature_extra
        note_start = x + glyph_space + cfg.note_padding
        note_end = max(note_start, x + width - cfg.note_padding)
        return StaveEntry(
            instrument_id=instrument.id,
            instrument_name=instrument.name,
            clef=instrument.clef,
            measure=measure,
            x=x,
            y=y,
            width=width,
            height=cfg.stave_spacing,
            system=system,
            is_system_start=is_first,
            staff=StaffGeometry(top_y=y + cfg.staff_top_offset, line_spacing=cfg.line_spacing),
            geometry=MeasureGeometry(note_start, note_end, beats),
        )

    def hit_test(self, x: float, y: float) -> Optional[StaveEntry]:
        """Find the stave under a point, None when the point misses every stave."""
        for entry in self.staves:
            if entry.contains(x, y):
                return entry
        return None

    def entry(self, instrument_id: str, measure: int) -> Optional[StaveEntry]:
        for entry in self.staves:
            if entry.instrument_id == instrument_id and entry.measure == measure:
                return entry
        return None

    def system_bounds(self, measure: int) -> Optional[SystemBounds]:
        """Bounds of a measure across all instruments, None if it is not laid out."""
        staves = [s for s in self.staves if s.measure == measure]
        if not staves:
            return None
        first, last = staves[0], staves[-1]
        return SystemBounds(
            note_start_x=first.geometry.note_start_x,
            note_end_x=first.geometry.note_end_x,
            top_y=first.y,
            bottom_y=last.y + last.height,
        )

    def playhead_x(self, measure: int, beat_fraction: float) -> Optional[float]:
        """X of the playhead for a progress tick."""
        bounds = self.system_bounds(measure)
        if bounds is None:
            return None
        fraction = max(0.0, min(beat_fraction, 1.0))
        return bounds.note_start_x + fraction * (bounds.note_end_x - bounds.note_start_x)
