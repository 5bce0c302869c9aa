"""
Tests for staff and measure geometry.
"""

import pytest
from fractions import Fraction

from src.layout.geometry import (
    MeasureGeometry, StaffGeometry, ledger_lines, pitch_to_position, position_to_pitch
)
from src.notation.key_signature import key_accidentals
from src.notation.note import Clef
from src.notation.pitch import Duration, Pitch


class TestPitchPosition:
    """Test pitch <-> staff position mapping."""

    def test_top_lines(self):
        """Test each clef's top line is position 0."""
        assert pitch_to_position("F5", Clef.TREBLE) == 0
        assert pitch_to_position("G4", Clef.ALTO) == 0
        assert pitch_to_position("A3", Clef.BASS) == 0

    def test_treble_positions(self):
        """Test treble clef reference pitches."""
        assert pitch_to_position("E4", Clef.TREBLE) == 4
        assert pitch_to_position("B4", Clef.TREBLE) == 2
        assert pitch_to_position("C4", Clef.TREBLE) == 5
        assert pitch_to_position("A5", Clef.TREBLE) == -1

    def test_middle_c_per_clef(self):
        """Test middle C sits on the alto middle line."""
        assert pitch_to_position("C4", Clef.ALTO) == 2
        assert pitch_to_position("C4", Clef.BASS) == -1

    def test_accidental_same_position(self):
        """Test F#4 and F4 share a staff position."""
        assert pitch_to_position("F#4", "treble") == pitch_to_position("F4", "treble")

    def test_malformed_pitch(self):
        """Test malformed pitches sit on the middle line."""
        assert pitch_to_position("??", Clef.BASS) == 2.0

    @pytest.mark.parametrize("clef", list(Clef))
    def test_round_trip(self, clef):
        """Test position_to_pitch inverts pitch_to_position for every clef."""
        for octave in range(1, 7):
            for letter in "CDEFGAB":
                pitch = Pitch(letter, octave)
                assert position_to_pitch(pitch_to_position(pitch, clef), clef) == pitch

    @pytest.mark.parametrize("clef", list(Clef))
    def test_round_trip_in_key(self, clef):
        """Test harmonized pitches round-trip under their key signature."""
        d_major = key_accidentals("D")
        for text in ["F#4", "C#5", "D3", "G2", "C#3"]:
            pitch = Pitch.parse(text)
            assert position_to_pitch(pitch_to_position(pitch, clef), clef, d_major) == pitch

    def test_inverse_harmonizes(self):
        """Test the inverse applies the key's forced accidental."""
        d_major = key_accidentals("D")
        assert position_to_pitch(3.5, Clef.TREBLE, d_major) == Pitch.parse("F#4")
        assert position_to_pitch(3.5, Clef.TREBLE) == Pitch.parse("F4")

    def test_inverse_rounds_to_half_steps(self):
        """Test continuous positions snap to the nearest step."""
        assert position_to_pitch(1.9, Clef.TREBLE) == Pitch.parse("B4")
        assert position_to_pitch(2.3, Clef.TREBLE) == Pitch.parse("A4")


class TestLedgerLines:
    """Test ledger line computation."""

    def test_inside_staff(self):
        """Test no ledger lines within the staff."""
        assert ledger_lines(0) == []
        assert ledger_lines(4) == []
        assert ledger_lines(2.5) == []

    def test_above_staff(self):
        """Test ledger lines above the top line."""
        assert ledger_lines(-0.5) == []
        assert ledger_lines(-1) == [-1]
        assert ledger_lines(-1.5) == [-1]
        assert ledger_lines(-2) == [-1, -2]

    def test_below_staff(self):
        """Test ledger lines below the bottom line."""
        assert ledger_lines(4.5) == []
        assert ledger_lines(5) == [5]
        assert ledger_lines(6.5) == [5, 6]


class TestStaffGeometry:
    """Test vertical pixel geometry."""

    def test_pitch_to_y(self):
        """Test y grows downward by line spacing."""
        staff = StaffGeometry(top_y=100, line_spacing=10)
        assert staff.pitch_to_y("F5", Clef.TREBLE) == 100
        assert staff.pitch_to_y("E4", Clef.TREBLE) == 140
        assert staff.bottom_y == 140

    def test_y_to_pitch(self):
        """Test clicks snap to the nearest line or space."""
        staff = StaffGeometry(top_y=100, line_spacing=10)
        assert staff.y_to_pitch(121, Clef.TREBLE) == Pitch.parse("B4")
        assert staff.y_to_pitch(124, Clef.TREBLE) == Pitch.parse("A4")
        assert staff.y_to_pitch(135, Clef.TREBLE, key_accidentals("D")) == Pitch.parse("F#4")


class TestMeasureGeometry:
    """Test horizontal pixel geometry."""

    @pytest.fixture
    def measure(self):
        return MeasureGeometry(note_start_x=100, note_end_x=300, beats_per_measure=4)

    def test_beat_to_x(self, measure):
        """Test beats map linearly across the note area."""
        assert measure.beat_to_x(1) == 100
        assert measure.beat_to_x(3) == 200
        assert measure.beat_to_x(Fraction(3, 2)) == 125

    def test_x_to_beat_quarter(self, measure):
        """Test snapping to quarter beats."""
        assert measure.x_to_beat(100) == 1
        assert measure.x_to_beat(148) == 2
        assert measure.x_to_beat(240) == 4

    def test_x_to_beat_clamps_to_fitting_slot(self, measure):
        """Test the last slot still fits the note."""
        assert measure.x_to_beat(299, Duration.HALF) == 3
        assert measure.x_to_beat(299, Duration.WHOLE) == 1
        assert measure.x_to_beat(50) == 1

    def test_x_to_beat_eighths(self, measure):
        """Test eighth-note grid."""
        assert measure.x_to_beat(126, Duration.EIGHTH) == Fraction(3, 2)

    def test_snap_and_grid(self, measure):
        """Test snapped x and beat grid."""
        assert measure.snap_x(148) == 150
        assert measure.beat_grid() == [100, 150, 200, 250, 300]
        assert measure.clamp_x(400) == 300
