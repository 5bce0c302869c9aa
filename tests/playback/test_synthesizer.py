"""
Tests for offline synthesis and MIDI export.
"""

import logging
import pytest
import numpy as np
import soundfile as sf
import mido

from src.notation.note import Dynamic, Note, Score
from src.notation.pitch import Duration, Pitch
from src.playback.midi_export import GM_PROGRAMS, MIDIConverter
from src.playback.scheduler import schedule_playback
from src.playback.synthesizer import Synthesizer, lowpass, oscillator


@pytest.fixture
def score():
    return Score(title="Synth Test", tempo=120, total_measures=1)


@pytest.fixture
def schedule(score):
    notes = [
        Note(instrument_id='violin1', measure=1, beat=2, pitch=Pitch.parse("A4"), dynamic=Dynamic.F),
        Note(instrument_id='cello', measure=1, beat=1, duration=Duration.HALF, pitch=Pitch.parse("D3")),
    ]
    return schedule_playback(score, notes)


class TestOscillator:
    """Test waveform generation."""

    def test_waveforms(self):
        """Test waveform values at known phases."""
        assert oscillator('sine', np.array([np.pi / 2]))[0] == pytest.approx(1.0)
        assert oscillator('square', np.array([0.1, np.pi + 0.1])).tolist() == [1.0, -1.0]
        assert oscillator('triangle', np.array([0.0, np.pi])).tolist() == pytest.approx([-1.0, 1.0])
        assert oscillator('sawtooth', np.array([0.0]))[0] == pytest.approx(-1.0)

    def test_lowpass_attenuates_high_frequencies(self):
        """Test the filter keeps lows and cuts highs."""
        sr = 8000
        t = np.arange(sr) / sr
        low = np.sin(2 * np.pi * 100 * t)
        high = np.sin(2 * np.pi * 3000 * t)
        assert np.std(lowpass(low, sr, 500)) == pytest.approx(np.std(low), rel=0.05)
        assert np.std(lowpass(high, sr, 500)) < 0.1 * np.std(high)


class TestSynthesizer:
    """Test rendering schedules."""

    def test_invalid_sample_rate(self):
        """Test invalid sample rate raises error."""
        with pytest.raises(ValueError, match="Invalid sample_rate"):
            Synthesizer(sample_rate=0)

    def test_render_length(self, schedule):
        """Test the mix covers the whole schedule."""
        audio = Synthesizer(sample_rate=8000).render(schedule)
        assert audio.dtype == np.float32
        assert len(audio) == 2 * 8000
        assert np.max(np.abs(audio)) <= 1.0

    def test_render_silence_after_notes(self, schedule):
        """Test audio is silent once every note has released."""
        audio = Synthesizer(sample_rate=8000).render(schedule)
        assert np.max(np.abs(audio[:4000])) > 0.01
        assert np.max(np.abs(audio[int(1.1 * 8000):])) == pytest.approx(0.0, abs=1e-6)

    def test_render_note_envelope(self, schedule):
        """Test a single note starts silent and fades out."""
        synth = Synthesizer(sample_rate=8000)
        samples = synth.render_note(schedule.events[0])
        assert abs(samples[0]) < 1e-6
        assert abs(samples[-1]) < 1e-6

    def test_render_to_file(self, schedule, tmp_path):
        """Test writing a WAV file."""
        output_path = tmp_path / "render" / "out.wav"
        Synthesizer(sample_rate=8000).render_to_file(schedule, output_path)

        assert output_path.exists()
        audio, sr = sf.read(str(output_path))
        assert sr == 8000
        assert len(audio) == 16000

    def test_sink_interface(self, schedule):
        """Test the synthesizer collects scheduled notes until stopped."""
        synth = Synthesizer(sample_rate=8000)
        for event in schedule.events:
            synth.schedule(event, event.start)
        assert len(synth.pending) == 2
        synth.stop_all()
        assert synth.pending == []

    def test_empty_schedule(self, score):
        """Test an empty score renders silence."""
        audio = Synthesizer(sample_rate=8000).render(schedule_playback(score, []))
        assert len(audio) == 16000
        assert not np.any(audio)


class TestMIDIConverter:
    """Test MIDI converter."""

    def test_build_tracks(self, schedule, score):
        """Test one conductor track plus one per sounding instrument."""
        midi = MIDIConverter().build(schedule, score)
        assert midi.type == 1
        assert len(midi.tracks) == 3

        tempo = [m for m in midi.tracks[0] if m.type == 'set_tempo'][0]
        assert tempo.tempo == mido.bpm2tempo(120)

    def test_note_timing(self, schedule, score):
        """Test note on/off ticks follow the schedule."""
        midi = MIDIConverter(ticks_per_beat=480).build(schedule, score)
        tracks = {t.name: t for t in midi.tracks[1:]}

        violin = tracks['violin1']
        program = [m for m in violin if m.type == 'program_change'][0]
        assert program.program == GM_PROGRAMS['violin1']
        note_on = [m for m in violin if m.type == 'note_on'][0]
        note_off = [m for m in violin if m.type == 'note_off'][0]
        assert note_on.note == 69
        assert note_on.velocity == 96
        assert note_on.time == 480
        assert note_off.time == 480

        cello_on = [m for m in tracks['cello'] if m.type == 'note_on'][0]
        assert cello_on.note == 50
        assert cello_on.time == 0

    def test_convert_to_midi(self, schedule, score, tmp_path):
        """Test writing a MIDI file."""
        output_path = tmp_path / "output.mid"
        MIDIConverter().convert(schedule, score, output_path)

        assert output_path.exists()
        midi = mido.MidiFile(str(output_path))
        notes = [m for track in midi.tracks for m in track if m.type == 'note_on']
        assert sorted(m.note for m in notes) == [50, 69]

    def test_note_above_midi_range_skipped(self, score, tmp_path, caplog):
        """Test B9 (MIDI 131) is left out of the file instead of failing the export."""
        notes = [
            Note(instrument_id='violin1', measure=1, beat=1, pitch=Pitch.parse("B9")),
            Note(instrument_id='violin1', measure=1, beat=2, pitch=Pitch.parse("A4")),
        ]
        schedule = schedule_playback(score, notes)
        output_path = tmp_path / "high.mid"
        with caplog.at_level(logging.WARNING):
            MIDIConverter().convert(schedule, score, output_path)

        midi = mido.MidiFile(str(output_path))
        notes_on = [m.note for track in midi.tracks for m in track if m.type == 'note_on']
        assert notes_on == [69]
        assert "MIDI note 131 out of range" in caplog.text
