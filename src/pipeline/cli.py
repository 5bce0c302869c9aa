"""
CLI tool for rendering a shared score.

Usage:
    # Print the completed measures of every instrument
    python -m src.pipeline.cli measures --score score.json

    # Print the playback schedule from measure 5 with the cello soloed
    python -m src.pipeline.cli schedule --score score.json --from-measure 5 --solo cello

    # Follow the playhead measure by measure
    python -m src.pipeline.cli play --score score.json --frame-interval 0.1

    # Render the performance to a WAV file (relative paths land in output/)
    python -m src.pipeline.cli render-audio --score score.json --output out.wav

    # Export notation
    python -m src.pipeline.cli export-musicxml --score score.json --output out.musicxml
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from src.collab.store import InMemoryNoteStore
from src.layout.system_layout import ScoreLayout
from src.notation.converter import JSONConverter, MusicXMLConverter, complete_score
from src.notation.note import ScoreData
from src.pipeline.config_parser import EngineConfig, add_config_arguments, config_from_args
from src.playback.engine import PlaybackEngine, ProgressUpdate
from src.playback.midi_export import MIDIConverter
from src.playback.scheduler import PlaybackFilters, PlaybackSchedule, schedule_playback
from src.playback.synthesizer import Synthesizer


logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def load_score(args, config: EngineConfig) -> ScoreData:
    """Load the score file into a store and fetch it back as a client would."""
    store = InMemoryNoteStore.from_file(
        Path(args.score),
        update_requires_owner=config.sync.update_requires_owner
    )
    return store.fetch_score()


def resolve_output(args, config: EngineConfig) -> Path:
    """Relative --output paths are placed under the configured output directory."""
    output_path = Path(args.output)
    if output_path.is_absolute():
        return output_path
    return Path(config.output.output_dir) / output_path


def build_filters(config: EngineConfig) -> PlaybackFilters:
    return PlaybackFilters(muted=set(config.playback.muted), solo=config.playback.solo)


def build_schedule(data: ScoreData, config: EngineConfig) -> PlaybackSchedule:
    return schedule_playback(
        data.score,
        data.notes,
        config.playback.from_measure,
        build_filters(config),
        config.playback.max_voices
    )


def show_measures(args, config: EngineConfig) -> None:
    """Print completed measures."""
    data = load_score(args, config)
    completed = complete_score(data)
    layout = ScoreLayout(config.layout)
    layout.layout(data)

    for instrument in data.instruments:
        print(f"{instrument.name} ({instrument.clef.label})")
        for number, events in enumerate(completed[instrument.id], start=1):
            if args.only_filled and all(e.is_generated for e in events):
                continue
            entry = layout.entry(instrument.id, number)
            cells = []
            for event in events:
                label = 'rest' if event.is_rest else str(event.note.pitch or '?')
                accidental = f" [{event.display_accidental}]" if event.display_accidental else ''
                cells.append(f"{float(event.beat):g}:{label}/{event.duration.label}{accidental}")
            print(f"  m{number:<3} system {entry.system + 1}  " + '  '.join(cells))


def show_schedule(args, config: EngineConfig) -> None:
    """Print the playback schedule."""
    data = load_score(args, config)
    schedule = build_schedule(data, config)

    print(f"Tempo {data.score.tempo} BPM, {schedule.seconds_per_beat:.3f}s per beat, "
          f"from measure {schedule.start_measure}")
    for event in schedule.events:
        print(f"  {event.start:8.3f}s  +{event.duration:6.3f}s  {event.instrument_id:<11} "
              f"{str(event.pitch):<4} {event.frequency:8.2f} Hz  m{event.measure} b{float(event.beat):g}")
    print(f"Total duration: {schedule.total_duration:.2f}s, {schedule.voice_count} voices")


def play_score(args, config: EngineConfig) -> None:
    """Play the score in real time, printing the playhead measure."""
    data = load_score(args, config)
    engine = PlaybackEngine(
        frame_interval=config.playback.frame_interval,
        max_voices=config.playback.max_voices
    )
    engine.filters = build_filters(config)

    def on_measure_change(measure: int) -> None:
        if engine.playing:
            print(f"  measure {measure}")

    def on_tick(update: ProgressUpdate) -> None:
        if update.stopped:
            print("Stopped")

    engine.on_measure_change = on_measure_change
    engine.on_tick = on_tick

    schedule = engine.play(data, config.playback.from_measure)
    print(f"Playing {len(schedule.events)} notes ({schedule.total_duration:.1f}s)...")
    try:
        engine.run()
    except KeyboardInterrupt:
        engine.stop()


def render_audio(args, config: EngineConfig) -> None:
    """Render the performance to a WAV file."""
    data = load_score(args, config)
    schedule = build_schedule(data, config)
    synthesizer = Synthesizer(
        sample_rate=config.audio.sample_rate,
        gain=config.audio.gain,
        normalize=config.audio.normalize
    )
    print(f"Rendering {len(schedule.events)} notes ({schedule.total_duration:.1f}s)...")
    synthesizer.render_to_file(schedule, resolve_output(args, config))
    print("Done!")


def export_midi(args, config: EngineConfig) -> None:
    """Export the performance to a MIDI file."""
    data = load_score(args, config)
    schedule = build_schedule(data, config)
    MIDIConverter(ticks_per_beat=config.output.midi_ticks_per_beat).convert(
        schedule, data.score, resolve_output(args, config)
    )
    print("Done!")


def export_musicxml(args, config: EngineConfig) -> None:
    """Export notation to MusicXML."""
    data = load_score(args, config)
    MusicXMLConverter().convert(data, resolve_output(args, config))
    print("Done!")


def export_json(args, config: EngineConfig) -> None:
    """Export completed measures to JSON."""
    data = load_score(args, config)
    JSONConverter().convert(data, resolve_output(args, config))
    print("Done!")


def create_parser() -> argparse.ArgumentParser:
    common = add_config_arguments(argparse.ArgumentParser(add_help=False))
    common.add_argument('--score', type=str, required=True,
                        help='Path to score JSON file ({score, instruments, notes})')

    parser = argparse.ArgumentParser(
        description="Render a shared ensemble score to notation and audio"
    )
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    measures_parser = subparsers.add_parser('measures', parents=[common],
                                            help='Print completed measures')
    measures_parser.add_argument('--only-filled', action='store_true',
                                 help='Skip measures nobody has written in')
    measures_parser.set_defaults(func=show_measures)

    schedule_parser = subparsers.add_parser('schedule', parents=[common],
                                            help='Print the playback schedule')
    schedule_parser.set_defaults(func=show_schedule)

    play_parser = subparsers.add_parser('play', parents=[common],
                                        help='Play the score, following the playhead')
    play_parser.set_defaults(func=play_score)

    commands = [
        ('render-audio', render_audio, 'Render the performance to a WAV file'),
        ('export-midi', export_midi, 'Export the performance to a MIDI file'),
        ('export-musicxml', export_musicxml, 'Export notation to MusicXML'),
        ('export-json', export_json, 'Export completed measures to JSON'),
    ]
    for name, func, help_text in commands:
        sub = subparsers.add_parser(name, parents=[common], help=help_text)
        sub.add_argument('--output', type=str, required=True,
                         help='Output file path')
        sub.set_defaults(func=func)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose)
    config = config_from_args(args)
    try:
        args.func(args, config)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
