"""Configuration parser for the ensemble score engine.

Handles loading YAML config and merging with command-line arguments.
Command-line arguments have higher priority than config file values.
"""

import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from src.layout.system_layout import LayoutConfig


DEFAULT_CONFIG_PATH = Path(__file__).parent / 'config.yaml'


@dataclass
class PlaybackConfig:
    """Playback scheduling configuration."""
    from_measure: int = 1
    max_voices: int = 4096
    frame_interval: float = 1 / 60
    muted: List[str] = field(default_factory=list)
    solo: Optional[str] = None

    def __post_init__(self):
        if self.from_measure < 1:
            raise ValueError(f"from_measure must be >= 1, got {self.from_measure}")
        if self.max_voices <= 0:
            raise ValueError(f"max_voices must be positive, got {self.max_voices}")
        if self.frame_interval <= 0:
            raise ValueError(f"frame_interval must be positive, got {self.frame_interval}")


@dataclass
class SyncConfig:
    """Shared note store configuration."""
    update_requires_owner: bool = False


@dataclass
class AudioConfig:
    """Offline audio rendering configuration."""
    sample_rate: int = 44100
    gain: float = 1.0
    normalize: bool = True

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")


@dataclass
class OutputConfig:
    """Output paths configuration."""
    output_dir: str = "output"
    midi_ticks_per_beat: int = 480

    def __post_init__(self):
        if self.midi_ticks_per_beat <= 0:
            raise ValueError(f"midi_ticks_per_beat must be positive, got {self.midi_ticks_per_beat}")


@dataclass
class EngineConfig:
    """Complete engine configuration."""
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_file, 'r') as f:
        config_dict = yaml.safe_load(f)

    return config_dict or {}


def merge_configs(base_config: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override config into base config."""
    merged = base_config.copy()

    for key, value in overrides.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        elif value is not None:  # Only override if value is not None
            merged[key] = value

    return merged


def dict_to_config(config_dict: Dict[str, Any]) -> EngineConfig:
    """Convert dictionary to EngineConfig dataclass."""
    return EngineConfig(
        layout=LayoutConfig(**config_dict.get('layout', {})),
        playback=PlaybackConfig(**config_dict.get('playback', {})),
        sync=SyncConfig(**config_dict.get('sync', {})),
        audio=AudioConfig(**config_dict.get('audio', {})),
        output=OutputConfig(**config_dict.get('output', {})),
    )


def add_config_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """Add the options shared by every command."""
    parser.add_argument('--config', type=str,
                        default=str(DEFAULT_CONFIG_PATH),
                        help='Path to YAML configuration file')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')

    playback_group = parser.add_argument_group('Playback')
    playback_group.add_argument('--from-measure', type=int,
                                help='Measure playback starts at')
    playback_group.add_argument('--mute', type=str, action='append',
                                help='Mute an instrument (repeatable)')
    playback_group.add_argument('--solo', type=str,
                                help='Solo an instrument')
    playback_group.add_argument('--max-voices', type=int,
                                help='Maximum oscillators scheduled at once')
    playback_group.add_argument('--frame-interval', type=float,
                                help='Seconds between progress updates while playing')

    audio_group = parser.add_argument_group('Audio')
    audio_group.add_argument('--sample-rate', type=int,
                             help='Rendered audio sample rate')
    audio_group.add_argument('--gain', type=float,
                             help='Overall gain of the rendered mix')

    layout_group = parser.add_argument_group('Layout')
    layout_group.add_argument('--measures-per-system', type=int,
                              help='Measures per system (row)')

    output_group = parser.add_argument_group('Output')
    output_group.add_argument('--output-dir', type=str,
                              help='Directory for relative --output paths')

    return parser


def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Build a config override dictionary from parsed CLI arguments."""
    overrides: Dict[str, Any] = {}

    playback_overrides = {}
    if getattr(args, 'from_measure', None) is not None:
        playback_overrides['from_measure'] = args.from_measure
    if getattr(args, 'mute', None):
        playback_overrides['muted'] = list(args.mute)
    if getattr(args, 'solo', None) is not None:
        playback_overrides['solo'] = args.solo
    if getattr(args, 'max_voices', None) is not None:
        playback_overrides['max_voices'] = args.max_voices
    if getattr(args, 'frame_interval', None) is not None:
        playback_overrides['frame_interval'] = args.frame_interval
    if playback_overrides:
        overrides['playback'] = playback_overrides

    audio_overrides = {}
    if getattr(args, 'sample_rate', None) is not None:
        audio_overrides['sample_rate'] = args.sample_rate
    if getattr(args, 'gain', None) is not None:
        audio_overrides['gain'] = args.gain
    if audio_overrides:
        overrides['audio'] = audio_overrides

    if getattr(args, 'measures_per_system', None) is not None:
        overrides['layout'] = {'measures_per_system': args.measures_per_system}

    if getattr(args, 'output_dir', None) is not None:
        overrides['output'] = {'output_dir': args.output_dir}

    return overrides


def config_from_args(args: argparse.Namespace) -> EngineConfig:
    """Load the YAML config named by --config and apply CLI overrides.

    Priority: CLI args > YAML config > defaults
    """
    yaml_config = load_yaml_config(args.config)
    merged_config = merge_configs(yaml_config, args_to_overrides(args))
    return dict_to_config(merged_config)
