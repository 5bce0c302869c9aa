"""
Pipeline package for the ensemble score engine.

Provides configuration loading and the command-line entry point:
- YAML configuration merged with command-line overrides
- Completed measures and playback schedule printing
- Audio rendering, MIDI, MusicXML and JSON export
"""

from .config_parser import (
    EngineConfig,
    PlaybackConfig,
    SyncConfig,
    AudioConfig,
    OutputConfig,
    load_yaml_config,
    merge_configs,
    dict_to_config,
    config_from_args,
)
from .cli import main

__all__ = [
    'main',
    'EngineConfig',
    'PlaybackConfig',
    'SyncConfig',
    'AudioConfig',
    'OutputConfig',
    'load_yaml_config',
    'merge_configs',
    'dict_to_config',
    'config_from_args',
]
