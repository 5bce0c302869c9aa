#!/usr/bin/env python3
"""
Ensemble Score - collaborative staff notation and playback engine

Main entry point for the ensemble score engine.

Version: 0.1.0
"""

import sys
from pathlib import Path

from src.pipeline.cli import main as cli_main


VERSION = "0.1.0"


def show_status():
    """Show the engine status and available commands."""
    print("Ensemble Score Engine")
    print("=" * 40)
    print(f"Version: {VERSION}")
    print(f"Default config: {Path(__file__).parent / 'src' / 'pipeline' / 'config.yaml'}")
    print("Commands: measures, schedule, render-audio, export-midi, export-musicxml, export-json")
    print("Run 'python main.py <command> --help' for details.")


def main():
    """Main entry point."""
    if len(sys.argv) > 1 and sys.argv[1] == "--version":
        print(f"Ensemble Score {VERSION}")
        return 0

    if len(sys.argv) == 1:
        show_status()
        return 0

    return cli_main(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
