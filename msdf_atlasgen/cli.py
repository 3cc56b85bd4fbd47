"""Command line entry point: msdf-atlasgen [options]."""

import argparse
import sys
from pathlib import Path

from .atlas import run
from .config import AtlasSettings, load_settings, settings_from_mapping
from .errors import AtlasError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="msdf-atlasgen",
        description="Pack a font's glyphs into a distance field texture atlas.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML file with settings (keys are the long option names).",
    )
    parser.add_argument(
        "-C", "--code-range",
        action="append",
        help="Unicode codepoint range BEGIN-END, end exclusive (repeatable). Default 0-65536.",
    )
    parser.add_argument("-T", "--texture-size", help="Texture dimensions WIDTHxHEIGHT. Default 2048x2048.")
    parser.add_argument("-M", "--mode", help="Font mode: msdf, sdf or psdf. Default msdf.")
    parser.add_argument("-L", "--char-height", help="Maximum character height in texels. Default 32.")
    parser.add_argument("-S", "--smooth-pixels", help="Smoothing border around each glyph in texels. Default 2.")
    parser.add_argument("-R", "--range", help="Distance field range in font units. Default 1.0.")
    parser.add_argument("--spacing", help="Inter-character spacing in texels. Default 2.")
    parser.add_argument("-F", "--font", help="Font file name. Default UbuntuMono-R.ttf.")
    parser.add_argument("-O", "--output-name", help="Base file name of the output files. Default bitmap_font.")
    parser.add_argument(
        "--auto-height",
        action="store_true",
        default=None,
        help="Search for the largest character height that fits (might take a while).",
    )
    parser.add_argument(
        "--use-spans",
        action="store_true",
        default=None,
        help="Write codepoint spans instead of filling gaps with empty glyphs.",
    )
    return parser


def parse_settings(argv: list[str] | None = None) -> AtlasSettings:
    args = vars(build_parser().parse_args(argv))
    config_path = args.pop("config")
    settings = load_settings(config_path) if config_path else AtlasSettings()
    return settings_from_mapping(args, settings)


def main(argv: list[str] | None = None) -> int:
    try:
        settings = parse_settings(argv)
        run(settings)
    except AtlasError as e:
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
