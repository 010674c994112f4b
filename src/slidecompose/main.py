"""Subcommand dispatcher for slidecompose.

Usage:
    slidecompose render    --manifest video.yaml --output-dir videos/
    slidecompose validate  --manifest video.yaml
    slidecompose types
    slidecompose example
"""

import argparse
import sys


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="slidecompose",
        description="Compile slide video descriptions into timed, animated renders.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("render", help="Render a YAML manifest to mp4")
    subparsers.add_parser("validate", help="Validate a manifest and print its timeline")
    subparsers.add_parser("types", help="List available section types")
    subparsers.add_parser("example", help="Print a sample manifest")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "render":
        from .cli import main as render_main
        render_main(remaining)
    elif parsed.command == "validate":
        from .cli import main as render_main
        render_main([*remaining, "--validate"])
    else:
        from .info_cli import main as info_main
        info_main([parsed.command, *remaining])


if __name__ == "__main__":
    main()
