#!/usr/bin/env python3
"""Write PNG stills of every section in a manifest, without encoding video.

For each section, saves the frame at which its last element has finished
fading in, so every staged element is visible. Handy for checking
layouts before a full render.

Usage:
    python examples/preview_frames.py
    python examples/preview_frames.py examples/sample-video.yaml --height 540
"""

import argparse
from pathlib import Path

from PIL import Image

from slidecompose.keyframes import section_curves
from slidecompose.manifest import load_manifest
from slidecompose.slides import render_slide_frame
from slidecompose.timeline import assemble_timeline

HERE = Path(__file__).resolve().parent
OUTPUT_DIR = HERE / "previews"


def _settled_frame(placed) -> int:
    """First local frame where every curve has reached its end value."""
    curves = section_curves(placed.descriptor)
    last = max((c.end_frame for c in curves), default=0)
    # Title slides fade out at the end; stop before the fade starts.
    return min(last, placed.placement.duration_frames // 2)


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("manifest", nargs="?", default=str(HERE / "sample-video.yaml"))
    parser.add_argument("--height", type=int, default=360,
                        help="Preview height in pixels (width follows the manifest aspect)")
    args = parser.parse_args()

    config = load_manifest(args.manifest)
    w, h = config["video"]["resolution"]
    size = (round(w * args.height / h) // 2 * 2, args.height)
    composition = assemble_timeline(config["sections"])

    OUTPUT_DIR.mkdir(exist_ok=True)
    for i, placed in enumerate(composition.sections):
        local = _settled_frame(placed)
        frame = render_slide_frame(
            placed.descriptor, local, size, background=config["video"]["background"],
        )
        path = OUTPUT_DIR / f"{i:02d}-{placed.descriptor.type}.png"
        Image.fromarray(frame).save(path)
        print(f"  {path.name}  (local frame {local})")

    print(f"Done. {len(composition.sections)} previews in {OUTPUT_DIR}")


if __name__ == "__main__":
    main()
