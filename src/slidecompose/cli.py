"""CLI for rendering and validating video description manifests.

Rendering goes through the same job lifecycle as any other caller: the
manifest is submitted to a RenderJobManager, and the CLI polls job status
until the job finishes, printing each state change.

Usage:
    # Render a manifest (writes <job_id>.mp4 into the output directory)
    python -m slidecompose.cli \
        --manifest video.yaml --output-dir /tmp/videos

    # Validate only and print the timeline (no rendering)
    python -m slidecompose.cli --manifest video.yaml --validate
"""

import argparse
import sys
import time

from .errors import SlideComposeError
from .jobs import RenderJobManager
from .manifest import load_manifest
from .render import MoviepyRenderer
from .timeline import assemble_timeline


def _print_timeline(config: dict) -> None:
    composition = assemble_timeline(config["sections"])
    title = config.get("title")
    print(f"Manifest valid{f': {title}' if title else ''}")
    print(f"  {len(composition.sections)} sections, "
          f"{composition.total_duration_frames} frames "
          f"({composition.duration_seconds:.1f}s at {composition.fps}fps)")
    for i, placed in enumerate(composition.sections):
        desc, pl = placed.descriptor, placed.placement
        heading = desc.title.replace("\n", " ")[:60]
        print(f"  {i}: {desc.type:<18} frames {pl.start_frame:>5}-{pl.end_frame - 1:<5} "
              f"({pl.duration_frames} frames) — {heading}")


def render(
    manifest_path: str,
    output_dir: str,
    codec: str = "libx264",
    poll_interval: float = 0.5,
) -> int:
    """Submit a manifest as a render job and poll until it finishes.

    Returns:
        Process exit code: 0 if the job completed, 1 if it ended in error.
    """
    config = load_manifest(manifest_path)
    video = config["video"]
    renderer = MoviepyRenderer(
        resolution=video["resolution"], background=video["background"], codec=codec,
    )
    manager = RenderJobManager(renderer, output_dir)

    try:
        job_id = manager.submit_descriptors(config["sections"])
        print(f"Job {job_id} submitted ({len(config['sections'])} sections)")

        t0 = time.monotonic()
        last_status = None
        while True:
            job = manager.get_status(job_id)
            if job.status is not last_status:
                print(f"  {job.status.value:<11} {job.progress:>3}%")
                last_status = job.status
            if job.status.is_terminal:
                break
            time.sleep(poll_interval)
    finally:
        manager.shutdown()

    elapsed = time.monotonic() - t0
    payload = job.to_dict()
    if payload["status"] == "error":
        print(f"\nRender failed: {payload['error']}", file=sys.stderr)
        return 1
    print(f"\nDone: {payload['videoUrl']} ({payload['duration']}s video, {elapsed:.1f}s wall)")
    return 0


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render a slide video manifest to mp4.",
    )
    parser.add_argument(
        "--manifest", required=True,
        help="Path to YAML manifest file",
    )
    parser.add_argument(
        "--output-dir",
        help="Directory for the rendered mp4 (named after the job id)",
    )
    parser.add_argument(
        "--gpu", action="store_true",
        help="Use GPU encoding (h264_nvenc). Default is CPU (libx264).",
    )
    parser.add_argument(
        "--poll-interval", type=float, default=0.5,
        help="Seconds between job status polls (default: 0.5)",
    )
    parser.add_argument(
        "--validate", action="store_true",
        help="Validate manifest and print the timeline, don't render",
    )
    args = parser.parse_args(args)

    try:
        if args.validate:
            _print_timeline(load_manifest(args.manifest))
            return

        if not args.output_dir:
            parser.error("--output-dir is required (unless using --validate)")

        code = render(
            args.manifest, args.output_dir,
            codec="h264_nvenc" if args.gpu else "libx264",
            poll_interval=args.poll_interval,
        )
    except SlideComposeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
