"""Renderers -- turn a Composition into a media file.

The job manager only needs an object with
    render(composition, output_path) -> None
that raises on failure. MoviepyRenderer is the shipped implementation:
a moviepy VideoClip whose frame function maps each output timestamp to a
global frame, finds the section playing at that frame, and asks
slides.render_slide_frame() for the pixels. All animation comes from the
keyframe engine, so rendering the same composition twice gives the same
frames.
"""

import logging
from pathlib import Path
from typing import Protocol

from moviepy import VideoClip

from .errors import RenderFailure
from .slides import DEFAULT_BACKGROUND, render_slide_frame
from .timeline import Composition


logger = logging.getLogger(__name__)


class Renderer(Protocol):
    def render(self, composition: Composition, output_path: str | Path) -> None:
        ...


def _codec_params(codec: str) -> list[str]:
    """Return extra ffmpeg params for the given codec name."""
    if codec == "h264_nvenc":
        return ["-cq", "20", "-pix_fmt", "yuv420p"]
    return ["-crf", "20", "-pix_fmt", "yuv420p"]


class MoviepyRenderer:
    """Render compositions with Pillow frames encoded through moviepy.

    Args:
        resolution: (width, height) of the output video.
        background: RGB canvas for section types without their own palette.
        codec: ffmpeg video codec; "libx264" for CPU, "h264_nvenc" for GPU.
        quiet: Suppress moviepy's progress bar.
    """

    def __init__(
        self,
        resolution: tuple[int, int] = (1920, 1080),
        background: tuple[int, int, int] = DEFAULT_BACKGROUND,
        codec: str = "libx264",
        quiet: bool = True,
    ):
        self.resolution = tuple(resolution)
        self.background = tuple(background)
        self.codec = codec
        self.quiet = quiet

    def build_clip(self, composition: Composition) -> VideoClip:
        """Build the moviepy clip for a composition without encoding it."""
        if composition.total_duration_frames <= 0:
            raise RenderFailure("Composition has no frames to render")

        fps = composition.fps
        last_frame = composition.total_duration_frames - 1

        def frame_function(t):
            # moviepy asks for timestamps; snap to the frame grid.
            frame = min(max(round(t * fps), 0), last_frame)
            placed, local_frame = composition.section_at(frame)
            return render_slide_frame(
                placed.descriptor, local_frame, self.resolution,
                background=self.background, fps=fps,
            )

        clip = VideoClip(frame_function, duration=composition.duration_seconds)
        return clip.with_fps(fps)

    def render(self, composition: Composition, output_path: str | Path) -> None:
        """Encode a composition to output_path.

        Raises:
            RenderFailure: empty composition, or the encoder failed. The
                message carries the underlying diagnostic.
        """
        clip = self.build_clip(composition)
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)

        logger.info(
            "Rendering %d sections (%d frames, %dx%d) to %s",
            len(composition.sections), composition.total_duration_frames,
            self.resolution[0], self.resolution[1], output_path,
        )
        try:
            clip.write_videofile(
                str(output_path),
                fps=composition.fps,
                codec=self.codec,
                audio=False,
                preset="medium",
                ffmpeg_params=_codec_params(self.codec),
                logger=None if self.quiet else "bar",
            )
        except Exception as e:
            raise RenderFailure(f"Encoding {output_path} failed: {e}") from e
        finally:
            clip.close()
