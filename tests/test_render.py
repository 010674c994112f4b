"""Tests for the moviepy renderer. Encodes tiny videos with ffmpeg."""

import numpy as np
import pytest
from moviepy import VideoFileClip

from slidecompose.errors import RenderFailure
from slidecompose.manifest import validate_sections
from slidecompose.render import MoviepyRenderer, _codec_params
from slidecompose.slides import render_slide_frame
from slidecompose.timeline import assemble_timeline


RES = (160, 90)


@pytest.fixture
def composition():
    return assemble_timeline(validate_sections([
        {"type": "title", "title": "Hello", "duration": 0.5},
        {"type": "conclusion", "title": "Bye", "callToAction": "Go", "duration": 0.5},
    ]))


class TestCodecParams:
    def test_cpu(self):
        assert _codec_params("libx264") == ["-crf", "20", "-pix_fmt", "yuv420p"]

    def test_gpu(self):
        assert _codec_params("h264_nvenc") == ["-cq", "20", "-pix_fmt", "yuv420p"]


class TestBuildClip:
    def test_duration(self, composition):
        clip = MoviepyRenderer(resolution=RES).build_clip(composition)
        assert clip.duration == pytest.approx(1.0)
        assert clip.fps == 30
        clip.close()

    def test_frames_come_from_owning_section(self, composition):
        clip = MoviepyRenderer(resolution=RES).build_clip(composition)
        frame = clip.get_frame(0.6)
        second = composition.sections[1].descriptor
        assert np.array_equal(frame, render_slide_frame(second, 3, RES))
        clip.close()

    def test_empty_composition_raises(self):
        with pytest.raises(RenderFailure, match="no frames"):
            MoviepyRenderer(resolution=RES).build_clip(assemble_timeline([]))


class TestRender:
    def test_writes_playable_video(self, composition, tmp_path):
        out = tmp_path / "nested" / "out.mp4"
        MoviepyRenderer(resolution=RES).render(composition, out)

        assert out.exists()
        clip = VideoFileClip(str(out))
        try:
            assert tuple(clip.size) == RES
            assert clip.duration == pytest.approx(1.0, abs=0.1)
        finally:
            clip.close()

    def test_encoder_failure_wrapped(self, composition, tmp_path):
        renderer = MoviepyRenderer(resolution=RES, codec="no_such_codec")
        with pytest.raises(RenderFailure, match="Encoding"):
            renderer.render(composition, tmp_path / "out.mp4")
