"""Keyframe interpolation engine.

Every visual property of a slide is a pure function of the frame number
relative to the section's own start ("local frame"). Nothing here reads
or writes shared state: the same (descriptor, local_frame) pair always
produces the same values, so renders are reproducible frame by frame.

Building blocks:
  - interpolate(): piecewise-linear curve over 2 or 4 points, clamped to
    its boundary values outside the defined frame range.
  - spring(): damped harmonic oscillator settling from 0 toward 1, used
    for the title pop-in scale.
  - Curve: a named interpolate() with its keyframes baked in.

Per-type curve builders live below. Windows are written in seconds and
converted with common.seconds_to_frames, the same conversion the timeline
assembler uses for section durations.

Timing per section type (seconds, d = section duration):

  title              title_opacity   0 → 0.5 fade in, d-1 → d fade out
                     title_scale     spring(damping=100, stiffness=200)
  problem_statement  header_opacity  0 → 0.5
                     point_i         1.0 + 0.5·i, 0.5s window
  solution           title_opacity   0 → 0.5
                     content_opacity 1.0 → 1.5
                     feature_i       2.0 + 0.3·i, 0.3s window
  bullet_points      title_opacity   0 → 0.5
                     point_i         1.0 + 0.4·i, 0.4s window
  comparison         title_opacity   0 → 0.5
                     columns_opacity 1.0 → 1.5 (both columns together)
  results            title_opacity   0 → 0.5
                     results_opacity 1.0 → 1.5
                     result_i        2.0 + 0.3·i, 0.3s window
  conclusion         title_opacity   0 → 1.0
                     content_opacity 1.0 → 2.0
                     cta_opacity     2.5 → 3.5
"""

import math
from dataclasses import dataclass

import numpy as np

from .common import FPS, seconds_to_frames


# ── Timing constants (seconds) ─────────────────────────────────────

HEADER_FADE = 0.5            # title/header fade-in window
BLOCK_DELAY = 1.0            # content blocks that follow the header
BLOCK_FADE = 0.5
TITLE_FADE_OUT = 1.0         # title slide fades out over its last second

PROBLEM_BASE, PROBLEM_STAGGER = 1.0, 0.5
FEATURE_BASE, FEATURE_STAGGER = 2.0, 0.3
BULLET_BASE, BULLET_STAGGER = 1.0, 0.4
RESULT_BASE, RESULT_STAGGER = 2.0, 0.3

CONCLUSION_TITLE = (0.0, 1.0)
CONCLUSION_CONTENT = (1.0, 2.0)
CONCLUSION_CTA = (2.5, 3.5)


# ── Primitives ─────────────────────────────────────────────────────


def interpolate(
    frame: float,
    input_range: tuple[float, ...],
    output_range: tuple[float, ...],
) -> float:
    """Map frame through a piecewise-linear curve, clamped at both ends.

    input_range must be non-decreasing and the same length as
    output_range. Before the first keyframe the first value holds; after
    the last keyframe the last value holds.
    """
    if len(input_range) != len(output_range):
        raise ValueError(
            f"input_range and output_range differ in length "
            f"({len(input_range)} vs {len(output_range)})"
        )
    if len(input_range) < 2:
        raise ValueError("interpolate() needs at least 2 keyframes")
    if any(b < a for a, b in zip(input_range, input_range[1:])):
        raise ValueError(f"input_range must be non-decreasing, got {input_range}")
    return float(np.interp(frame, input_range, output_range))


@dataclass(frozen=True)
class SpringConfig:
    damping: float = 100.0
    stiffness: float = 200.0
    mass: float = 1.0


def spring(
    frame: float,
    fps: int = FPS,
    config: SpringConfig = SpringConfig(),
) -> float:
    """Position of a spring released at frame 0, moving from 0 toward 1.

    Closed-form solution of m·x'' + c·x' + k·(x - 1) = 0 with x(0) = 0 and
    x'(0) = 0. Underdamped springs overshoot and oscillate around 1;
    critically and overdamped springs approach 1 without overshoot.
    """
    if frame <= 0:
        return 0.0

    t = frame / fps
    m, c, k = config.mass, config.damping, config.stiffness
    omega0 = math.sqrt(k / m)
    zeta = c / (2 * math.sqrt(k * m))

    # y is the displacement from the target (x - 1); y0 = -1, v0 = 0.
    y0, v0 = -1.0, 0.0

    if zeta < 1:
        omega_d = omega0 * math.sqrt(1 - zeta * zeta)
        envelope = math.exp(-zeta * omega0 * t)
        y = envelope * (
            y0 * math.cos(omega_d * t)
            + (v0 + zeta * omega0 * y0) / omega_d * math.sin(omega_d * t)
        )
    elif zeta == 1:
        y = math.exp(-omega0 * t) * (y0 + (v0 + omega0 * y0) * t)
    else:
        root = math.sqrt(zeta * zeta - 1)
        r1 = -omega0 * (zeta - root)
        r2 = -omega0 * (zeta + root)
        a = (v0 - r2 * y0) / (r1 - r2)
        b = y0 - a
        y = a * math.exp(r1 * t) + b * math.exp(r2 * t)

    return 1.0 + y


@dataclass(frozen=True)
class Curve:
    """A named keyframe curve: frames[i] maps to values[i]."""

    name: str
    frames: tuple[int, ...]
    values: tuple[float, ...]

    @property
    def start_frame(self) -> int:
        return self.frames[0]

    @property
    def end_frame(self) -> int:
        return self.frames[-1]

    def value_at(self, frame: float) -> float:
        return interpolate(frame, self.frames, self.values)


def fade_in(name: str, start_s: float, end_s: float, fps: int = FPS) -> Curve:
    """Ascending 0 → 1 opacity curve over [start_s, end_s] seconds."""
    return Curve(
        name,
        (seconds_to_frames(start_s, fps), seconds_to_frames(end_s, fps)),
        (0.0, 1.0),
    )


def staggered_fade_ins(
    prefix: str,
    count: int,
    base: float,
    stagger: float,
    fps: int = FPS,
) -> list[Curve]:
    """One fade-in per list item; item i starts at base + i * stagger.

    Each item's window is one stagger long, so item i finishes exactly as
    item i+1 starts.
    """
    return [
        fade_in(f"{prefix}_{i}", base + i * stagger, base + (i + 1) * stagger, fps)
        for i in range(count)
    ]


# ── Per-type curve builders ────────────────────────────────────────
# Signature: (descriptor, fps) -> list[Curve]. Bound to section types
# by the template registry.


def title_curves(descriptor, fps: int = FPS) -> list[Curve]:
    d = descriptor.duration_seconds
    if d - TITLE_FADE_OUT < HEADER_FADE:
        # Too short to hold before fading out; keep the plain fade-in.
        return [fade_in("title_opacity", 0, HEADER_FADE, fps)]
    return [
        Curve(
            "title_opacity",
            (
                0,
                seconds_to_frames(HEADER_FADE, fps),
                seconds_to_frames(d - TITLE_FADE_OUT, fps),
                seconds_to_frames(d, fps),
            ),
            (0.0, 1.0, 1.0, 0.0),
        )
    ]


def problem_statement_curves(descriptor, fps: int = FPS) -> list[Curve]:
    points = descriptor.properties["points"]
    return [
        fade_in("header_opacity", 0, HEADER_FADE, fps),
        *staggered_fade_ins("point", len(points), PROBLEM_BASE, PROBLEM_STAGGER, fps),
    ]


def solution_curves(descriptor, fps: int = FPS) -> list[Curve]:
    features = descriptor.properties["features"]
    return [
        fade_in("title_opacity", 0, HEADER_FADE, fps),
        fade_in("content_opacity", BLOCK_DELAY, BLOCK_DELAY + BLOCK_FADE, fps),
        *staggered_fade_ins("feature", len(features), FEATURE_BASE, FEATURE_STAGGER, fps),
    ]


def bullet_points_curves(descriptor, fps: int = FPS) -> list[Curve]:
    points = descriptor.properties["points"]
    return [
        fade_in("title_opacity", 0, HEADER_FADE, fps),
        *staggered_fade_ins("point", len(points), BULLET_BASE, BULLET_STAGGER, fps),
    ]


def comparison_curves(descriptor, fps: int = FPS) -> list[Curve]:
    return [
        fade_in("title_opacity", 0, HEADER_FADE, fps),
        fade_in("columns_opacity", BLOCK_DELAY, BLOCK_DELAY + BLOCK_FADE, fps),
    ]


def results_curves(descriptor, fps: int = FPS) -> list[Curve]:
    rows = descriptor.properties["results"]
    return [
        fade_in("title_opacity", 0, HEADER_FADE, fps),
        fade_in("results_opacity", BLOCK_DELAY, BLOCK_DELAY + BLOCK_FADE, fps),
        *staggered_fade_ins("result", len(rows), RESULT_BASE, RESULT_STAGGER, fps),
    ]


def conclusion_curves(descriptor, fps: int = FPS) -> list[Curve]:
    return [
        fade_in("title_opacity", *CONCLUSION_TITLE, fps=fps),
        fade_in("content_opacity", *CONCLUSION_CONTENT, fps=fps),
        fade_in("cta_opacity", *CONCLUSION_CTA, fps=fps),
    ]


# ── Evaluation ─────────────────────────────────────────────────────


def section_curves(descriptor, fps: int = FPS) -> list[Curve]:
    """All keyframe curves for one section, in staging order."""
    from .templates import get_template

    return get_template(descriptor.type).curves(descriptor, fps)


def evaluate(descriptor, local_frame: float, fps: int = FPS) -> dict[str, float]:
    """Compute every animated property of a section at a local frame.

    Returns a dict of curve name -> value. Sections whose template
    declares a spring also get a "<element>_scale" entry.
    """
    from .templates import get_template

    template = get_template(descriptor.type)
    values = {
        curve.name: curve.value_at(local_frame)
        for curve in template.curves(descriptor, fps)
    }
    if template.spring is not None:
        values[f"{template.spring_element}_scale"] = spring(
            local_frame, fps, template.spring,
        )
    return values
