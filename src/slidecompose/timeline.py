"""Timeline assembly -- place validated sections on an absolute frame grid.

Sections are laid end to end with no overlap and no gaps: each section
starts on the frame right after the previous one ends. There are no
transitions between sections, so each section's frame count depends only
on its own duration.

Example at 30fps, durations [5, 10, 8] seconds:
    section 0: frames   0-149  (150 frames)
    section 1: frames 150-449  (300 frames)
    section 2: frames 450-689  (240 frames)
    total: 690 frames (23s)
"""

from dataclasses import dataclass

from .common import FPS, seconds_to_frames
from .errors import AssemblyError, ValidationError
from .manifest import SectionDescriptor


@dataclass(frozen=True)
class SectionPlacement:
    start_frame: int
    duration_frames: int

    @property
    def end_frame(self) -> int:
        """First frame after this section (exclusive)."""
        return self.start_frame + self.duration_frames

    def contains(self, frame: int) -> bool:
        return self.start_frame <= frame < self.end_frame


@dataclass(frozen=True)
class PlacedSection:
    descriptor: SectionDescriptor
    placement: SectionPlacement


@dataclass(frozen=True)
class Composition:
    """The assembled, immutable timeline handed to a renderer."""

    sections: tuple[PlacedSection, ...]
    total_duration_frames: int
    fps: int = FPS

    @property
    def duration_seconds(self) -> float:
        return self.total_duration_frames / self.fps

    def section_at(self, frame: int) -> tuple[PlacedSection, int]:
        """Find the section playing at a global frame.

        Returns:
            (placed_section, local_frame) where local_frame is relative to
            the section's start.

        Raises:
            IndexError: frame is outside [0, total_duration_frames).
        """
        if not 0 <= frame < self.total_duration_frames:
            raise IndexError(
                f"Frame {frame} outside composition (0-{self.total_duration_frames - 1})"
            )
        # Binary search over start frames; placements are sorted and contiguous.
        lo, hi = 0, len(self.sections) - 1
        while lo < hi:
            mid = (lo + hi + 1) // 2
            if self.sections[mid].placement.start_frame <= frame:
                lo = mid
            else:
                hi = mid - 1
        placed = self.sections[lo]
        return placed, frame - placed.placement.start_frame


def assemble_timeline(
    descriptors: list[SectionDescriptor],
    fps: int = FPS,
) -> Composition:
    """Place sections sequentially and compute total duration.

    Walks the list left to right with a running frame cursor. An empty
    list is allowed and yields a zero-frame composition.

    Raises:
        ValidationError: a section has a non-positive duration.
        AssemblyError: a section rounds to less than one frame, or is too
            long to count in frames.
    """
    placed = []
    cursor = 0

    for i, desc in enumerate(descriptors):
        if desc.duration_seconds <= 0:
            raise ValidationError(
                f"Section {i} ({desc.type}): duration must be a positive number, "
                f"got {desc.duration_seconds!r}"
            )

        try:
            frames = seconds_to_frames(desc.duration_seconds, fps)
        except (OverflowError, ValueError):
            raise AssemblyError(
                f"Section {i} ({desc.type}): {desc.duration_seconds}s has no "
                f"frame count at {fps}fps"
            ) from None
        if frames < 1:
            raise AssemblyError(
                f"Section {i} ({desc.type}): {desc.duration_seconds}s rounds to "
                f"{frames} frames at {fps}fps"
            )

        placed.append(PlacedSection(desc, SectionPlacement(cursor, frames)))
        cursor += frames

    return Composition(tuple(placed), cursor, fps)
