"""Tests for timeline assembly."""

import pickle

import pytest

from slidecompose.errors import AssemblyError, ValidationError
from slidecompose.manifest import SectionDescriptor, validate_sections
from slidecompose.timeline import Composition, assemble_timeline


def _sections(*durations):
    return [
        SectionDescriptor("conclusion", d, {"title": f"S{i}", "content": "", "callToAction": ""})
        for i, d in enumerate(durations)
    ]


class TestAssembleTimeline:
    def test_worked_example(self, raw_sections):
        comp = assemble_timeline(validate_sections(raw_sections))
        starts = [p.placement.start_frame for p in comp.sections]
        lengths = [p.placement.duration_frames for p in comp.sections]
        assert starts == [0, 150, 450]
        assert lengths == [150, 300, 240]
        assert comp.total_duration_frames == 690
        assert comp.duration_seconds == 23
        assert comp.fps == 30

    def test_contiguous(self):
        comp = assemble_timeline(_sections(1.5, 0.7, 3, 2.25, 4))
        for prev, nxt in zip(comp.sections, comp.sections[1:]):
            assert nxt.placement.start_frame == prev.placement.end_frame
        assert comp.sections[0].placement.start_frame == 0
        assert comp.sections[-1].placement.end_frame == comp.total_duration_frames

    def test_total_is_sum_of_lengths(self):
        comp = assemble_timeline(_sections(1.5, 0.7, 3, 2.25, 4))
        assert comp.total_duration_frames == sum(
            p.placement.duration_frames for p in comp.sections
        )

    @pytest.mark.parametrize("durations", [
        (1.5, 0.7, 3, 2.25, 4),
        (0.1, 0.2, 0.3),
        (1 / 3, 2 / 3, 1 / 7, 5),
        (5, 10, 8),
    ])
    def test_total_tracks_summed_seconds(self, durations):
        # Per-section rounding drifts at most one frame per section.
        comp = assemble_timeline(_sections(*durations))
        expected = round(sum(durations) * comp.fps)
        assert abs(comp.total_duration_frames - expected) <= len(durations)

    def test_order_preserved(self):
        descs = _sections(1, 2, 3)
        comp = assemble_timeline(descs)
        assert [p.descriptor for p in comp.sections] == descs

    def test_fractional_durations_round_half_up(self):
        comp = assemble_timeline(_sections(1.25, 1.25), fps=2)
        assert [p.placement.duration_frames for p in comp.sections] == [3, 3]
        assert comp.total_duration_frames == 6

    def test_empty_list(self):
        comp = assemble_timeline([])
        assert comp.sections == ()
        assert comp.total_duration_frames == 0

    def test_sub_frame_duration_raises(self):
        with pytest.raises(AssemblyError, match=r"Section 1 \(conclusion\)"):
            assemble_timeline(_sections(2, 0.01))

    def test_non_positive_duration_raises(self):
        with pytest.raises(ValidationError, match="duration must be a positive number"):
            assemble_timeline(_sections(2, 0))

    def test_duration_too_long_raises(self):
        with pytest.raises(AssemblyError, match=r"Section 1 \(conclusion\)"):
            assemble_timeline(_sections(2, 1e308))

    def test_composition_is_immutable(self):
        comp = assemble_timeline(_sections(1))
        with pytest.raises(AttributeError):
            comp.total_duration_frames = 5
        with pytest.raises(TypeError):
            comp.sections[0].descriptor.properties["title"] = "changed"

    def test_composition_hashable_and_picklable(self):
        comp = assemble_timeline(_sections(1, 2))
        assert hash(comp) == hash(assemble_timeline(_sections(1, 2)))
        assert pickle.loads(pickle.dumps(comp)) == comp


class TestSectionAt:
    @pytest.fixture
    def comp(self) -> Composition:
        return assemble_timeline(_sections(5, 10, 8))

    @pytest.mark.parametrize("frame, index, local", [
        (0, 0, 0),
        (149, 0, 149),
        (150, 1, 0),
        (449, 1, 299),
        (450, 2, 0),
        (689, 2, 239),
    ])
    def test_boundaries(self, comp, frame, index, local):
        placed, local_frame = comp.section_at(frame)
        assert placed is comp.sections[index]
        assert local_frame == local

    @pytest.mark.parametrize("frame", [-1, 690, 1000])
    def test_out_of_range(self, comp, frame):
        with pytest.raises(IndexError):
            comp.section_at(frame)

    def test_every_frame_in_exactly_one_section(self, comp):
        for frame in range(comp.total_duration_frames):
            owners = [p for p in comp.sections if p.placement.contains(frame)]
            assert len(owners) == 1
            assert comp.section_at(frame)[0] is owners[0]
