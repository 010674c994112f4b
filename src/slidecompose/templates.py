"""Component template registry.

Maps a section type tag to its SectionTemplate: the property schema the
validator enforces, the curve builder the keyframe engine evaluates, and
an optional spring for pop-in scaling. Seven templates ship; more can be
added with register_template().

Property kinds:
  - "text":       string (numbers are coerced to str).
  - "text_list":  list of strings, stored as a tuple.
  - "result_list": list of {metric, value, icon?} dicts, stored as a tuple
                   of ResultRows.
"""

from dataclasses import dataclass
from typing import Any, Callable

from . import keyframes
from .common import FPS
from .errors import ValidationError
from .keyframes import SpringConfig


VALID_KINDS = {"text", "text_list", "result_list"}

DEFAULT_RESULT_ICON = "📊"


@dataclass(frozen=True)
class FieldSpec:
    """One property in a template's schema.

    required: must be present (after fallback resolution).
    fallback: name of another field to copy from when this one is absent.
    """

    name: str
    kind: str = "text"
    default: Any = ""
    required: bool = False
    fallback: str | None = None


@dataclass(frozen=True)
class SectionTemplate:
    name: str
    description: str
    fields: tuple[FieldSpec, ...]
    curves: Callable
    spring: SpringConfig | None = None
    spring_element: str = "title"

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def staged_elements(self, descriptor) -> list[str]:
        """Ordered sub-elements of a section that get their own timing.

        Derived from the curve names, e.g. results with three rows gives
        ["title", "results", "result_0", "result_1", "result_2"].
        """
        return [_element_name(c.name) for c in self.curves(descriptor, FPS)]


def _element_name(curve_name: str) -> str:
    return curve_name.removesuffix("_opacity")


# ── Shipped templates ──────────────────────────────────────────────

TEMPLATES: dict[str, SectionTemplate] = {}


def register_template(template: SectionTemplate, replace: bool = False) -> None:
    """Add a template to the registry.

    Raises:
        ValueError: name already registered (and replace is False), or a
            field uses an unknown kind.
    """
    if template.name in TEMPLATES and not replace:
        raise ValueError(f"Section type '{template.name}' is already registered")
    for spec in template.fields:
        if spec.kind not in VALID_KINDS:
            raise ValueError(
                f"Template '{template.name}': field '{spec.name}' has unknown "
                f"kind '{spec.kind}'. Valid: {sorted(VALID_KINDS)}"
            )
    TEMPLATES[template.name] = template


def get_template(name: str) -> SectionTemplate:
    """Look up a template by type tag.

    Raises:
        ValidationError: unregistered type.
    """
    try:
        return TEMPLATES[name]
    except (KeyError, TypeError):
        raise ValidationError(
            f"Unknown section type '{name}'. Valid: {section_type_names()}"
        ) from None


def section_type_names() -> list[str]:
    return list(TEMPLATES)


def list_section_types() -> dict[str, str]:
    """Section type -> human description, in registration order."""
    return {name: t.description for name, t in TEMPLATES.items()}


register_template(SectionTemplate(
    name="title",
    description="Main title slide with optional subtitle",
    fields=(
        FieldSpec("title", required=True, fallback="content"),
        FieldSpec("subtitle"),
    ),
    curves=keyframes.title_curves,
    spring=SpringConfig(damping=100, stiffness=200),
))

register_template(SectionTemplate(
    name="problem_statement",
    description="List problems with bullet points",
    fields=(
        FieldSpec("title", required=True),
        FieldSpec("points", kind="text_list", default=()),
        FieldSpec("description"),
    ),
    curves=keyframes.problem_statement_curves,
))

register_template(SectionTemplate(
    name="solution",
    description="Present solution with features",
    fields=(
        FieldSpec("title", required=True),
        FieldSpec("content"),
        FieldSpec("features", kind="text_list", default=()),
    ),
    curves=keyframes.solution_curves,
))

register_template(SectionTemplate(
    name="bullet_points",
    description="Simple bullet point list",
    fields=(
        FieldSpec("title", required=True),
        FieldSpec("points", kind="text_list", default=()),
    ),
    curves=keyframes.bullet_points_curves,
))

register_template(SectionTemplate(
    name="comparison",
    description="Side-by-side comparison",
    fields=(
        FieldSpec("title", required=True),
        FieldSpec("leftTitle", default="Option A"),
        FieldSpec("rightTitle", default="Option B"),
        FieldSpec("leftPoints", kind="text_list", default=()),
        FieldSpec("rightPoints", kind="text_list", default=()),
    ),
    curves=keyframes.comparison_curves,
))

register_template(SectionTemplate(
    name="results",
    description="Show metrics and achievements",
    fields=(
        FieldSpec("title", required=True),
        FieldSpec("results", kind="result_list", default=()),
        FieldSpec("description"),
    ),
    curves=keyframes.results_curves,
))

register_template(SectionTemplate(
    name="conclusion",
    description="Final message with call-to-action",
    fields=(
        FieldSpec("title", default="Conclusion"),
        FieldSpec("content"),
        FieldSpec("callToAction"),
    ),
    curves=keyframes.conclusion_curves,
))
