"""Slide drawing -- one frame of one section as a numpy array.

Each slide type draws its elements (title, content box, list items, ...)
as separate RGBA patches and composites them onto the slide background
with the opacity the keyframe engine computed for that element at the
current local frame. The title slide's patch is also scaled by its spring.

Slide layout (list-style slides):
  ┌─────────────────────────────────────┐
  │              Title                  │  ← title_opacity
  │  ┌───────────────────────────────┐  │
  │  │ description / content box     │  │  ← content_opacity (if any)
  │  └───────────────────────────────┘  │
  │  ┌───────────────────────────────┐  │
  │  │ • item 0                      │  │  ← point_0 / feature_0 / result_0
  │  └───────────────────────────────┘  │
  │  ┌───────────────────────────────┐  │
  │  │ • item 1                      │  │  ← staggered later
  │  └───────────────────────────────┘  │
  └─────────────────────────────────────┘
"""

from functools import lru_cache

import numpy as np
from PIL import Image, ImageDraw

from .common import FPS, load_font, measure_text, parse_hex_color
from .keyframes import evaluate
from .manifest import ResultRow


# ── Scaling system ────────────────────────────────────────────────
#
# Constants scale with the output resolution height. Reference is 1080p.
# Each constant is (value_at_1080, floor).

_SLIDE_REF_H = 1080

_REF_PADDING = (60, 10)
_REF_TITLE_FONT = (42, 12)
_REF_TITLE_SLIDE_FONT = (52, 14)
_REF_SUBTITLE_FONT = (28, 9)
_REF_BODY_FONT = (22, 8)
_REF_CONTENT_FONT = (24, 9)
_REF_VALUE_FONT = (28, 9)
_REF_ICON_FONT = (36, 10)
_REF_CTA_FONT = (28, 9)
_REF_HEADER_GAP = (40, 8)
_REF_ITEM_GAP = (20, 4)
_REF_BOX_PAD = (25, 5)
_REF_BOX_RADIUS = (12, 2)
_REF_BORDER = (2, 1)
_REF_COLUMN_GAP = (60, 10)
_REF_LINE_GAP = (10, 2)


def _slide_scale(ref_and_floor: tuple[int, int], h: int) -> int:
    ref_val, floor = ref_and_floor
    return max(floor, round(ref_val * h / _SLIDE_REF_H))


def _slide_layout(h: int) -> dict[str, int]:
    """Compute all scaled slide layout params for output height h."""
    return {
        "padding": _slide_scale(_REF_PADDING, h),
        "title_font": _slide_scale(_REF_TITLE_FONT, h),
        "title_slide_font": _slide_scale(_REF_TITLE_SLIDE_FONT, h),
        "subtitle_font": _slide_scale(_REF_SUBTITLE_FONT, h),
        "body_font": _slide_scale(_REF_BODY_FONT, h),
        "content_font": _slide_scale(_REF_CONTENT_FONT, h),
        "value_font": _slide_scale(_REF_VALUE_FONT, h),
        "icon_font": _slide_scale(_REF_ICON_FONT, h),
        "cta_font": _slide_scale(_REF_CTA_FONT, h),
        "header_gap": _slide_scale(_REF_HEADER_GAP, h),
        "item_gap": _slide_scale(_REF_ITEM_GAP, h),
        "box_pad": _slide_scale(_REF_BOX_PAD, h),
        "box_radius": _slide_scale(_REF_BOX_RADIUS, h),
        "border": _slide_scale(_REF_BORDER, h),
        "column_gap": _slide_scale(_REF_COLUMN_GAP, h),
        "line_gap": _slide_scale(_REF_LINE_GAP, h),
    }


# ── Palettes ──────────────────────────────────────────────────────
# background: one color, or several stops for a diagonal gradient.

SLIDE_STYLES = {
    "title": {
        "background": ("#667eea", "#764ba2"),
        "title": "#ffffff", "subtitle": "#e8f4fd",
    },
    "problem_statement": {
        "background": ("#1a1a2e",),
        "title": "#ff6b6b", "accent": "#ff6b6b", "text": "#ffffff", "border": "#444444",
    },
    "solution": {
        "background": ("#2c3e50", "#34495e"),
        "title": "#50c878", "accent": "#50c878", "text": "#ffffff",
    },
    "bullet_points": {
        "background": ("#16213e",),
        "title": "#4a90e2", "accent": "#4a90e2",
    },
    "comparison": {
        "background": ("#0d1421",),
        "title": "#ffffff", "left": "#2196f3", "right": "#f44336", "text": "#ffffff",
    },
    "results": {
        "background": ("#1a1a0a",),
        "title": "#ffd700", "accent": "#ffd700", "text": "#ffffff",
    },
    "conclusion": {
        "background": ("#667eea", "#764ba2", "#f093fb"),
        "title": "#ffffff", "text": "#ffffff", "cta": "#ffd700", "cta_text": "#000000",
    },
}

DEFAULT_BACKGROUND = (10, 10, 10)


def _plain_style(background: tuple[int, int, int]) -> dict:
    """Style for section types registered without a palette of their own."""
    r, g, b = background
    return {
        "background": (f"#{r:02x}{g:02x}{b:02x}",),
        "title": "#ffffff", "text": "#ffffff", "accent": "#ffffff",
    }


def _rgba(hex_str: str, alpha: int = 255) -> tuple[int, int, int, int]:
    return (*parse_hex_color(hex_str), alpha)


@lru_cache(maxsize=32)
def _background(stops: tuple[str, ...], resolution: tuple[int, int]) -> Image.Image:
    """Solid or diagonal-gradient background, cached per (stops, size).

    Callers must copy() before drawing on it.
    """
    w, h = resolution
    colors = np.array([parse_hex_color(s) for s in stops], dtype=np.float32)
    if len(colors) == 1:
        return Image.new("RGBA", (w, h), (*map(int, colors[0]), 255))

    # 135deg gradient: position runs from top-left (0) to bottom-right (1).
    ys, xs = np.mgrid[0:h, 0:w].astype(np.float32)
    pos = (xs / max(w - 1, 1) + ys / max(h - 1, 1)) / 2
    stop_pos = np.linspace(0.0, 1.0, len(colors))
    rgb = np.stack(
        [np.interp(pos, stop_pos, colors[:, c]) for c in range(3)], axis=-1,
    ).astype(np.uint8)
    return Image.fromarray(rgb, "RGB").convert("RGBA")


# ── Patch helpers ─────────────────────────────────────────────────

_MEASURE = ImageDraw.Draw(Image.new("RGBA", (1, 1)))


def _wrap(text: str, font, max_w: int) -> str:
    """Greedy word wrap so no line exceeds max_w pixels."""
    if max_w <= 0:
        return text
    lines = []
    for paragraph in text.split("\n"):
        current = ""
        for word in paragraph.split(" "):
            candidate = f"{current} {word}" if current else word
            if current and _MEASURE.textlength(candidate, font=font) > max_w:
                lines.append(current)
                current = word
            else:
                current = candidate
        lines.append(current)
    return "\n".join(lines)


def _text_patch(text: str, font, color: str, max_w: int = 0) -> Image.Image:
    """Tight transparent patch holding (wrapped, centered) text."""
    text = _wrap(text, font, max_w)
    tw, th = measure_text(_MEASURE, text, font)
    bbox = _MEASURE.multiline_textbbox((0, 0), text, font=font)
    patch = Image.new("RGBA", (max(tw, 1), max(th, 1)), (0, 0, 0, 0))
    ImageDraw.Draw(patch).multiline_text(
        (-bbox[0], -bbox[1]), text, fill=_rgba(color), font=font, align="center",
    )
    return patch


def _box_patch(
    lines: list[tuple[str, object, str]],
    width: int,
    lay: dict,
    fill: tuple[int, int, int, int] | None = None,
    outline: str | None = None,
    align: str = "left",
) -> Image.Image:
    """Rounded box containing stacked text lines.

    Args:
        lines: (text, font, hex color) per line, drawn top to bottom.
        width: Outer box width in pixels.
        fill: RGBA box fill, or None for transparent.
        outline: Hex border color, or None.
        align: "left" or "center".
    """
    pad = lay["box_pad"]
    inner_w = width - 2 * pad
    wrapped = [(_wrap(text, font, inner_w), font, color) for text, font, color in lines if text]
    sizes = [measure_text(_MEASURE, text, font) for text, font, _ in wrapped]
    content_h = sum(th for _, th in sizes) + lay["line_gap"] * max(len(sizes) - 1, 0)
    height = max(content_h + 2 * pad, 2 * pad)

    patch = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(patch)
    if fill is not None or outline is not None:
        draw.rounded_rectangle(
            [(0, 0), (width - 1, height - 1)],
            radius=lay["box_radius"],
            fill=fill,
            outline=_rgba(outline) if outline else None,
            width=lay["border"],
        )

    y = pad
    for (text, font, color), (tw, th) in zip(wrapped, sizes):
        x = pad if align == "left" else (width - tw) // 2
        bbox = draw.multiline_textbbox((0, 0), text, font=font)
        draw.multiline_text(
            (x - bbox[0], y - bbox[1]), text, fill=_rgba(color), font=font, align=align,
        )
        y += th + lay["line_gap"]
    return patch


def _composite(
    base: Image.Image,
    patch: Image.Image,
    x: int,
    y: int,
    opacity: float,
    scale: float = 1.0,
) -> None:
    """Alpha-composite patch onto base at (x, y), faded and optionally scaled.

    Scaling keeps the patch centered on its unscaled position. Parts that
    fall outside the base are clipped.
    """
    if opacity <= 0 or scale <= 0:
        return

    if scale != 1.0:
        new_w = max(1, round(patch.width * scale))
        new_h = max(1, round(patch.height * scale))
        x += (patch.width - new_w) // 2
        y += (patch.height - new_h) // 2
        patch = patch.resize((new_w, new_h), Image.BICUBIC)

    if opacity < 1:
        alpha = np.asarray(patch.getchannel("A"), dtype=np.float32) * opacity
        patch = patch.copy()
        patch.putalpha(Image.fromarray(alpha.astype(np.uint8), "L"))

    # Clip to the base image bounds.
    left, top = max(x, 0), max(y, 0)
    right = min(x + patch.width, base.width)
    bottom = min(y + patch.height, base.height)
    if right <= left or bottom <= top:
        return
    patch = patch.crop((left - x, top - y, right - x, bottom - y))
    base.alpha_composite(patch, dest=(left, top))


def _place_title(base, text, style, lay, opacity, scale=1.0) -> int:
    """Centered slide title at the top padding. Returns the y below it."""
    w = base.width
    pad = lay["padding"]
    patch = _text_patch(text, load_font(lay["title_font"]), style["title"], w - 2 * pad)
    _composite(base, patch, (w - patch.width) // 2, pad, opacity, scale)
    return pad + patch.height + lay["header_gap"]


def _stack_items(base, patches_and_opacity, y, lay) -> int:
    """Stack full-width patches downward from y. Returns the final y."""
    pad = lay["padding"]
    for patch, opacity in patches_and_opacity:
        _composite(base, patch, pad, y, opacity)
        y += patch.height + lay["item_gap"]
    return y


# ── Per-type drawers ──────────────────────────────────────────────
# Signature: (base, properties, values, style, lay) -> None.


def _draw_title(base, props, values, style, lay):
    w, h = base.size
    inner_w = w - 2 * lay["padding"]
    lines = [(props["title"], load_font(lay["title_slide_font"]), style["title"])]
    if props["subtitle"]:
        lines.append((props["subtitle"], load_font(lay["subtitle_font"]), style["subtitle"]))
    patch = _box_patch(lines, inner_w, lay, align="center")
    _composite(
        base, patch,
        (w - patch.width) // 2, (h - patch.height) // 2,
        values["title_opacity"], values.get("title_scale", 1.0),
    )


def _draw_problem_statement(base, props, values, style, lay):
    inner_w = base.width - 2 * lay["padding"]
    body = load_font(lay["body_font"])
    header_opacity = values["header_opacity"]

    y = _place_title(base, props["title"], style, lay, header_opacity)
    if props["description"]:
        desc = _box_patch(
            [(props["description"], body, style["text"])], inner_w, lay,
            fill=_rgba(style["accent"], 26), outline=style["accent"], align="center",
        )
        y = _stack_items(base, [(desc, header_opacity)], y, lay)

    items = [
        (
            _box_patch(
                [(f"• {point}", body, style["text"])], inner_w, lay,
                fill=(255, 255, 255, 13), outline=style["border"],
            ),
            values[f"point_{i}"],
        )
        for i, point in enumerate(props["points"])
    ]
    _stack_items(base, items, y, lay)


def _draw_solution(base, props, values, style, lay):
    inner_w = base.width - 2 * lay["padding"]
    y = _place_title(base, props["title"], style, lay, values["title_opacity"])

    if props["content"]:
        content = _box_patch(
            [(props["content"], load_font(lay["content_font"]), style["text"])], inner_w, lay,
            fill=_rgba(style["accent"], 26), outline=style["accent"], align="center",
        )
        y = _stack_items(base, [(content, values["content_opacity"])], y, lay)

    body = load_font(lay["body_font"])
    items = [
        (
            _box_patch(
                [(f"✓ {feature}", body, style["accent"])], inner_w, lay,
                fill=(255, 255, 255, 13), outline=style["accent"],
            ),
            values[f"feature_{i}"],
        )
        for i, feature in enumerate(props["features"])
    ]
    _stack_items(base, items, y, lay)


def _draw_bullet_points(base, props, values, style, lay):
    inner_w = base.width - 2 * lay["padding"]
    y = _place_title(base, props["title"], style, lay, values["title_opacity"])

    font = load_font(lay["content_font"])
    items = [
        (
            _box_patch(
                [(f"• {point}", font, style["accent"])], inner_w, lay,
                fill=_rgba(style["accent"], 26), outline=style["accent"],
            ),
            values[f"point_{i}"],
        )
        for i, point in enumerate(props["points"])
    ]
    _stack_items(base, items, y, lay)


def _draw_comparison(base, props, values, style, lay):
    w = base.width
    pad, gap = lay["padding"], lay["column_gap"]
    y = _place_title(base, props["title"], style, lay, values["title_opacity"])

    col_w = (w - 2 * pad - gap) // 2
    heading = load_font(lay["content_font"])
    body = load_font(lay["body_font"])
    opacity = values["columns_opacity"]

    for col, side in enumerate(("left", "right")):
        lines = [(props[f"{side}Title"], heading, style[side])]
        lines += [(f"• {p}", body, style["text"]) for p in props[f"{side}Points"]]
        patch = _box_patch(
            lines, col_w, lay, fill=_rgba(style[side], 26), outline=style[side],
        )
        _composite(base, patch, pad + col * (col_w + gap), y, opacity)


def _draw_results(base, props, values, style, lay):
    inner_w = base.width - 2 * lay["padding"]
    title_opacity = values["title_opacity"]
    y = _place_title(base, props["title"], style, lay, title_opacity)

    if props["description"]:
        desc = _box_patch(
            [(props["description"], load_font(lay["body_font"]), style["text"])],
            inner_w, lay, align="center",
        )
        y = _stack_items(base, [(desc, title_opacity)], y, lay)

    # Rows sit inside the results block: block and row opacities multiply.
    block = values["results_opacity"]
    metric_font = load_font(lay["body_font"])
    value_font = load_font(lay["value_font"])
    icon_font = load_font(lay["icon_font"])
    items = []
    for i, row in enumerate(props["results"]):
        patch = _box_patch(
            [(row.metric, metric_font, style["accent"]), (row.value, value_font, style["text"])],
            inner_w, lay, fill=_rgba(style["accent"], 26), outline=style["accent"],
        )
        icon = _text_patch(row.icon, icon_font, style["text"])
        patch.alpha_composite(
            icon,
            dest=(
                max(0, patch.width - lay["box_pad"] - icon.width),
                max(0, (patch.height - icon.height) // 2),
            ),
        )
        items.append((patch, block * values[f"result_{i}"]))
    _stack_items(base, items, y, lay)


def _draw_conclusion(base, props, values, style, lay):
    w, h = base.size
    inner_w = min(w - 2 * lay["padding"], round(900 * h / _SLIDE_REF_H))
    x = (w - inner_w) // 2

    title = _text_patch(props["title"], load_font(lay["title_slide_font"]), style["title"], inner_w)
    content = None
    if props["content"]:
        content = _box_patch(
            [(props["content"], load_font(lay["content_font"]), style["text"])],
            inner_w, lay, fill=(255, 255, 255, 26), align="center",
        )
    cta = None
    if props["callToAction"]:
        cta_text = _text_patch(props["callToAction"], load_font(lay["cta_font"]), style["cta_text"])
        pad = lay["box_pad"]
        cta = Image.new("RGBA", (cta_text.width + 4 * pad, cta_text.height + 2 * pad), (0, 0, 0, 0))
        ImageDraw.Draw(cta).rounded_rectangle(
            [(0, 0), (cta.width - 1, cta.height - 1)],
            radius=cta.height // 2, fill=_rgba(style["cta"]),
        )
        cta.alpha_composite(cta_text, dest=(2 * pad, pad))

    # Vertically center the whole stack.
    parts = [p for p in (title, content, cta) if p is not None]
    total_h = sum(p.height for p in parts) + lay["header_gap"] * (len(parts) - 1)
    y = (h - total_h) // 2

    _composite(base, title, (w - title.width) // 2, y, values["title_opacity"])
    y += title.height + lay["header_gap"]
    if content is not None:
        _composite(base, content, x, y, values["content_opacity"])
        y += content.height + lay["header_gap"]
    if cta is not None:
        _composite(base, cta, (w - cta.width) // 2, y, values["cta_opacity"])


def _plain_text(value) -> str:
    if isinstance(value, tuple):
        return "\n".join(
            f"{v.metric}: {v.value}" if isinstance(v, ResultRow) else str(v)
            for v in value
        )
    return str(value)


def _draw_plain(base, props, values, style, lay):
    """Title plus one box per remaining text property.

    Used for registered types with no dedicated drawer. Each box fades
    with the "<property>_opacity" curve when the template defines one.
    """
    inner_w = base.width - 2 * lay["padding"]
    title_opacity = values.get("title_opacity", 1.0)
    y = _place_title(base, props.get("title", ""), style, lay, title_opacity)

    body = load_font(lay["content_font"])
    items = []
    for name, value in props.items():
        if name == "title" or not value:
            continue
        patch = _box_patch(
            [(_plain_text(value), body, style["text"])], inner_w, lay,
            fill=(255, 255, 255, 13), align="center",
        )
        items.append((patch, values.get(f"{name}_opacity", title_opacity)))
    _stack_items(base, items, y, lay)


SLIDE_DRAWERS = {
    "title": _draw_title,
    "problem_statement": _draw_problem_statement,
    "solution": _draw_solution,
    "bullet_points": _draw_bullet_points,
    "comparison": _draw_comparison,
    "results": _draw_results,
    "conclusion": _draw_conclusion,
}


# ── Entry point ───────────────────────────────────────────────────


def render_slide_frame(
    descriptor,
    local_frame: int,
    resolution: tuple[int, int],
    background: tuple[int, int, int] = DEFAULT_BACKGROUND,
    fps: int = FPS,
) -> np.ndarray:
    """Render one frame of a section.

    Args:
        descriptor: Validated SectionDescriptor.
        local_frame: Frame number relative to the section start.
        resolution: (width, height) of the output frame.
        background: RGB canvas for section types without their own palette.
        fps: Frame rate the keyframe windows are expressed in.

    Returns:
        numpy array of shape (height, width, 3), dtype uint8.
    """
    values = evaluate(descriptor, local_frame, fps)
    style = SLIDE_STYLES.get(descriptor.type) or _plain_style(tuple(background))
    drawer = SLIDE_DRAWERS.get(descriptor.type, _draw_plain)
    lay = _slide_layout(resolution[1])

    base = _background(tuple(style["background"]), tuple(resolution)).copy()
    drawer(base, descriptor.properties, values, style, lay)
    return np.array(base.convert("RGB"))
