"""Paginated PDF rendering for workout and nutrition plans.

Rendering happens in three explicit phases:

1. ``layout_document`` flows content through a layout cursor into a list of
   ``PageBuffer`` objects (an arena of pages indexed 0..N-1), each holding
   plain draw operations. A page break is decided before every atomic block.
2. ``stamp_page_numbers`` appends a centred "Page i of N" footer to every
   page once the final count is known.
3. ``emit_pdf`` replays the operations onto a reportlab canvas.

Only the standard PDF fonts are used, so all text goes through ``pdf_safe``.
"""

from __future__ import annotations

import io
import os
import random
import sys
import unicodedata
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Union

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from observability import setup_structured_logger
from schemas import DayPlan, Meal, NutritionPlan, RenderProfile, WorkoutWeek

logger = setup_structured_logger("brosplit.renderer")

# ============================================================================
# Page geometry & styles
# ============================================================================

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 50
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN

HEADER_BASELINE = PAGE_HEIGHT - MARGIN / 2 - 10
HEADER_RULE_Y = PAGE_HEIGHT - MARGIN - 12
CONTENT_TOP = PAGE_HEIGHT - MARGIN - 28
CONTENT_BOTTOM = MARGIN
FOOTER_BASELINE = 30

MAX_WEEKS = 6

PALETTE = {
    "primary": "#1f2937",
    "accent": "#2563eb",
    "success": "#059669",
    "border": "#e5e7eb",
    "light": "#f8fafc",
    "muted": "#6b7280",
}


@dataclass(frozen=True)
class TextStyle:
    font: str
    size: float
    color: str
    leading: float


STYLES = {
    "cover_title": TextStyle("Helvetica-Bold", 32, PALETTE["accent"], 40),
    "cover_subtitle": TextStyle("Helvetica-Bold", 26, PALETTE["primary"], 34),
    "h1": TextStyle("Helvetica-Bold", 20, PALETTE["accent"], 26),
    "h2": TextStyle("Helvetica-Bold", 16, PALETTE["primary"], 22),
    "h3": TextStyle("Helvetica-Bold", 13, PALETTE["primary"], 18),
    "body": TextStyle("Helvetica", 11, PALETTE["primary"], 15),
    "body_bold": TextStyle("Helvetica-Bold", 11, PALETTE["primary"], 15),
    "italic": TextStyle("Helvetica-Oblique", 10, PALETTE["primary"], 14),
    "quote": TextStyle("Helvetica-Oblique", 12, PALETTE["accent"], 16),
    "intensity": TextStyle("Helvetica-Oblique", 10, PALETTE["accent"], 14),
    "callout": TextStyle("Helvetica-Oblique", 10, PALETTE["success"], 14),
    "small": TextStyle("Helvetica", 9, PALETTE["muted"], 12),
    "chip_label": TextStyle("Helvetica", 9, PALETTE["muted"], 12),
    "chip_value": TextStyle("Helvetica-Bold", 14, PALETTE["accent"], 18),
    "header": TextStyle("Helvetica-Bold", 12, PALETTE["accent"], 14),
    "footer": TextStyle("Helvetica", 9, PALETTE["primary"], 12),
}

# ============================================================================
# Static content
# ============================================================================


@dataclass(frozen=True)
class WeekInfo:
    title: str
    description: str
    intensity: str


WEEK_META = {
    1: WeekInfo("Foundation Week - Building Your Base", "Focus on perfect form & groove.", "RPE 6-7"),
    2: WeekInfo("Volume Week - Stepping It Up", "Add volume, muscles love work.", "RPE 7"),
    3: WeekInfo("Intensity Week - Bringing the Heat", "Heavier loads, focused effort.", "RPE 7-8"),
    4: WeekInfo("Recovery Week - Smart Training", "Deload & mobilize strategically.", "RPE 5-6"),
    5: WeekInfo("Peak Week - Maximum Effort", "Push your limits with confidence.", "RPE 8-9"),
    6: WeekInfo("Ultimate Peak - Your Victory Lap", "Show yourself what you're capable of!", "RPE 9"),
}

PRO_TIPS = (
    ("Progressive Overload", "Aim for slight weekly increases."),
    ("Recovery is Key", "Sleep 7-9 hrs; muscles grow on off-days."),
    ("Fuel Your Gains", "0.8-1 g protein per lb bodyweight."),
    ("Track Everything", "Log workouts & celebrate wins."),
    ("Form > Ego", "Perfect reps over heavy sloppy ones."),
)

MOTIVATIONAL_QUOTES = (
    ("The last three or four reps is what makes the muscle grow.", "Arnold Schwarzenegger"),
    ("If you think lifting is dangerous, try being weak.", "Bret Contreras"),
    (
        "Everybody wants to be a bodybuilder, but nobody wants to lift no heavy-ass weights.",
        "Ronnie Coleman",
    ),
)

DAY_CALLOUTS = (
    "Finish strong!",
    "You've got this!",
    "Beast mode activated!",
    "Power through!",
    "Lock in and dominate!",
)

PLACEHOLDER = "-"

_SAFE_REPLACEMENTS = {
    "–": "-",
    "—": "-",
    "−": "-",
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
    "…": "...",
    "\u00a0": " ",
    "→": "->",
    "≤": "<=",
    "≥": ">=",
}


def pdf_safe(text: object) -> str:
    """Map text onto what the standard (WinAnsi) PDF fonts can draw.

    Dashes, quotes and arrows get ASCII stand-ins, emoji and other symbols
    are dropped, anything else unsupported becomes "?".
    """
    result: List[str] = []
    for char in str(text if text is not None else ""):
        char = _SAFE_REPLACEMENTS.get(char, char)
        if len(char) > 1:
            result.append(char)
            continue
        try:
            char.encode("cp1252")
        except UnicodeEncodeError:
            if unicodedata.category(char) in ("So", "Sk", "Cs", "Mn", "Cf"):
                continue
            char = "?"
        result.append(char)
    return "".join(result).strip()


def format_amount(value: Optional[float], unit: str = "") -> str:
    """Number with optional unit, or a dash when the value is missing."""
    if value is None:
        return PLACEHOLDER
    number = int(value) if float(value).is_integer() else round(value, 1)
    return f"{number}{unit}"


# ============================================================================
# Draw operations & page arena
# ============================================================================


@dataclass
class TextOp:
    x: float
    y: float
    text: str
    style: str
    align: str = "left"
    tag: str = ""


@dataclass
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str
    width: float = 1.0


@dataclass
class RectOp:
    x: float
    y: float
    width: float
    height: float
    fill: str
    radius: float = 0.0


@dataclass
class ImageOp:
    image: ImageReader
    x: float
    y: float
    width: float
    height: float


DrawOp = Union[TextOp, LineOp, RectOp, ImageOp]


@dataclass
class PageBuffer:
    """Draw operations for one page, in paint order."""

    index: int
    ops: List[DrawOp] = field(default_factory=list)

    def texts(self) -> List[str]:
        return [op.text for op in self.ops if isinstance(op, TextOp)]


@dataclass
class DocumentSections:
    """What goes into the document; either part may be absent."""

    workout: Optional[List[WorkoutWeek]] = None
    nutrition: Optional[NutritionPlan] = None

    @property
    def has_workout(self) -> bool:
        return bool(self.workout)

    @property
    def has_nutrition(self) -> bool:
        return self.nutrition is not None


def wrap_text(text: str, style: TextStyle, max_width: float) -> List[str]:
    """Greedy word wrap using the font's real glyph widths."""
    words = text.split()
    if not words:
        return []

    def width(candidate: str) -> float:
        return pdfmetrics.stringWidth(candidate, style.font, style.size)

    lines: List[str] = []
    current = ""
    for word in words:
        # Hard-split words wider than the column
        while width(word) > max_width and len(word) > 1:
            cut = len(word) - 1
            while cut > 1 and width(word[:cut]) > max_width:
                cut -= 1
            if current:
                lines.append(current)
                current = ""
            lines.append(word[:cut])
            word = word[cut:]
        candidate = f"{current} {word}" if current else word
        if width(candidate) <= max_width:
            current = candidate
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


class LayoutCursor:
    """Flows blocks down fixed-size pages, opening pages as needed."""

    def __init__(self, header_text: str) -> None:
        self.header_text = pdf_safe(header_text)
        self.pages: List[PageBuffer] = []
        self.y = CONTENT_TOP

    @property
    def page(self) -> PageBuffer:
        return self.pages[-1]

    def new_page(self) -> PageBuffer:
        page = PageBuffer(index=len(self.pages))
        page.ops.append(TextOp(MARGIN, HEADER_BASELINE, self.header_text, "header", tag="header"))
        page.ops.append(
            LineOp(MARGIN, HEADER_RULE_Y, PAGE_WIDTH - MARGIN, HEADER_RULE_Y, PALETTE["border"])
        )
        self.pages.append(page)
        self.y = CONTENT_TOP
        return page

    def ensure_space(self, height: float) -> None:
        """Start a new page if ``height`` does not fit above the bottom margin."""
        if not self.pages or self.y - height < CONTENT_BOTTOM:
            self.new_page()

    def gap(self, height: float) -> None:
        self.y -= height

    def paragraph(
        self,
        text: str,
        style_name: str = "body",
        indent: float = 0,
        align: str = "left",
        bullet: str = "",
        keep_with_next: float = 0,
    ) -> None:
        """Lay out wrapped text; kept on one page when it fits on one."""
        style = STYLES[style_name]
        x = MARGIN + indent
        width = CONTENT_WIDTH - indent
        text_x = x
        if bullet:
            text_x = x + pdfmetrics.stringWidth(bullet + " ", style.font, style.size)
            width -= text_x - x

        lines = wrap_text(pdf_safe(text), style, width)
        if not lines:
            return

        block_height = len(lines) * style.leading
        if block_height <= CONTENT_TOP - CONTENT_BOTTOM:
            self.ensure_space(block_height + keep_with_next)

        for number, line in enumerate(lines):
            self.ensure_space(style.leading)
            baseline = self.y - style.size
            if align == "center":
                self.page.ops.append(TextOp(PAGE_WIDTH / 2, baseline, line, style_name, "center"))
            else:
                if bullet and number == 0:
                    self.page.ops.append(TextOp(x, baseline, bullet, style_name))
                self.page.ops.append(TextOp(text_x, baseline, line, style_name))
            self.y -= style.leading

    def rule(self, color: str = PALETTE["border"], keep_with_next: float = 0) -> None:
        self.ensure_space(8 + keep_with_next)
        self.page.ops.append(LineOp(MARGIN, self.y, PAGE_WIDTH - MARGIN, self.y, color))
        self.y -= 8


# ============================================================================
# Sections
# ============================================================================


def _load_logo(logo_path: Optional[str]) -> Optional[ImageReader]:
    if not logo_path:
        return None
    try:
        image = ImageReader(logo_path)
        image.getSize()
        return image
    except Exception as exc:  # noqa: BLE001
        print(f"   ⚠️  Logo skipped ({logo_path}): {exc}", file=sys.stderr)
        logger.warning(
            "Logo could not be loaded; rendering without it",
            extra={"extra_fields": {"logo_path": logo_path, "error": str(exc)}},
        )
        return None


def _layout_cover(
    cursor: LayoutCursor,
    sections: DocumentSections,
    profile: RenderProfile,
    logo: Optional[ImageReader],
    quote_index: int,
) -> None:
    cursor.new_page()

    if logo is not None:
        width, height = logo.getSize()
        draw_height = 60.0
        draw_width = min(width * draw_height / max(height, 1), CONTENT_WIDTH)
        cursor.page.ops.append(
            ImageOp(logo, (PAGE_WIDTH - draw_width) / 2, cursor.y - draw_height, draw_width, draw_height)
        )
        cursor.gap(draw_height + 20)

    subtitle = "6-Week BroSplit Journey" if sections.has_workout else "7-Day Nutrition Plan"
    cursor.paragraph("Your Personal", "cover_title", align="center")
    cursor.paragraph(subtitle, "cover_subtitle", align="center")
    cursor.gap(40)

    name = profile.name or "Champion"
    cursor.paragraph(f"Hey {name}!", "h2")
    cursor.gap(12)
    if sections.has_workout and sections.has_nutrition:
        welcome = (
            "Welcome to your customized 6-week transformation, complete with a 7-day "
            "nutrition plan! Every rep, week and meal is designed for your goals."
        )
    elif sections.has_workout:
        welcome = (
            "Welcome to your customized 6-week transformation! "
            "Every rep and week is designed for your goals."
        )
    else:
        welcome = "Welcome to your customized nutrition plan! Every meal is built around your targets."
    cursor.paragraph(welcome, "body")
    cursor.gap(20)

    quote, author = MOTIVATIONAL_QUOTES[quote_index % len(MOTIVATIONAL_QUOTES)]
    quote_lines = wrap_text(pdf_safe(f'"{quote}"'), STYLES["quote"], CONTENT_WIDTH - 20)
    box_height = len(quote_lines) * STYLES["quote"].leading + STYLES["small"].leading + 24
    cursor.ensure_space(box_height)
    cursor.page.ops.append(
        RectOp(MARGIN, cursor.y - box_height, CONTENT_WIDTH, box_height, PALETTE["light"], radius=6)
    )
    cursor.gap(12)
    cursor.paragraph(f'"{quote}"', "quote", indent=20, align="center")
    cursor.paragraph(f"- {author}", "small", align="center")
    cursor.gap(12)


def _week_info(number: int) -> WeekInfo:
    return WEEK_META.get(number, WeekInfo(f"Week {number}", "", ""))


def _layout_table_of_contents(cursor: LayoutCursor, weeks: Sequence[WorkoutWeek]) -> None:
    cursor.new_page()
    cursor.paragraph("Your 6-Week Journey", "h1")
    cursor.gap(10)
    for week in weeks:
        info = _week_info(week.number)
        entry_height = STYLES["h3"].leading + STYLES["body"].leading + STYLES["intensity"].leading
        cursor.ensure_space(entry_height + 14)
        cursor.page.ops.append(RectOp(MARGIN, cursor.y - entry_height, 4, entry_height, PALETTE["accent"]))
        cursor.paragraph(f"Week {week.number}: {info.title}", "h3", indent=12)
        if info.description:
            cursor.paragraph(info.description, "body", indent=12)
        if info.intensity:
            cursor.paragraph(info.intensity, "intensity", indent=12)
        cursor.gap(14)


def _layout_tips(cursor: LayoutCursor) -> None:
    cursor.new_page()
    cursor.paragraph("Pro Tips for Maximum Results", "h1")
    cursor.gap(10)
    for title, text in PRO_TIPS:
        cursor.paragraph(title, "h3", keep_with_next=STYLES["body"].leading)
        cursor.paragraph(text, "body")
        cursor.gap(12)


def _layout_weeks(cursor: LayoutCursor, weeks: Sequence[WorkoutWeek]) -> None:
    for week in weeks:
        info = _week_info(week.number)
        cursor.new_page()
        cursor.paragraph(f"Week {week.number}: {info.title}", "h1")
        if info.intensity:
            cursor.paragraph(info.intensity, "intensity")
        if info.description:
            cursor.paragraph(info.description, "italic")
        cursor.gap(12)

        for index, day in enumerate(week.days):
            # Rule, day heading and first exercise stay together
            cursor.rule(keep_with_next=STYLES["h2"].leading + STYLES["body"].leading)
            cursor.paragraph(day.name, "h2", keep_with_next=STYLES["body"].leading)
            for exercise in day.exercises:
                cursor.paragraph(exercise, "body", indent=8, bullet="•")
            cursor.gap(6)
            cursor.paragraph(DAY_CALLOUTS[index % len(DAY_CALLOUTS)], "callout")
            cursor.gap(14)


def _layout_nutrition_cover(cursor: LayoutCursor, plan: NutritionPlan) -> None:
    cursor.new_page()
    cursor.gap(120)
    cursor.paragraph("Your 7-Day Nutrition Plan", "cover_subtitle", align="center")
    cursor.gap(10)
    meals = plan.summary.meals_per_day
    subtitle = f"{meals} meals per day" if meals else "Built around your daily targets"
    cursor.paragraph(subtitle, "italic", align="center")
    cursor.gap(20)
    cursor.paragraph(
        "Targets were calculated from your body, activity and goal. Meals, the grocery "
        "list and the batch-prep plan below are all built to hit them.",
        "body",
        align="center",
    )


def _layout_target_chips(cursor: LayoutCursor, plan: NutritionPlan) -> None:
    summary = plan.summary
    chips = [
        ("Calories", format_amount(summary.kcal, " kcal")),
        ("Protein", format_amount(summary.protein_g, " g")),
        ("Carbs", format_amount(summary.carbs_g, " g")),
        ("Fat", format_amount(summary.fat_g, " g")),
        ("Fiber", format_amount(summary.fiber_g, " g")),
        ("Sodium cap", format_amount(summary.sodium_mg_cap, " mg")),
    ]
    if summary.per_meal_protein_g is not None:
        chips.append(("Protein / meal", format_amount(summary.per_meal_protein_g, " g")))

    cursor.gap(30)
    cursor.paragraph("Daily Targets", "h1", keep_with_next=60)
    cursor.gap(8)

    columns = 3
    gutter = 10
    chip_width = (CONTENT_WIDTH - gutter * (columns - 1)) / columns
    chip_height = 46
    for start in range(0, len(chips), columns):
        cursor.ensure_space(chip_height + gutter)
        top = cursor.y
        for offset, (label, value) in enumerate(chips[start : start + columns]):
            x = MARGIN + offset * (chip_width + gutter)
            cursor.page.ops.append(
                RectOp(x, top - chip_height, chip_width, chip_height, PALETTE["light"], radius=6)
            )
            cursor.page.ops.append(TextOp(x + 10, top - 16, pdf_safe(label), "chip_label"))
            cursor.page.ops.append(TextOp(x + 10, top - 36, pdf_safe(value), "chip_value"))
        cursor.gap(chip_height + gutter)


def _layout_guidelines(cursor: LayoutCursor, plan: NutritionPlan) -> None:
    cursor.gap(20)
    cursor.paragraph("Guidelines", "h2", keep_with_next=STYLES["body"].leading)
    if not plan.guidelines:
        cursor.paragraph(PLACEHOLDER, "body", indent=8)
    for guideline in plan.guidelines:
        cursor.paragraph(guideline, "body", indent=8, bullet="•")


def _macro_line(meal: Meal) -> str:
    macros = meal.macros
    return (
        f"{format_amount(macros.kcal, ' kcal')} | P {format_amount(macros.protein_g, ' g')} | "
        f"C {format_amount(macros.carbs_g, ' g')} | F {format_amount(macros.fat_g, ' g')}"
    )


def _layout_day_plan(cursor: LayoutCursor, day: DayPlan) -> None:
    cursor.new_page()
    cursor.paragraph(f"Day {day.day}", "h1")
    cursor.paragraph(f"Total: {format_amount(day.total_kcal, ' kcal')}", "intensity")
    cursor.gap(8)

    for meal in day.meals:
        cursor.rule(keep_with_next=STYLES["h3"].leading + STYLES["small"].leading)
        cursor.paragraph(meal.name or PLACEHOLDER, "h3", keep_with_next=STYLES["small"].leading)
        cursor.paragraph(_macro_line(meal), "small")
        if meal.recipe:
            cursor.paragraph(meal.recipe, "italic")
        for ingredient in meal.ingredients:
            label = ingredient.quantity.label
            text = f"{ingredient.item or PLACEHOLDER}: {label}" if label else ingredient.item or PLACEHOLDER
            cursor.paragraph(text, "body", indent=14, bullet="-")
        if meal.swaps:
            cursor.paragraph(f"Swaps: {', '.join(meal.swaps)}", "small", indent=14)
        cursor.gap(8)


def _layout_grocery_list(cursor: LayoutCursor, plan: NutritionPlan) -> None:
    cursor.new_page()
    cursor.paragraph("Grocery List", "h1")
    cursor.gap(8)
    if not plan.grocery_list.items:
        cursor.paragraph(PLACEHOLDER, "body", indent=8)
    for item in plan.grocery_list.items:
        label = item.quantity.label
        text = f"{item.item or PLACEHOLDER}: {label}" if label else item.item or PLACEHOLDER
        cursor.paragraph(text, "body", indent=8, bullet="•")


def _layout_batch_prep(cursor: LayoutCursor, plan: NutritionPlan) -> None:
    cursor.new_page()
    cursor.paragraph("Batch Prep", "h1")
    cursor.gap(8)
    for entry in plan.batch_prep:
        cursor.paragraph(entry.day or PLACEHOLDER, "h2", keep_with_next=STYLES["body"].leading)
        for number, step in enumerate(entry.steps, start=1):
            cursor.paragraph(step, "body", indent=8, bullet=f"{number}.")
        cursor.gap(12)


def _layout_closing(cursor: LayoutCursor, profile: RenderProfile) -> None:
    cursor.new_page()
    cursor.gap(140)
    cursor.paragraph("You've Got This!", "cover_subtitle", align="center")
    cursor.gap(16)
    goal = profile.goal or "your goals"
    cursor.paragraph(
        f"Stay consistent, trust the process and keep chasing {goal}. "
        "Small wins every week add up to big results.",
        "body",
        align="center",
    )
    cursor.gap(30)
    cursor.paragraph(
        "General fitness and nutrition guidance; not medical advice. Consult a qualified "
        "professional before starting a new program.",
        "small",
        align="center",
    )
    cursor.paragraph("BroSplit AI Team • support@brosplit-ai.com", "small", align="center")


def _header_text(sections: DocumentSections) -> str:
    if sections.has_workout and sections.has_nutrition:
        return "BroSplit AI • 6-Week Plan + Nutrition"
    if sections.has_workout:
        return "BroSplit AI • 6-Week Plan"
    return "BroSplit AI • Nutrition Plan"


# ============================================================================
# Phases
# ============================================================================


def layout_document(
    sections: DocumentSections,
    profile: Optional[RenderProfile] = None,
    logo_path: Optional[str] = None,
    quote_index: Optional[int] = None,
) -> List[PageBuffer]:
    """Phase 1: lay out every section into page buffers (no page numbers)."""
    profile = profile or RenderProfile()
    if quote_index is None:
        quote_index = random.randrange(len(MOTIVATIONAL_QUOTES))
    cursor = LayoutCursor(_header_text(sections))
    logo = _load_logo(logo_path if logo_path is not None else os.getenv("BROSPLIT_LOGO_PATH"))

    _layout_cover(cursor, sections, profile, logo, quote_index)

    if sections.has_workout:
        weeks = list(sections.workout or [])[:MAX_WEEKS]
        _layout_table_of_contents(cursor, weeks)
        _layout_tips(cursor)
        _layout_weeks(cursor, weeks)

    plan = sections.nutrition
    if plan is not None:
        _layout_nutrition_cover(cursor, plan)
        _layout_target_chips(cursor, plan)
        _layout_guidelines(cursor, plan)
        for day in plan.day_plans:
            _layout_day_plan(cursor, day)
        _layout_grocery_list(cursor, plan)
        _layout_batch_prep(cursor, plan)

    _layout_closing(cursor, profile)
    return cursor.pages


def stamp_page_numbers(pages: List[PageBuffer]) -> List[PageBuffer]:
    """Phase 2: add a centred "Page i of N" footer to every page."""
    total = len(pages)
    for page in pages:
        page.ops.append(
            TextOp(
                PAGE_WIDTH / 2,
                FOOTER_BASELINE,
                f"Page {page.index + 1} of {total}",
                "footer",
                align="center",
                tag="page_number",
            )
        )
    return pages


def _draw(pdf: canvas.Canvas, op: DrawOp) -> None:
    if isinstance(op, TextOp):
        style = STYLES[op.style]
        pdf.setFont(style.font, style.size)
        pdf.setFillColor(HexColor(style.color))
        if op.align == "center":
            pdf.drawCentredString(op.x, op.y, op.text)
        elif op.align == "right":
            pdf.drawRightString(op.x, op.y, op.text)
        else:
            pdf.drawString(op.x, op.y, op.text)
    elif isinstance(op, LineOp):
        pdf.setStrokeColor(HexColor(op.color))
        pdf.setLineWidth(op.width)
        pdf.line(op.x1, op.y1, op.x2, op.y2)
    elif isinstance(op, RectOp):
        pdf.setFillColor(HexColor(op.fill))
        if op.radius:
            pdf.roundRect(op.x, op.y, op.width, op.height, op.radius, stroke=0, fill=1)
        else:
            pdf.rect(op.x, op.y, op.width, op.height, stroke=0, fill=1)
    elif isinstance(op, ImageOp):
        pdf.drawImage(op.image, op.x, op.y, op.width, op.height, preserveAspectRatio=True, mask="auto")


def emit_pdf(pages: Iterable[PageBuffer], title: str = "BroSplit AI Plan") -> bytes:
    """Phase 3: replay page buffers onto a reportlab canvas."""
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setTitle(title)
    pdf.setAuthor("BroSplit AI")
    for page in pages:
        for op in page.ops:
            _draw(pdf, op)
        pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def render(
    sections: DocumentSections,
    profile: Optional[RenderProfile] = None,
    logo_path: Optional[str] = None,
) -> bytes:
    """Render the plan document to PDF bytes.

    Args:
        sections: Workout weeks and/or nutrition plan
        profile: Name and goal for the cover and closing page
        logo_path: Optional logo image; defaults to BROSPLIT_LOGO_PATH

    Returns:
        PDF document bytes
    """
    pages = stamp_page_numbers(layout_document(sections, profile, logo_path))
    pdf_bytes = emit_pdf(pages)
    print(f"   📄 Rendered PDF: {len(pages)} pages, {len(pdf_bytes)} bytes", file=sys.stderr)
    logger.info(
        "PDF rendered",
        extra={
            "extra_fields": {
                "pages": len(pages),
                "bytes": len(pdf_bytes),
                "workout_weeks": len((sections.workout or [])[:MAX_WEEKS]),
                "nutrition": sections.has_nutrition,
            }
        },
    )
    return pdf_bytes
