"""Cursor-based page writer for compliance reports.

Blocks are drawn straight onto a reportlab canvas. A ``LayoutCursor``
tracks the current page and the vertical offset from the top edge; every
``place_*`` call leaves it at the next writable position. The only page
break trigger is the space check in ``place_entry``. A group banner is held
until its first entry is placed and is drawn together with it, so a banner
never ends a page without an entry under it. Footers ("Page i of n") are
stamped by ``ReportCanvas`` once the total page count is known.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from backend.services.report_formatting import (
    format_address,
    format_amount,
    format_applicator,
    format_area,
    format_chemical,
    format_consent,
    format_date_range,
    format_datetime,
    format_location,
    format_long_date,
    format_weather,
)
from backend.services.report_policies import (
    MAX_OPTIONAL_ROWS,
    JurisdictionPolicy,
    OptionalField,
)
from backend.services.report_records import ApplicationRecord, CustomerInfo

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Styling
# ---------------------------------------------------------------------------
TEXT_COLOR = "#000000"
MUTED_COLOR = "#666666"
RULE_COLOR = "#cccccc"
ENTRY_RULE_COLOR = "#dddddd"
BANNER_COLOR = "#f5f5f5"

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
FIELD_FONT_SIZE = 9

REPORT_TITLE = "Pesticide Application Report"
NO_DATA_MESSAGE = "No applications found for the specified date range and filters."

# ---------------------------------------------------------------------------
# Block geometry (points)
# ---------------------------------------------------------------------------
LINE_HEIGHT = 14
HEADER_HEIGHT = 120
CUSTOMER_BANNER_HEIGHT = 35
DATE_BANNER_HEIGHT = 25
BANNER_GAP = 10
GROUP_GAP = 7
ENTRY_TOP_GAP = 7  # separator rule plus half a line
ENTRY_BOTTOM_GAP = 5
NO_DATA_HEIGHT = 50
FOOTER_OFFSET = 30  # footer baseline above the bottom edge

BASE_ENTRY_ROWS = 3  # date/chemical, amount/applicator, weather/target pest
MAX_ENTRY_ROWS = BASE_ENTRY_ROWS + 1 + MAX_OPTIONAL_ROWS
MAX_ENTRY_HEIGHT = ENTRY_TOP_GAP + MAX_ENTRY_ROWS * LINE_HEIGHT + ENTRY_BOTTOM_GAP
MAX_BANNER_HEIGHT = CUSTOMER_BANNER_HEIGHT + BANNER_GAP

# Largest block place_entry can draw at once: a held banner plus its first entry.
MAX_PLACEMENT_HEIGHT = MAX_BANNER_HEIGHT + MAX_ENTRY_HEIGHT


@dataclass(frozen=True)
class PageGeometry:
    width: float
    height: float
    margin: float

    @property
    def content_height(self) -> float:
        return self.height - 2 * self.margin

    @property
    def content_bottom(self) -> float:
        return self.height - self.margin


LETTER = PageGeometry(width=letter[0], height=letter[1], margin=50)


@dataclass
class LayoutCursor:
    geometry: PageGeometry
    page_index: int = 0
    y: float | None = None  # offset from the top edge

    def __post_init__(self):
        if self.y is None:
            self.y = self.geometry.margin

    @property
    def remaining(self) -> float:
        return self.geometry.content_bottom - self.y


@dataclass(frozen=True)
class PlacedBlock:
    kind: str  # header, group_header, entry, no_data
    page_index: int
    top: float
    bottom: float
    text: str = ""


@dataclass(frozen=True)
class ReportMeta:
    company_name: str
    policy: JurisdictionPolicy
    date_from: datetime
    date_to: datetime
    generated_at: datetime


def entry_height(policy: JurisdictionPolicy, include_location_line: bool) -> float:
    rows = BASE_ENTRY_ROWS + len(policy.optional_rows)
    if include_location_line:
        rows += 1
    return ENTRY_TOP_GAP + rows * LINE_HEIGHT + ENTRY_BOTTOM_GAP


def banner_height(key: CustomerInfo | str) -> float:
    if isinstance(key, CustomerInfo):
        return CUSTOMER_BANNER_HEIGHT + BANNER_GAP
    return DATE_BANNER_HEIGHT + BANNER_GAP


def fit_text(text: str, font: str, size: float, max_width: float) -> str:
    """Trim text with an ellipsis so it fits ``max_width``."""
    if stringWidth(text, font, size) <= max_width:
        return text
    ellipsis = "..."
    while text and stringWidth(text + ellipsis, font, size) > max_width:
        text = text[:-1]
    return text + ellipsis


# ---------------------------------------------------------------------------
# Canvas with deferred page numbering
# ---------------------------------------------------------------------------
class ReportCanvas(canvas.Canvas):
    """Canvas that holds finished pages until ``save`` so it can number them."""

    def __init__(self, *args, **kwargs):
        canvas.Canvas.__init__(self, *args, **kwargs)
        self._saved_page_states = []
        self.footers: list[str] = []

    @property
    def page_count(self) -> int:
        return len(self._saved_page_states)

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        num_pages = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self.draw_page_footer(num_pages)
            canvas.Canvas.showPage(self)
        canvas.Canvas.save(self)

    def draw_page_footer(self, page_count: int):
        text = f"Page {self._pageNumber} of {page_count}"
        self.saveState()
        self.setFont(FONT, 8)
        self.setFillColor(colors.HexColor(MUTED_COLOR))
        self.drawCentredString(self._pagesize[0] / 2.0, FOOTER_OFFSET, text)
        self.restoreState()
        self.footers.append(text)


# ---------------------------------------------------------------------------
# Layout engine
# ---------------------------------------------------------------------------
class ReportLayout:
    """Places report blocks on pages, one instance per generated report."""

    def __init__(
        self,
        buffer: BinaryIO,
        geometry: PageGeometry = LETTER,
        compress: bool = True,
    ):
        self.geometry = geometry
        self.cursor = LayoutCursor(geometry)
        self.canvas = ReportCanvas(
            buffer,
            pagesize=(geometry.width, geometry.height),
            pageCompression=1 if compress else 0,
        )
        self.blocks: list[PlacedBlock] = []
        self.left_col = geometry.margin + 10
        self.right_col = geometry.width / 2 + 14
        self._pending_group: CustomerInfo | str | None = None
        self._finalized = False

    # -- coordinate helpers ------------------------------------------------

    def _pdf_y(self, top_offset: float) -> float:
        """Convert a top-down offset into reportlab's bottom-up coordinate."""
        return self.geometry.height - top_offset

    def _record(self, kind: str, top: float, text: str = ""):
        self.blocks.append(
            PlacedBlock(kind, self.cursor.page_index, top, self.cursor.y, text)
        )

    def new_page(self):
        self.canvas.showPage()
        self.cursor.page_index += 1
        self.cursor.y = self.geometry.margin

    def _centered(self, text: str, font: str, size: float, baseline: float, color=TEXT_COLOR):
        self.canvas.setFont(font, size)
        self.canvas.setFillColor(colors.HexColor(color))
        self.canvas.drawCentredString(
            self.geometry.width / 2, self._pdf_y(baseline), text
        )

    def _field(self, label: str, value: str, x: float, baseline: float, width: float):
        label_text = f"{label}: "
        c = self.canvas
        c.setFillColor(colors.HexColor(TEXT_COLOR))
        c.setFont(FONT_BOLD, FIELD_FONT_SIZE)
        c.drawString(x, self._pdf_y(baseline), label_text)
        offset = stringWidth(label_text, FONT_BOLD, FIELD_FONT_SIZE)
        c.setFont(FONT, FIELD_FONT_SIZE)
        c.drawString(
            x + offset,
            self._pdf_y(baseline),
            fit_text(value, FONT, FIELD_FONT_SIZE, width - offset),
        )

    # -- blocks --------------------------------------------------------------

    def place_header(self, meta: ReportMeta):
        """Title block at the top of page 1."""
        top = self.cursor.y
        self._centered(meta.company_name, FONT_BOLD, 20, top + 20)
        self._centered(REPORT_TITLE, FONT, 16, top + 46)
        self._centered(
            f"{meta.policy.display_name} Compliance Format", FONT, 12, top + 66
        )
        self._centered(
            f"Date Range: {format_date_range(meta.date_from, meta.date_to)}",
            FONT,
            10,
            top + 84,
        )
        self._centered(
            f"Generated: {format_datetime(meta.generated_at)}", FONT, 10, top + 98
        )

        c = self.canvas
        c.setStrokeColor(colors.HexColor(RULE_COLOR))
        c.setLineWidth(1)
        rule_y = self._pdf_y(top + 108)
        c.line(self.geometry.margin, rule_y, self.geometry.width - self.geometry.margin, rule_y)

        self.cursor.y = top + HEADER_HEIGHT
        self._record("header", top, meta.company_name)

    def place_group_header(self, key: CustomerInfo | str):
        """Open a group. Its banner is drawn by the next ``place_entry``."""
        if self._pending_group is not None:
            raise RuntimeError("Previous group has no entries")
        self._pending_group = key

    def _draw_group_header(self, key: CustomerInfo | str):
        """Shaded banner naming the customer or the day of a group."""
        top = self.cursor.y
        box_height = banner_height(key) - BANNER_GAP
        c = self.canvas
        c.setFillColor(colors.HexColor(BANNER_COLOR))
        c.rect(
            self.geometry.margin,
            self._pdf_y(top + box_height),
            self.geometry.width - 2 * self.geometry.margin,
            box_height,
            fill=1,
            stroke=0,
        )
        c.setFillColor(colors.HexColor(TEXT_COLOR))
        text_width = self.geometry.width - 2 * self.left_col
        if isinstance(key, CustomerInfo):
            title = f"CUSTOMER: {key.name}"
            c.setFont(FONT_BOLD, 12)
            c.drawString(
                self.left_col,
                self._pdf_y(top + 16),
                fit_text(title, FONT_BOLD, 12, text_width),
            )
            c.setFont(FONT, 10)
            c.drawString(
                self.left_col,
                self._pdf_y(top + 29),
                fit_text(format_address(key), FONT, 10, text_width),
            )
        else:
            title = f"DATE: {format_long_date(key)}"
            c.setFont(FONT_BOLD, 12)
            c.drawString(self.left_col, self._pdf_y(top + 16), title)

        self.cursor.y = top + box_height + BANNER_GAP
        self._record("group_header", top, title)

    def place_entry(
        self,
        record: ApplicationRecord,
        policy: JurisdictionPolicy,
        include_location_line: bool = False,
    ):
        """Field block for one application, breaking the page first if needed.

        A held group banner is drawn first, on the same page as the entry.
        """
        needed = entry_height(policy, include_location_line)
        if self._pending_group is not None:
            needed += banner_height(self._pending_group)
        if self.cursor.remaining < needed:
            self.new_page()
        if self._pending_group is not None:
            self._draw_group_header(self._pending_group)
            self._pending_group = None

        top = self.cursor.y
        c = self.canvas
        c.setStrokeColor(colors.HexColor(ENTRY_RULE_COLOR))
        c.setLineWidth(0.5)
        rule_y = self._pdf_y(top)
        c.line(self.left_col, rule_y, self.geometry.width - self.left_col, rule_y)

        left_width = self.right_col - self.left_col - 10
        right_width = self.geometry.width - self.left_col - self.right_col
        y = top + ENTRY_TOP_GAP

        def row(left, right=None):
            nonlocal y
            baseline = y + FIELD_FONT_SIZE
            if left:
                self._field(left[0], left[1], self.left_col, baseline, left_width)
            if right:
                self._field(right[0], right[1], self.right_col, baseline, right_width)
            y += LINE_HEIGHT

        row(
            ("Date", format_datetime(record.application_date)),
            ("Chemical", format_chemical(record)),
        )
        row(
            ("Amount", format_amount(record)),
            ("Applicator", format_applicator(record.applicator)),
        )
        row(
            ("Weather", format_weather(record.weather)),
            ("Target Pest", record.target_pest_name) if record.target_pest_name else None,
        )
        if include_location_line:
            row(("Location", format_location(record.customer)))

        for fields in policy.optional_rows:
            cells = [self._optional_cell(record, policy, f) for f in fields]
            row(*cells)

        self.cursor.y = y + ENTRY_BOTTOM_GAP
        self._record("entry", top, str(record.id))

    def _optional_cell(
        self, record: ApplicationRecord, policy: JurisdictionPolicy, field: OptionalField
    ) -> tuple[str, str] | None:
        if field is OptionalField.METHOD:
            value = record.application_method
        elif field is OptionalField.AREA:
            value = format_area(record)
        elif field is OptionalField.CONSENT:
            value = format_consent(record.customer_consent)
        else:
            value = record.reentry_interval
        if not value:
            return None
        return (policy.label_for(field), value)

    def end_group(self):
        self.cursor.y += GROUP_GAP

    def place_no_data(self):
        top = self.cursor.y
        self._centered(NO_DATA_MESSAGE, FONT, 14, top + 28, color=MUTED_COLOR)
        self.cursor.y = top + NO_DATA_HEIGHT
        self._record("no_data", top, NO_DATA_MESSAGE)

    def finalize(self) -> int:
        """Close the last page, stamp page footers and write the PDF."""
        if self._finalized:
            raise RuntimeError("Report layout already finalized")
        if self._pending_group is not None:
            raise RuntimeError("Last group has no entries")
        self.canvas.showPage()
        page_count = self.canvas.page_count
        if page_count != self.cursor.page_index + 1:
            raise RuntimeError(
                f"Page count mismatch: canvas has {page_count}, "
                f"cursor is on page {self.cursor.page_index + 1}"
            )
        self.canvas.save()
        self._finalized = True
        logger.debug(f"Report layout finalized with {page_count} page(s)")
        return page_count

    @property
    def footers(self) -> list[str]:
        return list(self.canvas.footers)
