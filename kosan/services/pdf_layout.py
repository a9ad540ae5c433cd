# kosan/services/pdf_layout.py
from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

_, PAGE_HEIGHT = A4
PAGE_CENTER_MM = 105
TOP_MARGIN_MM = 30


class PdfRenderError(RuntimeError):
    pass


@dataclass(frozen=True)
class RenderedPdf:
    filename: str
    content: bytes
    pages: int


def y_from_top(v_mm: float) -> float:
    """Layouts are written top-down in millimetres; reportlab measures from the bottom."""
    return PAGE_HEIGHT - v_mm * mm


class PagedDocument:
    """
    A4 canvas driven by a vertical offset (mm from the top of the page).

    Callers advance `y` themselves and call `break_after(threshold)` to start
    a new page once the offset passes the threshold.
    """

    def __init__(self, title: str = ""):
        self._buffer = BytesIO()
        self.canvas = canvas.Canvas(self._buffer, pagesize=A4, pageCompression=0)
        if title:
            self.canvas.setTitle(title)
        self.pages = 1
        self.y: float = TOP_MARGIN_MM
        self._font_size = 12
        self.font(12)

    def font(self, size: int, bold: bool = False) -> None:
        self._font_size = size
        self.canvas.setFont("Helvetica-Bold" if bold else "Helvetica", size)

    def text(self, x_mm: float, y_mm: float, value: str) -> None:
        self.canvas.drawString(x_mm * mm, y_from_top(y_mm), value)

    def centered(self, y_mm: float, value: str, x_mm: float = PAGE_CENTER_MM) -> None:
        self.canvas.drawCentredString(x_mm * mm, y_from_top(y_mm), value)

    def rule(self, y_mm: float, x1_mm: float = 20, x2_mm: float = 190) -> None:
        self.canvas.line(x1_mm * mm, y_from_top(y_mm), x2_mm * mm, y_from_top(y_mm))

    def new_page(self) -> None:
        self.canvas.showPage()
        self.pages += 1
        self.y = TOP_MARGIN_MM
        self.font(self._font_size)

    def break_after(self, threshold_mm: float) -> None:
        if self.y > threshold_mm:
            self.new_page()

    def finish(self) -> bytes:
        self.canvas.showPage()
        self.canvas.save()
        return self._buffer.getvalue()
