"""Draw planned instructions onto the original document."""

from __future__ import annotations

import logging
import os
from typing import Dict, Sequence, Set, Tuple

import fitz

from .errors import CompositionFailure
from .fonts import FontAsset
from .models import DrawInstruction, HighlightInstruction, TextInstruction

logger = logging.getLogger(__name__)
if not logger.handlers:
    level_name = os.getenv("FORMFILLER_LOG", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.setLevel(level)
    logger.addHandler(handler)


class DocumentCompositor:
    """Apply draw instructions to one document and serialise the result.

    Instructions are in page space (origin bottom-left, y up). PyMuPDF uses a
    top-left origin, so every y coordinate is flipped against the page height
    right before drawing.
    """

    def __init__(self, fonts: Sequence[FontAsset]) -> None:
        self._fonts: Dict[str, FontAsset] = {font.name: font for font in fonts}

    def compose(self, pdf_bytes: bytes, instructions: Sequence[DrawInstruction]) -> bytes:
        try:
            document = fitz.open(stream=pdf_bytes, filetype="pdf")
        except Exception as exc:
            raise CompositionFailure(f"Could not open document: {exc}") from exc

        try:
            embedded: Set[Tuple[int, str]] = set()
            for index, instruction in enumerate(instructions):
                if not 0 <= instruction.page < document.page_count:
                    raise CompositionFailure(
                        f"Instruction {index} targets page {instruction.page} of a {document.page_count}-page document"
                    )
                page = document[instruction.page]
                if isinstance(instruction, HighlightInstruction):
                    self._draw_highlight(page, instruction)
                else:
                    self._draw_text(page, instruction, embedded)
            output = document.tobytes(garbage=3, deflate=True)
        except CompositionFailure:
            raise
        except Exception as exc:
            raise CompositionFailure(f"Could not compose document: {exc}") from exc
        finally:
            document.close()

        logger.info("Composited %d instructions into %d bytes", len(instructions), len(output))
        return output

    def _draw_highlight(self, page: fitz.Page, instruction: HighlightInstruction) -> None:
        height = page.rect.height
        x0, y0, x1, y1 = instruction.rect
        rect = fitz.Rect(x0, height - max(y0, y1), x1, height - min(y0, y1))
        page.draw_rect(rect, color=None, fill=instruction.color, width=0, overlay=True)
        logger.debug("Drew highlight on page %d at %s", page.number, rect)

    def _draw_text(self, page: fitz.Page, instruction: TextInstruction, embedded: Set[Tuple[int, str]]) -> None:
        font = self._fonts.get(instruction.font_name)
        if font is None:
            raise CompositionFailure(f"Font '{instruction.font_name}' is not loaded for this document")

        if font.buffer is not None:
            fontname = font.name
            if (page.number, fontname) not in embedded:
                page.insert_font(fontname=fontname, fontbuffer=font.buffer)
                embedded.add((page.number, fontname))
        else:
            fontname = font.builtin

        x, y = instruction.origin
        point = fitz.Point(x, page.rect.height - y)
        page.insert_text(
            point,
            instruction.text,
            fontsize=instruction.font_size,
            fontname=fontname,
            color=instruction.color,
        )
        logger.debug("Drew text on page %d at %s with %s %.1fpt", page.number, point, fontname, instruction.font_size)


__all__ = ["DocumentCompositor"]
