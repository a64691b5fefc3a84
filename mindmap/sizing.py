"""
Node sizing.

Each node gets a bounding box derived from its display text. Wider boxes are
tried in turn until the wrapped text fits in a comfortable number of lines.
The same box is used by the renderer and for badge hit-testing.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

from PIL import ImageFont

from mindmap.graph import MapNode

logger = logging.getLogger(__name__)

MIN_WIDTH = 96.0
MAX_WIDTH = 280.0
MIN_HEIGHT = 40.0
PADDING_X = 16.0
PADDING_Y = 10.0
CANDIDATE_WIDTHS = (120.0, 160.0, 200.0, 240.0, 280.0)
MAX_LINES = 2
PREVIEW_WORDS = 3
ELLIPSIS = "…"

BADGE_SIZE = 20.0
BADGE_GAP = 6.0


@runtime_checkable
class TextMeasurer(Protocol):
    """Anything able to report the rendered width of a single line of text."""

    def text_width(self, text: str) -> float:
        ...

    def line_height(self) -> float:
        ...


class PillowTextMeasurer:
    """
    Measures text with a Pillow font.

    Uses a TrueType font when ``font_path`` resolves, otherwise Pillow's
    bundled default font at the requested size.
    """

    LINE_SPACING = 1.25

    def __init__(self, font_path: Optional[str] = None, font_size: int = 14):
        self.font_size = font_size
        self._font = self._load_font(font_path, font_size)
        left, top, right, bottom = self._font.getbbox("Ag")
        self._line_height = (bottom - top) * self.LINE_SPACING

    @staticmethod
    def _load_font(font_path: Optional[str], font_size: int):
        if font_path and Path(font_path).exists():
            try:
                return ImageFont.truetype(font_path, font_size)
            except OSError as e:
                logger.warning(f"Could not load font {font_path}: {e}")
        return ImageFont.load_default(size=font_size)

    def text_width(self, text: str) -> float:
        return float(self._font.getlength(text))

    def line_height(self) -> float:
        return float(self._line_height)


def display_text(node: MapNode) -> str:
    """Full text, or a short word preview when the node is collapsed."""
    if not node.collapsed:
        return node.text
    words = node.text.split()
    if len(words) <= PREVIEW_WORDS:
        preview = " ".join(words)
    else:
        preview = " ".join(words[:PREVIEW_WORDS])
    return f"{preview}{ELLIPSIS}"


def wrap_lines(text: str, width: float, measurer: TextMeasurer) -> List[str]:
    """
    Greedy word wrap. Words wider than ``width`` are broken by character.
    Empty text still occupies one line.
    """
    lines: List[str] = []
    for paragraph in text.split("\n"):
        current = ""
        for word in paragraph.split():
            candidate = f"{current} {word}" if current else word
            if measurer.text_width(candidate) <= width:
                current = candidate
                continue
            if current:
                lines.append(current)
                current = ""
            # break a long word into chunks that fit
            while measurer.text_width(word) > width and len(word) > 1:
                cut = len(word) - 1
                while cut > 1 and measurer.text_width(word[:cut]) > width:
                    cut -= 1
                lines.append(word[:cut])
                word = word[cut:]
            current = word
        lines.append(current)
    return lines or [""]


@dataclass(frozen=True)
class NodeBox:
    """Box centered on the node position; badge rects are center-relative."""
    width: float
    height: float

    def badge_rect(self, badge: str) -> Tuple[float, float, float, float]:
        """(x, y, w, h) of a badge relative to the node center."""
        half_w, half_h = self.width / 2, self.height / 2
        if badge == "collapse":
            return (-half_w - BADGE_GAP - BADGE_SIZE, -BADGE_SIZE / 2, BADGE_SIZE, BADGE_SIZE)
        if badge == "reparent":
            return (half_w + BADGE_GAP, -BADGE_SIZE / 2, BADGE_SIZE, BADGE_SIZE)
        if badge == "connect":
            return (-BADGE_SIZE / 2, -half_h - BADGE_GAP - BADGE_SIZE, BADGE_SIZE, BADGE_SIZE)
        raise ValueError(f"unknown badge: {badge}")

    def contains(self, dx: float, dy: float) -> bool:
        return abs(dx) <= self.width / 2 and abs(dy) <= self.height / 2

    def badge_at(self, dx: float, dy: float, badges=("collapse", "reparent", "connect")) -> Optional[str]:
        for badge in badges:
            bx, by, bw, bh = self.badge_rect(badge)
            if bx <= dx <= bx + bw and by <= dy <= by + bh:
                return badge
        return None


class NodeSizer:
    """Computes and caches ``NodeBox`` values for nodes."""

    def __init__(self, measurer: Optional[TextMeasurer] = None,
                 max_width: float = MAX_WIDTH,
                 candidates: Tuple[float, ...] = CANDIDATE_WIDTHS):
        self.measurer = measurer or PillowTextMeasurer()
        self.max_width = max_width
        self.candidates = candidates
        self._cache: Dict[str, NodeBox] = {}

    def _text_height(self, text: str, inner_width: float) -> float:
        return len(wrap_lines(text, inner_width, self.measurer)) * self.measurer.line_height()

    def measure(self, text: str) -> NodeBox:
        if text in self._cache:
            return self._cache[text]

        budget = min(self.max_width, MAX_WIDTH)
        widths = sorted(w for w in self.candidates if w <= budget) or [budget]
        threshold = MAX_LINES * self.measurer.line_height()

        chosen = widths[-1]
        height = self._text_height(text, chosen - 2 * PADDING_X)
        for w in widths:
            h = self._text_height(text, w - 2 * PADDING_X)
            if h <= threshold:
                chosen, height = w, h
                break

        box = NodeBox(
            width=max(MIN_WIDTH, min(budget, chosen)),
            height=max(MIN_HEIGHT, height + 2 * PADDING_Y),
        )
        self._cache[text] = box
        return box

    def size_for(self, node: MapNode) -> NodeBox:
        return self.measure(display_text(node))
