from typing import Optional, Sequence

from rich.color import ColorSystem
from rich.style import Style

from codexline.config import Config
from codexline.segments import SegmentPiece

# Fixed so output never depends on terminal detection.
COLOR_SYSTEM = ColorSystem.TRUECOLOR


def _styled(text: str, color: Optional[str], background: Optional[str], bold: bool) -> str:
    if not text:
        return ""
    style = Style(color=color, bgcolor=background, bold=bold or None)
    if not style:
        return text
    return style.render(text, color_system=COLOR_SYSTEM)


def styled_piece(piece: SegmentPiece) -> str:
    value = _styled(piece.value, piece.text_color, piece.background, piece.bold)
    if not piece.icon:
        return value
    icon = _styled(piece.icon, piece.icon_color, piece.background, False)
    return f"{icon} {value}"


def render_line(pieces: Sequence[SegmentPiece], separator: str, plain: bool) -> str:
    if plain:
        return separator.join(p.plain_text() for p in pieces)
    return separator.join(styled_piece(p) for p in pieces)


def render(cfg: Config, pieces: Sequence[SegmentPiece], plain: bool) -> str:
    return render_line(pieces, cfg.style.separator, plain)
