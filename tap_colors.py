# tap_colors.py  (ANSI palette used for the interactive echo of records)
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Colors:
    RESET: str = ""
    BOLD: str = ""
    DIM: str = ""
    RED: str = ""
    GREEN: str = ""
    YELLOW: str = ""
    BLUE: str = ""
    MAGENTA: str = ""
    CYAN: str = ""
    WHITE: str = ""


ANSI = Colors(
    RESET="\x1b[0m",
    BOLD="\x1b[1m",
    DIM="\x1b[2m",
    RED="\x1b[31m",
    GREEN="\x1b[32m",
    YELLOW="\x1b[33m",
    BLUE="\x1b[34m",
    MAGENTA="\x1b[35m",
    CYAN="\x1b[36m",
    WHITE="\x1b[37m",
)

# every code empty: styled and plain renderings come out identical
PLAIN = Colors()


def create_colors(is_tty: bool) -> Colors:
    return ANSI if is_tty else PLAIN


def method_color(method: Optional[str], colors: Colors) -> str:
    """Pick a color by method family; first matching prefix wins."""
    if not method:
        return colors.WHITE
    if method.startswith("initialize"):
        return colors.MAGENTA
    if method.startswith("tools/"):
        return colors.GREEN
    if method.startswith("resources/"):
        return colors.CYAN
    if method.startswith("prompts/"):
        return colors.YELLOW
    if method.startswith("notifications/"):
        return colors.BLUE
    return colors.WHITE
