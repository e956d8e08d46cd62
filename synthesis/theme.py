"""Heuristic visual theme scraped from extracted page text."""

import re
from collections import Counter
from typing import Any, Dict, Iterable

HEX_COLOR = re.compile(r'#[0-9A-Fa-f]{3,6}\b')
FONT_FAMILY = re.compile(r'font-family:\s*([^;}"\n]+)', re.IGNORECASE)

MAX_COLORS = 10
MAX_FONTS = 5

DEFAULT_PRIMARY = '#8B5CF6'
DEFAULT_SECONDARY = '#6366F1'
DEFAULT_ACCENT = '#8B5CF6'
DEFAULT_FONT = 'Inter, system-ui, sans-serif'


def extract_theme(contents: Iterable[str]) -> Dict[str, Any]:
    """Most frequent hex colours and first-listed font families across the texts."""
    colors = Counter()
    fonts = Counter()
    for text in contents:
        if not text:
            continue
        colors.update(c.upper() for c in HEX_COLOR.findall(text))
        for match in FONT_FAMILY.findall(text):
            font = match.split(',')[0].strip().strip('\'"')
            if font and len(font) < 50:
                fonts[font] += 1

    top_colors = [c for c, _ in colors.most_common(MAX_COLORS)]
    top_fonts = [f for f, _ in fonts.most_common(MAX_FONTS)]

    return {
        'primary_color': top_colors[0] if top_colors else DEFAULT_PRIMARY,
        'secondary_color': top_colors[1] if len(top_colors) > 1 else DEFAULT_SECONDARY,
        'accent_color': top_colors[2] if len(top_colors) > 2 else DEFAULT_ACCENT,
        'colors': top_colors,
        'fonts': top_fonts,
        'primary_font': top_fonts[0] if top_fonts else DEFAULT_FONT,
    }
