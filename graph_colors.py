"""
Deterministic palette assignment for interest graph nodes.

Top-level nodes are coloured by a hash of their own id; every other node is
coloured by a hash of its layout-parent's id, so siblings share a hue.  An
explicit ``color_override`` always wins.  Nothing here is persisted: colours
are a pure function of ids and tree shape.
"""

from typing import Optional

# Neo-brutalist palette; siblings of the same parent share one entry.
NEO_COLORS = [
    '#facc15',  # Yellow
    '#fb7185',  # Pink
    '#22d3ee',  # Cyan
    '#a3e635',  # Lime
    '#c084fc',  # Purple
    '#fb923c',  # Orange
    '#f87171',  # Red
    '#4ade80',  # Green
    '#60a5fa',  # Blue
    '#f472b6',  # Fuchsia
]

VIEWER_COLOR = '#facc15'


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def string_hash(text: str) -> int:
    """
    Classic ``hash * 31 + code`` string hash.

    The shift wraps to a signed 32-bit integer on every step so the result
    matches the palette indices already seen by existing front-end clients.
    """
    h = 0
    for ch in text:
        h = ord(ch) + (_to_int32(_to_int32(h) << 5) - h)
    return h


def color_by_hash(text: str) -> str:
    """Map a string onto the fixed palette."""
    return NEO_COLORS[abs(string_hash(text)) % len(NEO_COLORS)]


def get_node_color(
    node_id: str,
    parent_id: Optional[str],
    node_type: str,
    custom_color: Optional[str] = None,
) -> str:
    """Colour for a node given its layout-parent (None for top-level nodes)."""
    if custom_color:
        return custom_color
    if not parent_id or node_type == 'root':
        return color_by_hash(node_id)
    return color_by_hash(parent_id)

