"""
Best-effort scanning of loosely structured markdown.

Sections are located by heading: capture starts after the first heading
whose level and text match, and stops at the next heading of equal or higher
level. Nothing in here raises on malformed input; a missing section is an
empty string or an empty list.
"""

import re
from typing import List, Optional, Tuple

HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
BULLET_RE = re.compile(r"^(?:[-*+]|\d+[.)])\s+(.*)$")
CHECKBOX_RE = re.compile(r"^\[[ xX]\]\s*")
FENCE_PREFIXES = ("```", "~~~")
SLUG_RE = re.compile(r"[^a-z0-9]+")


def parse_heading(line: str) -> Optional[Tuple[int, str]]:
    """Return (level, text) when the line is an ATX heading."""
    match = HEADING_RE.match(line.strip())
    if not match:
        return None
    return len(match.group(1)), match.group(2).strip()


def _heading_key(heading: str) -> Tuple[int, str]:
    parsed = parse_heading(heading)
    if parsed is None:
        # Bare titles are treated as level-2 headings.
        return 2, heading.strip().lower()
    return parsed[0], parsed[1].lower()


def section_lines(content: str, heading: str) -> Optional[List[str]]:
    """Raw lines of a section, or None when the heading is absent."""
    level, title = _heading_key(heading)
    captured: Optional[List[str]] = None
    in_fence = False

    for line in content.splitlines():
        if line.strip().startswith(FENCE_PREFIXES):
            in_fence = not in_fence
            if captured is not None:
                captured.append(line)
            continue

        parsed = None if in_fence else parse_heading(line)
        if captured is None:
            if parsed and parsed[0] == level and parsed[1].lower() == title:
                captured = []
            continue
        if parsed and parsed[0] <= level:
            break
        captured.append(line)

    return captured


def extract_section(content: str, heading: str) -> str:
    """Trimmed text of a section; empty when missing."""
    lines = section_lines(content, heading)
    if not lines:
        return ""
    return "\n".join(lines).strip()


def is_placeholder(text: str) -> bool:
    """Template placeholders look like ``[Describe the change]``."""
    text = text.strip()
    return text.startswith("[") and text.endswith("]")


def list_items(text: str) -> List[str]:
    """Bullet (-, *, +) and numbered items, trimmed, checkboxes dropped."""
    items = []
    for line in text.splitlines():
        match = BULLET_RE.match(line.strip())
        if not match:
            continue
        item = CHECKBOX_RE.sub("", match.group(1)).strip()
        if item and not is_placeholder(item):
            items.append(item)
    return items


def extract_list_items(content: str, heading: str) -> List[str]:
    lines = section_lines(content, heading)
    if not lines:
        return []
    return list_items("\n".join(lines))


def extract_table_rows(content: str, heading: str) -> List[List[str]]:
    """
    Data rows of the first markdown table in a section.

    The header row and the separator row are skipped. Cells are trimmed.
    """
    lines = section_lines(content, heading)
    if not lines:
        return []

    rows: List[List[str]] = []
    header_seen = False
    for line in lines:
        stripped = line.strip()
        if not stripped.startswith("|"):
            if header_seen and rows:
                break
            continue
        cells = [c.strip() for c in stripped.strip("|").split("|")]
        if not header_seen:
            header_seen = True
            continue
        if all(re.fullmatch(r":?-{2,}:?", c) for c in cells if c):
            continue
        rows.append(cells)
    return rows


def extract_title(content: str) -> str:
    """Text of the first level-1 heading."""
    for line in content.splitlines():
        parsed = parse_heading(line)
        if parsed and parsed[0] == 1:
            return parsed[1]
    return ""


def extract_field(content: str, name: str) -> str:
    """Value of a ``**Name:** value`` line."""
    prefix = f"**{name}:**"
    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith(prefix):
            return stripped[len(prefix):].strip()
    return ""


def slugify(text: str, max_length: int = 60, fallback: str = "untitled") -> str:
    slug = SLUG_RE.sub("-", text.lower()).strip("-")
    if len(slug) > max_length:
        slug = slug[:max_length].rstrip("-")
    return slug or fallback


def truncate(text: str, max_length: int = 200) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."
