"""
Structural Analysis - scanner and semantic unit extractor

The scanner locates headers, list items and paragraphs and weights them by
importance. The extractor walks the text line by line and produces the
SemanticUnits the assemblers consume: one unit per non-blank line, except
that a run of table lines is folded into a single atomic unit so that no
assembler splits a table casually.

Also home to the table row splitter shared by the intelligent assembler and
the optimizer: an oversize table is cut between rows, and every part
repeats the header row and separator.

Usage:
    from ragchunk.structure import StructuralScanner, SemanticUnitExtractor

    structure = StructuralScanner().scan(text)
    units = SemanticUnitExtractor(profile).extract(text, structure)
"""

from dataclasses import dataclass
from typing import Optional

from .languages import ENGLISH, LanguageProfile
from .models import ContentSection, DocumentStructure, ElementType, SemanticUnit, StructuralElement
from .text_utils import (
    BLANK_LINE_PATTERN,
    HEADER_PATTERN,
    LIST_ITEM_PATTERN,
    TABLE_END_MARKER,
    TABLE_START_MARKER,
    count_important_keywords,
    has_important_keyword,
    is_table_line,
    is_table_marker,
    is_table_separator,
)

# Header importance by markdown level
_HEADER_IMPORTANCE = {1: 1.0, 2: 0.9, 3: 0.8, 4: 0.7, 5: 0.6, 6: 0.5}

LIST_ITEM_IMPORTANCE = 0.5


# =============================================================================
# STRUCTURAL SCANNER
# =============================================================================


class StructuralScanner:
    """Finds headers, list items and paragraphs with importance weights."""

    def scan(self, text: str) -> DocumentStructure:
        if not text or not text.strip():
            return DocumentStructure()
        return DocumentStructure(
            headers=self._scan_headers(text),
            list_items=self._scan_list_items(text),
            paragraphs=self._scan_paragraphs(text),
        )

    def _scan_headers(self, text: str) -> list[StructuralElement]:
        headers = []
        for match in HEADER_PATTERN.finditer(text):
            level = len(match.group(1))
            headers.append(StructuralElement(
                content=match.group(2).strip(),
                position=match.start(),
                type=ElementType.HEADER,
                importance=header_importance(level),
                level=level,
            ))
        return headers

    def _scan_list_items(self, text: str) -> list[StructuralElement]:
        items = []
        for match in LIST_ITEM_PATTERN.finditer(text):
            line_end = text.find("\n", match.start())
            if line_end == -1:
                line_end = len(text)
            line = text[match.start():line_end]
            content = line.strip()
            if not content:
                continue
            items.append(StructuralElement(
                content=content,
                position=match.start() + (len(line) - len(line.lstrip())),
                type=ElementType.LIST_ITEM,
                importance=LIST_ITEM_IMPORTANCE,
            ))
        return items

    def _scan_paragraphs(self, text: str) -> list[StructuralElement]:
        paragraphs = []
        start = 0
        separators = [(m.start(), m.end()) for m in BLANK_LINE_PATTERN.finditer(text)]
        separators.append((len(text), len(text)))
        for sep_start, sep_end in separators:
            block = text[start:sep_start]
            content = block.strip()
            if content:
                paragraphs.append(StructuralElement(
                    content=content,
                    position=start + (len(block) - len(block.lstrip())),
                    type=ElementType.PARAGRAPH,
                    importance=paragraph_importance(content),
                ))
            start = sep_end
        return paragraphs


def header_importance(level: int) -> float:
    return _HEADER_IMPORTANCE.get(level, 0.8)


def paragraph_importance(paragraph: str) -> float:
    importance = 0.5
    if has_important_keyword(paragraph):
        importance += 0.3
    if len(paragraph) > 200:
        importance += 0.1
    if len(paragraph) > 500:
        importance += 0.1
    return min(importance, 1.0)


# =============================================================================
# SEMANTIC UNIT EXTRACTOR
# =============================================================================


class SemanticUnitExtractor:
    """
    Turns text into SemanticUnits.

    Table lines (two or more pipes, or explicit TABLE_START/TABLE_END
    markers) are folded into one unit with weight = relevance = 1.0 and
    importance 0.9. Every other non-blank line is one unit. Blank lines
    only advance the position cursor.
    """

    def __init__(self, profile: Optional[LanguageProfile] = None):
        self.profile = profile or ENGLISH

    def extract(
        self, text: str, structure: Optional[DocumentStructure] = None
    ) -> list[SemanticUnit]:
        if not text or not text.strip():
            return []
        structure = structure or DocumentStructure()
        header_titles = [
            h.content.lower() for h in structure.headers if h.content.strip()
        ]

        lines = text.split("\n")
        units: list[SemanticUnit] = []
        position = 0
        i = 0
        while i < len(lines):
            raw = lines[i]
            if not raw.strip():
                position += len(raw) + 1
                i += 1
                continue

            if is_table_line(raw):
                folded = self._fold_table(text, lines, i, position)
                if folded is not None:
                    unit, i, position = folded
                    units.append(unit)
                    continue

            content = raw.strip()
            start = position + (len(raw) - len(raw.lstrip()))
            units.append(self._line_unit(content, start, header_titles))
            position += len(raw) + 1
            i += 1

        return units

    def _line_unit(
        self, content: str, position: int, header_titles: list[str]
    ) -> SemanticUnit:
        is_header = self.profile.is_section_marker(content)
        lowered = content.lower()

        weight = min(1.0, 0.5 + 0.1 * count_important_keywords(content))

        relevance = 0.5
        if any(title in lowered for title in header_titles):
            relevance += 0.3

        if is_header:
            importance = 1.0
        else:
            importance = 0.5
            if has_important_keyword(content):
                importance += 0.2
            if len(content) > 100:
                importance += 0.1

        return SemanticUnit(
            content=content,
            position=position,
            semantic_weight=weight,
            contextual_relevance=min(relevance, 1.0),
            importance=min(importance, 1.0),
            is_section_header=is_header,
        )

    def _fold_table(
        self, text: str, lines: list[str], start_index: int, start_position: int
    ) -> Optional[tuple[SemanticUnit, int, int]]:
        """
        Fold the table starting at ``start_index``.

        Returns:
            (unit, next line index, next position), or None when the run is
            too short to be a table.
        """
        marked = lines[start_index].strip() == TABLE_START_MARKER
        table_lines = 0
        last_index = start_index
        last_end = start_position
        position = start_position

        for i in range(start_index, len(lines)):
            raw = lines[i]
            stripped = raw.strip()
            if marked:
                table_lines += 1
                last_index = i
                last_end = position + len(raw.rstrip())
                position += len(raw) + 1
                if stripped == TABLE_END_MARKER and i > start_index:
                    break
                continue
            if is_table_line(raw) and not is_table_marker(raw):
                table_lines += 1
                last_index = i
                last_end = position + len(raw.rstrip())
            elif stripped:
                break
            position += len(raw) + 1

        if not marked and table_lines < 2:
            return None

        lead = len(lines[start_index]) - len(lines[start_index].lstrip())
        unit_start = start_position + lead
        next_position = start_position + sum(
            len(lines[k]) + 1 for k in range(start_index, last_index + 1)
        )
        unit = SemanticUnit(
            content=text[unit_start:last_end],
            position=unit_start,
            semantic_weight=1.0,
            contextual_relevance=1.0,
            importance=0.9,
            is_table=True,
        )
        return unit, last_index + 1, next_position


def contains_table(units: list[SemanticUnit]) -> bool:
    return any(u.is_table for u in units)


def build_sections(headers: list[StructuralElement], text_length: int) -> list[ContentSection]:
    """
    Nest markdown headers into a section tree.

    A section runs from its header to the next header of the same or a
    higher level (or the end of the text).
    """
    roots: list[ContentSection] = []
    stack: list[ContentSection] = []
    for i, header in enumerate(headers):
        end = text_length
        for later in headers[i + 1:]:
            if later.level <= header.level:
                end = later.position
                break
        section = ContentSection(title=header.content, level=header.level, start=header.position, end=end)
        while stack and stack[-1].level >= header.level:
            stack.pop()
        if stack:
            stack[-1].children.append(section)
        else:
            roots.append(section)
        stack.append(section)
    return roots


# =============================================================================
# TABLE SPLITTING
# =============================================================================


@dataclass
class TablePart:
    """One row-split piece of a table; offsets are relative to the input text."""

    text: str
    start: int
    end: int
    oversize: bool = False


def split_table(text: str, max_size: int) -> list[TablePart]:
    """
    Split a table-bearing text between rows.

    Every part carries the table's header row (and separator, if present)
    followed by as many data rows as fit in ``max_size``. A part always
    holds at least one data row; if the header plus that row is still too
    long the part is flagged oversize. Lines before the first table row or
    after the last one become parts of their own, packed line by line.
    """
    lines: list[tuple[str, int]] = []
    offset = 0
    for raw in text.split("\n"):
        if raw.strip() and not is_table_marker(raw):
            lead = len(raw) - len(raw.lstrip())
            lines.append((raw.strip(), offset + lead))
        offset += len(raw) + 1

    table_idx = [i for i, (line, _) in enumerate(lines) if line.count("|") >= 2]
    if not table_idx:
        return [TablePart(text=text.strip(), start=0, end=len(text), oversize=len(text.strip()) > max_size)]

    first, last = table_idx[0], table_idx[-1]
    head_count = 2 if first + 1 <= last and is_table_separator(lines[first + 1][0]) else 1
    head = [line for line, _ in lines[first:first + head_count]]
    head_text = "\n".join(head)
    rows = lines[first + head_count:last + 1]

    parts: list[TablePart] = []
    parts.extend(_pack_lines(lines[:first], max_size))

    if not rows:
        start = lines[first][1]
        end = lines[first + head_count - 1][1] + len(lines[first + head_count - 1][0])
        parts.append(TablePart(head_text, start, end, oversize=len(head_text) > max_size))
    else:
        current: list[tuple[str, int]] = []
        size = len(head_text)
        for row, row_pos in rows:
            if current and size + 1 + len(row) > max_size:
                parts.append(_table_part(head_text, current))
                current = []
                size = len(head_text)
            current.append((row, row_pos))
            size += 1 + len(row)
        if current:
            parts.append(_table_part(head_text, current))

    parts.extend(_pack_lines(lines[last + 1:], max_size))
    for part in parts:
        part.oversize = part.oversize or len(part.text) > max_size
    return parts


def _table_part(head_text: str, rows: list[tuple[str, int]]) -> TablePart:
    body = "\n".join(row for row, _ in rows)
    last_row, last_pos = rows[-1]
    return TablePart(
        text=f"{head_text}\n{body}",
        start=rows[0][1],
        end=last_pos + len(last_row),
    )


def _pack_lines(lines: list[tuple[str, int]], max_size: int) -> list[TablePart]:
    parts: list[TablePart] = []
    current: list[tuple[str, int]] = []
    size = 0
    for line, pos in lines:
        if current and size + 1 + len(line) > max_size:
            parts.append(_line_part(current))
            current = []
            size = 0
        current.append((line, pos))
        size += len(line) + (1 if size else 0)
    if current:
        parts.append(_line_part(current))
    return parts


def _line_part(lines: list[tuple[str, int]]) -> TablePart:
    last_line, last_pos = lines[-1]
    return TablePart(
        text="\n".join(line for line, _ in lines),
        start=lines[0][1],
        end=last_pos + len(last_line),
    )
