#!/usr/bin/env python3
"""
Grapheme helpers for the editor buffer.

Cursor columns count user-perceived characters: a base character plus any
zero-width characters that follow it (combining marks, variation selectors)
and anything glued on by a zero-width joiner.
"""

from typing import List

from wcwidth import wcwidth


ZWJ = '\u200d'


def graphemes(line: str) -> List[str]:
    """Split a line into grapheme clusters"""
    clusters: List[str] = []
    for ch in line:
        if clusters and (wcwidth(ch) == 0 or clusters[-1].endswith(ZWJ)):
            clusters[-1] += ch
        else:
            clusters.append(ch)
    return clusters


def grapheme_len(line: str) -> int:
    """Number of grapheme clusters in a line"""
    return len(graphemes(line))


def offset_of(line: str, col: int) -> int:
    """Code point offset of grapheme column `col` (clamped to the line)"""
    if col <= 0:
        return 0
    offset = 0
    for i, cluster in enumerate(graphemes(line)):
        if i == col:
            return offset
        offset += len(cluster)
    return len(line)


def column_of(line: str, offset: int) -> int:
    """Grapheme column containing code point `offset`"""
    consumed = 0
    for i, cluster in enumerate(graphemes(line)):
        if offset < consumed + len(cluster):
            return i
        consumed += len(cluster)
    return grapheme_len(line)


def is_word_char(cluster: str) -> bool:
    return not cluster[:1].isspace()
