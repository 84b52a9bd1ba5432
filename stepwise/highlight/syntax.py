#!/usr/bin/env python3
"""
Incremental line-oriented syntax highlighting.

Each line is scanned once, left to right, starting from the state the previous
line ended in (default, inside a string, inside a block comment). Spans are
non-overlapping and cover the whole line; anything unmatched is PLAIN.
Unterminated strings/comments are not errors: the rest of the line keeps the
open state and the next line boundary decides what happens.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterator, List, Optional, Sequence, Tuple


class TokenClass(Enum):
    """Display classes for highlighted text"""
    PLAIN = 'plain'
    KEYWORD = 'keyword'
    TYPE = 'type'
    STRING = 'string'
    COMMENT = 'comment'
    NUMBER = 'number'
    PUNCTUATION = 'punctuation'


class ScanState(Enum):
    """Scanner state carried across a line boundary"""
    DEFAULT = 'default'
    IN_STRING = 'in_string'
    IN_COMMENT = 'in_comment'


@dataclass(frozen=True)
class LineState:
    """Entry/exit state of a line; `closer` is the delimiter being waited for"""
    mode: ScanState = ScanState.DEFAULT
    closer: str = ''


DEFAULT_STATE = LineState()


@dataclass(frozen=True)
class HighlightSpan:
    """Half-open [start, end) range of code point offsets with a token class"""
    start: int
    end: int
    token: TokenClass


@dataclass(frozen=True)
class LanguageSpec:
    """Lexical configuration for one language, supplied by the caller"""
    name: str
    keywords: FrozenSet[str] = frozenset()
    types: FrozenSet[str] = frozenset()
    punctuation: str = '()[]{};:,.+-*/=<>!&|^?%'
    string_delimiters: Tuple[str, ...] = ('"', "'")
    multiline_strings: FrozenSet[str] = frozenset()
    line_comment: Optional[str] = None
    block_comment: Optional[Tuple[str, str]] = None
    escape: str = '\\'
    capitalized_types: bool = True
    extensions: Tuple[str, ...] = ()

    def delimiters_longest_first(self) -> List[str]:
        return sorted(self.string_delimiters, key=len, reverse=True)


def _is_ident_start(ch: str) -> bool:
    return ch == '_' or ch.isalpha()


def _is_ident_char(ch: str) -> bool:
    return ch == '_' or ch.isalnum()


def _find_closer(line: str, start: int, closer: str, escape: str) -> int:
    """Index just past `closer` from `start`, honoring escapes; -1 if absent"""
    i = start
    while i < len(line):
        if escape and line.startswith(escape, i):
            i += len(escape) + 1
            continue
        if line.startswith(closer, i):
            return i + len(closer)
        i += 1
    return -1


def _raw_tokens(line: str, spec: LanguageSpec, state: LineState,
                exit_state: List[LineState]) -> Iterator[HighlightSpan]:
    """Yield (possibly adjacent same-class) spans; append the exit state"""
    i = 0
    n = len(line)

    if state.mode == ScanState.IN_COMMENT:
        end = line.find(state.closer)
        if end < 0:
            if n:
                yield HighlightSpan(0, n, TokenClass.COMMENT)
            exit_state.append(state)
            return
        i = end + len(state.closer)
        yield HighlightSpan(0, i, TokenClass.COMMENT)
        state = DEFAULT_STATE

    elif state.mode == ScanState.IN_STRING:
        end = _find_closer(line, 0, state.closer, spec.escape)
        if end < 0:
            if n:
                yield HighlightSpan(0, n, TokenClass.STRING)
            exit_state.append(state if state.closer in spec.multiline_strings else DEFAULT_STATE)
            return
        i = end
        yield HighlightSpan(0, i, TokenClass.STRING)
        state = DEFAULT_STATE

    delimiters = spec.delimiters_longest_first()
    while i < n:
        ch = line[i]

        if ch.isspace():
            j = i
            while j < n and line[j].isspace():
                j += 1
            yield HighlightSpan(i, j, TokenClass.PLAIN)
            i = j
            continue

        if spec.line_comment and line.startswith(spec.line_comment, i):
            yield HighlightSpan(i, n, TokenClass.COMMENT)
            i = n
            break

        if spec.block_comment and line.startswith(spec.block_comment[0], i):
            opener, closer = spec.block_comment
            end = line.find(closer, i + len(opener))
            if end < 0:
                yield HighlightSpan(i, n, TokenClass.COMMENT)
                exit_state.append(LineState(ScanState.IN_COMMENT, closer))
                return
            yield HighlightSpan(i, end + len(closer), TokenClass.COMMENT)
            i = end + len(closer)
            continue

        delim = next((d for d in delimiters if line.startswith(d, i)), None)
        if delim is not None:
            end = _find_closer(line, i + len(delim), delim, spec.escape)
            if end < 0:
                yield HighlightSpan(i, n, TokenClass.STRING)
                carried = delim in spec.multiline_strings
                exit_state.append(LineState(ScanState.IN_STRING, delim) if carried else DEFAULT_STATE)
                return
            yield HighlightSpan(i, end, TokenClass.STRING)
            i = end
            continue

        if ch.isdigit():
            j = i
            while j < n and (_is_ident_char(line[j]) or line[j] == '.'):
                j += 1
            yield HighlightSpan(i, j, TokenClass.NUMBER)
            i = j
            continue

        if _is_ident_start(ch):
            j = i
            while j < n and _is_ident_char(line[j]):
                j += 1
            yield HighlightSpan(i, j, classify_word(line[i:j], spec))
            i = j
            continue

        token = TokenClass.PUNCTUATION if ch in spec.punctuation else TokenClass.PLAIN
        yield HighlightSpan(i, i + 1, token)
        i += 1

    exit_state.append(DEFAULT_STATE)


def classify_word(word: str, spec: LanguageSpec) -> TokenClass:
    """Style an identifier-like token"""
    if word in spec.keywords:
        return TokenClass.KEYWORD
    if word in spec.types:
        return TokenClass.TYPE
    if spec.capitalized_types and word[:1].isupper():
        return TokenClass.TYPE
    return TokenClass.PLAIN


def _merged(spans: Iterator[HighlightSpan]) -> Iterator[HighlightSpan]:
    pending = None
    for span in spans:
        if pending is not None and pending.token == span.token and pending.end == span.start:
            pending = HighlightSpan(pending.start, span.end, span.token)
            continue
        if pending is not None:
            yield pending
        pending = span
    if pending is not None:
        yield pending


class LineHighlight:
    """
    Lazy, restartable span sequence for one line.

    Iterating scans the line; iterating again rescans from scratch and yields
    identical spans. `exit_state` is the state the next line starts in.
    """

    def __init__(self, line: str, spec: LanguageSpec, state: LineState = DEFAULT_STATE):
        self.line = line
        self.spec = spec
        self.state = state
        self._exit: Optional[LineState] = None

    def __iter__(self) -> Iterator[HighlightSpan]:
        exit_state: List[LineState] = []
        yield from _merged(_raw_tokens(self.line, self.spec, self.state, exit_state))
        self._exit = exit_state[-1]

    @property
    def exit_state(self) -> LineState:
        if self._exit is None:
            for _ in self:
                pass
        return self._exit


def highlight_line(line: str, spec: LanguageSpec, state: LineState = DEFAULT_STATE) -> LineHighlight:
    return LineHighlight(line, spec, state)


@dataclass
class _CacheEntry:
    text: str
    entry: LineState
    exit: LineState


@dataclass
class Highlighter:
    """
    Highlights a buffer incrementally.

    Only exit states are cached; a line is rescanned when its text or entry
    state changed, so editing one line costs that line plus any lines whose
    entry state actually changes as a result.
    """
    spec: LanguageSpec
    _cache: List[_CacheEntry] = field(default_factory=list)

    def entry_state(self, lines: Sequence[str], index: int) -> LineState:
        """State line `index` starts in (scanning earlier lines as needed)"""
        state = DEFAULT_STATE
        for row in range(min(index, len(lines))):
            state = self._exit_state(lines, row, state)
        del self._cache[len(lines):]
        return state

    def _exit_state(self, lines: Sequence[str], row: int, entry: LineState) -> LineState:
        text = lines[row]
        if row < len(self._cache):
            cached = self._cache[row]
            if cached.text == text and cached.entry == entry:
                return cached.exit
        exit_state = LineHighlight(text, self.spec, entry).exit_state
        item = _CacheEntry(text, entry, exit_state)
        if row < len(self._cache):
            self._cache[row] = item
        else:
            self._cache.append(item)
        return exit_state

    def highlight_range(self, lines: Sequence[str], start: int, stop: int) -> List[List[HighlightSpan]]:
        """Spans for lines [start, stop) only"""
        start = max(0, start)
        stop = min(stop, len(lines))
        state = self.entry_state(lines, start)
        result = []
        for row in range(start, stop):
            spans = LineHighlight(lines[row], self.spec, state)
            result.append(list(spans))
            state = self._exit_state(lines, row, state)
        return result
