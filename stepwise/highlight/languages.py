#!/usr/bin/env python3
"""
Built-in language table for the highlighter.
"""

import os
from typing import Dict, Optional

from .syntax import LanguageSpec


RUST = LanguageSpec(
    name='rust',
    keywords=frozenset([
        "fn", "let", "mut", "const", "if", "else", "match", "loop", "while", "for", "in",
        "return", "break", "continue", "struct", "enum", "impl", "trait", "pub", "mod",
        "use", "self", "Self", "super", "crate", "where", "async", "await", "move", "ref",
        "static", "type", "unsafe", "extern", "dyn", "as",
    ]),
    types=frozenset([
        "i8", "i16", "i32", "i64", "i128", "isize", "u8", "u16", "u32", "u64", "u128",
        "usize", "f32", "f64", "bool", "char", "str", "String", "Vec", "Option", "Result",
        "Box", "Rc", "Arc", "Ok", "Err", "Some", "None", "true", "false",
    ]),
    string_delimiters=('"',),
    multiline_strings=frozenset(['"']),
    line_comment='//',
    block_comment=('/*', '*/'),
    extensions=('.rs',),
)

PYTHON = LanguageSpec(
    name='python',
    keywords=frozenset([
        "and", "as", "assert", "async", "await", "break", "class", "continue", "def",
        "del", "elif", "else", "except", "finally", "for", "from", "global", "if",
        "import", "in", "is", "lambda", "nonlocal", "not", "or", "pass", "raise",
        "return", "try", "while", "with", "yield", "match", "case",
    ]),
    types=frozenset([
        "int", "float", "str", "bytes", "bool", "list", "dict", "set", "tuple",
        "None", "True", "False", "self", "cls",
    ]),
    string_delimiters=('"""', "'''", '"', "'"),
    multiline_strings=frozenset(['"""', "'''"]),
    line_comment='#',
    extensions=('.py',),
)

PLAIN = LanguageSpec(name='plain', punctuation='', string_delimiters=(), capitalized_types=False)

LANGUAGES: Dict[str, LanguageSpec] = {spec.name: spec for spec in (RUST, PYTHON, PLAIN)}


def language_for_path(path: str, override: Optional[str] = None) -> LanguageSpec:
    """Pick a language by explicit name or by file extension"""
    if override and override in LANGUAGES:
        return LANGUAGES[override]
    ext = os.path.splitext(path)[1].lower()
    for spec in LANGUAGES.values():
        if ext in spec.extensions:
            return spec
    return PLAIN
