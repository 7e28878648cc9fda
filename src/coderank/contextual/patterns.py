"""Regex detectors for code properties.

Language-agnostic heuristics over raw fragment text. Shared by the
structural analyzer (scoring) and the score combiner (quality boost).
"""

from __future__ import annotations

import re

from coderank.contextual.models import CodeFragment, FragmentKind

# Control-flow markers counted by estimate_complexity(), plus a base of 1.
_COMPLEXITY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bif\s*\("),
    re.compile(r"\bfor\s*\("),
    re.compile(r"\bwhile\s*\("),
    re.compile(r"\bswitch\s*\("),
    re.compile(r"\bcatch\s*\("),
    re.compile(r"&&|\|\|"),
    re.compile(r"\?.*:"),  # ternary
)

_EXPORT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"export\s+(default\s+)?(class|function|const|let|var|interface|type)", re.I),
    re.compile(r"module\.exports\s*=", re.I),
)

_IMPORT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"import\s+.*from", re.I),
    re.compile(r"require\s*\(", re.I),
)

# Doc-comment conventions: JSDoc/Javadoc, Python docstrings, /// doc comments
_DOC_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"/\*\*[\s\S]*?\*/"),
    re.compile(r'"""[\s\S]*?"""'),
    re.compile(r"'''[\s\S]*?'''"),
    re.compile(r"^\s*///", re.M),
)

_DOC_MARKERS: tuple[str, ...] = ("/**", '"""')


def estimate_complexity(content: str) -> int:
    """Cyclomatic-like complexity: 1 + count of branch markers."""
    complexity = 1
    for pattern in _COMPLEXITY_PATTERNS:
        complexity += len(pattern.findall(content))
    return complexity


def fragment_complexity(fragment: CodeFragment) -> float:
    """Declared complexity, or an estimate when the chunk source left it out."""
    if fragment.metadata.complexity is not None:
        return fragment.metadata.complexity
    return estimate_complexity(fragment.content)


def is_exported(content: str) -> bool:
    return any(p.search(content) for p in _EXPORT_PATTERNS)


def is_imported(fragment: CodeFragment) -> bool:
    if fragment.kind is FragmentKind.import_:
        return True
    return any(p.search(fragment.content) for p in _IMPORT_PATTERNS)


def has_documentation(content: str) -> bool:
    return any(p.search(content) for p in _DOC_PATTERNS)


def has_doc_markers(content: str) -> bool:
    """Cheap substring check for block doc comments."""
    return any(marker in content for marker in _DOC_MARKERS)
