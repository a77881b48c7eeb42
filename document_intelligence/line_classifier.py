"""
Line classification for recognized text
Splits OCR output into lines and tags each line against declarative rule tables
"""

import re
import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Sequence, Tuple

from .models import RecognizedText

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r'\r\n|\r|\n')


def keyword_pattern(keywords: Iterable[str], flags=re.IGNORECASE) -> re.Pattern:
    """Compile an alternation of keyword fragments (fragments may be regex)"""
    return re.compile('(?:' + '|'.join(keywords) + ')', flags)


@dataclass(frozen=True)
class LineRule:
    """
    A single line predicate

    A line matches when every pattern in `patterns` is found, none of
    `excludes` is found, and the line is at least `min_length` characters.
    """
    tag: str
    patterns: Tuple[re.Pattern, ...]
    excludes: Tuple[re.Pattern, ...] = ()
    min_length: int = 0

    def matches(self, line: str) -> bool:
        if len(line) < self.min_length:
            return False
        if not all(p.search(line) for p in self.patterns):
            return False
        return not any(p.search(line) for p in self.excludes)


@dataclass(frozen=True)
class ClassifiedLine:
    text: str
    tags: FrozenSet[str]

    def has(self, tag: str) -> bool:
        return tag in self.tags


def split_lines(text: str) -> RecognizedText:
    """
    Split recognized text into trimmed, non-empty lines

    Order is preserved; case and punctuation are left untouched.
    """
    if not text:
        return ()
    lines = (line.strip() for line in _LINE_BREAK.split(text))
    return tuple(line for line in lines if line)


def classify_lines(lines: Sequence[str], rules: Sequence[LineRule]) -> List[ClassifiedLine]:
    """Tag every line with the set of rules it satisfies"""
    classified = []
    for line in lines:
        tags = frozenset(rule.tag for rule in rules if rule.matches(line))
        classified.append(ClassifiedLine(text=line, tags=tags))

    tagged = sum(1 for c in classified if c.tags)
    logger.debug(f"Classified {len(classified)} lines, {tagged} tagged")
    return classified


def first_tagged(classified: Sequence[ClassifiedLine], tag: str) -> str:
    """First line carrying `tag`, or an empty string"""
    for line in classified:
        if line.has(tag):
            return line.text
    return ''
