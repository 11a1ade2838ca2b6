"""Exclusion glob patterns.

Patterns are matched against the full '/'-separated relative path of an entry.
Syntax:

- ``*`` any run of characters, including '/'
- ``?`` any single character, including '/'
- ``[abc]``, ``[a-z]``, ``[!abc]`` character classes; the first character after
  ``[`` or ``[!`` is always a member, so ``[]]`` matches ']'
- ``**`` only as a whole path component; ``**/`` also matches zero directories

Anything else is literal. A pattern that breaks these rules does not compile.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from dirpack.core.errors import InvalidOptionsError
from dirpack.core.logging import get_logger

from .types import InvalidPatternPolicy

log = get_logger(__name__)


class PatternSyntaxError(ValueError):
    pass


def _translate_class(body: str, negate: bool) -> str:
    items: list[str] = []
    k = 0
    while k < len(body):
        if k + 2 < len(body) and body[k + 1] == "-":
            lo, hi = body[k], body[k + 2]
            if lo > hi:
                raise PatternSyntaxError(f"invalid range {lo}-{hi}")
            items.append(f"{re.escape(lo)}-{re.escape(hi)}")
            k += 3
            continue
        items.append(re.escape(body[k]))
        k += 1
    return "[" + ("^" if negate else "") + "".join(items) + "]"


def translate(pattern: str) -> str:
    """Translate a glob pattern to a regular expression body.

    Raises:
        PatternSyntaxError: pattern is malformed
    """
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            j = i
            while j < n and pattern[j] == "*":
                j += 1
            run = j - i
            if run > 2:
                raise PatternSyntaxError("more than two consecutive '*'")
            if run == 2:
                if i > 0 and pattern[i - 1] != "/":
                    raise PatternSyntaxError("'**' must be a whole path component")
                if j < n and pattern[j] != "/":
                    raise PatternSyntaxError("'**' must be a whole path component")
                if j < n:
                    out.append("(?:.*/)?")
                    i = j + 1
                    continue
            out.append(".*")
            i = j
            continue
        if c == "?":
            out.append(".")
            i += 1
            continue
        if c == "[":
            j = i + 1
            negate = j < n and pattern[j] == "!"
            if negate:
                j += 1
            if j >= n:
                raise PatternSyntaxError("unterminated character class")
            close = pattern.find("]", j + 1)
            if close == -1:
                raise PatternSyntaxError("unterminated character class")
            out.append(_translate_class(pattern[j:close], negate))
            i = close + 1
            continue
        out.append(re.escape(c))
        i += 1
    return "".join(out)


def compile_pattern(pattern: str) -> re.Pattern[str]:
    try:
        return re.compile(translate(pattern), re.DOTALL)
    except re.error as e:
        raise PatternSyntaxError(str(e)) from e


class ExcludeMatcher:
    """A set of compiled exclusion patterns.

    Patterns that fail to compile never match anything under
    InvalidPatternPolicy.IGNORE; under InvalidPatternPolicy.ERROR they are
    rejected with InvalidOptionsError.
    """

    def __init__(
        self,
        patterns: Iterable[str] = (),
        *,
        policy: InvalidPatternPolicy = InvalidPatternPolicy.IGNORE,
    ) -> None:
        self.policy = policy
        self._compiled: list[tuple[str, re.Pattern[str]]] = []
        self.dropped: list[str] = []
        for pattern in patterns:
            try:
                self._compiled.append((pattern, compile_pattern(pattern)))
            except PatternSyntaxError as e:
                if policy == InvalidPatternPolicy.ERROR:
                    raise InvalidOptionsError(
                        f"Invalid exclude pattern {pattern!r}: {e}",
                        "Check glob syntax: *, ?, [...] and '**' as a whole component",
                    ) from None
                log.debug(f"exclude pattern dropped pattern={pattern!r} reason={e}")
                self.dropped.append(pattern)

    @property
    def patterns(self) -> list[str]:
        return [p for p, _rx in self._compiled]

    def first_match(self, rel_path: str) -> str | None:
        for pattern, rx in self._compiled:
            if rx.fullmatch(rel_path):
                return pattern
        return None

    def matches(self, rel_path: str) -> bool:
        return self.first_match(rel_path) is not None

    def __len__(self) -> int:
        return len(self._compiled)
