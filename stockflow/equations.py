from __future__ import annotations

"""
Equation identifier scanning.

This is a lexical pass, not a parser: it finds the names an equation refers to
without checking that the equation is well formed. Steps:

1. Quoted substrings ("..." or '...') are lifted out first and replaced by a
   placeholder that cannot itself scan as a name; their contents are kept as
   identifiers. Quoting lets a name contain spaces or punctuation.
2. The remainder is scanned for runs that start with a letter (of any script)
   or underscore and continue with letters, digits, underscores or spaces. A
   run glued to a preceding word character or dot is not a name start (the
   ``e5`` in ``1e5``); dotted continuations (``Math.sin``) are captured whole.
3. Reserved math-function names and namespaced tokens (containing a dot) are
   dropped.

Multi-word names are matched with inner spaces, so ``birth rate * x`` yields
``{"birth rate", "x"}``.
"""

import re
from typing import AbstractSet, FrozenSet, Iterable, List, Optional, Set

# Functions offered by the equation editor (java.lang.Math)
MATH_FUNCTIONS: FrozenSet[str] = frozenset({
    "sin", "cos", "tan", "asin", "acos", "atan", "atan2", "sinh", "cosh", "tanh",
    "exp", "log", "log10", "sqrt", "cbrt", "abs", "ceil", "floor", "round", "pow",
    "max", "min", "signum", "toRadians", "toDegrees", "random", "hypot", "expm1",
    "log1p", "copySign", "nextUp", "nextDown", "ulp", "IEEEremainder", "rint",
    "getExponent", "scalb", "fma",
})

_QUOTED_RE = re.compile(r'"([^"]*)"|\'([^\']*)\'')
_NAME_RE = re.compile(r"(?<![\w.])[^\W\d][\w \t]*(?:\.[^\W\d][\w \t]*)*")
# NUL never appears in typed equations and is neither a word char nor a dot
_PLACEHOLDER = "\x00"
_NAMESPACE_SEP = "."


class EquationScanner:
    """Extract referenced identifiers from equation text.

    Parameters
    ----------
    reserved : Optional[Iterable[str]]
        Names never reported as identifiers. Defaults to `MATH_FUNCTIONS`.
    """

    def __init__(self, reserved: Optional[Iterable[str]] = None):
        self.reserved: FrozenSet[str] = frozenset(MATH_FUNCTIONS if reserved is None else reserved)

    def _lift_quotes(self, text: str, quoted: List[str]) -> str:
        def _replace(match: "re.Match[str]") -> str:
            body = match.group(1) if match.group(1) is not None else match.group(2)
            quoted.append(body)
            return f" {_PLACEHOLDER} "

        return _QUOTED_RE.sub(_replace, text)

    def extract(self, text: Optional[str]) -> Set[str]:
        if not text:
            return set()
        quoted: List[str] = []
        residual = self._lift_quotes(text, quoted)

        tokens = [m.group(0).strip() for m in _NAME_RE.finditer(residual)]
        tokens.extend(q.strip() for q in quoted)

        return {
            tok for tok in tokens
            if tok and tok not in self.reserved and _NAMESPACE_SEP not in tok
        }

    __call__ = extract


_DEFAULT_SCANNER = EquationScanner()


def extract_identifiers(text: Optional[str], reserved: Optional[AbstractSet[str]] = None) -> Set[str]:
    """Return the set of identifiers referenced by `text`.

    >>> sorted(extract_identifiers("a + b * sin(c)"))
    ['a', 'b', 'c']
    """
    scanner = _DEFAULT_SCANNER if reserved is None else EquationScanner(reserved)
    return scanner.extract(text)
