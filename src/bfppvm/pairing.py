from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .errors import make_syntax_error

LOOP = 'loop'
SCOPE = 'scope'

_OPENERS = {'[': LOOP, '{': SCOPE}
_CLOSERS = {']': LOOP, '}': SCOPE}
_OPEN_CHAR = {LOOP: '[', SCOPE: '{'}
_CLOSE_CHAR = {LOOP: ']', SCOPE: '}'}


@dataclass(frozen=True)
class JumpMaps:
    loops: Dict[int, int] = field(default_factory=dict)
    scopes: Dict[int, int] = field(default_factory=dict)

    def partner(self, position: int) -> int:
        if position in self.loops:
            return self.loops[position]
        return self.scopes[position]

    @property
    def pairs(self) -> int:
        return (len(self.loops) + len(self.scopes)) // 2


def build_maps(code: str, *, max_depth: int = 1024) -> JumpMaps:
    """
    Pre-calculate the partner of every [ ] and { } delimiter.

    One stack holds (position, family) for both families, so loops and scopes
    may nest inside one another but a closer must match the innermost open
    delimiter of its own family. Raises BFPPSyntaxError on any imbalance, on a
    partially overlapping pair such as "[{]}", or when more than ``max_depth``
    delimiters are open at once. No maps are returned on failure.
    """
    stack: List[Tuple[int, str]] = []
    loops: Dict[int, int] = {}
    scopes: Dict[int, int] = {}

    for pos, ch in enumerate(code):
        family = _OPENERS.get(ch)
        if family is not None:
            if len(stack) >= max_depth:
                raise make_syntax_error(
                    message=f"Nesting depth exceeded (max {max_depth})",
                    code=code,
                    position=pos,
                )
            stack.append((pos, family))
            continue

        family = _CLOSERS.get(ch)
        if family is None:
            continue
        if not stack:
            raise make_syntax_error(message=f"Unmatched '{ch}'", code=code, position=pos)

        open_pos, open_family = stack[-1]
        if open_family != family:
            raise make_syntax_error(
                message=(
                    f"Mismatched pair - found '{ch}' but expected '{_CLOSE_CHAR[open_family]}' "
                    f"(matching open at {open_pos})"
                ),
                code=code,
                position=pos,
                related=open_pos,
            )
        stack.pop()
        target = loops if family == LOOP else scopes
        target[open_pos] = pos
        target[pos] = open_pos

    if stack:
        open_pos, open_family = stack[-1]
        raise make_syntax_error(
            message=f"Unmatched opening '{_OPEN_CHAR[open_family]}'",
            code=code,
            position=open_pos,
        )

    return JumpMaps(loops=loops, scopes=scopes)


__all__ = ['JumpMaps', 'build_maps', 'LOOP', 'SCOPE']
