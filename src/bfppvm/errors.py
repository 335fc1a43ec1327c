from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


def _build_context(code: str, position: int, *, context: int = 20) -> str:
    start = max(0, position - context)
    end = min(len(code), position + context + 1)
    excerpt = code[start:end]
    caret = ' ' * (position - start) + '^'
    return f"  {start:6d} | {excerpt}\n         | {caret}"


def _hint_for(message: str, *, kind: str) -> Optional[str]:
    msg = message.lower()
    if kind == 'syntax':
        if 'mismatched pair' in msg:
            return 'Loops [] and scopes {} may nest inside each other but must not overlap, e.g. "[{]}".'
        if 'unmatched opening' in msg:
            return 'Add the missing closing delimiter or remove the extra opener.'
        if 'unmatched' in msg:
            return 'Remove the stray closing delimiter or add its opener earlier in the code.'
        if 'nesting depth exceeded' in msg:
            return 'Flatten the program or raise max_nesting_depth in the configuration.'
        return None
    if kind == 'runtime':
        if 'stack overflow' in msg:
            return 'Too many nested {} scopes are open at once; raise max_scope_depth.'
        if 'stack underflow' in msg:
            return 'A "}" ran with no open scope.'
        if 'writing output' in msg:
            return 'Check that the output stream is open and writable.'
        return None
    return None


@dataclass
class BFPPError(Exception):
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class BFPPSyntaxError(BFPPError):
    position: int
    context: str = ''
    related: Optional[int] = None


@dataclass
class BFPPResourceError(BFPPError):
    pass


@dataclass
class BFPPRuntimeError(BFPPError):
    position: Optional[int] = None
    context: str = ''


@dataclass
class BFPPResourceExhausted(BFPPError):
    instructions: int = 0


def make_syntax_error(*, message: str, code: str, position: int, related: Optional[int] = None) -> BFPPSyntaxError:
    ctx = _build_context(code, position) if code else ''
    hint = _hint_for(message, kind='syntax')
    hint_block = f"\nHint: {hint}" if hint else ""
    ctx_block = f"\n{ctx}" if ctx else ""
    return BFPPSyntaxError(
        message=f"SyntaxError: {message} (position {position}){ctx_block}{hint_block}",
        position=position,
        context=ctx,
        related=related,
    )


def make_runtime_error(*, message: str, code: str = '', position: Optional[int] = None) -> BFPPRuntimeError:
    ctx = _build_context(code, position) if code and position is not None else ''
    hint = _hint_for(message, kind='runtime')
    hint_block = f"\nHint: {hint}" if hint else ""
    ctx_block = f"\n{ctx}" if ctx else ""
    where = f" (ip {position})" if position is not None else ""
    return BFPPRuntimeError(
        message=f"RuntimeError: {message}{where}{ctx_block}{hint_block}",
        position=position,
        context=ctx,
    )


def error_positions(error: BFPPError) -> Tuple[int, ...]:
    """Return every source position an error refers to, innermost first."""
    positions = []
    pos = getattr(error, 'position', None)
    if pos is not None:
        positions.append(pos)
    related = getattr(error, 'related', None)
    if related is not None:
        positions.append(related)
    return tuple(positions)


__all__ = [
    'BFPPError',
    'BFPPSyntaxError',
    'BFPPResourceError',
    'BFPPRuntimeError',
    'BFPPResourceExhausted',
    'make_syntax_error',
    'make_runtime_error',
    'error_positions',
]
