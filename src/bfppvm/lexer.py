import re

from typing import Union

from .config import COMMANDS, COMMENT_CHAR


def is_command_char(ch: str, commands: str = COMMANDS) -> bool:
    return len(ch) == 1 and ch in commands


def _strip_comments(code: str, comment_char: str) -> str:
    return re.sub(re.escape(comment_char) + r'[^\n]*', '', code)


def filter_code(source: Union[str, bytes], *, comment_char: str = COMMENT_CHAR, extra_commands: str = '') -> str:
    """
    Reduce raw BF++ source to canonical code.

    Everything from the comment character to the end of the line is dropped,
    then every character outside the command alphabet (whitespace included).
    """
    if isinstance(source, (bytes, bytearray)):
        source = bytes(source).decode('utf-8', errors='replace')
    commands = COMMANDS + extra_commands
    code = _strip_comments(source, comment_char)
    return ''.join(ch for ch in code if ch in commands)


def line_of(source: str, position: int, *, comment_char: str = COMMENT_CHAR, extra_commands: str = '') -> int:
    """Map a canonical-code position back to a 1-based line in the raw source."""
    commands = COMMANDS + extra_commands
    seen = -1
    line = 1
    in_comment = False
    for ch in source:
        if ch == '\n':
            line += 1
            in_comment = False
            continue
        if in_comment:
            continue
        if ch == comment_char:
            in_comment = True
            continue
        if ch in commands:
            seen += 1
            if seen == position:
                return line
    return line
