import logging

from .api import run_file, run_string
from .config import DEFAULT_CONFIG, CellWidth, VMConfig
from .errors import (
    BFPPError,
    BFPPResourceError,
    BFPPResourceExhausted,
    BFPPRuntimeError,
    BFPPSyntaxError,
)
from .lexer import filter_code, is_command_char
from .machine import BrainFuckPlusPlusVM, RunResult, RunStatus
from .pairing import JumpMaps, build_maps
from .scopes import PointerContext, ScopeStack, UndoEntry
from .tape import Tape

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'BrainFuckPlusPlusVM',
    'RunResult',
    'RunStatus',
    'VMConfig',
    'CellWidth',
    'DEFAULT_CONFIG',
    'Tape',
    'ScopeStack',
    'PointerContext',
    'UndoEntry',
    'JumpMaps',
    'build_maps',
    'filter_code',
    'is_command_char',
    'run_string',
    'run_file',
    'BFPPError',
    'BFPPSyntaxError',
    'BFPPResourceError',
    'BFPPRuntimeError',
    'BFPPResourceExhausted',
]
