"""Tablut game engine."""

from .square import (
    Square, RookTables, SQUARE_LIST, SIZE,
    NORTH, EAST, SOUTH, WEST, DIRECTIONS,
    THRONE, THRONE_AREA,
    sq, parse_square,
)
from .board import Board, Move, Side, Piece, mv
from .engine import Engine, INFTY, WINNING_VALUE, WILL_WIN_VALUE
from .config import Settings

__all__ = [
    # Geometry
    'Square', 'RookTables', 'SQUARE_LIST', 'SIZE',
    'NORTH', 'EAST', 'SOUTH', 'WEST', 'DIRECTIONS',
    'THRONE', 'THRONE_AREA',
    'sq', 'parse_square',
    # Board and game
    'Board', 'Move', 'Side', 'Piece', 'mv',
    'Engine', 'INFTY', 'WINNING_VALUE', 'WILL_WIN_VALUE',
    # Configuration
    'Settings',
]
