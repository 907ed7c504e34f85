"""
Type definitions for the object removal pipeline
"""
from enum import Enum


class StrokeMode(str, Enum):
    """Brush modes"""
    DRAW = "draw"
    ERASE = "erase"


class ExportStatus(str, Enum):
    """Final state of one export attempt"""
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EMPTY = "empty"
    FAILED = "failed"
