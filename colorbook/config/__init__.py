"""Configuration for coloring sessions."""

from .session_config import BrushLimits, SessionConfig, FILL_POLICIES

__all__ = [
    "BrushLimits",
    "SessionConfig",
    "FILL_POLICIES",
]
