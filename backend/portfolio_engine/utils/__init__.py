# backend/portfolio_engine/utils/__init__.py
"""
Utility modules for the portfolio valuation engine.

This package contains cross-cutting utilities used throughout the engine:
- logging: Logging configuration with render id support
- context: Render context management (render ids)
- date_utils: Millisecond timestamp and calendar helpers

Usage:
    from portfolio_engine.utils import setup_logging, get_logger
    from portfolio_engine.utils import render_scope, get_render_id
    from portfolio_engine.utils.date_utils import iso_date
"""

from portfolio_engine.utils.context import (
    get_render_id,
    set_render_id,
    clear_render_id,
    render_scope,
    get_render_context,
    set_render_context,
    clear_render_context,
)
from portfolio_engine.utils.logging import setup_logging, get_logger

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    # Context
    "get_render_id",
    "set_render_id",
    "clear_render_id",
    "render_scope",
    "get_render_context",
    "set_render_context",
    "clear_render_context",
]
