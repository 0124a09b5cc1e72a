# backend/portfolio_engine/utils/context.py
"""
Render context management for the valuation engine.

A "render" is one invocation of the chart pipeline (valuation series plus
benchmark normalization) triggered by the consuming UI. Every log line
emitted while a render is in progress carries its render id, so the
data-quality warnings of one render (missing FX rates, empty price series)
can be grouped together.

Uses Python's contextvars so the id follows the call stack without being
threaded through every function signature.

Usage:
    from portfolio_engine.utils.context import render_scope, get_render_id

    with render_scope() as render_id:
        points = generator.generate(...)
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator

# =============================================================================
# CONTEXT VARIABLES
# =============================================================================

_render_id_var: ContextVar[str | None] = ContextVar("render_id", default=None)

# Free-form metadata about the current render (display currency, window, ...)
_render_context_var: ContextVar[dict[str, Any]] = ContextVar("render_context", default={})


# =============================================================================
# RENDER ID
# =============================================================================

def get_render_id() -> str | None:
    """Return the id of the render in progress, or None outside a render."""
    return _render_id_var.get()


def set_render_id(render_id: str) -> None:
    _render_id_var.set(render_id)


def clear_render_id() -> None:
    _render_id_var.set(None)


@contextmanager
def render_scope(render_id: str | None = None, **metadata: Any) -> Iterator[str]:
    """
    Run a block as one render.

    Nested scopes keep the outer id so that a chart build which also
    normalizes benchmarks logs under a single id.

    Args:
        render_id: Explicit id to use (default: reuse the outer id or a new uuid4)
        **metadata: Values stored in the render context for the block

    Yields:
        The active render id
    """
    outer = _render_id_var.get()
    active = render_id or outer or uuid.uuid4().hex[:12]
    id_token = _render_id_var.set(active)
    ctx = _render_context_var.get().copy()
    ctx.update(metadata)
    ctx_token = _render_context_var.set(ctx)
    try:
        yield active
    finally:
        _render_context_var.reset(ctx_token)
        _render_id_var.reset(id_token)


# =============================================================================
# EXTENDED CONTEXT
# =============================================================================

def get_render_context() -> dict[str, Any]:
    """
    Get the full render context dictionary.

    Returns:
        Copy of the metadata stored for the current render.
    """
    return _render_context_var.get().copy()


def set_render_context(key: str, value: Any) -> None:
    ctx = _render_context_var.get().copy()
    ctx[key] = value
    _render_context_var.set(ctx)


def clear_render_context() -> None:
    _render_context_var.set({})
