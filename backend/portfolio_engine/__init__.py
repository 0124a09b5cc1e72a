# backend/portfolio_engine/__init__.py
"""
Portfolio valuation engine.

Reconstructs a portfolio's value and invested capital at any past instant,
converts everything into one display currency with the exchange rate in
effect on each date, and normalizes the result for comparison against
benchmark indices.

Packages:
    - services.valuation: ledger replay, pricing, series generation
    - services.analytics: benchmark normalization and settings
    - services.market_data: fetch collaborators (Yahoo Finance, FX APIs)
    - schemas: pydantic input/output boundary
"""

__version__ = "0.1.0"
