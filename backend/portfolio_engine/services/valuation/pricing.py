# backend/portfolio_engine/services/valuation/pricing.py
"""
Asset pricing for the valuation series.

An asset with a price history is priced by interpolating it (flat beyond
both ends). An asset without one falls back to the synthetic policy:

    t <= first acquisition   ->  acquisition unit price
    t >  first acquisition   ->  current quote

Nothing is interpolated between the acquisition price and the current quote:
with no samples in between, any curve drawn there would be invented.
"""

import logging
from decimal import Decimal

from portfolio_engine.models import Asset, Transaction
from portfolio_engine.services.exceptions import NoDataError
from portfolio_engine.services.price_series import value_at
from portfolio_engine.services.valuation.ledger import is_acquisition

logger = logging.getLogger(__name__)


class SyntheticPricePolicy:
    """
    Stand-in prices for an asset that has no price history.

    If the asset has no current quote, the acquisition price is used for
    every instant; if it has no priced acquisition, the quote is.
    """

    def __init__(self, asset: Asset) -> None:
        self.ticker = asset.ticker
        self.current_price = asset.current_price
        self.anchor = _first_priced_acquisition(asset)

    def price_at(self, timestamp: int) -> Decimal:
        """
        Raises:
            NoDataError: If the asset has neither a priced acquisition nor a quote
        """
        anchor_price = self.anchor.unit_price if self.anchor else None
        has_quote = self.current_price is not None and self.current_price > 0

        if anchor_price and timestamp <= self.anchor.timestamp:
            return anchor_price
        if has_quote:
            return self.current_price
        if anchor_price:
            return anchor_price

        raise NoDataError(subject=self.ticker)


class AssetPricer:
    """Prices one asset at arbitrary instants, choosing its source once."""

    def __init__(self, asset: Asset) -> None:
        self.asset = asset
        history = asset.price_history
        self.history = history if history is not None and not history.is_empty else None
        self.policy = None if self.history is not None else SyntheticPricePolicy(asset)

    @property
    def is_synthetic(self) -> bool:
        return self.history is None

    def price_at(self, timestamp: int) -> Decimal:
        """
        Raises:
            NoDataError: If neither the history nor the policy has a value
        """
        if self.history is not None:
            return value_at(self.history, timestamp)
        return self.policy.price_at(timestamp)


def price_at(asset: Asset, timestamp: int) -> Decimal:
    return AssetPricer(asset).price_at(timestamp)


def _first_priced_acquisition(asset: Asset) -> Transaction | None:
    for tx in asset.transactions:
        if is_acquisition(tx) and tx.unit_price:
            return tx
    return None
