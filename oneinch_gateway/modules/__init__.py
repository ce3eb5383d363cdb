"""
Functional modules for AggregatorClient

Provides high-level operations:
- SwapWorkflow: Quote, allowance check, approval or swap, submission
- PriceMonitor: Quote polling with rate alerts
- PortfolioTracker: Wallet valuation in a quote token
"""

from .swap import SwapWorkflow, TransactionSigner
from .market import PriceMonitor, PriceAlert
from .portfolio import (
    BalanceProvider,
    Portfolio,
    PortfolioPosition,
    PortfolioTracker,
    Web3BalanceProvider,
)

__all__ = [
    "SwapWorkflow",
    "TransactionSigner",
    "PriceMonitor",
    "PriceAlert",
    "BalanceProvider",
    "Portfolio",
    "PortfolioPosition",
    "PortfolioTracker",
    "Web3BalanceProvider",
]
