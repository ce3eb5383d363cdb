"""
Request option definitions for quote and swap operations
"""

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class QuoteOptions:
    """
    Optional quote parameters

    Attributes:
        slippage_percent: Tolerated price movement, in (0, 50]
        max_route_parts: Upper bound on route splits (upstream ``mainRouteParts``)
        fee_percent: Partner fee percentage, in [0, 3]
        protocols: Comma-separated liquidity source whitelist
        include_tokens_info: Ask for token info in the response
        include_protocols: Ask for the route in the response
        include_gas: Ask for a gas estimate in the response
    """
    slippage_percent: Optional[float] = None
    max_route_parts: Optional[int] = None
    fee_percent: Optional[float] = None
    protocols: Optional[str] = None
    include_tokens_info: bool = False
    include_protocols: bool = True
    include_gas: bool = True

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.slippage_percent is not None:
            params["slippage"] = str(self.slippage_percent)
        if self.max_route_parts is not None:
            params["mainRouteParts"] = str(self.max_route_parts)
        if self.fee_percent is not None:
            params["fee"] = str(self.fee_percent)
        if self.protocols:
            params["protocols"] = self.protocols
        if self.include_tokens_info:
            params["includeTokensInfo"] = "true"
        if self.include_protocols:
            params["includeProtocols"] = "true"
        if self.include_gas:
            params["includeGas"] = "true"
        return params


DEFAULT_SWAP_SLIPPAGE_PERCENT = 1.0


@dataclass
class SwapOptions(QuoteOptions):
    """
    Optional swap parameters

    Slippage defaults to 1% when not given.

    Attributes:
        receiver: Recipient of the output tokens (defaults to the sender)
        referrer: Referrer address for partner fees
        allow_partial_fill: Allow the swap to fill partially
        disable_estimate: Skip the upstream balance/allowance simulation
        permit: EIP-2612 permit calldata for gasless approval
    """
    receiver: Optional[str] = None
    referrer: Optional[str] = None
    allow_partial_fill: bool = False
    disable_estimate: bool = False
    permit: Optional[str] = None

    def to_params(self) -> Dict[str, str]:
        params = super().to_params()
        params.pop("includeGas", None)
        params.setdefault("slippage", str(DEFAULT_SWAP_SLIPPAGE_PERCENT))
        if self.receiver:
            params["receiver"] = self.receiver
        if self.referrer:
            params["referrer"] = self.referrer
        if self.allow_partial_fill:
            params["allowPartialFill"] = "true"
        if self.disable_estimate:
            params["disableEstimate"] = "true"
        if self.permit:
            params["permit"] = self.permit
        return params
