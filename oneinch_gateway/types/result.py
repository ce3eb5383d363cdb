"""
Result type definitions for quotes and transactions

All atomic amounts are kept as the integer strings the aggregator returns;
unit conversion is left to the caller (see ``types.tokens.from_atomic``).
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from .tokens import Token


def _first_present(data: Dict[str, Any], *keys: str) -> Optional[Any]:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class RouteStep:
    """
    One protocol hop in a quote route

    Attributes:
        name: Liquidity source id (e.g. "UNISWAP_V3")
        part: Share of the hop routed through this source, in percent
        from_token: Input token address of the hop
        to_token: Output token address of the hop
    """
    name: str
    part: float
    from_token: Optional[str] = None
    to_token: Optional[str] = None


def parse_route(protocols: Any) -> List[RouteStep]:
    """
    Flatten the nested ``protocols`` field into an ordered list of steps

    Upstream shape is routes -> hops -> splits, each split being a dict with
    ``name``, ``part``, ``fromTokenAddress`` and ``toTokenAddress``.
    """
    steps: List[RouteStep] = []
    if not protocols:
        return steps
    for path in protocols:
        for hop in path or []:
            splits = hop if isinstance(hop, list) else [hop]
            for split in splits:
                if isinstance(split, dict) and "name" in split:
                    steps.append(RouteStep(
                        name=split["name"],
                        part=float(split.get("part", 0)),
                        from_token=split.get("fromTokenAddress"),
                        to_token=split.get("toTokenAddress"),
                    ))
    return steps


@dataclass
class Quote:
    """
    Swap quote result

    Valid only for the instant it was produced; never cached.

    Attributes:
        source: Input token address
        destination: Output token address
        source_amount: Input amount (atomic, as supplied by the caller)
        destination_amount: Output amount (atomic, as computed upstream)
        route: Ordered protocol hops
        estimated_gas: Gas estimate if the aggregator returned one
        source_token: Token info if requested with include_tokens_info
        destination_token: Token info if requested with include_tokens_info
        raw_response: Raw API response data
    """
    source: str
    destination: str
    source_amount: str
    destination_amount: str
    route: List[RouteStep] = field(default_factory=list)
    estimated_gas: Optional[int] = None
    source_token: Optional[Token] = None
    destination_token: Optional[Token] = None
    raw_response: Optional[dict] = None

    @property
    def rate(self) -> Decimal:
        """Atomic output per atomic input"""
        source_amount = Decimal(self.source_amount)
        if source_amount == 0:
            return Decimal(0)
        return Decimal(self.destination_amount) / source_amount

    @classmethod
    def from_api(cls, source: str, destination: str, source_amount: str, data: Dict[str, Any]) -> "Quote":
        """
        Decode a /quote response

        ``dstAmount`` (v6), ``toAmount`` (v5) and ``toTokenAmount`` (v4) are
        all accepted for the output amount.
        """
        destination_amount = _first_present(data, "dstAmount", "toAmount", "toTokenAmount")
        if destination_amount is None:
            raise KeyError("dstAmount")

        gas = _first_present(data, "gas", "estimatedGas", "estimatedGasUsage")
        src_info = _first_present(data, "srcToken", "fromToken")
        dst_info = _first_present(data, "dstToken", "toToken")

        return cls(
            source=source,
            destination=destination,
            source_amount=source_amount,
            destination_amount=str(destination_amount),
            route=parse_route(data.get("protocols")),
            estimated_gas=int(gas) if gas is not None else None,
            source_token=Token.from_api(source, src_info) if isinstance(src_info, dict) else None,
            destination_token=Token.from_api(destination, dst_info) if isinstance(dst_info, dict) else None,
            raw_response=data,
        )

    def __str__(self) -> str:
        return f"Quote({self.source_amount} -> {self.destination_amount}, hops={len(self.route)})"


@dataclass(frozen=True)
class SwapTransaction:
    """
    Unsigned transaction descriptor

    Consumed exactly once by a signer; never cached or replayed.

    Attributes:
        to: Target contract address
        data: Calldata (hex)
        value: Native value in wei
        gas: Gas limit (absent for approval transactions)
        gas_price: Gas price in wei
        from_address: Sender, when the aggregator echoes it
        destination_amount: Expected output for swap transactions
    """
    to: str
    data: str
    value: str = "0"
    gas: Optional[str] = None
    gas_price: Optional[str] = None
    from_address: Optional[str] = None
    destination_amount: Optional[str] = None

    @classmethod
    def from_api(cls, tx: Dict[str, Any], destination_amount: Optional[Any] = None) -> "SwapTransaction":
        if "to" not in tx or "data" not in tx:
            raise KeyError("to" if "to" not in tx else "data")
        return cls(
            to=tx["to"],
            data=tx["data"],
            value=str(tx.get("value", "0")),
            gas=_as_str(_first_present(tx, "gas", "gasLimit")),
            gas_price=_as_str(tx.get("gasPrice")),
            from_address=tx.get("from"),
            destination_amount=_as_str(destination_amount),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Upstream-shaped dict, as handed to a signer"""
        data: Dict[str, Any] = {"to": self.to, "data": self.data, "value": self.value}
        if self.gas is not None:
            data["gas"] = self.gas
        if self.gas_price is not None:
            data["gasPrice"] = self.gas_price
        if self.from_address is not None:
            data["from"] = self.from_address
        return data


@dataclass(frozen=True)
class LiquiditySource:
    """Liquidity source (protocol) the aggregator can route through"""
    id: str
    title: str
    img: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "LiquiditySource":
        return cls(
            id=data["id"],
            title=data.get("title", data["id"]),
            img=_first_present(data, "img", "img_color"),
        )


class SwapPlanStatus(Enum):
    """Outcome of preparing a swap"""
    APPROVAL_REQUIRED = "approval_required"
    SWAP_READY = "swap_ready"


@dataclass
class SwapPlan:
    """
    Result of the allowance-aware swap preparation

    Attributes:
        status: Whether an approval must be signed first
        quote: Quote the plan was built from
        transaction: Swap descriptor (SWAP_READY only)
        approval: Approval descriptor (APPROVAL_REQUIRED only)
        allowance: Allowance observed for the source token, if checked
    """
    status: SwapPlanStatus
    quote: Quote
    transaction: Optional[SwapTransaction] = None
    approval: Optional[SwapTransaction] = None
    allowance: Optional[int] = None

    @property
    def needs_approval(self) -> bool:
        return self.status == SwapPlanStatus.APPROVAL_REQUIRED

    @property
    def expected_output(self) -> Optional[str]:
        if self.transaction and self.transaction.destination_amount is not None:
            return self.transaction.destination_amount
        return self.quote.destination_amount
