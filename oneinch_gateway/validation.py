"""
Local parameter validation

Runs before any request is paced or sent, so malformed calls never cost an
upstream round-trip.
"""

from typing import Optional, Union

from web3 import Web3

from .errors import InvalidParameters
from .types import QuoteOptions, SwapOptions

MAX_SLIPPAGE_PERCENT = 50.0
MAX_FEE_PERCENT = 3.0
MAX_UINT256 = 2 ** 256 - 1


def validate_address(value: Optional[str], field: str) -> str:
    """
    Check that value is a well-formed EVM address

    Lowercase and uppercase hex are accepted as-is; mixed case must carry a
    valid EIP-55 checksum.
    """
    if not value:
        raise InvalidParameters.invalid(field, value, "address is required")
    if not isinstance(value, str) or not value.startswith("0x") or not Web3.is_address(value):
        raise InvalidParameters.invalid(field, value, "not a well-formed address")
    digits = value[2:]
    if digits != digits.lower() and digits != digits.upper() and not Web3.is_checksum_address(value):
        raise InvalidParameters.invalid(field, value, "invalid EIP-55 checksum")
    return value


def validate_amount(value: Union[str, int], field: str = "amount") -> str:
    """
    Check that value is a positive atomic amount and normalize it to str

    Accepts ints and decimal-digit strings; rejects zero, signs, decimals,
    exponents and bools.
    """
    if isinstance(value, bool):
        raise InvalidParameters.invalid(field, value, "must be a positive integer string")
    if isinstance(value, int):
        if value <= 0:
            raise InvalidParameters.invalid(field, value, "must be greater than zero")
        if value > MAX_UINT256:
            # repr() of a huge int can itself exceed the int string-length limit
            raise InvalidParameters.invalid(field, f"<{value.bit_length()}-bit int>", "exceeds uint256")
        return str(value)
    if isinstance(value, str):
        text = value.strip()
    else:
        raise InvalidParameters.invalid(field, value, "must be a positive integer string")

    if not text.isdigit() or not text.isascii():
        raise InvalidParameters.invalid(field, value, "must be a positive integer string")
    # Strip before int() so padded input never hits the int string-length limit
    digits = text.lstrip("0")
    if not digits:
        raise InvalidParameters.invalid(field, value, "must be greater than zero")
    if len(digits) > 78 or int(digits) > MAX_UINT256:
        raise InvalidParameters.invalid(field, f"{digits[:20]}... ({len(digits)} digits)", "exceeds uint256")
    return digits


def validate_pair(source: str, destination: str) -> None:
    validate_address(source, "source")
    validate_address(destination, "destination")
    if source.lower() == destination.lower():
        raise InvalidParameters.invalid("destination", destination, "must differ from source")


def validate_options(options: QuoteOptions) -> None:
    slippage = options.slippage_percent
    if slippage is not None and not (0 < slippage <= MAX_SLIPPAGE_PERCENT):
        raise InvalidParameters.invalid(
            "slippage_percent", slippage, f"must be in (0, {MAX_SLIPPAGE_PERCENT:g}]"
        )

    parts = options.max_route_parts
    if parts is not None and (isinstance(parts, bool) or not isinstance(parts, int) or parts <= 0):
        raise InvalidParameters.invalid("max_route_parts", parts, "must be a positive integer")

    fee = options.fee_percent
    if fee is not None and not (0 <= fee <= MAX_FEE_PERCENT):
        raise InvalidParameters.invalid("fee_percent", fee, f"must be in [0, {MAX_FEE_PERCENT:g}]")

    if isinstance(options, SwapOptions):
        if options.receiver is not None:
            validate_address(options.receiver, "receiver")
        if options.referrer is not None:
            validate_address(options.referrer, "referrer")
