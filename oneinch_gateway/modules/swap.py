"""
Swap Module

Allowance-aware swap preparation on top of AggregatorClient.

The module never holds keys: finished descriptors are handed to an external
TransactionSigner for signing and broadcasting.
"""

import logging
from typing import Any, Dict, Optional, Protocol, Union, TYPE_CHECKING, runtime_checkable

if TYPE_CHECKING:
    from ..api import AggregatorClient

from ..errors import GatewayError, SignerError
from ..types import (
    QuoteOptions,
    SwapOptions,
    SwapPlan,
    SwapPlanStatus,
    SwapTransaction,
    is_native_token,
)
from ..validation import validate_address, validate_amount

logger = logging.getLogger(__name__)


@runtime_checkable
class TransactionSigner(Protocol):
    """
    External wallet collaborator

    ``send_transaction`` receives the upstream-shaped descriptor
    (``to``, ``data``, ``value``, optionally ``gas`` / ``gasPrice``), signs it,
    broadcasts it, and returns the transaction hash.
    """

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        ...


class SwapWorkflow:
    """
    Quote -> allowance check -> approval or swap

    Usage:
        workflow = SwapWorkflow(client)
        plan = await workflow.prepare(src, dst, "1000000", wallet)
        if plan.needs_approval:
            await workflow.submit(plan.approval, signer)
            plan = await workflow.prepare(src, dst, "1000000", wallet)
        tx_hash = await workflow.submit(plan.transaction, signer)
    """

    def __init__(self, client: "AggregatorClient"):
        """
        Initialize swap workflow

        Args:
            client: AggregatorClient instance
        """
        self._client = client

    async def prepare(
        self,
        source: str,
        destination: str,
        amount: Union[str, int],
        wallet_address: str,
        options: Optional[SwapOptions] = None,
    ) -> SwapPlan:
        """
        Prepare a swap for signing

        Args:
            source: Source token address
            destination: Destination token address
            amount: Amount in atomic units
            wallet_address: Wallet that will sign
            options: Swap options (slippage defaults to 1%)

        Returns:
            SwapPlan with either an approval or a swap descriptor

        Raises:
            GatewayError: Any gateway failure, unchanged
        """
        options = options or SwapOptions()
        amount = validate_amount(amount)
        validate_address(wallet_address, "wallet_address")

        quote_options = QuoteOptions(
            max_route_parts=options.max_route_parts,
            fee_percent=options.fee_percent,
            protocols=options.protocols,
        )
        quote = await self._client.get_quote(source, destination, amount, quote_options)

        allowance = None
        if not is_native_token(source):
            allowance = await self._client.get_allowance(source, wallet_address)
            if allowance < int(amount):
                logger.info(
                    f"Allowance {allowance} < {amount} for {source}, approval required"
                )
                approval = await self._client.build_approval(source)
                return SwapPlan(
                    status=SwapPlanStatus.APPROVAL_REQUIRED,
                    quote=quote,
                    approval=approval,
                    allowance=allowance,
                )
            logger.debug(f"Token {source} already approved (allowance: {allowance})")

        transaction = await self._client.build_swap(source, destination, amount, wallet_address, options)
        return SwapPlan(
            status=SwapPlanStatus.SWAP_READY,
            quote=quote,
            transaction=transaction,
            allowance=allowance,
        )

    async def submit(self, transaction: SwapTransaction, signer: TransactionSigner) -> str:
        """
        Hand a descriptor to the signer

        Returns:
            Transaction hash

        Raises:
            SignerError: Signer raised or returned no hash
        """
        try:
            tx_hash = await signer.send_transaction(transaction.to_dict())
        except GatewayError:
            raise
        except Exception as e:
            logger.error(f"Signer failed for tx to {transaction.to}: {e}")
            raise SignerError.failed(str(e), e) from e

        if not tx_hash:
            raise SignerError.failed("signer returned no transaction hash")

        logger.info(f"Transaction submitted: {tx_hash}")
        return tx_hash
