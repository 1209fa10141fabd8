"""
Memory implementation of LedgerRepository.

Stands in for the external token ledger in tests and local runs. Transfers
are paid out of a treasury balance. A transfer_id is applied at most once
unless it has been reversed, in which case it can be applied again.
"""

import logging
from typing import Dict

from dnn.domain import LedgerEntry, TransferArgs, TransferOutcome
from dnn.repositories import LedgerRepository

logger = logging.getLogger(__name__)


class MemoryLedgerRepository(LedgerRepository):
    """Balances and transfer log held in dictionaries."""

    def __init__(self, treasury_balance: int = 1_000_000) -> None:
        self.treasury_balance = treasury_balance
        self.balances: Dict[str, int] = {}
        self.entries: Dict[str, LedgerEntry] = {}

        logger.debug(
            "Initializing MemoryLedgerRepository",
            extra={"treasury_balance": treasury_balance},
        )

    async def transfer(self, args: TransferArgs) -> TransferOutcome:
        existing = self.entries.get(args.transfer_id)
        if existing is not None and existing.status == "completed":
            logger.debug(
                "Transfer already applied, returning original outcome",
                extra={
                    "transfer_id": args.transfer_id,
                    "status": existing.status,
                },
            )
            return TransferOutcome(
                status=existing.status, entry=existing.model_copy()
            )

        if args.amount > self.treasury_balance:
            logger.warning(
                "Transfer refused: insufficient treasury funds",
                extra={
                    "transfer_id": args.transfer_id,
                    "amount": args.amount,
                    "treasury_balance": self.treasury_balance,
                },
            )
            return TransferOutcome(
                status="failed", reason="Insufficient treasury funds"
            )

        entry = LedgerEntry(
            transfer_id=args.transfer_id,
            to=args.to,
            amount=args.amount,
            memo=args.memo,
        )
        self.treasury_balance -= args.amount
        self.balances[args.to] = self.balances.get(args.to, 0) + args.amount
        self.entries[args.transfer_id] = entry

        logger.info(
            "Transfer completed",
            extra={
                "transfer_id": args.transfer_id,
                "to": args.to,
                "amount": args.amount,
            },
        )
        return TransferOutcome(status="completed", entry=entry.model_copy())

    async def reverse(self, transfer_id: str) -> TransferOutcome:
        entry = self.entries.get(transfer_id)
        if entry is None:
            return TransferOutcome(
                status="failed", reason=f"Unknown transfer {transfer_id}"
            )
        if entry.status == "reversed":
            return TransferOutcome(status="reversed", entry=entry.model_copy())

        self.balances[entry.to] = self.balances.get(entry.to, 0) - entry.amount
        self.treasury_balance += entry.amount
        entry.status = "reversed"

        logger.info(
            "Transfer reversed",
            extra={"transfer_id": transfer_id, "amount": entry.amount},
        )
        return TransferOutcome(status="reversed", entry=entry.model_copy())

    async def balance_of(self, address: str) -> int:
        return self.balances.get(address, 0)
