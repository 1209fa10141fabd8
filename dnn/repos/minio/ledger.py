"""
Minio implementation of LedgerRepository.

A minimal stand-in for the external token ledger: balances live in the
"ledger-balances" bucket (one document per address, the treasury under its
own key) and applied transfers in "ledger-transfers". The transfer document
is written last and is what makes a transfer_id idempotent.
"""

import logging
from typing import Optional

from pydantic import BaseModel

from dnn.domain import LedgerEntry, TransferArgs, TransferOutcome
from dnn.repositories import LedgerRepository
from .client import MinioClient, MinioRepositoryMixin

TREASURY_KEY = "treasury"


class AccountBalance(BaseModel):
    address: str
    balance: int = 0


class MinioLedgerRepository(LedgerRepository, MinioRepositoryMixin):
    """Ledger balances and transfer log persisted in Minio."""

    def __init__(
        self, client: MinioClient, initial_treasury: int = 1_000_000
    ) -> None:
        self.client = client
        self.logger = logging.getLogger("MinioLedgerRepository")
        self.balances_bucket = "ledger-balances"
        self.transfers_bucket = "ledger-transfers"
        self.ensure_buckets_exist(
            [self.balances_bucket, self.transfers_bucket]
        )

        if self._load_balance(TREASURY_KEY) is None:
            self._store_balance(
                AccountBalance(address=TREASURY_KEY, balance=initial_treasury)
            )

    def _load_balance(self, address: str) -> Optional[AccountBalance]:
        return self.get_json_object(
            bucket_name=self.balances_bucket,
            object_name=address,
            model_class=AccountBalance,
            extra_log_data={"address": address},
        )

    def _store_balance(self, account: AccountBalance) -> None:
        self.put_json_object(
            bucket_name=self.balances_bucket,
            object_name=account.address,
            model=account,
            extra_log_data={"address": account.address},
        )

    def _adjust(self, address: str, delta: int) -> None:
        account = self._load_balance(address) or AccountBalance(
            address=address
        )
        account.balance += delta
        self._store_balance(account)

    def _load_entry(self, transfer_id: str) -> Optional[LedgerEntry]:
        return self.get_json_object(
            bucket_name=self.transfers_bucket,
            object_name=transfer_id,
            model_class=LedgerEntry,
            extra_log_data={"transfer_id": transfer_id},
        )

    async def transfer(self, args: TransferArgs) -> TransferOutcome:
        existing = self._load_entry(args.transfer_id)
        if existing is not None and existing.status == "completed":
            return TransferOutcome(status=existing.status, entry=existing)

        treasury = self._load_balance(TREASURY_KEY)
        if treasury is None or treasury.balance < args.amount:
            self.logger.warning(
                "Transfer refused: insufficient treasury funds",
                extra={
                    "transfer_id": args.transfer_id,
                    "amount": args.amount,
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
        self._adjust(TREASURY_KEY, -args.amount)
        self._adjust(args.to, args.amount)
        self.put_json_object(
            bucket_name=self.transfers_bucket,
            object_name=entry.transfer_id,
            model=entry,
            extra_log_data={"transfer_id": entry.transfer_id},
        )

        self.logger.info(
            "Transfer completed",
            extra={
                "transfer_id": args.transfer_id,
                "to": args.to,
                "amount": args.amount,
            },
        )
        return TransferOutcome(status="completed", entry=entry)

    async def reverse(self, transfer_id: str) -> TransferOutcome:
        entry = self._load_entry(transfer_id)
        if entry is None:
            return TransferOutcome(
                status="failed", reason=f"Unknown transfer {transfer_id}"
            )
        if entry.status == "reversed":
            return TransferOutcome(status="reversed", entry=entry)

        self._adjust(entry.to, -entry.amount)
        self._adjust(TREASURY_KEY, entry.amount)
        entry.status = "reversed"
        self.put_json_object(
            bucket_name=self.transfers_bucket,
            object_name=entry.transfer_id,
            model=entry,
            extra_log_data={"transfer_id": entry.transfer_id},
        )

        self.logger.info(
            "Transfer reversed",
            extra={"transfer_id": transfer_id, "amount": entry.amount},
        )
        return TransferOutcome(status="reversed", entry=entry)

    async def balance_of(self, address: str) -> int:
        account = self._load_balance(address)
        return account.balance if account else 0
