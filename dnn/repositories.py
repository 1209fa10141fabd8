"""
Repository interfaces defined as Protocols.

All repository operations in this module follow these principles:

- **Idempotency**: All methods are designed to be idempotent and safe for
  retry. Saving the same entity twice, or repeating a transfer with the
  same transfer_id, has no additional effect.

- **Saga Pattern Support**: The ledger transfer that pays a writer can be
  compensated with a reversal, so payout and status change commit or fail
  together.

- **Workflow Safety**: All operations are safe to call from deterministic
  workflow contexts. Non-deterministic operations (like ID generation) are
  explicitly delegated to activities.

- **Domain Objects**: Methods accept and return domain objects or
  primitives, never framework-specific types.

In Temporal workflow contexts, these protocols are implemented by workflow
proxies that delegate to activities for durability and proper error
handling.
"""

from typing import List, Optional, Protocol, runtime_checkable

from dnn.domain import (
    Article,
    Role,
    RoleAssignment,
    TransferArgs,
    TransferOutcome,
)


@runtime_checkable
class ArticleRepository(Protocol):
    """Stores articles together with their voter assignment and votes."""

    async def get(self, article_id: str) -> Optional[Article]:
        """Retrieve an article by ID.

        Args:
            article_id: Unique article identifier

        Returns:
            Article if found, None otherwise

        Implementation Notes:
        - Must be idempotent: multiple calls return same result
        - Should handle missing articles gracefully (return None)
        - Returned objects must not share state with storage: mutating
          them has no effect until save() is called
        """
        ...

    async def save(self, article: Article) -> None:
        """Save the complete article aggregate.

        Implementation Notes:
        - Must be idempotent: saving same article state is safe
        - Stores assignment and votes atomically with the article
        """
        ...

    async def generate_id(self) -> str:
        """Generate a unique article identifier.

        This operation is non-deterministic and must be called from
        workflow activities, not directly from workflow code.
        """
        ...


@runtime_checkable
class RoleRepository(Protocol):
    """Address to role-set lookups for the platform."""

    async def get(self, address: str) -> Optional[RoleAssignment]:
        """Retrieve the roles held by an address, None if it has none."""
        ...

    async def save(self, assignment: RoleAssignment) -> None:
        """Replace the role set stored for assignment.address."""
        ...

    async def list_addresses_with_role(self, role: Role) -> List[str]:
        """Return every address holding role, sorted ascending.

        Implementation Notes:
        - Ordering must be stable so voter selection is reproducible
        """
        ...


@runtime_checkable
class LedgerRepository(Protocol):
    """Token ledger holding balances; transfers are paid by the treasury.

    The ledger is an external collaborator. DNN only needs to pay the
    writer fee, check balances and undo a payment it could not commit.
    """

    async def transfer(self, args: TransferArgs) -> TransferOutcome:
        """Transfer args.amount from the treasury to args.to.

        Returns:
            TransferOutcome with status 'completed' or 'failed' (with a
            reason, e.g. insufficient treasury funds).

        Implementation Notes:
        - Must be idempotent: repeating a completed transfer_id returns the
          original outcome and never moves funds twice
        - A reversed transfer_id may be applied again, so a resolve that
          was compensated can be retried with the same id
        """
        ...

    async def reverse(self, transfer_id: str) -> TransferOutcome:
        """Compensate a completed transfer, returning funds to the treasury.

        Implementation Notes:
        - Must be idempotent: reversing twice has no further effect
        - Returns status 'failed' if the transfer is unknown
        """
        ...

    async def balance_of(self, address: str) -> int:
        """Return the token balance of address (0 if unknown)."""
        ...
