"""
Error taxonomy for the article voting platform.

Every failed operation raises one of these and leaves no partial state
behind. Callers (the HTTP API, workflow update handlers) translate them
into user-facing responses by class, so each kind stays distinct.
"""

from typing import Optional


class DnnError(Exception):
    """Base class for all platform errors."""

    def __init__(
        self,
        message: str,
        article_id: Optional[str] = None,
        address: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.article_id = article_id
        self.address = address


class Unauthorized(DnnError):
    """Caller lacks the required role or ownership."""


class InvalidState(DnnError):
    """Operation is illegal for the article's current status."""


class AlreadyVoted(DnnError):
    """Voter already cast a vote on this article."""


class AlreadyRegistered(DnnError):
    """Address is already an eligible voter."""


class InsufficientVoters(DnnError):
    """Eligible voter pool is smaller than the required candidate count."""


class VotingClosed(DnnError):
    """Article is not accepting votes (not voting, or deadline passed)."""


class NotReady(DnnError):
    """Article cannot be resolved yet: quorum not met, deadline not passed."""


class TransferFailed(DnnError):
    """Ledger refused or failed the writer fee transfer."""


ERRORS_BY_NAME = {
    cls.__name__: cls
    for cls in (
        Unauthorized,
        InvalidState,
        AlreadyVoted,
        AlreadyRegistered,
        InsufficientVoters,
        VotingClosed,
        NotReady,
        TransferFailed,
    )
}
