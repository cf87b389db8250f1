"""Reward claim error taxonomy.

Policy rejections (4xx) are user-correctable and their message is shown
verbatim. Infrastructure failures (5xx) keep their detail in the exception
text for the logs and expose only a generic retry message.
"""

from __future__ import annotations

RETRY_LATER_MESSAGE = "Unable to process the reward right now. Please try again later."


class ClaimError(Exception):
    """Base class for every claim failure."""

    status_code: int = 500
    code: str = "claim_error"
    public_message: str = RETRY_LATER_MESSAGE

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.public_message)


# ---------------------------------------------------------------------------
# Policy rejections
# ---------------------------------------------------------------------------


class PolicyRejection(ClaimError):
    status_code = 400
    code = "policy_rejection"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.public_message = message
        super().__init__(self.public_message)


class NotAuthenticated(PolicyRejection):
    status_code = 401
    code = "not_authenticated"
    public_message = "User not authenticated"


class QuizNotCompleted(PolicyRejection):
    code = "quiz_not_completed"
    public_message = "Module 3 quiz not completed"


class AlreadyClaimed(PolicyRejection):
    code = "already_claimed"
    public_message = "Reward already claimed"


class NoWalletConnected(PolicyRejection):
    code = "no_wallet_connected"
    public_message = "No wallet connected. Please connect your wallet first."


class WalletTooNew(PolicyRejection):
    code = "wallet_too_new"

    def __init__(self, days_remaining: int) -> None:
        self.days_remaining = days_remaining
        super().__init__(
            f"Wallet must be connected for at least 7 days. {days_remaining} day(s) remaining."
        )


class WalletAlreadyUsed(PolicyRejection):
    code = "wallet_already_used"
    public_message = "This wallet has already been used to claim this reward"


# ---------------------------------------------------------------------------
# Infrastructure failures
# ---------------------------------------------------------------------------


class ServerMisconfigured(ClaimError):
    code = "server_misconfigured"


class InsufficientDistributorFunds(ClaimError):
    code = "insufficient_distributor_funds"


class ChainUnavailable(ClaimError):
    code = "chain_unavailable"


class TransferFailed(ClaimError):
    code = "transfer_failed"


class TransactionTimeout(ClaimError):
    code = "transaction_timeout"


class UnexpectedClaimError(ClaimError):
    code = "unexpected_error"
