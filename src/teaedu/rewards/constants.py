"""Fixed reward policy parameters. Not configurable: they are the anti-abuse controls."""

from datetime import timedelta

from teaedu.db.models import RewardType

REWARD_TYPE = RewardType.MODULE_3_COMPLETION
REWARD_QUIZ_ID = "module-3-quiz"
MIN_WALLET_AGE = timedelta(days=7)

# A pending reservation older than this outlived its request
STALE_RESERVATION_AGE = timedelta(minutes=10)
