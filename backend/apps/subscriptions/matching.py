# apps/subscriptions/matching.py

from dataclasses import dataclass, asdict
from decimal import Decimal


@dataclass(frozen=True)
class MatchCriteria:
    """
    Lead filter of a subscription.

    ``None`` means the criterion is unset and matches anything; zero is a
    real bound (``min_score=0`` still requires a score).
    """
    vertical: str | None = None
    risk: str | None = None
    min_score: int | None = None
    max_price: Decimal | None = None
    min_requested_amount: Decimal | None = None

    def matches(self, lead) -> bool:
        if self.vertical is not None and lead.vertical != self.vertical:
            return False
        if self.risk is not None and lead.risk != self.risk:
            return False
        if self.min_score is not None and lead.score < self.min_score:
            return False
        if self.max_price is not None and lead.price > self.max_price:
            return False
        if self.min_requested_amount is not None and lead.requested_amount < self.min_requested_amount:
            return False
        return True

    def to_dict(self) -> dict:
        """Only the criteria that are set."""
        return {key: value for key, value in asdict(self).items() if value is not None}
