"""Strategies for matching a Paystack transaction back to a local order.

Matchers are tried in order of precedence: explicit order ID from the
transaction metadata, then order number from metadata, then the stored
Paystack reference.
"""

from dataclasses import dataclass

from src.schemas.paystack import PaystackTransaction


@dataclass(frozen=True)
class MatchCriterion:
    """Column/value pair that selects an order row."""

    matcher: str
    column: str
    value: str


class OrderMatcher:
    """Base matcher. Subclasses pick one identifier out of a transaction."""

    name: str = ""
    column: str = ""

    def identifier(self, transaction: PaystackTransaction) -> str | int | None:
        raise NotImplementedError

    def criterion(self, transaction: PaystackTransaction) -> MatchCriterion | None:
        """Build the lookup criterion, or None when the identifier is absent."""
        value = self.identifier(transaction)
        if value is None or value == "":
            return None
        return MatchCriterion(matcher=self.name, column=self.column, value=str(value))


class OrderIdMatcher(OrderMatcher):
    name = "order_id"
    column = "id"

    def identifier(self, transaction: PaystackTransaction) -> str | int | None:
        return transaction.metadata.order_id


class OrderNumberMatcher(OrderMatcher):
    name = "order_number"
    column = "order_number"

    def identifier(self, transaction: PaystackTransaction) -> str | int | None:
        return transaction.metadata.order_number


class ReferenceMatcher(OrderMatcher):
    name = "reference"
    column = "payment_intent_id"

    def identifier(self, transaction: PaystackTransaction) -> str | int | None:
        return transaction.reference


DEFAULT_MATCHERS: tuple[OrderMatcher, ...] = (
    OrderIdMatcher(),
    OrderNumberMatcher(),
    ReferenceMatcher(),
)


def match_criteria(
    transaction: PaystackTransaction,
    matchers: tuple[OrderMatcher, ...] = DEFAULT_MATCHERS,
) -> list[MatchCriterion]:
    """Return the applicable criteria for a transaction, highest precedence first."""
    criteria = []
    for matcher in matchers:
        criterion = matcher.criterion(transaction)
        if criterion is not None:
            criteria.append(criterion)
    return criteria
