"""
Resolver module.
Determines which destination directory an authenticated user maps to by
checking the configured tables in order.
"""
import logging
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

from errors import QueryError, ResolutionError
from membership_store import MembershipStore
from table_rule import TableRule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Matched:
    """The user was found in a table; serve from that table's destination."""
    destination: str
    table: str


@dataclass(frozen=True)
class Unmatched:
    """The user is in none of the tables; the default destination applies."""


ResolutionResult = Union[Matched, Unmatched]


@dataclass(frozen=True)
class ResolutionContext:
    """Everything needed to route one request."""
    identity: str
    rules: Tuple[TableRule, ...]
    default_destination: str
    location: str

    def destination_for(self, result: ResolutionResult) -> str:
        """Return the matched destination, or the default for Unmatched."""
        if isinstance(result, Matched):
            return result.destination
        return self.default_destination


class Resolver:
    """Looks an identity up across an ordered list of tables."""

    def __init__(self, store: MembershipStore):
        """
        Initialize the resolver.

        Args:
            store: The membership store used to open one session per resolution
        """
        self.store = store

    def resolve(self, identity: str, rules: Sequence[TableRule]) -> ResolutionResult:
        """
        Find the first rule whose table lists the identity.
        Tables after the first match are never queried.

        Args:
            identity: The authenticated user name
            rules: Ordered table rules

        Returns:
            Matched for the first table containing the identity, otherwise Unmatched

        Raises:
            StoreConnectionError: If no session can be opened
            ResolutionError: If any table's query fails
        """
        if not rules:
            return Unmatched()

        with self.store.session() as session:
            for rule in rules:
                try:
                    count = session.count_members(rule.table, identity)
                except QueryError as e:
                    logger.error("Membership query failed for table %s: %s", rule.table, e.cause)
                    raise ResolutionError(rule.table, e) from e

                if count:
                    logger.debug("User %r found in %s", identity, rule.table)
                    return Matched(rule.destination, rule.table)

        return Unmatched()
