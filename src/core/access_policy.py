"""Table visibility policies derived from token identities."""
import json
import logging
from dataclasses import dataclass, field

from models.user_table import CATALOG_VISIBILITIES
from schemas.cached_token import TokenIdentity

logger = logging.getLogger(__name__)

# System tokens that see the whole public catalog regardless of table_access
UNRESTRICTED_TOKEN_IDS = frozenset({"admin-token", "frontend-token"})


@dataclass(frozen=True)
class VisibilityPolicy:
    """
    Resolved access scope for one request.

    Either unrestricted (every public or shared sale/rent table) or restricted
    to an explicit set of table ids. An empty restricted set is a valid policy
    that simply yields no data.
    """

    unrestricted: bool
    table_ids: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def unrestricted_access(cls) -> "VisibilityPolicy":
        """Policy for system tokens."""
        return cls(unrestricted=True)

    @classmethod
    def restricted(cls, table_ids: "set[str] | frozenset[str] | list[str]") -> "VisibilityPolicy":
        """Policy limited to the given table ids."""
        return cls(unrestricted=False, table_ids=frozenset(table_ids))

    @property
    def is_empty(self) -> bool:
        """True when the policy can never match a table."""
        return not self.unrestricted and not self.table_ids

    def allows(self, table_id: str, visibility: str) -> bool:
        """
        Check whether a specific table may be read under this policy.

        Unrestricted policies read public and shared tables only; an explicit
        grant reads the granted tables whatever their visibility.
        """
        if self.unrestricted:
            return visibility in CATALOG_VISIBILITIES
        return table_id in self.table_ids


def parse_table_access(table_access: str | None) -> frozenset[str]:
    """
    Parse a token's serialized table-access list.

    Absent, unparsable, or non-list values yield an empty set rather than an
    error: a token with a broken grant sees nothing.
    """
    if not table_access:
        return frozenset()
    try:
        parsed = json.loads(table_access)
    except ValueError:
        logger.warning("table_access_unparsable value=%r", table_access[:100])
        return frozenset()
    if not isinstance(parsed, list):
        logger.warning("table_access_not_a_list type=%s", type(parsed).__name__)
        return frozenset()
    return frozenset(str(table_id) for table_id in parsed)


def policy_for_identity(identity: TokenIdentity) -> VisibilityPolicy:
    """Derive the visibility policy for a resolved token identity."""
    if identity.id in UNRESTRICTED_TOKEN_IDS:
        return VisibilityPolicy.unrestricted_access()
    return VisibilityPolicy.restricted(parse_table_access(identity.table_access))
