"""Service layer for API token lookups."""
from datetime import datetime, UTC

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.api_token import ApiToken
from schemas.cached_token import TokenIdentity


async def find_active_token(
    db: AsyncSession,
    token: str,
) -> ApiToken | None:
    """
    Find a token row by its bearer string, ignoring expired tokens.

    Args:
        db: Database session.
        token: The raw bearer token.

    Returns:
        ApiToken if it exists and has no expiry or expires in the future, None otherwise.
    """
    now = datetime.now(UTC)
    result = await db.execute(
        select(ApiToken).where(
            ApiToken.token == token,
            or_(ApiToken.expires_at.is_(None), ApiToken.expires_at > now),
        ),
    )
    return result.scalar_one_or_none()


def to_identity(api_token: ApiToken) -> TokenIdentity:
    """Convert an ApiToken row to its cacheable identity."""
    return TokenIdentity(
        id=api_token.id,
        table_access=api_token.table_access,
        expires_at=api_token.expires_at.isoformat() if api_token.expires_at else None,
    )
