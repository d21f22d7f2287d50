"""
Promotion validator.

A code is usable when every rule holds:
  - it matches case-insensitively
  - the promotion is active and now is within [starts_at, expires_at]
  - the adventure is on the allow-list, when the list is non-empty
  - usage_count < usage_limit, when a limit is set

Any failure returns None. The caller shows one generic message, so no
reason is reported back. A failed lookup rolls the session back, which
expires every instance loaded in it.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from adventure_booking.core.logging import get_logger
from adventure_booking.core.metrics import record_promo_validation
from adventure_booking.models.promotion import Promotion

logger = get_logger(__name__)

INVALID_PROMO_MESSAGE = "Invalid or expired promo code"


def normalize_code(code: str) -> str:
    return code.strip().upper()


async def validate_promo_code(
    db: AsyncSession,
    code: str,
    adventure_id: int,
    now: Optional[datetime] = None,
) -> Optional[Promotion]:
    normalized = normalize_code(code)
    if not normalized:
        return None

    now = now or datetime.now(timezone.utc)
    try:
        result = await db.execute(
            select(Promotion).where(
                func.upper(Promotion.code) == normalized,
                Promotion.is_active.is_(True),
                Promotion.starts_at <= now,
                Promotion.expires_at >= now,
            )
        )
        promotion = result.scalar_one_or_none()
    except SQLAlchemyError as e:
        # Leaves no aborted transaction behind for the availability check
        await db.rollback()
        logger.warning("promo_lookup_failed", code=normalized, adventure_id=adventure_id, error=str(e))
        record_promo_validation("error")
        return None

    if promotion is None:
        return _reject(normalized, adventure_id, "not_found_or_expired")

    if promotion.adventure_ids and adventure_id not in promotion.adventure_ids:
        return _reject(normalized, adventure_id, "adventure_not_eligible")

    if promotion.usage_limit is not None and promotion.usage_count >= promotion.usage_limit:
        return _reject(normalized, adventure_id, "usage_limit_reached")

    logger.info("promo_accepted", code=normalized, adventure_id=adventure_id)
    record_promo_validation("accepted")
    return promotion


def _reject(code: str, adventure_id: int, reason: str) -> None:
    logger.info("promo_rejected", code=code, adventure_id=adventure_id, reason=reason)
    record_promo_validation("rejected")
    return None
