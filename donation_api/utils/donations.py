"""Read-side helpers over the donations table."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models

CENTS = Decimal("0.01")


def sum_donations(
    db: Session,
    user: models.User,
    *,
    status: models.DonationStatus = models.DonationStatus.SUCCESS,
) -> Decimal:
    """Return the total ``amount`` of ``user``'s donations with ``status``, in cents."""

    total = (
        db.query(func.coalesce(func.sum(models.Donation.amount), 0))
        .filter(models.Donation.user_id == user.id)
        .filter(models.Donation.status == status.value)
        .scalar()
    )
    # Backends without a native decimal type hand back a float.
    return Decimal(str(total or 0)).quantize(CENTS)
