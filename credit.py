"""
Resident credit points.

Residents earn points when a bin they own is collected and redeem them as a
discount against their bill.
"""
import logging
import math

from errors import ValidationError

logger = logging.getLogger(__name__)

POINTS_PER_KG = 10
RECYCLABLE_POINTS_PER_KG = 15
MIN_REDEMPTION = 50
# 100 points buy 5.00 of discount
DISCOUNT_PER_POINT = 5 / 100


def earn_points(user, weight, recyclable=False):
    """Credit ``user`` for ``weight`` kg of collected waste and return the points."""
    rate = RECYCLABLE_POINTS_PER_KG if recyclable else POINTS_PER_KG
    points = int(math.floor(weight * rate))
    if points <= 0:
        return 0
    user.credit_points = (user.credit_points or 0) + points
    logger.info("User %s earned %d credit points for %.2f kg", user.id, points, weight)
    return points


def redeem_points(user, points):
    if isinstance(points, bool) or not isinstance(points, int):
        raise ValidationError("Points must be a whole number")
    if points < MIN_REDEMPTION:
        raise ValidationError(f"Minimum {MIN_REDEMPTION} points required to redeem")
    if (user.credit_points or 0) < points:
        raise ValidationError("Insufficient credit points")

    user.credit_points -= points
    discount = round(points * DISCOUNT_PER_POINT, 2)
    logger.info("User %s redeemed %d credit points for %.2f", user.id, points, discount)
    return {
        "pointsRedeemed": points,
        "discount": discount,
        "remainingPoints": user.credit_points,
    }
