"""Domain models for the Stockroom application."""

from .challenge import Challenge, ChallengePurpose, ChallengeStatus
from .product import Product
from .shop import Shop
from .user import User, UserStatus

__all__ = [
    "Challenge",
    "ChallengePurpose",
    "ChallengeStatus",
    "Product",
    "Shop",
    "User",
    "UserStatus",
]
