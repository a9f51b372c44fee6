from dataclasses import dataclass

from scanorder.errors import validation_error
from scanorder.storage import LocalStorage

LOYALTY_KEY = "loyalty"


@dataclass(frozen=True)
class Reward:
    code: str
    name: str
    points: int


REWARDS = {
    r.code: r for r in (
        Reward("FREE_APPETIZER", "Free Appetizer", 200),
        Reward("TEN_PERCENT_OFF", "10% Off Your Order", 350),
        Reward("FREE_DESSERT", "Free Dessert", 450),
    )
}

# (threshold, tier) highest first
TIERS = ((1000, "Platinum"), (500, "Gold"), (200, "Silver"), (0, "Bronze"))


def tier_for(points: int) -> str:
    for threshold, name in TIERS:
        if points >= threshold:
            return name
    return "Bronze"


class LoyaltyStore:
    def __init__(self, storage: LocalStorage):
        self.storage = storage
        data = storage.get_json(LOYALTY_KEY, {}) or {}
        self._points = int(data.get("points", 0))
        self._redeemed: list[str] = list(data.get("redeemed", []))

    def _save(self) -> None:
        self.storage.set_json(LOYALTY_KEY, {"points": self._points, "redeemed": self._redeemed})

    @property
    def points(self) -> int:
        return self._points

    @property
    def tier(self) -> str:
        return tier_for(self._points)

    @property
    def redeemed(self) -> list[str]:
        return list(self._redeemed)

    def add_points(self, points: int) -> int:
        if points <= 0:
            raise validation_error("points to add must be positive")
        self._points += points
        self._save()
        return self._points

    def redeem(self, code: str) -> Reward:
        reward = REWARDS.get(code)
        if reward is None:
            raise validation_error(f"Unknown reward: {code}")
        if self._points < reward.points:
            raise validation_error(f"Not enough loyalty points to redeem {reward.name}")
        self._points -= reward.points
        self._redeemed.append(reward.code)
        self._save()
        return reward
