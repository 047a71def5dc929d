import logging

from sqlalchemy import func, update
from sqlalchemy.orm import Session

import models
from errors import ConflictError, InsufficientPointsError, NotFoundError
from workflow import volunteer_stats

logger = logging.getLogger(__name__)

MAX_CLAIM_ATTEMPTS = 3

REWARDS = [
    {"id": "water-bottle", "title": "Reusable Bottle", "description": "Eco-friendly stainless bottle", "cost": 120, "sponsor": "GreenCo"},
    {"id": "tshirt", "title": "Eco Tee", "description": "Organic cotton volunteer t-shirt", "cost": 200, "sponsor": "EarthWear"},
    {"id": "voucher", "title": "Local Cafe Voucher", "description": "Free sustainable coffee voucher", "cost": 300, "sponsor": "BeanCycle"},
    {"id": "tree", "title": "Tree Planting Slot", "description": "Sponsor a sapling planting", "cost": 450, "sponsor": "PlantMore"},
]


def catalog():
    return [dict(reward) for reward in REWARDS]


def find_reward(reward_id):
    for reward in REWARDS:
        if reward["id"] == reward_id:
            return reward
    raise NotFoundError("Reward not found")


def balance(db: Session, user_id: str) -> dict:
    earned = volunteer_stats(db, user_id)["eco_points"]
    spent = (
        db.query(func.coalesce(func.sum(models.RewardClaim.cost), 0))
        .filter(models.RewardClaim.user_id == user_id)
        .scalar()
    )
    return {"eco_points": earned, "spent": spent, "available": max(earned - spent, 0)}


def claim(db: Session, user_id: str, reward_id: str) -> models.RewardClaim:
    reward = find_reward(reward_id)

    for _ in range(MAX_CLAIM_ATTEMPTS):
        user = db.query(models.User).filter(models.User.id == user_id).first()
        if user is None:
            raise NotFoundError("User not found")
        seen_version = user.claim_version

        available = balance(db, user.id)["available"]
        if available < reward["cost"]:
            db.rollback()
            logger.warning(
                "Claim of %s refused for %s: %d available, %d needed",
                reward["id"], user.id, available, reward["cost"],
            )
            raise InsufficientPointsError("Not enough points to claim this reward")

        # Matches nothing if another claim for this user committed since the balance read
        result = db.execute(
            update(models.User)
            .where(models.User.id == user.id, models.User.claim_version == seen_version)
            .values(claim_version=models.User.claim_version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            break
        db.rollback()
        logger.info("Claim of %s by %s raced another claim, rechecking balance", reward["id"], user_id)
    else:
        raise ConflictError("Too many concurrent claims, please retry")

    now = models.utcnow()
    reward_claim = models.RewardClaim(
        user_id=user_id,
        reward_id=reward["id"],
        title=reward["title"],
        cost=reward["cost"],
        sponsor=reward.get("sponsor"),
        status="pending",
        created_at=now,
        updated_at=now,
    )
    db.add(reward_claim)
    db.commit()
    db.refresh(reward_claim)
    logger.info("Reward %s claimed by %s", reward["id"], user_id)
    return reward_claim


def list_claims(db: Session, user_id: str, limit: int = 50):
    return (
        db.query(models.RewardClaim)
        .filter(models.RewardClaim.user_id == user_id)
        .order_by(models.RewardClaim.created_at.desc())
        .limit(limit)
        .all()
    )
