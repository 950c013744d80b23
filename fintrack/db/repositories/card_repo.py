from typing import Optional, List, Dict, Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.models.card import Card


class CardRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, card_id: str) -> Optional[Card]:
        """Get card by ID."""
        result = await self.db.execute(select(Card).where(Card.id == card_id))
        return result.scalar_one_or_none()

    async def get_by_user(self, user_id: str) -> List[Card]:
        """Get a user's cards, default card first then newest first."""
        result = await self.db.execute(
            select(Card)
            .where(Card.user_id == user_id)
            .order_by(Card.is_default.desc(), Card.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_default(self, user_id: str) -> Optional[Card]:
        result = await self.db.execute(
            select(Card).where(Card.user_id == user_id, Card.is_default.is_(True))
        )
        return result.scalar_one_or_none()

    async def create(self, user_id: str, **fields: Any) -> Card:
        """Create a new card."""
        card = Card(user_id=user_id, used_limit=0, **fields)
        self.db.add(card)
        await self.db.flush()
        await self.db.refresh(card)
        return card

    async def update(self, card: Card, fields: Dict[str, Any]) -> Card:
        for key, value in fields.items():
            setattr(card, key, value)
        await self.db.flush()
        await self.db.refresh(card)
        return card

    async def clear_default(self, user_id: str, exclude_card_id: Optional[str] = None) -> None:
        """Unset the default flag on every card of a user in one statement."""
        stmt = (
            update(Card)
            .where(Card.user_id == user_id, Card.is_default.is_(True))
            .values(is_default=False)
        )
        if exclude_card_id:
            stmt = stmt.where(Card.id != exclude_card_id)
        await self.db.execute(stmt.execution_options(synchronize_session="fetch"))
        await self.db.flush()

    async def delete(self, card: Card) -> None:
        await self.db.delete(card)
        await self.db.flush()
