import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.exceptions import ResourceNotFoundError, PermissionDeniedError
from fintrack.db.repositories.card_repo import CardRepository
from fintrack.db.repositories.expense_repo import ExpenseRepository
from fintrack.models.card import Card
from fintrack.schemas.card import CardCreate, CardUpdate, CardResponse

logger = logging.getLogger(__name__)


class CardService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.card_repo = CardRepository(db)
        self.expense_repo = ExpenseRepository(db)

    async def create(self, user_id: str, data: CardCreate) -> CardResponse:
        if data.is_default:
            await self.card_repo.clear_default(user_id)
        card = await self.card_repo.create(user_id, **data.model_dump())
        logger.info(f"Created card {card.id} for user {user_id}")
        return CardResponse.model_validate(card)

    async def list(self, user_id: str) -> List[CardResponse]:
        """List a user's cards, default card first, then newest first."""
        cards = await self.card_repo.get_by_user(user_id)
        return [CardResponse.model_validate(c) for c in cards]

    async def get_owned(self, user_id: str, card_id: str) -> Card:
        """Load a card, checking it belongs to the user."""
        card = await self.card_repo.get_by_id(card_id)
        if not card:
            raise ResourceNotFoundError(f"Card {card_id} not found")
        if card.user_id != user_id:
            raise PermissionDeniedError(
                "You don't have permission to access this card",
                details={"card_id": card_id},
            )
        return card

    async def get(self, user_id: str, card_id: str) -> CardResponse:
        return CardResponse.model_validate(await self.get_owned(user_id, card_id))

    async def find_default(self, user_id: str) -> Optional[CardResponse]:
        card = await self.card_repo.get_default(user_id)
        return CardResponse.model_validate(card) if card else None

    async def update(self, user_id: str, card_id: str, data: CardUpdate) -> CardResponse:
        card = await self.get_owned(user_id, card_id)
        fields = data.model_dump(exclude_unset=True)
        # Limits and flags can't be nulled out; only optional descriptive fields can
        fields = {
            k: v for k, v in fields.items()
            if v is not None or k in ("last_four_digits", "total_limit")
        }
        if fields.get("is_default") is True:
            await self.card_repo.clear_default(user_id, exclude_card_id=card_id)
        card = await self.card_repo.update(card, fields)
        return CardResponse.model_validate(card)

    async def remove(self, user_id: str, card_id: str) -> None:
        card = await self.get_owned(user_id, card_id)
        await self.card_repo.delete(card)
        logger.info(f"Removed card {card_id} for user {user_id}")

    async def set_default(self, user_id: str, card_id: str) -> CardResponse:
        """Make a card the user's only default card.

        All other defaults are cleared with a single UPDATE in the same
        transaction before the flag is set; the partial unique index on
        (user_id) WHERE is_default rejects any concurrent second default.
        """
        card = await self.get_owned(user_id, card_id)
        await self.card_repo.clear_default(user_id, exclude_card_id=card_id)
        card = await self.card_repo.update(card, {"is_default": True})
        logger.info(f"Card {card_id} is now the default card for user {user_id}")
        return CardResponse.model_validate(card)

    async def recalculate_used_limit(self, user_id: str, card_id: str) -> CardResponse:
        """Set a card's used limit to the sum of its linked expenses."""
        card = await self.get_owned(user_id, card_id)
        card = await self.sync_used_limit(card)
        return CardResponse.model_validate(card)

    async def recalculate_all_used_limits(self, user_id: str) -> List[CardResponse]:
        cards = await self.card_repo.get_by_user(user_id)
        return [CardResponse.model_validate(await self.sync_used_limit(c)) for c in cards]

    async def sync_used_limit(self, card: Card) -> Card:
        """Store the sum of the card's linked expenses as its used limit."""
        total_used = await self.expense_repo.sum_by_card(card.user_id, card.id)
        return await self.card_repo.update(card, {"used_limit": max(0, total_used)})
