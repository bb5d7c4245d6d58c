from __future__ import annotations

from typing import Optional

from loguru import logger
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.exceptions import NotFoundError, NotOwnerError, ValidationError
from pocketbook.services.database.models.finance import Category, TransactionKind
from pocketbook.services.finance.ledger import parse_kind

# (name, kind, color, icon) seeded the first time a user lists categories
DEFAULT_CATEGORIES = [
    ("Salary", TransactionKind.INCOME, "#10B981", "💰"),
    ("Freelance", TransactionKind.INCOME, "#3B82F6", "💻"),
    ("Investments", TransactionKind.INCOME, "#8B5CF6", "📈"),
    ("Sales", TransactionKind.INCOME, "#06B6D4", "🛒"),
    ("Other income", TransactionKind.INCOME, "#84CC16", "💸"),
    ("Food", TransactionKind.EXPENSE, "#EF4444", "🍽️"),
    ("Transport", TransactionKind.EXPENSE, "#F97316", "🚗"),
    ("Housing", TransactionKind.EXPENSE, "#8B5CF6", "🏠"),
    ("Health", TransactionKind.EXPENSE, "#DC2626", "🏥"),
    ("Education", TransactionKind.EXPENSE, "#2563EB", "📚"),
    ("Leisure", TransactionKind.EXPENSE, "#EA580C", "🎮"),
    ("Shopping", TransactionKind.EXPENSE, "#EC4899", "🛍️"),
    ("Services", TransactionKind.EXPENSE, "#6B7280", "🔧"),
]


async def _owned_categories(db: AsyncSession, owner_id: int) -> list[Category]:
    result = await db.execute(
        select(Category).where(Category.user_id == owner_id).order_by(Category.kind, Category.name)
    )
    return list(result.scalars().all())


async def list_categories(db: AsyncSession, owner_id: int) -> list[Category]:
    categories = await _owned_categories(db, owner_id)
    if categories:
        return categories

    db.add_all(
        Category(user_id=owner_id, name=name, kind=kind, color=color, icon=icon)
        for name, kind, color, icon in DEFAULT_CATEGORIES
    )
    await db.commit()
    logger.info(f"Seeded default categories for user {owner_id}")
    return await _owned_categories(db, owner_id)


async def _ensure_unique_name(db: AsyncSession, owner_id: int, name: str, exclude_id: Optional[int] = None) -> None:
    query = select(Category).where(Category.user_id == owner_id, Category.name == name)
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    if (await db.execute(query)).scalar():
        raise ValidationError("A category with this name already exists")


async def create_category(
    db: AsyncSession,
    owner_id: int,
    name: Optional[str],
    kind,
    color: Optional[str] = None,
    icon: Optional[str] = None,
) -> Category:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    kind = parse_kind(kind)

    await _ensure_unique_name(db, owner_id, name)

    category = Category(user_id=owner_id, name=name, kind=kind)
    if color:
        category.color = color
    if icon:
        category.icon = icon
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category


async def get_category(db: AsyncSession, category_id: int, owner_id: int) -> Category:
    category = await db.get(Category, category_id)
    if not category:
        raise NotFoundError("Category not found")
    if category.user_id != owner_id:
        raise NotOwnerError("Category not found")
    return category


async def update_category(db: AsyncSession, category_id: int, owner_id: int, changes: dict) -> Category:
    category = await get_category(db, category_id, owner_id)

    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise ValidationError("name is required")
        await _ensure_unique_name(db, owner_id, name, exclude_id=category.id)
        category.name = name
    if "kind" in changes:
        category.kind = parse_kind(changes["kind"])
    # empty color/icon keep the current value
    if changes.get("color"):
        category.color = changes["color"]
    if changes.get("icon"):
        category.icon = changes["icon"]

    db.add(category)
    await db.commit()
    await db.refresh(category)
    logger.debug(f"Updated category {category_id} for user {owner_id}")
    return category


async def delete_category(db: AsyncSession, category_id: int, owner_id: int) -> None:
    category = await get_category(db, category_id, owner_id)
    await db.delete(category)
    await db.commit()
