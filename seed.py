import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from config import get_settings
from database import session_scope
from models import Category


logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    {"name": "Food & Dining", "icon": "🍔", "color": "#EF4444"},
    {"name": "Transportation", "icon": "🚗", "color": "#F59E0B"},
    {"name": "Shopping", "icon": "🛍️", "color": "#10B981"},
    {"name": "Entertainment", "icon": "🎬", "color": "#6366F1"},
    {"name": "Bills & Utilities", "icon": "💡", "color": "#8B5CF6"},
    {"name": "Healthcare", "icon": "🏥", "color": "#EC4899"},
    {"name": "Education", "icon": "📚", "color": "#14B8A6"},
    {"name": "Other", "icon": "📦", "color": "#6B7280"},
]


def seed_default_categories(session: Session) -> tuple[int, int]:
    """Insert the shared categories, refreshing icon/color of existing ones.

    Returns ``(created, updated)``. Running it again never duplicates rows.
    """
    created = 0
    updated = 0
    for default in DEFAULT_CATEGORIES:
        existing = session.scalar(
            select(Category).where(
                Category.name == default["name"],
                Category.user_id.is_(None),
                Category.is_default.is_(True),
            )
        )
        if existing:
            existing.icon = default["icon"]
            existing.color = default["color"]
            updated += 1
            logger.info(f"seed_updated: name={default['name']}")
            continue
        session.add(
            Category(
                name=default["name"],
                icon=default["icon"],
                color=default["color"],
                is_default=True,
                user_id=None,
            )
        )
        created += 1
        logger.info(f"seed_created: name={default['name']}")
    session.flush()
    return created, updated


def main() -> None:
    logging.basicConfig(level=get_settings().log_level)
    with session_scope() as session:
        created, updated = seed_default_categories(session)
    logger.info(f"seed_completed: created={created} updated={updated}")


if __name__ == "__main__":
    main()
