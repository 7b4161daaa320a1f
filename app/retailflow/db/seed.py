from sqlalchemy import select

from app.retailflow.core.config import settings
from app.retailflow.core.security import get_password_hash
from app.retailflow.db.models import Category, User
from app.retailflow.services.rbac import ROLE_ADMIN


def _default_category_names() -> list[str]:
    return [name.strip() for name in settings.DEFAULT_CATEGORIES.split(",") if name.strip()]


def _get_or_create_categories(db):
    existing = {category.name for category in db.execute(select(Category)).scalars().all()}
    for name in _default_category_names():
        if name in existing:
            continue
        db.add(Category(name=name))


def _get_or_create_admin(db):
    user = db.execute(select(User).where(User.username == settings.ADMIN_USERNAME)).scalars().first()
    if user:
        return user
    user = User(
        username=settings.ADMIN_USERNAME,
        email=settings.ADMIN_EMAIL,
        full_name="Store Administrator",
        hashed_password=get_password_hash(settings.ADMIN_PASSWORD),
        role=ROLE_ADMIN,
        must_change_password=True,
        is_active=True,
    )
    db.add(user)
    return user


def run_seed(db):
    _get_or_create_categories(db)
    _get_or_create_admin(db)
    db.commit()


if __name__ == "__main__":
    from app.retailflow.db.session import SessionLocal

    session = SessionLocal()
    try:
        run_seed(session)
    finally:
        session.close()
