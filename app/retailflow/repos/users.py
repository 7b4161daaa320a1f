from sqlalchemy import func, or_, select

from app.retailflow.db.models import User


class UserRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, user_id):
        return self.db.get(User, user_id)

    def list_users(
        self,
        *,
        role: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ):
        stmt = select(User)
        count_stmt = select(func.count()).select_from(User)

        if role:
            normalized_role = role.strip().upper()
            stmt = stmt.where(func.upper(User.role) == normalized_role)
            count_stmt = count_stmt.where(func.upper(User.role) == normalized_role)

        if is_active is not None:
            stmt = stmt.where(User.is_active.is_(is_active))
            count_stmt = count_stmt.where(User.is_active.is_(is_active))

        if search:
            pattern = f"%{search.strip()}%"
            search_filter = or_(User.username.ilike(pattern), User.email.ilike(pattern), User.full_name.ilike(pattern))
            stmt = stmt.where(search_filter)
            count_stmt = count_stmt.where(search_filter)

        stmt = stmt.order_by(User.username.asc())
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        rows = self.db.execute(stmt).scalars().all()
        total = self.db.execute(count_stmt).scalar_one()
        return rows, total

    def get_by_username_or_email(self, identifier: str):
        stmt = select(User).where((User.username == identifier) | (User.email == identifier))
        return self.db.execute(stmt).scalars().first()

    def exists_with_username_or_email(self, username: str, email: str) -> bool:
        stmt = select(func.count()).select_from(User).where((User.username == username) | (User.email == email))
        return self.db.execute(stmt).scalar_one() > 0

    def create(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def save(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user
