from sqlalchemy import Column, String, DateTime, Integer

from recipe_api.database import Base, utcnow


class User(Base):
    """
    Minimal user account. Accounts are provisioned by the identity service;
    this table only anchors request history rows.
    """
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=True)
    nickname = Column(String(100), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<User(id={self.id}, nickname='{self.nickname}')>"
