from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from app.db.database import Base


class PermissionGrant(Base):
    __tablename__ = "permission_grants"

    id = Column(Integer, primary_key=True, index=True)
    permission = Column(String, nullable=False, unique=True, index=True)
    granted = Column(Boolean, nullable=False, default=False)
    denial_count = Column(Integer, nullable=False, default=0)
    dont_ask_again = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __init__(self, permission, granted=False, denial_count=0, dont_ask_again=False):
        self.permission = permission
        self.granted = granted
        self.denial_count = denial_count
        self.dont_ask_again = dont_ask_again
