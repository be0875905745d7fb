# trucktrack/models/user.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, UniqueConstraint

from trucktrack.models.base import Base

# Rôles (chaînes, cohérentes avec services/auth.py)
ROLE_ADMIN = "admin"
ROLE_GESTIONNAIRE = "gestionnaire"
ROLE_COMPTABLE = "comptable"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("login", name="uq_users_login"),)

    id = Column(Integer, primary_key=True, index=True)
    login = Column(String(100), nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=ROLE_GESTIONNAIRE)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
