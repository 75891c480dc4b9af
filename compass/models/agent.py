"""
Agent Model
Travel agents own packages, destinations and their agent members
"""

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship
from compass.models.base import SoftDeleteModel


class Agent(SoftDeleteModel):
    """Agent account (tenant owner)"""
    __tablename__ = "agents"

    email = Column(String(254), nullable=False, unique=True, index=True)
    full_name = Column(String(100), nullable=False)
    hashed_password = Column(String(128), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    members = relationship("AgentMember", back_populates="agent")

    def __repr__(self):
        return f"<Agent(email='{self.email}', full_name='{self.full_name}')>"
