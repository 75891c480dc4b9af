"""
Agent Member Model
Staff accounts acting on behalf of an agent with an individual permission list
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from compass.models.base import JSONList, SoftDeleteModel


class AgentMember(SoftDeleteModel):
    """Agent member (delegate) account"""
    __tablename__ = "agent_members"

    agent_id = Column(UUID(as_uuid=True), ForeignKey("agents.id"), nullable=False, index=True)

    # Generated login id, unique across all agents
    username = Column(String(26), nullable=False, unique=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    hashed_password = Column(String(128), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    # Granted individually at creation time, not derived from the role
    permissions = Column(JSONList, default=list, nullable=False)

    last_login_at = Column(DateTime(timezone=True), nullable=True)

    agent = relationship("Agent", back_populates="members")

    __table_args__ = (
        Index("ix_agent_member_agent_active", "agent_id", "is_active"),
    )

    def __repr__(self):
        return f"<AgentMember(username='{self.username}', agent_id='{self.agent_id}')>"
