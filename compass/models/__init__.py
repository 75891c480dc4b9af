"""
Database Models
"""

from compass.models.base import BaseModel, SoftDeleteModel, TimestampMixin, UUIDMixin, SoftDeleteMixin
from compass.models.agent import Agent
from compass.models.agent_member import AgentMember
from compass.models.traveller import Traveller

__all__ = [
    "BaseModel",
    "SoftDeleteModel",
    "TimestampMixin",
    "UUIDMixin",
    "SoftDeleteMixin",
    "Agent",
    "AgentMember",
    "Traveller",
]
