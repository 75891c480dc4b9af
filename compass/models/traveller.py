"""
Traveller Model
Customers who sign in to view their bookings
"""

from sqlalchemy import Column, DateTime, String
from compass.models.base import SoftDeleteModel


class Traveller(SoftDeleteModel):
    """Traveller account"""
    __tablename__ = "travellers"

    email = Column(String(254), nullable=False, unique=True, index=True)
    full_name = Column(String(100), nullable=False)
    hashed_password = Column(String(128), nullable=False)

    last_login_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Traveller(email='{self.email}')>"
