from sqlalchemy import Column, String, Text, DateTime
from datetime import datetime
from core.db import Base

class LocalState(Base):
    """One persisted JSON blob per logical key (customer-cart, customer-behavior, ...)."""
    __tablename__ = "local_state"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False, default="{}")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<LocalState {self.key}>"
