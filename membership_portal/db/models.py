from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import declarative_base
import datetime as dt

Base = declarative_base()


class StoredItem(Base):
    """One key/value slot of the durable local storage surface."""
    __tablename__ = "stored_items"

    key = Column(String(100), primary_key=True, index=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow)
