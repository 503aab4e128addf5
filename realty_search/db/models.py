"""
SQLAlchemy ORM Models
Tables owned by the search subsystem.
"""

from sqlalchemy import BigInteger, Column, String, TIMESTAMP
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class SyncStateRecord(Base):
    """
    Durable sync cursor.

    One row per synced collection, rewritten after every imported batch.
    """
    __tablename__ = 'search_sync_state'

    id = Column(String(64), primary_key=True, comment='Collection name')
    last_synced_at = Column(BigInteger, nullable=False, server_default='0',
                            comment='Watermark change time (epoch seconds)')
    last_property_id = Column(BigInteger, nullable=False, server_default='0',
                              comment='Watermark listing id at last_synced_at')
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return (
            f"<SyncStateRecord(id={self.id}, last_synced_at={self.last_synced_at}, "
            f"last_property_id={self.last_property_id})>"
        )
