# netflow/database/tables/watched_address.py

from sqlalchemy import Column, String

from ..base import Base
from ..types import EvmAddressType


class DBWatchedAddress(Base):
    __tablename__ = 'watched_addresses'

    address = Column(EvmAddressType(), primary_key=True)
    label = Column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<DBWatchedAddress(address={self.address}, label={self.label})>"
