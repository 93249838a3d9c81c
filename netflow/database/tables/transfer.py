# netflow/database/tables/transfer.py

from sqlalchemy import CheckConstraint, Column, Index, Integer, BigInteger, String, UniqueConstraint

from ...types import Direction, TransferEvent
from ..base import Base
from ..types import DecimalString, EvmAddressType, EvmHashType, UTCDateTime


class DBTransfer(Base):
    __tablename__ = 'transfers'

    id = Column(Integer, primary_key=True, autoincrement=True)
    block_number = Column(BigInteger, nullable=False, index=True)
    tx_hash = Column(EvmHashType(), nullable=False)
    log_index = Column(Integer, nullable=False)
    token_address = Column(EvmAddressType(), nullable=False, index=True)
    from_address = Column(EvmAddressType(), nullable=False, index=True)
    to_address = Column(EvmAddressType(), nullable=False, index=True)
    amount = Column(DecimalString(), nullable=False)
    direction = Column(String(3), nullable=False)
    timestamp = Column(UTCDateTime(), nullable=False)

    __table_args__ = (
        UniqueConstraint('tx_hash', 'log_index', 'token_address', name='uq_transfers_identity'),
        CheckConstraint("direction IN ('IN', 'OUT')", name='ck_transfers_direction'),
        Index('idx_transfers_token_block', 'token_address', 'block_number'),
    )

    def to_event(self) -> TransferEvent:
        return TransferEvent(
            block_number=self.block_number,
            tx_hash=self.tx_hash,
            log_index=self.log_index,
            token_address=self.token_address,
            from_address=self.from_address,
            to_address=self.to_address,
            amount=self.amount,
            direction=Direction(self.direction),
            timestamp=self.timestamp,
        )

    def __repr__(self) -> str:
        return (f"<DBTransfer(tx={self.tx_hash[:10]}..., log_index={self.log_index}, "
                f"token={self.token_address[:10]}..., amount={self.amount}, direction={self.direction})>")
