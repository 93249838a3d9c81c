# netflow/database/tables/netflow.py

from sqlalchemy import BigInteger, Column

from ...types import NetflowAggregate, ZERO
from ..base import Base
from ..types import DecimalString, EvmAddressType, UTCDateTime


class DBNetflow(Base):
    __tablename__ = 'netflows'

    token_address = Column(EvmAddressType(), primary_key=True)
    cumulative_net = Column(DecimalString(), nullable=False, default=ZERO)
    inflow_total = Column(DecimalString(), nullable=False, default=ZERO)
    outflow_total = Column(DecimalString(), nullable=False, default=ZERO)
    last_block = Column(BigInteger, nullable=False, default=0)
    updated_at = Column(UTCDateTime(), nullable=True)

    def to_aggregate(self) -> NetflowAggregate:
        return NetflowAggregate(
            token_address=self.token_address,
            inflow_total=self.inflow_total,
            outflow_total=self.outflow_total,
            last_block=self.last_block,
            updated_at=self.updated_at,
        )

    def __repr__(self) -> str:
        return f"<DBNetflow(token={self.token_address}, net={self.cumulative_net}, last_block={self.last_block})>"
