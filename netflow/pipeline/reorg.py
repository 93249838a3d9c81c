# netflow/pipeline/reorg.py
"""
Reorg handling.

Blocks are only indexed once they are ``confirmations`` deep, so a reorg
shallower than that never reaches storage. Deeper reorgs are not detected;
a policy that can roll back would implement ``rollback_to``.
"""
from abc import ABC, abstractmethod
from typing import Optional


class ReorgPolicy(ABC):

    @abstractmethod
    def safe_head(self, head: int) -> int:
        """Highest block number that may be indexed given the chain head."""
        pass

    def rollback_to(self, cursor: int) -> Optional[int]:
        """Cursor to rewind to after a detected reorg, or None to keep it."""
        return None


class ConfirmationDepthPolicy(ReorgPolicy):
    def __init__(self, confirmations: int):
        if confirmations < 0:
            raise ValueError(f"confirmations must be >= 0, got {confirmations}")
        self.confirmations = confirmations

    def safe_head(self, head: int) -> int:
        return max(head - self.confirmations, 0)
