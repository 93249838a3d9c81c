# api/routers/transfers.py

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query

from netflow.core.logging import log_with_context, DEBUG, ERROR
from netflow.database import ReadCache
from netflow.types import TransferEvent, format_amount
from ..dependencies import get_read_cache, get_logger, get_token_address

router = APIRouter()


def format_transfer(event: TransferEvent) -> Dict[str, Any]:
    return {
        "tx_hash": event.tx_hash,
        "log_index": event.log_index,
        "block_number": event.block_number,
        "from_address": event.from_address,
        "to_address": event.to_address,
        "amount": format_amount(event.amount),
        "direction": event.direction.value,
        "timestamp": event.timestamp.isoformat(),
    }


@router.get("/transfers")
def get_transfers(
    token: str = Depends(get_token_address),
    limit: int = Query(default=10, ge=1, le=1000, description="Number of transfers to return (max 1000)"),
    offset: int = Query(default=0, ge=0),
    read_cache: ReadCache = Depends(get_read_cache),
    logger=Depends(get_logger),
):
    """Recent transfers for a token, newest first"""
    try:
        transfers = read_cache.list_transfers(token, limit=limit, offset=offset)
    except Exception as e:
        log_with_context(logger, ERROR, "Error fetching transfers",
                         token_address=token, error=str(e), exception_type=type(e).__name__)
        raise HTTPException(status_code=500, detail="Failed to fetch transfers")

    data = [format_transfer(t) for t in transfers]
    log_with_context(logger, DEBUG, "Transfers fetched", token_address=token, log_count=len(data))

    return {
        "token": token,
        "count": len(data),
        "limit": limit,
        "offset": offset,
        "transfers": data,
    }
