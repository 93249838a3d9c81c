# api/routers/netflow.py

from fastapi import APIRouter, Depends, HTTPException

from netflow.core.logging import log_with_context, ERROR
from netflow.database import ReadCache
from ..dependencies import get_read_cache, get_logger, get_token_address

router = APIRouter()


@router.get("/netflow")
def get_netflow(
    token: str = Depends(get_token_address),
    read_cache: ReadCache = Depends(get_read_cache),
    logger=Depends(get_logger),
):
    """Cumulative netflow of a token. Zero totals when never indexed."""
    try:
        aggregate = read_cache.get_netflow(token)
    except Exception as e:
        log_with_context(logger, ERROR, "Error fetching netflow",
                         token_address=token, error=str(e), exception_type=type(e).__name__)
        raise HTTPException(status_code=500, detail="Failed to fetch netflow")

    return aggregate.to_dict()
