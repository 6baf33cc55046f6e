import structlog
from fastapi import HTTPException, Query, status

from core.config import settings
from core.ledger import LedgerError

logger = structlog.get_logger(__name__)


class Pagination:
    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    ):
        self.page = page
        self.limit = limit


def http_error(exc: Exception, *, action: str, **context) -> HTTPException:
    """Map a failure inside a route to the HTTP error returned to the client."""
    if isinstance(exc, LedgerError):
        return HTTPException(status_code=exc.status_code, detail=exc.message)
    logger.exception(f"{action} failed", **context)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to {action.lower()}")
