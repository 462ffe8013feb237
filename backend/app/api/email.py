from typing import Optional
import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user
from app.config import get_settings
from app.models.user import User
from app.schemas.email import EmailBatchRequest, EmailBatchResponse, EmailParseRequest, EmailParseResponse
from app.services.email import EmailParser, get_default_parser

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter()


def _parser(strict: Optional[bool], include_raw: bool) -> EmailParser:
    if strict is None and not include_raw:
        return get_default_parser()
    return EmailParser(
        strict_mode=settings.email_strict_mode if strict is None else strict,
        include_raw_data=include_raw,
        confidence_threshold=settings.email_confidence_threshold,
    )


@router.post("/parse", response_model=EmailParseResponse)
async def parse_email(
    payload: EmailParseRequest,
    strict: Optional[bool] = None,
    include_raw: bool = False,
    user: User = Depends(get_current_user),
):
    """Extract flight or hotel details from one confirmation email."""
    return _parser(strict, include_raw).parse_email(payload.subject, payload.body, payload.sender)


@router.post("/parse-batch", response_model=EmailBatchResponse)
async def parse_batch(
    payload: EmailBatchRequest,
    strict: Optional[bool] = None,
    include_raw: bool = False,
    user: User = Depends(get_current_user),
):
    results = _parser(strict, include_raw).parse_emails([e.model_dump() for e in payload.emails])
    parsed = sum(1 for r in results if r.success)
    logger.info(f"User {user.id} parsed {parsed}/{len(results)} emails")
    return {"total": len(results), "parsed": parsed, "results": results}
