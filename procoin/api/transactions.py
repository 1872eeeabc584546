"""Transaction email API endpoints.

Three send routes share one operation and differ only in the subject-line
language. The Portuguese route keeps its historical spelling because
clients already call it.
"""

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from procoin.api.dependencies import get_transaction_service
from procoin.errors import ApiError, ErrorCode, UnknownProviderError
from procoin.models.transaction import (
    MailLocale,
    RetryResult,
    SendEmailRequest,
    TransactionRecord,
    TransactionStatus,
)
from procoin.services.transaction_service import TransactionService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Transactions"])


async def _send(service: TransactionService, body: SendEmailRequest, locale: MailLocale) -> JSONResponse:
    try:
        record = await service.send_notification(body, locale)
    except UnknownProviderError as e:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            ErrorCode.UNKNOWN_PROVIDER,
            f"Unknown wallet provider '{e.provider}'",
        )

    if record.status != TransactionStatus.SENT:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message": "Email could not be sent; it will be retried",
                "code": ErrorCode.DISPATCH_FAILED.value,
                "transactionId": str(record.id),
            },
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"message": "Email sent successfully", "transactionId": str(record.id)},
    )


@router.get("/transactions")
async def list_transactions(
    service: TransactionService = Depends(get_transaction_service),
) -> list[TransactionRecord]:
    """List every logged transaction email, newest first."""
    return await service.list_transactions()


@router.post("/transactions/retry")
async def retry_transactions(
    service: TransactionService = Depends(get_transaction_service),
) -> RetryResult:
    """Resend failed transaction emails that still have attempts left."""
    retried, sent = await service.retry_failed()
    return RetryResult(retried=retried, sent=sent)


@router.post("/send-email")
async def send_email(
    body: SendEmailRequest,
    service: TransactionService = Depends(get_transaction_service),
) -> JSONResponse:
    return await _send(service, body, MailLocale.EN)


@router.post("/send-email-bitso-spanish")
async def send_email_spanish(
    body: SendEmailRequest,
    service: TransactionService = Depends(get_transaction_service),
) -> JSONResponse:
    return await _send(service, body, MailLocale.ES)


@router.post("/send-email-bitso-portugusse")
async def send_email_portuguese(
    body: SendEmailRequest,
    service: TransactionService = Depends(get_transaction_service),
) -> JSONResponse:
    return await _send(service, body, MailLocale.PT)
