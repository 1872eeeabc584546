"""Transaction email flow: record, render, dispatch, and retry failures."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4
from zoneinfo import ZoneInfo

import structlog

from procoin.config import get_settings
from procoin.database import get_pool
from procoin.models.transaction import (
    MailLocale,
    SendEmailRequest,
    TransactionRecord,
    TransactionStatus,
)
from procoin.services.email_service import EmailService
from procoin.services.template_service import TemplateRegistry

logger = structlog.get_logger(__name__)

_RECORD_COLUMNS = "id, wallet, amount, email, date, time, status, attempts, last_error, created_at"


def build_subject(locale: MailLocale, wallet: str, recipient_name: Optional[str]) -> str:
    """Subject line for a transaction email in the requested language."""
    if locale == MailLocale.ES:
        return f"¡Recibiste un depósito de {recipient_name or ''}".rstrip()
    if locale == MailLocale.PT:
        return f"¡Você recebeu um depósito de {recipient_name or ''}".rstrip()
    return f"{wallet} Transaction Confirmation"


def format_timestamps(now: datetime) -> dict[str, str]:
    """Render the four date/time strings used by records and templates.

    Example for 2025-08-18 12:59:07:
        record_date  "Aug 18, 2025"
        record_time  "12:59 PM"
        sortable     "2025-08-18 12:59:07"
        pretty       "Mon, Aug 18 2025 at 12:59 PM"
    """
    return {
        "record_date": now.strftime("%b %d, %Y"),
        "record_time": now.strftime("%I:%M %p"),
        "sortable": now.strftime("%Y-%m-%d %H:%M:%S"),
        "pretty": now.strftime("%a, %b %d %Y at %I:%M %p"),
    }


def build_context(request: SendEmailRequest, timestamps: dict[str, str]) -> dict:
    """Template context for a transaction email."""
    return {
        "amount": request.display_amount,
        "network": request.network,
        "walletAddress": request.wallet_address,
        "date": timestamps["sortable"],
        "prettyDate": timestamps["pretty"],
        "localcurrency": request.localcurrency,
        "transaction_fee": request.transaction_fee,
        "cashapp_tag": request.cashapp_tag,
        "transaction_id": request.transaction_id,
        "senderName": request.sender_name,
        "recipient_name": request.recipient_name,
        "warning": request.message if request.warning else None,
    }


def _row_to_record(row) -> TransactionRecord:
    return TransactionRecord(
        id=row["id"],
        wallet=row["wallet"],
        amount=row["amount"],
        email=row["email"],
        date=row["date"],
        time=row["time"],
        status=TransactionStatus(row["status"]),
        attempts=row["attempts"],
        last_error=row["last_error"],
        created_at=row["created_at"],
    )


class TransactionService:
    """Service for logging and delivering transaction emails."""

    def __init__(self, registry: TemplateRegistry, email_service: Optional[EmailService] = None):
        self.registry = registry
        self.email_service = email_service or EmailService()
        self.settings = get_settings()

    def _now(self) -> datetime:
        return datetime.now(ZoneInfo(self.settings.notification_timezone))

    async def send_notification(
        self,
        request: SendEmailRequest,
        locale: MailLocale = MailLocale.EN,
        now: Optional[datetime] = None,
    ) -> TransactionRecord:
        """Render, record and dispatch one transaction email.

        The record is written as Pending before dispatch and then moved to
        Sent or Failed, so its status always reflects the dispatch outcome.
        Failed records are picked up later by ``retry_failed``.

        Raises:
            UnknownProviderError: If ``request.wallet`` has no template;
                nothing is written in that case
        """
        timestamps = format_timestamps(now or self._now())
        html = self.registry.render(request.wallet, build_context(request, timestamps))
        subject = build_subject(locale, request.wallet, request.recipient_name)

        record_id = uuid4()
        created_at = datetime.now(timezone.utc)
        pool = await get_pool()

        async with pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO transactions
                    (id, wallet, amount, email, date, time, status, subject, html, attempts, created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, 0, $10, $10)
                """,
                record_id,
                request.wallet,
                request.display_amount,
                request.email,
                timestamps["record_date"],
                timestamps["record_time"],
                TransactionStatus.PENDING.value,
                subject,
                html,
                created_at,
            )

        logger.info(
            "transaction_recorded",
            transaction_id=str(record_id),
            wallet=request.wallet,
            locale=locale.value,
        )

        ok, error = await self.email_service.send_html(
            request.email, subject, html, sender_name=request.wallet
        )
        return await self._record_attempt(record_id, ok, error)

    async def list_transactions(self) -> list[TransactionRecord]:
        """Return all transaction records, newest first."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_RECORD_COLUMNS} FROM transactions ORDER BY created_at DESC"
            )

        return [_row_to_record(row) for row in rows]

    async def retry_failed(self, limit: int = 50) -> tuple[int, int]:
        """Resend Failed records that still have attempts left.

        Rows are claimed by moving them back to Pending in the same
        statement that selects them, with SKIP LOCKED, so concurrent retry
        passes never pick up the same record.

        Returns:
            (retried, sent) counts
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                """
                UPDATE transactions
                SET status = $4, updated_at = $5
                WHERE id IN (
                    SELECT id
                    FROM transactions
                    WHERE status = $1 AND attempts < $2
                    ORDER BY created_at ASC
                    LIMIT $3
                    FOR UPDATE SKIP LOCKED
                )
                RETURNING id, wallet, email, subject, html
                """,
                TransactionStatus.FAILED.value,
                self.settings.mail_max_attempts,
                limit,
                TransactionStatus.PENDING.value,
                datetime.now(timezone.utc),
            )

        sent = 0
        for row in rows:
            ok, error = await self.email_service.send_html(
                row["email"], row["subject"], row["html"], sender_name=row["wallet"]
            )
            await self._record_attempt(row["id"], ok, error)
            if ok:
                sent += 1

        if rows:
            logger.info("transaction_retry_cycle", retried=len(rows), sent=sent)

        return len(rows), sent

    async def _record_attempt(
        self, record_id: UUID, ok: bool, error: Optional[str]
    ) -> TransactionRecord:
        status = TransactionStatus.SENT if ok else TransactionStatus.FAILED
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE transactions
                SET status = $1, attempts = attempts + 1, last_error = $2, updated_at = $3
                WHERE id = $4
                RETURNING {_RECORD_COLUMNS}
                """,
                status.value,
                error,
                datetime.now(timezone.utc),
                record_id,
            )

        if ok:
            logger.info("transaction_email_sent", transaction_id=str(record_id))
        else:
            logger.warning("transaction_email_failed", transaction_id=str(record_id), error=error)

        return _row_to_record(row)
