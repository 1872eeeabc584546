"""Transaction email models."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from procoin.models.base import CamelModel

# Column widths in the transactions table
MAX_WALLET_LENGTH = 64
MAX_AMOUNT_LENGTH = 128
MAX_EMAIL_LENGTH = 320


class TransactionStatus(str, Enum):
    """Delivery state of a transaction email."""

    PENDING = "Pending"
    SENT = "Sent"
    FAILED = "Failed"


class MailLocale(str, Enum):
    """Subject-line language for a transaction email."""

    EN = "en"
    ES = "es"
    PT = "pt"


class SendEmailRequest(BaseModel):
    """Inbound payload for a transaction email.

    Key names follow the client contract, which mixes camelCase and
    snake_case, so aliases are declared per field. ``warning`` is treated
    as a flag by truthiness, so clients may send any value for it.
    """

    model_config = ConfigDict(populate_by_name=True)

    wallet: str = Field(..., min_length=1, max_length=MAX_WALLET_LENGTH)
    amount: Union[str, int, float]
    email: str = Field(..., min_length=3, max_length=MAX_EMAIL_LENGTH)
    coin: Optional[str] = None
    network: Optional[str] = None
    wallet_address: Optional[str] = Field(default=None, alias="walletAddress")
    message: Optional[str] = None
    warning: Optional[Any] = None
    localcurrency: Optional[str] = None
    cashapp_tag: Optional[str] = None
    transaction_fee: Optional[Union[str, int, float]] = None
    transaction_id: Optional[str] = None
    recipient_name: Optional[str] = None
    sender_name: Optional[str] = Field(default=None, alias="senderName")

    @field_validator("wallet", "email", "recipient_name", "sender_name")
    @classmethod
    def single_line(cls, v: Optional[str]) -> Optional[str]:
        """Reject line breaks in values that end up in mail headers."""
        if v is not None and ("\r" in v or "\n" in v):
            raise ValueError("Value must not contain line breaks")
        return v

    @model_validator(mode="after")
    def amount_fits(self) -> "SendEmailRequest":
        if len(self.display_amount) > MAX_AMOUNT_LENGTH:
            raise ValueError(f"Amount and coin must be at most {MAX_AMOUNT_LENGTH} characters")
        return self

    @property
    def display_amount(self) -> str:
        """Amount and coin joined as shown in the email and the log."""
        if self.coin:
            return f"{self.amount} {self.coin}"
        return str(self.amount)


class TransactionRecord(CamelModel):
    """A logged transaction email attempt."""

    id: UUID
    wallet: str
    amount: str
    email: str
    date: str
    time: str
    status: TransactionStatus
    attempts: int = 0
    last_error: Optional[str] = None
    created_at: datetime


class RetryResult(CamelModel):
    """Outcome of a dead-letter retry pass."""

    retried: int
    sent: int
