from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.economy.catalog.types import PurchaseTarget, TargetKind


class WalletBalanceResponse(BaseModel):
    user_id: int
    primary: int = Field(ge=0)
    bonus: int = Field(ge=0)
    total: int = Field(ge=0)
    currency: str


class WalletTransactionResponse(BaseModel):
    id: int
    kind: str
    delta: int
    primary_delta: int
    bonus_delta: int
    description: str
    primary_balance_after: int
    bonus_balance_after: int
    purchase_record_id: UUID | None = None
    pending_payment_id: UUID | None = None
    created_at: datetime


class WalletTransactionListResponse(BaseModel):
    user_id: int
    transactions: list[WalletTransactionResponse]


class WalletAdjustRequest(BaseModel):
    amount: int
    description: str = Field(min_length=1, max_length=256)
    to_bonus: bool = False
    idempotency_key: str | None = Field(default=None, min_length=1, max_length=96)


class WalletMutationResponse(BaseModel):
    transaction_id: int | None = None
    kind: str
    delta: int
    primary_delta: int
    bonus_delta: int
    idempotent_replay: bool
    balance: WalletBalanceResponse


class PurchaseTargetRequest(BaseModel):
    kind: TargetKind
    content_id: UUID
    season_id: UUID | None = None
    episode_id: UUID | None = None

    def as_target(self) -> PurchaseTarget:
        return PurchaseTarget(
            kind=self.kind,
            content_id=self.content_id,
            season_id=self.season_id,
            episode_id=self.episode_id,
        )


class WalletPurchaseRequest(BaseModel):
    user_id: int = Field(gt=0)
    target: PurchaseTargetRequest


class PurchaseResponse(BaseModel):
    record_id: UUID
    user_id: int
    target_kind: str
    content_id: UUID
    season_id: UUID | None = None
    episode_id: UUID | None = None
    price_paid: int
    currency: str
    payment_method: str
    status: str
    purchased_at: datetime
    snapshot_episode_ids: list[UUID] = Field(default_factory=list)
    balance: WalletBalanceResponse | None = None


class PurchaseListResponse(BaseModel):
    user_id: int
    purchases: list[PurchaseResponse]


class PurchaseRefundResponse(BaseModel):
    record_id: UUID
    user_id: int
    status: str
    refunded_amount: int
    idempotent_replay: bool
    balance: WalletBalanceResponse | None = None


class AccessCheckRequest(BaseModel):
    user_id: int | None = Field(default=None, gt=0)
    content_id: UUID
    episode_id: UUID | None = None


class AccessDecisionResponse(BaseModel):
    allowed: bool
    reason: str
    message: str | None = None


class EpisodeAccessResponse(BaseModel):
    episode_id: UUID
    season_id: UUID
    episode_number: int
    is_free: bool
    allowed: bool
    reason: str


class SeriesAccessSummaryResponse(BaseModel):
    content_id: UUID
    access_type: str
    total_episodes: int = Field(ge=0)
    unlocked_episodes: int = Field(ge=0)
    free_episodes: int = Field(ge=0)
    total_seasons: int = Field(ge=0)
    episodes: list[EpisodeAccessResponse]


class UserRegisterRequest(BaseModel):
    phone_number: str = Field(min_length=6, max_length=32)
    username: str | None = Field(default=None, max_length=64)
    role: str = Field(default="USER", pattern="^(USER|CREATOR|ADMIN)$")


class UserRegisterResponse(BaseModel):
    user_id: int
    phone_number: str
    role: str
    created: bool
    balance: WalletBalanceResponse


class WalletTopupRequest(BaseModel):
    user_id: int = Field(gt=0)
    amount: int = Field(gt=0)


class ContentPaymentRequest(BaseModel):
    user_id: int = Field(gt=0)
    target: PurchaseTargetRequest


class PaymentInitiationResponse(BaseModel):
    payment_id: UUID
    external_ref: str
    purpose: str
    amount: int
    currency: str
    redirect_link: str
