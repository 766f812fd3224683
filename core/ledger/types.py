"""
원장 데이터 모델

계좌(고객/사무 계정 태그드 변형), 서브상품, 거래 요청/검증/영수증,
EOD 실행 결과 등 원장 전체에서 공유하는 타입 정의.

부호 규약 (원장 전체 단일 규약):
    대변(C) = +금액, 차변(D) = -금액
    고객 예금 관점: 고객 계좌에 대변 기표하면 잔액 증가.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from core.constants import LedgerLimits
from core.types import (
    AccountKind,
    AccountStatus,
    DrCrFlag,
    EodStatus,
    SubProductStatus,
    TranStatus,
    TranType,
)


def round_amount(value: Decimal) -> Decimal:
    """금액을 소수 2자리로 반올림 (ROUND_HALF_UP)"""
    return value.quantize(LedgerLimits.AMOUNT_QUANT, rounding=ROUND_HALF_UP)


def signed_amount(dr_cr: DrCrFlag, amount: Decimal) -> Decimal:
    """차/대 구분을 부호 있는 잔액 변동분으로 변환

    대변 +, 차변 -
    """
    return amount if dr_cr == DrCrFlag.C else -amount


# =========================================================================
# 카탈로그
# =========================================================================


@dataclass(frozen=True)
class SubProduct:
    """서브상품 (카탈로그 경계, 원장에서는 읽기 전용)

    interest_rate는 연이율(%) 표기. 예: 3.65 → 연 3.65%
    """

    sub_product_code: str
    sub_product_name: str
    product_type_code: str  # 고객 계좌번호 9번째 자리 (1~6)
    cum_gl_num: str
    currency: str
    interest_rate: Decimal = Decimal("0")
    interest_bearing: bool = False
    overdraft_allowed: bool = False
    status: SubProductStatus = SubProductStatus.ACTIVE


# =========================================================================
# 계좌 (태그드 변형)
# =========================================================================


@dataclass(frozen=True)
class CustomerDetails:
    """고객 계좌 고유 속성"""

    cust_id: int
    sub_product_code: str
    interest_increment: Decimal = Decimal("0")


@dataclass(frozen=True)
class OfficeDetails:
    """사무 계정 고유 속성"""

    reconciliation_required: bool = False


AccountDetails = CustomerDetails | OfficeDetails


@dataclass(frozen=True)
class Account:
    """계좌

    공통 속성 + kind별 details 변형.
    kind는 details 타입에서 유도되므로 둘이 어긋날 수 없음.
    """

    account_no: str
    account_name: str
    currency: str
    gl_num: str
    status: AccountStatus
    open_date: date
    details: AccountDetails
    close_date: date | None = None

    @property
    def kind(self) -> AccountKind:
        """details 타입에서 유도한 계정 종류"""
        if isinstance(self.details, CustomerDetails):
            return AccountKind.CUSTOMER
        return AccountKind.OFFICE

    @property
    def is_postable(self) -> bool:
        """전기 가능 여부 (ACTIVE만 허용)"""
        return self.status == AccountStatus.ACTIVE

    @property
    def cust_id(self) -> int | None:
        if isinstance(self.details, CustomerDetails):
            return self.details.cust_id
        return None

    @property
    def sub_product_code(self) -> str | None:
        if isinstance(self.details, CustomerDetails):
            return self.details.sub_product_code
        return None


@dataclass(frozen=True)
class Balance:
    """계좌 잔액 스냅샷"""

    account_no: str
    current_balance: Decimal
    available_balance: Decimal
    interest_accrued: Decimal
    version: int
    last_tran_id: str | None = None


# =========================================================================
# 거래
# =========================================================================


@dataclass(frozen=True)
class TransactionLineRequest:
    """거래 라인 요청 (호출자 입력)

    lcy_amt는 참고값. 엔진이 fcy_amt × exchange_rate로 재계산하여 비교.
    """

    account_no: str
    dr_cr: DrCrFlag
    tran_ccy: str
    fcy_amt: Decimal
    exchange_rate: Decimal = Decimal("1")
    lcy_amt: Decimal | None = None
    reference: str | None = None


@dataclass(frozen=True)
class TransactionRequest:
    """거래 입력 요청"""

    value_date: date
    lines: list[TransactionLineRequest]
    narration: str | None = None
    tran_type: TranType = TranType.MANUAL


@dataclass(frozen=True)
class AccrualInfo:
    """이자 경과 정보 (EOD 생성 거래에만 첨부)"""

    account_no: str
    accrual_date: date
    balance: Decimal
    interest_rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class ValidatedLine:
    """검증된 거래 라인

    lcy_amt: 엔진이 재계산한 기준통화 금액
    posting_amount: 계좌 잔액에 반영할 금액 (계좌 통화 기준)
    """

    line_no: int
    account_no: str
    dr_cr: DrCrFlag
    tran_ccy: str
    fcy_amt: Decimal
    exchange_rate: Decimal
    lcy_amt: Decimal
    posting_amount: Decimal
    gl_num: str
    reference: str | None = None

    @property
    def delta(self) -> Decimal:
        """계좌 잔액 변동분 (부호 포함)"""
        return signed_amount(self.dr_cr, self.posting_amount)

    @property
    def gl_delta(self) -> Decimal:
        """GL 잔액 변동분 (기준통화, 부호 포함)"""
        return signed_amount(self.dr_cr, self.lcy_amt)


@dataclass
class ValidatedTransaction:
    """검증 완료 거래 (1회용)

    PostingEngine이 tran_id를 부여하는 순간 소모됨.
    같은 객체로 다시 전기하면 TransactionAlreadyPostedError.
    """

    value_date: date
    narration: str | None
    lines: list[ValidatedLine]
    lcy_currency: str
    tran_type: TranType = TranType.MANUAL
    accrual: AccrualInfo | None = None
    status: TranStatus = TranStatus.ENTRY
    tran_id: str | None = None

    @property
    def account_nos(self) -> list[str]:
        """관련 계좌 목록 (중복 제거, 정렬)"""
        return sorted({line.account_no for line in self.lines})

    @property
    def total_debit(self) -> Decimal:
        return sum(
            (line.lcy_amt for line in self.lines if line.dr_cr == DrCrFlag.D),
            Decimal("0"),
        )

    @property
    def total_credit(self) -> Decimal:
        return sum(
            (line.lcy_amt for line in self.lines if line.dr_cr == DrCrFlag.C),
            Decimal("0"),
        )


@dataclass(frozen=True)
class TransactionReceipt:
    """전기 결과"""

    tran_id: str
    value_date: date
    entry_date: date
    entry_time: time
    narration: str | None
    status: TranStatus
    tran_type: TranType
    lines: list[ValidatedLine]
    balances: dict[str, Decimal]
    balanced: bool = True

    @property
    def total_amount(self) -> Decimal:
        return sum(
            (line.lcy_amt for line in self.lines if line.dr_cr == DrCrFlag.D),
            Decimal("0"),
        )


# =========================================================================
# EOD
# =========================================================================


@dataclass(frozen=True)
class AccrualFailure:
    """계좌별 이자 경과 실패 기록"""

    account_no: str
    error_type: str
    message: str


@dataclass
class EodResult:
    """EOD 실행 결과"""

    run_date: date
    status: EodStatus
    processed_count: int = 0
    skipped_count: int = 0
    failures: list[AccrualFailure] = field(default_factory=list)
    started_at: datetime | None = None
    ended_at: datetime | None = None
    error: str | None = None

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_date": self.run_date.isoformat(),
            "status": self.status.value,
            "processed_count": self.processed_count,
            "skipped_count": self.skipped_count,
            "failed_count": self.failed_count,
            "failures": [
                {
                    "account_no": f.account_no,
                    "error_type": f.error_type,
                    "message": f.message,
                }
                for f in self.failures
            ],
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "error": self.error,
        }
