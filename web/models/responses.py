"""
응답 스키마 (Pydantic)

Web API 응답 데이터 직렬화.
금액은 Decimal 문자열, 필드명은 camelCase 별칭으로 출력.
"""

from pydantic import Field

from web.models.base import CamelModel


class ErrorResponse(CamelModel):
    """오류 응답"""

    code: str = Field(..., description="오류 코드")
    detail: str = Field(..., description="오류 메시지")


class HealthResponse(CamelModel):
    """헬스 체크 응답"""

    status: str = Field(default="ok", description="서비스 상태")
    mode: str = Field(..., description="실행 모드 (production/sandbox)")
    version: str = Field(..., description="버전")
    business_date: str | None = Field(default=None, description="현재 영업일")


# =========================================================================
# 거래
# =========================================================================


class TransactionLineResponse(CamelModel):
    """거래 라인"""

    line_no: int
    account_no: str
    dr_cr: str
    tran_ccy: str
    fcy_amt: str
    exchange_rate: str
    lcy_amt: str
    posting_amount: str
    balance_after: str | None = None
    reference: str | None = None


class TransactionReceiptResponse(CamelModel):
    """전기 결과"""

    tran_id: str = Field(..., description="거래 ID")
    value_date: str
    entry_date: str
    entry_time: str
    narration: str | None = None
    status: str = Field(..., description="POSTED / VERIFIED")
    tran_type: str
    balanced: bool = True
    total_amount: str = Field(..., description="차변 합계 (기준통화)")
    lines: list[TransactionLineResponse]
    balances: dict[str, str] = Field(..., description="영향받은 계좌의 새 잔액")


class TransactionResponse(CamelModel):
    """거래 조회"""

    tran_id: str
    tran_type: str
    value_date: str
    entry_date: str
    entry_time: str
    narration: str | None = None
    status: str
    lcy_currency: str
    total_amount: str
    lines: list[TransactionLineResponse] = Field(default_factory=list)


class TransactionPageResponse(CamelModel):
    """거래 목록 페이지"""

    content: list[TransactionResponse]
    total_elements: int
    total_pages: int
    page: int
    size: int


# =========================================================================
# 계좌
# =========================================================================


class AccountResponse(CamelModel):
    """계좌 조회 (잔액 포함)"""

    account_no: str
    kind: str
    account_name: str
    currency: str
    gl_num: str
    status: str
    open_date: str
    close_date: str | None = None
    cust_id: int | None = None
    sub_product_code: str | None = None
    interest_increment: str = "0"
    reconciliation_required: bool = False
    current_balance: str = "0"
    available_balance: str = "0"
    interest_accrued: str = "0"
    last_tran_id: str | None = None
    # 단건 조회에서만 채움
    today_debits: str | None = None
    today_credits: str | None = None
    computed_balance: str | None = None


class AccountPageResponse(CamelModel):
    """계좌 목록 페이지"""

    content: list[AccountResponse]
    total_elements: int
    total_pages: int
    page: int
    size: int


class StatementLineResponse(CamelModel):
    """계좌 거래 내역 라인"""

    tran_id: str
    value_date: str
    entry_date: str
    entry_time: str
    tran_type: str
    narration: str | None = None
    line_no: int
    dr_cr: str
    tran_ccy: str
    fcy_amt: str
    lcy_amt: str
    posting_amount: str
    balance_after: str
    reference: str | None = None


class StatementResponse(CamelModel):
    """계좌 거래 내역"""

    account_no: str
    lines: list[StatementLineResponse]
    limit: int
    offset: int


class SubProductResponse(CamelModel):
    """서브상품"""

    sub_product_code: str
    sub_product_name: str
    product_type_code: str
    cum_gl_num: str
    currency: str
    interest_rate: str
    interest_bearing: bool
    overdraft_allowed: bool
    status: str


# =========================================================================
# 원장 / EOD
# =========================================================================


class TrialBalanceLineResponse(CamelModel):
    gl_num: str
    balance: str


class TrialBalanceResponse(CamelModel):
    """시산표"""

    lines: list[TrialBalanceLineResponse]
    total: str
    balanced: bool


class GlMovementResponse(CamelModel):
    tran_id: str
    line_no: int
    dr_cr: str
    amount: str
    value_date: str
    entry_date: str
    balance_after: str
    accrual: bool


class GlMovementsResponse(CamelModel):
    """GL 변동 이력"""

    gl_num: str
    movements: list[GlMovementResponse]
    limit: int
    offset: int


class EodFailureResponse(CamelModel):
    account_no: str
    error_type: str
    message: str


class EodRunResponse(CamelModel):
    """EOD 실행 결과 / 기록"""

    run_date: str = Field(..., alias="date", description="영업일")
    status: str
    processed_count: int
    skipped_count: int
    failed_count: int
    started_at: str | None = None
    ended_at: str | None = None
    error: str | None = None
    failures: list[EodFailureResponse] = Field(default_factory=list)


class EodCancelResponse(CamelModel):
    """EOD 취소 요청 결과"""

    cancel_requested: bool
    run_date: str | None = None
