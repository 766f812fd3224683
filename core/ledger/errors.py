"""
원장 오류 정의

모든 원장 오류는 LedgerError를 상속.
검증/전기/EOD/조회 오류로 분류되며, Web 계층은 클래스별로 HTTP 상태를 매핑.
메시지는 사용자에게 그대로 노출되므로 영어 원문으로 작성.
"""

from __future__ import annotations

from datetime import date


class LedgerError(Exception):
    """원장 오류 최상위 클래스

    Attributes:
        code: 오류 식별 코드 (API 응답용)
        retryable: 같은 입력으로 다시 시도할 가치가 있는지 여부
    """

    code: str = "LEDGER_ERROR"
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# =========================================================================
# 검증 오류 (입력 수정 없이는 재시도 불가)
# =========================================================================


class ValidationError(LedgerError):
    """거래 검증 오류"""

    code = "VALIDATION_ERROR"


class StructuralError(ValidationError):
    """구조 오류 (라인 수, 금액 부호, 기표일 등)"""

    code = "STRUCTURAL_ERROR"


class ReferentialError(ValidationError):
    """참조 오류 (존재하지 않거나 전기 불가능한 계좌)"""

    code = "REFERENTIAL_ERROR"

    def __init__(self, message: str, account_no: str | None = None):
        super().__init__(message)
        self.account_no = account_no


class UnknownAccountError(ReferentialError):
    """존재하지 않는 계좌"""

    code = "UNKNOWN_ACCOUNT"


class CurrencyMismatchError(ReferentialError):
    """라인 통화가 계좌 통화/기준 통화와 맞지 않음"""

    code = "CURRENCY_MISMATCH"


class ArithmeticMismatchError(ValidationError):
    """호출자 lcy_amt와 재계산 값 불일치"""

    code = "ARITHMETIC_MISMATCH"


class ImbalanceError(ValidationError):
    """차변 합계 ≠ 대변 합계"""

    code = "IMBALANCE"


class InvalidQueryError(ValidationError):
    """조회 파라미터 오류 (페이지, 정렬 토큰 등)"""

    code = "INVALID_QUERY"


# =========================================================================
# 전기 오류 (일시적일 수 있음)
# =========================================================================


class PostingError(LedgerError):
    """전기 오류"""

    code = "POSTING_ERROR"


class AccountNotFoundError(PostingError):
    """전기 시점에 계좌가 존재하지 않음"""

    code = "ACCOUNT_NOT_FOUND"
    retryable = True

    def __init__(self, account_no: str):
        super().__init__(f"Account not found: {account_no}")
        self.account_no = account_no


class AccountNotPostableError(ReferentialError):
    """전기 불가능한 상태의 계좌 (CLOSED/INACTIVE/DORMANT)

    검증 단계에서는 참조 오류로, 전기 단계에서는 PostingEngine이
    PostingError로 감싸서 다시 발생시킴.
    """

    code = "ACCOUNT_NOT_POSTABLE"


class AccountClosedDuringPostingError(PostingError):
    """검증 이후 전기 전에 계좌 상태가 바뀜 (마감과의 경합)"""

    code = "ACCOUNT_NOT_POSTABLE"
    retryable = True

    def __init__(self, account_no: str, status: str):
        super().__init__(f"Account {account_no} is not postable (status={status})")
        self.account_no = account_no
        self.status = status


class InsufficientFundsError(PostingError):
    """당좌대월 불가 계좌의 잔액 부족"""

    code = "INSUFFICIENT_FUNDS"

    def __init__(self, account_no: str, balance: object, delta: object):
        super().__init__(
            f"Insufficient balance on account {account_no}: "
            f"balance={balance}, delta={delta}"
        )
        self.account_no = account_no


class ConcurrencyConflictError(PostingError):
    """낙관적 락(version) 충돌"""

    code = "CONCURRENCY_CONFLICT"
    retryable = True

    def __init__(self, account_no: str):
        super().__init__(f"Concurrent update detected on account {account_no}")
        self.account_no = account_no


class TransactionAlreadyPostedError(PostingError):
    """이미 거래 ID가 부여된 검증 객체 재사용"""

    code = "ALREADY_POSTED"

    def __init__(self, tran_id: str):
        super().__init__(
            f"Validated transaction was already submitted as {tran_id}; "
            "validate the request again to resubmit"
        )
        self.tran_id = tran_id


class StoreUnavailableError(PostingError):
    """DB 오류로 전기 불가"""

    code = "STORE_UNAVAILABLE"
    retryable = True


# =========================================================================
# 계좌 생명주기 오류
# =========================================================================


class AccountStateError(LedgerError):
    """허용되지 않은 계좌 상태 전이"""

    code = "ACCOUNT_STATE_ERROR"


class NonZeroBalanceError(AccountStateError):
    """잔액이 0이 아닌 계좌의 해지 시도"""

    code = "NON_ZERO_BALANCE"

    def __init__(self, account_no: str, balance: object):
        super().__init__(
            f"Account {account_no} cannot be closed with non-zero balance {balance}"
        )
        self.account_no = account_no


class CatalogError(LedgerError):
    """서브상품 카탈로그 오류 (미등록, 비활성, 번호 소진 등)"""

    code = "CATALOG_ERROR"


# =========================================================================
# EOD 오류
# =========================================================================


class EodError(LedgerError):
    """EOD 오류"""

    code = "EOD_ERROR"


class EodAlreadyCompletedError(EodError):
    """이미 완료된 영업일에 대한 재실행"""

    code = "EOD_ALREADY_COMPLETED"

    def __init__(self, run_date: date):
        super().__init__(f"EOD already completed for {run_date.isoformat()}")
        self.run_date = run_date


class EodInProgressError(EodError):
    """다른 EOD 실행이 진행 중"""

    code = "EOD_IN_PROGRESS"

    def __init__(self, run_date: date):
        super().__init__(f"EOD is already running for {run_date.isoformat()}")
        self.run_date = run_date


class EodRunError(EodError):
    """실행 전체를 중단시킨 시스템 오류 (run은 FAILED로 기록)"""

    code = "EOD_RUN_FAILED"

    def __init__(self, run_date: date, reason: str):
        super().__init__(f"EOD run for {run_date.isoformat()} failed: {reason}")
        self.run_date = run_date


# =========================================================================
# 조회 오류
# =========================================================================


class NotFoundError(LedgerError):
    """조회 대상 없음"""

    code = "NOT_FOUND"

    def __init__(self, entity: str, key: object):
        super().__init__(f"{entity} not found: {key}")
        self.entity = entity
        self.key = key
