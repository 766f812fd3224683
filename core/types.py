"""
타입 정의 모듈

Enum 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from enum import Enum


class RunMode(str, Enum):
    """실행 모드 (운영 / 샌드박스)"""

    PRODUCTION = "production"
    SANDBOX = "sandbox"


class AccountKind(str, Enum):
    """계정 종류

    CUSTOMER: 고객 계좌 (예금, 당좌, 대출 등)
    OFFICE: 사무 계정 (GL 상대 계정, 이자비용 등)
    """

    CUSTOMER = "CUSTOMER"
    OFFICE = "OFFICE"


class AccountStatus(str, Enum):
    """계좌 상태"""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    CLOSED = "CLOSED"
    DORMANT = "DORMANT"


class SubProductStatus(str, Enum):
    """서브상품 상태"""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DEACTIVE = "DEACTIVE"


class DrCrFlag(str, Enum):
    """차변/대변 구분

    원장 전체에서 D/C 한 가지 표기만 사용.
    입력으로 들어오는 DEBIT/CREDIT 표기는 parse()로 정규화.
    """

    D = "D"  # 차변 (잔액 감소)
    C = "C"  # 대변 (잔액 증가)

    @classmethod
    def parse(cls, value: "str | DrCrFlag") -> "DrCrFlag":
        """D/C/DEBIT/CREDIT 표기를 정규화

        Raises:
            ValueError: 알 수 없는 표기
        """
        if isinstance(value, DrCrFlag):
            return value

        normalized = str(value).strip().upper()
        aliases = {
            "D": cls.D,
            "DR": cls.D,
            "DEBIT": cls.D,
            "C": cls.C,
            "CR": cls.C,
            "CREDIT": cls.C,
        }
        if normalized not in aliases:
            raise ValueError(f"Invalid debit/credit flag: {value!r}")
        return aliases[normalized]


class TranStatus(str, Enum):
    """거래 상태

    ENTRY: 검증 완료, 아직 전기되지 않음
    POSTED: 수기 거래 전기 완료
    VERIFIED: 시스템 생성 거래 (자동 승인)
    """

    ENTRY = "ENTRY"
    POSTED = "POSTED"
    VERIFIED = "VERIFIED"


class TranType(str, Enum):
    """거래 유형"""

    MANUAL = "MANUAL"
    INTEREST_ACCRUAL = "INTEREST_ACCRUAL"


class EodStatus(str, Enum):
    """EOD 실행 상태"""

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
