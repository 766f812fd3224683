"""
요청 스키마 (Pydantic)

Web API 요청 데이터 검증.
필드는 camelCase(JSON)와 snake_case 모두 허용.
"""

from datetime import date
from decimal import Decimal

from pydantic import AliasChoices, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from core.types import AccountStatus, DrCrFlag
from web.models.base import CamelModel


class TransactionLineRequest(CamelModel):
    """거래 라인 입력"""

    account_no: str = Field(..., min_length=1, description="계좌번호")
    dr_cr: DrCrFlag = Field(..., description="차변/대변 (D/C, DEBIT/CREDIT 허용)")
    tran_ccy: str = Field(
        ...,
        min_length=3,
        max_length=3,
        validation_alias=AliasChoices("tranCcy", "tran_ccy", "currency"),
        description="거래 통화 (currency 키도 허용)",
    )
    fcy_amt: Decimal = Field(..., description="거래 통화 금액")
    exchange_rate: Decimal = Field(default=Decimal("1"), description="환율 (기준통화/거래통화)")
    lcy_amt: Decimal | None = Field(
        default=None,
        description="기준통화 금액 (참고값, 서버에서 재계산하여 비교)",
    )
    reference: str | None = Field(default=None, max_length=100, description="참조")

    @field_validator("dr_cr", mode="before")
    @classmethod
    def _parse_dr_cr(cls, value: object) -> DrCrFlag:
        return DrCrFlag.parse(str(value))


class TransactionEntryRequest(CamelModel):
    """거래 입력 요청"""

    value_date: date = Field(..., description="기표일")
    narration: str | None = Field(default=None, max_length=200, description="적요")
    lines: list[TransactionLineRequest] = Field(..., description="거래 라인 (2개 이상)")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "valueDate": "2026-01-15",
                    "narration": "Cash deposit",
                    "lines": [
                        {"accountNo": "914010100101", "drCr": "D", "tranCcy": "USD", "fcyAmt": "500.00"},
                        {"accountNo": "000123451001", "drCr": "C", "tranCcy": "USD", "fcyAmt": "500.00"},
                    ],
                }
            ]
        },
    )


class CustomerAccountOpenRequest(CamelModel):
    """고객 계좌 개설 요청"""

    cust_id: int = Field(..., ge=1, le=99_999_999, description="고객번호 (최대 8자리)")
    sub_product_code: str = Field(..., description="서브상품 코드")
    account_name: str = Field(..., min_length=1, max_length=100, description="계좌명")
    open_date: date | None = Field(default=None, description="개설일 (기본: 오늘)")
    interest_increment: Decimal = Field(default=Decimal("0"), description="가산 금리 (%p)")
    currency: str | None = Field(default=None, description="통화 (서브상품 통화와 같아야 함)")


class OfficeAccountOpenRequest(CamelModel):
    """사무 계정 개설 요청"""

    gl_num: str = Field(..., description="GL 번호 (숫자 9자리)")
    account_name: str = Field(..., min_length=1, max_length=100, description="계정명")
    open_date: date | None = Field(default=None, description="개설일 (기본: 오늘)")
    currency: str | None = Field(default=None, description="통화 (기본: 기준통화)")
    reconciliation_required: bool = Field(default=False, description="대사 대상 여부")


class AccountCloseRequest(CamelModel):
    """계좌 해지 요청"""

    close_date: date | None = Field(default=None, description="해지일 (기본: 오늘)")


class AccountStatusRequest(CamelModel):
    """계좌 상태 변경 요청"""

    status: AccountStatus = Field(..., description="목표 상태")
    effective_date: date | None = Field(default=None, description="적용일 (해지 시 해지일)")
