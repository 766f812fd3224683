"""
공통 Pydantic 기본 모델
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """camelCase 별칭 기본 모델

    JSON 입출력은 camelCase, 파이썬 코드는 snake_case.
    입력은 두 표기 모두 허용.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
