"""
설정 로더

settings.yaml 로드 및 원장/EOD/Web 설정 생성
"""

from dataclasses import dataclass
from datetime import time
from pathlib import Path

import yaml

from core.constants import Defaults, Paths
from core.types import RunMode


@dataclass(frozen=True)
class LedgerConfig:
    """원장 설정

    불변 데이터 구조로 설정 변경 방지
    """

    local_currency: str
    interest_expense_account: str | None


@dataclass(frozen=True)
class EodConfig:
    """EOD 스케줄 설정"""

    run_at: time


@dataclass(frozen=True)
class WebConfig:
    """Web 서버 설정"""

    host: str
    port: int


@dataclass(frozen=True)
class AppConfig:
    """전체 설정 (settings.yaml에서 로드)"""

    mode: RunMode
    ledger: LedgerConfig
    eod: EodConfig
    web: WebConfig
    db_path: Path | None = None


class SettingsLoadError(Exception):
    """Settings 로드 실패 예외"""

    pass


def _parse_run_at(value: str) -> time:
    """"HH:MM" 문자열을 time으로 변환"""
    try:
        hour_str, minute_str = str(value).split(":")
        return time(hour=int(hour_str), minute=int(minute_str))
    except ValueError as e:
        raise SettingsLoadError(
            f"eod.run_at 형식이 잘못되었습니다 (HH:MM): '{value}'"
        ) from e


def load_config(path: Path | None = None) -> AppConfig:
    """settings.yaml 파일 로드

    Args:
        path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        AppConfig 인스턴스

    Raises:
        SettingsLoadError: 파일이 없거나 형식이 잘못된 경우
        ValueError: 유효하지 않은 mode인 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        raise SettingsLoadError(f"settings.yaml 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        raise SettingsLoadError("settings.yaml이 비어 있습니다")

    # mode 검증
    mode_str = data.get("mode")
    if mode_str is None:
        raise SettingsLoadError("settings.yaml에 'mode' 필드가 없습니다")

    try:
        mode = RunMode(mode_str)
    except ValueError as e:
        valid_modes = [m.value for m in RunMode]
        raise ValueError(
            f"유효하지 않은 mode입니다: '{mode_str}'. "
            f"유효한 값: {valid_modes}"
        ) from e

    ledger_data = data.get("ledger") or {}
    local_currency = str(ledger_data.get("local_currency", Defaults.LOCAL_CURRENCY)).upper()
    if len(local_currency) != 3:
        raise SettingsLoadError(
            f"ledger.local_currency는 3자리 통화 코드여야 합니다: '{local_currency}'"
        )

    expense_account = ledger_data.get("interest_expense_account")

    eod_data = data.get("eod") or {}
    web_data = data.get("web") or {}
    db_data = data.get("database") or {}

    db_path_value = db_data.get("path")

    return AppConfig(
        mode=mode,
        ledger=LedgerConfig(
            local_currency=local_currency,
            interest_expense_account=str(expense_account) if expense_account else None,
        ),
        eod=EodConfig(run_at=_parse_run_at(eod_data.get("run_at", Defaults.EOD_RUN_AT))),
        web=WebConfig(
            host=web_data.get("host", Defaults.WEB_HOST),
            port=int(web_data.get("port", Defaults.WEB_PORT)),
        ),
        db_path=Path(db_path_value) if db_path_value else None,
    )


def get_db_path(config: AppConfig) -> Path:
    """모드에 따른 DB 경로 반환

    database.path가 지정되면 그 경로를 우선 사용.

    Args:
        config: AppConfig 인스턴스

    Returns:
        DB 파일 경로 (Path 타입)
    """
    if config.db_path is not None:
        return config.db_path
    if config.mode == RunMode.PRODUCTION:
        return Paths.PROD_DB
    return Paths.SANDBOX_DB


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    settings.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _config: AppConfig | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._config is None:
            self._config = load_config(settings_path)

    @property
    def mode(self) -> RunMode:
        """현재 실행 모드"""
        assert self._config is not None
        return self._config.mode

    @property
    def local_currency(self) -> str:
        """원장 기준 통화 (LCY)"""
        assert self._config is not None
        return self._config.ledger.local_currency

    @property
    def interest_expense_account(self) -> str | None:
        """EOD 이자비용 사무 계정 번호"""
        assert self._config is not None
        return self._config.ledger.interest_expense_account

    @property
    def eod_run_at(self) -> time:
        """EOD 자동 실행 시각"""
        assert self._config is not None
        return self._config.eod.run_at

    @property
    def web(self) -> WebConfig:
        """Web 서버 설정"""
        assert self._config is not None
        return self._config.web

    @property
    def db_path(self) -> Path:
        """현재 모드의 DB 경로"""
        assert self._config is not None
        return get_db_path(self._config)

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._config = None


def get_settings(settings_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        settings_path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(settings_path)
