"""
core/config/loader.py 테스트

settings.yaml 로드, 검증, 기본값, DB 경로 선택 테스트
"""

from datetime import time
from pathlib import Path

import pytest

from core.config.loader import (
    AppConfig,
    EodConfig,
    LedgerConfig,
    Settings,
    SettingsLoadError,
    WebConfig,
    get_db_path,
    get_settings,
    load_config,
)
from core.constants import Defaults, Paths
from core.types import RunMode


def _write(temp_dir: Path, content: str) -> Path:
    path = temp_dir / "settings.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadConfig:
    """load_config 테스트"""

    def test_load_full(self, temp_settings_file: Path, temp_dir: Path) -> None:
        """모든 항목 로드"""
        config = load_config(temp_settings_file)

        assert config.mode == RunMode.SANDBOX
        assert config.ledger.local_currency == "USD"
        assert config.ledger.interest_expense_account == "951010000101"
        assert config.eod.run_at == time(21, 30)
        assert config.web.host == "0.0.0.0"
        assert config.web.port == 9000
        assert config.db_path == temp_dir / "ledger.db"

    def test_defaults(self, temp_dir: Path) -> None:
        """mode만 있으면 나머지는 기본값"""
        config = load_config(_write(temp_dir, "mode: production\n"))

        assert config.mode == RunMode.PRODUCTION
        assert config.ledger.local_currency == Defaults.LOCAL_CURRENCY
        assert config.ledger.interest_expense_account is None
        assert config.eod.run_at == time(22, 0)
        assert config.web.port == Defaults.WEB_PORT
        assert config.db_path is None

    def test_file_not_found(self, temp_dir: Path) -> None:
        """파일 없음"""
        with pytest.raises(SettingsLoadError, match="찾을 수 없습니다"):
            load_config(temp_dir / "missing.yaml")

    def test_empty_file(self, temp_dir: Path) -> None:
        """빈 파일"""
        with pytest.raises(SettingsLoadError, match="비어 있습니다"):
            load_config(_write(temp_dir, ""))

    def test_invalid_yaml(self, temp_dir: Path) -> None:
        """YAML 파싱 실패"""
        with pytest.raises(SettingsLoadError, match="파싱 실패"):
            load_config(_write(temp_dir, "mode: [sandbox\n"))

    def test_missing_mode(self, temp_dir: Path) -> None:
        """mode 누락"""
        with pytest.raises(SettingsLoadError, match="mode"):
            load_config(_write(temp_dir, "ledger:\n  local_currency: USD\n"))

    def test_invalid_mode(self, temp_dir: Path) -> None:
        """잘못된 mode"""
        with pytest.raises(ValueError, match="유효하지 않은 mode"):
            load_config(_write(temp_dir, "mode: testnet\n"))

    def test_invalid_currency(self, temp_dir: Path) -> None:
        """3자리가 아닌 통화 코드"""
        content = "mode: sandbox\nledger:\n  local_currency: DOLLAR\n"
        with pytest.raises(SettingsLoadError, match="3자리"):
            load_config(_write(temp_dir, content))

    def test_invalid_run_at(self, temp_dir: Path) -> None:
        """HH:MM 형식이 아닌 실행 시각"""
        content = 'mode: sandbox\neod:\n  run_at: "10pm"\n'
        with pytest.raises(SettingsLoadError, match="run_at"):
            load_config(_write(temp_dir, content))


class TestConfigDataclasses:
    """설정 데이터클래스 테스트"""

    def test_frozen(self) -> None:
        """불변성 확인"""
        config = LedgerConfig(local_currency="USD", interest_expense_account=None)

        with pytest.raises(AttributeError):
            config.local_currency = "EUR"  # type: ignore


class TestGetDbPath:
    """get_db_path 테스트"""

    def _config(self, mode: RunMode, db_path: Path | None = None) -> AppConfig:
        return AppConfig(
            mode=mode,
            ledger=LedgerConfig(local_currency="USD", interest_expense_account=None),
            eod=EodConfig(run_at=time(22, 0)),
            web=WebConfig(host="127.0.0.1", port=8000),
            db_path=db_path,
        )

    def test_production(self) -> None:
        """Production 모드"""
        assert get_db_path(self._config(RunMode.PRODUCTION)) == Paths.PROD_DB

    def test_sandbox(self) -> None:
        """Sandbox 모드"""
        assert get_db_path(self._config(RunMode.SANDBOX)) == Paths.SANDBOX_DB

    def test_explicit_path_wins(self, tmp_path: Path) -> None:
        """database.path 우선"""
        explicit = tmp_path / "x.db"
        assert get_db_path(self._config(RunMode.PRODUCTION, explicit)) == explicit


class TestSettings:
    """Settings 싱글턴 테스트"""

    def test_singleton(self, temp_settings_file: Path, reset_settings: None) -> None:
        """같은 인스턴스 반환"""
        first = get_settings(temp_settings_file)
        second = get_settings()

        assert first is second
        assert second.local_currency == "USD"
        assert second.eod_run_at == time(21, 30)

    def test_reset(self, temp_settings_file: Path, temp_dir: Path, reset_settings: None) -> None:
        """reset 후 다시 로드"""
        get_settings(temp_settings_file)
        Settings.reset()

        prod_file = temp_dir / "prod.yaml"
        prod_file.write_text("mode: production\n", encoding="utf-8")
        settings = get_settings(prod_file)

        assert settings.mode == RunMode.PRODUCTION
        assert settings.db_path == Paths.PROD_DB
        assert settings.interest_expense_account is None
