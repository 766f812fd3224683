"""
원장 프로세스 로깅

원장 API 서버(web)와 EOD 이자 경과 스케줄러(eod)가 같은 형식으로 기록.
전기/EOD 코드가 extra로 넘기는 tran_id, account_no, run_date는
메시지 뒤에 [key=value] 형태로 붙여 거래와 계좌 단위로 grep 가능하게 함.

    python -m web  →  logs/web/web.log
    python -m eod  →  logs/eod/eod.log
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.constants import Paths


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_RETENTION_DAYS = 7

# 레코드에 있으면 메시지 뒤에 붙는 원장 문맥 필드 (순서 고정)
CONTEXT_FIELDS = ("tran_id", "account_no", "run_date")

# WARNING 미만은 버리는 라이브러리 로거
QUIET_LOGGERS = [
    "aiosqlite",  # 쿼리마다 기록
    "httpcore",
    "httpx",
    "asyncio",
    "uvicorn.access",
]


class LedgerContextFormatter(logging.Formatter):
    """원장 문맥 필드를 메시지 뒤에 덧붙이는 Formatter"""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = [
            f"{name}={getattr(record, name)}"
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        ]
        if not context:
            return message
        return f"{message} [{' '.join(context)}]"


def get_log_dir(process_name: str) -> Path:
    """web/eod는 전용 디렉토리, 그 외(스크립트 등)는 logs/ 바로 아래"""
    if process_name == "web":
        return Paths.WEB_LOGS_DIR
    elif process_name == "eod":
        return Paths.EOD_LOGS_DIR
    return Paths.LOGS_DIR


def setup_logging(
    process_name: str,
    console_level: int = logging.INFO,
    file_level: int = logging.INFO,
    log_dir: Path | None = None,
) -> logging.Logger:
    """루트 로거를 콘솔 + 자정 롤링 파일로 구성

    여러 번 호출해도 핸들러는 한 벌만 남음.

    Args:
        process_name: "web" 또는 "eod" (파일명 {process_name}.log)
        console_level: 콘솔 로그 레벨
        file_level: 파일 로그 레벨
        log_dir: 로그 디렉토리 (None이면 get_log_dir)

    Returns:
        루트 Logger
    """
    log_dir = log_dir or get_log_dir(process_name)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{process_name}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    formatter = LedgerContextFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    file_handler = TimedRotatingFileHandler(
        filename=log_file,
        when="midnight",
        backupCount=LOG_RETENTION_DAYS,
        encoding="utf-8",
    )
    # 지난 영업일 로그: eod.log.2024-01-15
    file_handler.suffix = "%Y-%m-%d"
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.info(
        f"{process_name} 로깅 시작: {log_file} "
        f"({logging.getLevelName(file_level)}, {LOG_RETENTION_DAYS}일 보관)"
    )
    return root_logger
