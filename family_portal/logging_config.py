"""ロギング設定モジュール

Cloud Run ではJSON形式（Cloud Logging がそのまま解釈できる）、
ローカルではテキスト形式でログを出力する。

使い方:
    from family_portal.logging_config import setup_logging
    setup_logging()

環境変数:
    LOG_LEVEL: ログレベル (DEBUG, INFO, WARNING, ERROR, CRITICAL) デフォルト: INFO
    K_SERVICE / CLOUD_RUN_JOB: Cloud Run 環境判定（自動設定される）
"""

import json
import logging
import os

# 依存ライブラリの DEBUG ログはリクエストごとに大量に出るため抑える
_NOISY_LOGGERS = ("urllib3", "google.auth", "httpx", "httpcore")


class CloudLoggingFormatter(logging.Formatter):
    """Cloud Logging互換のJSONフォーマッタ

    `severity` フィールドがあれば Cloud Logging 側でログレベルとして扱われる。
    `extra={"extra_fields": {...}}` で渡した値はトップレベルにマージする。
    """

    LEVEL_TO_SEVERITY = {
        "DEBUG": "DEBUG",
        "INFO": "INFO",
        "WARNING": "WARNING",
        "ERROR": "ERROR",
        "CRITICAL": "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict = {
            "severity": self.LEVEL_TO_SEVERITY.get(record.levelname, "DEFAULT"),
            "message": record.getMessage(),
            "logger": record.name,
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
        }
        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = self.formatException(record.exc_info)
        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)
        return json.dumps(log_entry, ensure_ascii=False, default=str)


def is_cloud_environment() -> bool:
    # K_SERVICE: Cloud Run Services, CLOUD_RUN_JOB: Cloud Run Jobs
    return bool(os.getenv("K_SERVICE") or os.getenv("CLOUD_RUN_JOB"))


def setup_logging() -> None:
    """ルートロガーを初期化する（複数回呼んでもハンドラは1つ）"""
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    handler = logging.StreamHandler()
    if is_cloud_environment():
        handler.setFormatter(CloudLoggingFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(root_logger.level, logging.WARNING))
