import logging.config
import sys

# 앱 로거 트리
#   revshare.http    요청/응답 (LoggingMiddleware)
#   revshare.errors  에러 응답 (exception_handlers)
#   revshare.audit   정산/지급 변경 기록
#   revshare.*       서비스/리포지토리 모듈 로거
APP_LOGGER = "revshare"
AUDIT_LOGGER = "revshare.audit"

# 외부 라이브러리는 경고 이상만
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")


def build_logging_config(log_level: str = "INFO") -> dict:
    level = log_level.upper()

    loggers = {
        APP_LOGGER: {
            "handlers": ["stdout", "stderr"],
            "level": level,
            "propagate": False,
        },
        # audit 기록은 레벨 설정과 무관하게 항상 남김
        AUDIT_LOGGER: {
            "handlers": ["audit"],
            "level": "INFO",
            "propagate": False,
        },
        "uvicorn.error": {
            "handlers": ["stdout", "stderr"],
            "level": level,
            "propagate": False,
        },
        # 요청 로그는 revshare.http가 담당
        "uvicorn.access": {
            "handlers": ["stdout"],
            "level": "WARNING",
            "propagate": False,
        },
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"handlers": ["stdout"], "level": "WARNING", "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "line": {
                "format": "%(asctime)s | %(levelname)-8s | %(name)-24s | %(message)s",
            },
            "audit": {
                "format": "%(asctime)s | AUDIT    | %(message)s",
            },
            "traceback": {
                "format": "%(asctime)s | %(levelname)-8s | %(name)s (%(filename)s:%(lineno)d)\n%(message)s",
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "line",
                "stream": sys.stdout,
            },
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "traceback",
                "stream": sys.stderr,
                "level": "ERROR",
            },
            "audit": {
                "class": "logging.StreamHandler",
                "formatter": "audit",
                "stream": sys.stdout,
            },
        },
        "root": {"handlers": ["stdout"], "level": level},
        "loggers": loggers,
    }


def setup_logging(log_level: str = "INFO"):
    logging.config.dictConfig(build_logging_config(log_level))
