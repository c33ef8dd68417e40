import logging
import sys


# 라이브러리 로그는 -vv 이상에서만 DEBUG 로 노출한다.
_NOISY_LOGGERS = ("google", "urllib3", "uvicorn.access")


def setup_logging(verbosity: int = 0) -> None:
    level = logging.INFO
    if verbosity >= 1:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )

    lib_level = logging.DEBUG if verbosity >= 2 else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(lib_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
