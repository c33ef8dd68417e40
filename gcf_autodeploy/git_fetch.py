"""
git_fetch
---------

GitHub 저장소의 기본 브랜치를 로컬 scratch 디렉토리로 clone 한다.
재시도는 하지 않는다. (요청당 1회)
"""

from __future__ import annotations

import asyncio
import subprocess
from textwrap import shorten

from .errors import FetchError
from .logging_utils import get_logger


logger = get_logger(__name__)


def _run(cmd: list[str], *, timeout: float = 300.0) -> None:
    """
    git subprocess 실행 헬퍼.

    - stdout/stderr 를 캡처하여 실패 시 일부를 에러 메시지에 포함
    - timeout 초과 시 FetchError 로 래핑
    """
    logger.info("명령 실행: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            check=True,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        if result.stderr:
            # git 은 진행 상황을 stderr 로 출력한다.
            logger.debug("명령 stderr: %s", shorten(result.stderr.strip(), width=2000))
    except FileNotFoundError as e:
        raise FetchError(
            f"필요한 명령을 찾을 수 없습니다: {cmd[0]} (git 이 설치되어 있는지 확인하세요)"
        ) from e
    except subprocess.TimeoutExpired as e:
        raise FetchError(
            f"명령 실행이 {timeout}초 안에 끝나지 않았습니다: {' '.join(cmd)}"
        ) from e
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        detail = ""
        if stderr:
            detail = "\nstderr:\n" + shorten(stderr, width=2000)
        raise FetchError(
            f"명령 실행 실패: {' '.join(cmd)} (exit={e.returncode}){detail}"
        ) from e


def clone_url(repository: str, base_url: str = "https://github.com") -> str:
    return f"{base_url.rstrip('/')}/{repository}.git"


def clone_repo(repository: str, destination: str, *,
               base_url: str = "https://github.com", timeout: float = 300.0) -> str:
    logger.info("Downloading %s to %s", repository, destination)
    cmd = [
        "git",
        "clone",
        "--depth=1",
        "--quiet",
        clone_url(repository, base_url),
        destination,
    ]
    try:
        _run(cmd, timeout=timeout)
    except FetchError:
        logger.error("저장소 다운로드 실패: %s", repository)
        raise
    logger.info("저장소 다운로드 완료: %s", repository)
    return destination


async def download_repo(repository: str, destination: str, *,
                        base_url: str = "https://github.com", timeout: float = 300.0) -> str:
    return await asyncio.to_thread(
        clone_repo, repository, destination, base_url=base_url, timeout=timeout
    )
