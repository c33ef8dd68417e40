"""
archive
-------

배포 대상 디렉토리를 zip 으로 묶는다.
동시에 여러 요청/배포가 압축하더라도 경로가 겹치지 않도록 파일명은 무작위 토큰으로 만든다.
"""

from __future__ import annotations

import asyncio
import os
import secrets
import zipfile

from .errors import ArchiveError
from .logging_utils import get_logger


logger = get_logger(__name__)


def new_archive_path(scratch_dir: str) -> str:
    return os.path.join(scratch_dir, f"{secrets.token_hex(16)}.zip")


def _is_within(path: str, root: str) -> bool:
    return path == root or path.startswith(root + os.sep)


def _write_zip(directory: str, archive: str) -> None:
    """
    디렉토리 내용을 zip 으로 쓴다.

    심볼릭 링크는 따라가되, 링크 대상이 directory 밖이면 ArchiveError.
    (저장소 밖의 호스트 파일이 버킷으로 올라가지 않도록)
    """
    root = os.path.realpath(directory)
    # "x" 모드: 같은 경로가 이미 있으면 FileExistsError
    with zipfile.ZipFile(archive, "x", compression=zipfile.ZIP_DEFLATED) as zf:
        for current, dirs, files in os.walk(directory, followlinks=True):
            real_current = os.path.realpath(current)
            dirs.sort()
            for name in dirs:
                full = os.path.join(current, name)
                if not os.path.islink(full):
                    continue
                target = os.path.realpath(full)
                if not _is_within(target, root):
                    raise ArchiveError(f"심볼릭 링크가 배포 디렉토리 밖을 가리킵니다: {full}")
                # 상위 디렉토리를 가리키는 링크는 무한 순회가 된다.
                if _is_within(real_current, target):
                    raise ArchiveError(f"심볼릭 링크가 순환합니다: {full}")
            for name in sorted(files):
                full = os.path.join(current, name)
                if not _is_within(os.path.realpath(full), root):
                    raise ArchiveError(f"심볼릭 링크가 배포 디렉토리 밖을 가리킵니다: {full}")
                zf.write(full, os.path.relpath(full, directory))


def _remove_partial(archive: str) -> None:
    try:
        os.remove(archive)
    except OSError:
        pass


def zip_dir_sync(directory: str, scratch_dir: str) -> str:
    if not os.path.isdir(directory):
        raise ArchiveError(f"압축할 디렉토리가 없습니다: {directory}")

    archive = new_archive_path(scratch_dir)
    logger.info("Zipping directory %s to %s", directory, archive)
    try:
        os.makedirs(scratch_dir, exist_ok=True)
        _write_zip(directory, archive)
    except FileExistsError as e:
        # 다른 작업이 쓰는 파일이므로 지우지 않는다.
        raise ArchiveError(f"archive 경로가 이미 존재합니다: {archive}") from e
    except ArchiveError:
        logger.error("압축 거부: %s -> %s", directory, archive)
        _remove_partial(archive)
        raise
    except (OSError, zipfile.BadZipFile) as e:
        logger.error("압축 실패: %s -> %s", directory, archive)
        _remove_partial(archive)
        raise ArchiveError(f"Error zipping {directory} into {archive}: {e}") from e

    logger.info("Successfully zipped %s into %s", directory, archive)
    return archive


async def zip_dir(directory: str, scratch_dir: str) -> str:
    return await asyncio.to_thread(zip_dir_sync, directory, scratch_dir)
