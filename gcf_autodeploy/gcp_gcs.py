"""
gcp_gcs
-------

zip archive 를 stage 버킷에 업로드하는 모듈.
blob 이름은 archive 파일명과 같아야 한다. (배포 단계에서 gs:// URL 을 파일명으로 만든다)
"""

from __future__ import annotations

import asyncio
import os

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage

from .config import RelayConfig
from .errors import UploadError
from .logging_utils import get_logger


logger = get_logger(__name__)


def storage_source_url(bucket_name: str, archive: str) -> str:
    return f"gs://{bucket_name}/{os.path.basename(archive)}"


def _cleanup(archive: str) -> None:
    try:
        os.remove(archive)
    except OSError:
        logger.debug("로컬 archive 삭제 실패 (무시): %s", archive)


def upload_archive_sync(bucket: storage.Bucket, archive: str) -> str:
    """
    로컬 archive 를 버킷에 올리고, 성공/실패와 관계없이 로컬 파일을 지운다.
    """
    logger.info("Uploading archive %s", archive)
    try:
        blob = bucket.blob(os.path.basename(archive))
        blob.upload_from_filename(archive)
    except (GoogleAPIError, GoogleAuthError, OSError) as e:
        logger.error("archive 업로드 실패: %s", archive)
        raise UploadError(f"Error uploading {archive}: {e}") from e
    finally:
        _cleanup(archive)

    logger.info("Successfully uploaded %s", archive)
    return archive


async def upload_archive(bucket: storage.Bucket, archive: str) -> str:
    return await asyncio.to_thread(upload_archive_sync, bucket, archive)


def check_stage_bucket(cfg: RelayConfig, client: storage.Client) -> str:
    """
    stage 버킷 존재 여부를 확인만 하고, 생성하지 않는다.
    """
    bucket = client.bucket(cfg.stage_bucket)
    if bucket.exists():
        return f"GCS: 버킷 존재함 ({cfg.stage_bucket})"
    return f"GCS: 버킷 없음 ({cfg.stage_bucket})"
