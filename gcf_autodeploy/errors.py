"""
errors
------

릴레이 파이프라인의 단계별 예외 정의.
모든 예외는 HTTP 응답에 사용할 status_code 를 가진다.
"""

from __future__ import annotations


class RelayError(Exception):
    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthenticationError(RelayError):
    """webhook 서명 불일치."""

    status_code = 403


class BadRequestError(RelayError):
    """push payload 에 repository 정보가 없음."""

    status_code = 400


class NotFoundError(RelayError):
    """저장소와 일치하는 배포 설정이 없음."""


class FetchError(RelayError):
    pass


class ArchiveError(RelayError):
    pass


class UploadError(RelayError):
    pass


class DeployError(RelayError):
    pass


class DeployTimeoutError(DeployError):
    """operation 이 최대 polling 횟수 안에 끝나지 않음."""
