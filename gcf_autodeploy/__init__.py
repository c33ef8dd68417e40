"""
gcf_autodeploy
--------------

GitHub push webhook 을 받아 저장소를 내려받고, 설정된 하위 디렉토리를 zip 으로 묶어
GCS 에 올린 뒤 Cloud Functions 를 생성/업데이트하는 배포 릴레이 패키지.
"""

__all__ = [
    "config",
    "orchestrator",
    "server",
]
