"""
Errors for KMM Controller
DaemonSet 생성, 조회, 정리 과정에서 발생하는 예외들을 정의합니다.
"""

from typing import List, Optional


class KMMError(Exception):
    """KMM Controller 예외의 기본 클래스"""


class InvalidInputError(KMMError, ValueError):
    """필수 입력값이 비어 있거나 잘못된 경우"""


class OwnershipError(KMMError):
    """Owner Reference를 설정할 수 없는 경우"""


class ConsistencyError(KMMError):
    """클러스터 상태의 일관성이 깨진 경우"""


class DuplicateKernelVersionError(ConsistencyError):
    """같은 커널 버전을 가진 DaemonSet이 둘 이상 존재하는 경우"""

    def __init__(self, kernel_version: Optional[str], names: List[str]):
        self.kernel_version = kernel_version
        self.names = names
        super().__init__(
            f"multiple DaemonSets found for kernel {kernel_version or ''!r}: "
            f"{', '.join(names)}"
        )


class StoreError(KMMError):
    """Kubernetes API 호출이 실패한 경우"""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)

    @property
    def not_found(self) -> bool:
        return self.status == 404
