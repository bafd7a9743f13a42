"""
KMM Controller Package
Kernel Module Management DaemonSet core for Kubernetes
"""

__version__ = "1.0.0"
__description__ = "커널 모듈 로딩 DaemonSet 생성 및 정리를 위한 컨트롤러 코어"

from .config import Config
from .daemonset import (
    DaemonSetCreator,
    set_device_plugin_as_desired,
    set_driver_container_as_desired,
)
from .errors import (
    ConsistencyError,
    DuplicateKernelVersionError,
    InvalidInputError,
    KMMError,
    OwnershipError,
    StoreError,
)
from .labels import WorkloadRole, readiness_label_for
from .modprobe import make_load_command, make_unload_command
from .module import Module, ModprobeSpec

__all__ = [
    "Config",
    "DaemonSetCreator",
    "set_driver_container_as_desired",
    "set_device_plugin_as_desired",
    "make_load_command",
    "make_unload_command",
    "readiness_label_for",
    "WorkloadRole",
    "Module",
    "ModprobeSpec",
    "KMMError",
    "InvalidInputError",
    "ConsistencyError",
    "DuplicateKernelVersionError",
    "OwnershipError",
    "StoreError",
]
