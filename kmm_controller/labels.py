"""
Label Utilities for KMM Controller
라벨 병합, 커널 버전 라벨 해석, 노드 준비 상태 라벨 키 생성을 담당합니다.
"""

from enum import Enum
from typing import Dict, List, Mapping, Optional

from .config import Config

# Device Plugin DaemonSet은 커널 버전을 갖지 않습니다.
# 라벨 값으로는 빈 문자열로 표현됩니다.
NO_KERNEL_VERSION: Optional[str] = None
DEVICE_PLUGIN_KERNEL_LABEL_VALUE = ""


class WorkloadRole(Enum):
    """Module이 생성하는 DaemonSet의 역할"""

    MODULE_LOADER = "module-loader"
    DEVICE_PLUGIN = "device-plugin"


def copy_labels(labels: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """라벨 맵의 복사본을 반환합니다."""
    return dict(labels or {})


def override_labels(
    labels: Optional[Mapping[str, str]], overrides: Mapping[str, str]
) -> Dict[str, str]:
    """기존 라벨에 overrides를 덮어쓴 새 라벨 맵을 반환합니다."""
    merged = copy_labels(labels)
    merged.update(overrides)
    return merged


def get_pod_pull_secrets(secret: Optional[str]) -> List[Dict[str, str]]:
    """imagePullSecrets 목록을 반환합니다. 시크릿이 없으면 빈 목록입니다."""
    if not secret:
        return []
    return [{"name": secret}]


def get_device_plugin_kernel_version() -> Optional[str]:
    return NO_KERNEL_VERSION


def is_device_plugin_kernel_version(kernel_version: Optional[str]) -> bool:
    return kernel_version is NO_KERNEL_VERSION


def kernel_version_from_labels(
    labels: Optional[Mapping[str, str]], kernel_label: str
) -> Optional[str]:
    """라벨에서 커널 버전을 읽습니다. 라벨이 없거나 비어 있으면 None입니다."""
    value = (labels or {}).get(kernel_label, DEVICE_PLUGIN_KERNEL_LABEL_VALUE)
    if value == DEVICE_PLUGIN_KERNEL_LABEL_VALUE:
        return NO_KERNEL_VERSION
    return value


def workload_role(labels: Optional[Mapping[str, str]], kernel_label: str) -> WorkloadRole:
    """DaemonSet 또는 Pod 라벨로부터 역할을 판별합니다.

    role 라벨이 device-plugin이거나 커널 버전 라벨이 없으면 Device Plugin으로
    취급합니다.
    """
    labels = labels or {}
    if labels.get(Config.DAEMONSET_ROLE_LABEL) == WorkloadRole.DEVICE_PLUGIN.value:
        return WorkloadRole.DEVICE_PLUGIN
    if is_device_plugin_kernel_version(kernel_version_from_labels(labels, kernel_label)):
        return WorkloadRole.DEVICE_PLUGIN
    return WorkloadRole.MODULE_LOADER


def get_driver_container_node_label(module_name: str) -> str:
    return Config.get_driver_ready_label(module_name)


def get_device_plugin_node_label(module_name: str) -> str:
    return Config.get_device_plugin_ready_label(module_name)


def readiness_label_for_role(role: WorkloadRole, module_name: str) -> str:
    """역할에 해당하는 노드 준비 상태 라벨 키를 반환합니다."""
    if role is WorkloadRole.DEVICE_PLUGIN:
        return get_device_plugin_node_label(module_name)
    return get_driver_container_node_label(module_name)


def readiness_label_for(
    pod_labels: Optional[Mapping[str, str]],
    module_name: str,
    kernel_label: Optional[str] = None,
) -> str:
    """Pod 라벨을 보고 노드에 설정할 준비 상태 라벨 키를 결정합니다.

    커널 버전 라벨이 없는 Pod(Device Plugin)는 device-plugin-ready 키를,
    그 외의 Pod는 드라이버 ready 키를 반환합니다.
    """
    if kernel_label is None:
        kernel_label = Config.KERNEL_LABEL

    kernel_version = kernel_version_from_labels(pod_labels, kernel_label)
    if is_device_plugin_kernel_version(kernel_version):
        return readiness_label_for_role(WorkloadRole.DEVICE_PLUGIN, module_name)
    return readiness_label_for_role(WorkloadRole.MODULE_LOADER, module_name)
