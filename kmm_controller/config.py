"""
KMM Controller Configuration
커널 모듈 DaemonSet 생성에 필요한 설정값과 라벨 상수들을 정의합니다.
"""

import os


class Config:
    """KMM Controller 설정 클래스"""

    # Kubernetes 관련 설정
    KUBECONFIG_PATH = os.getenv("KUBECONFIG_PATH", "")
    NAMESPACE = os.getenv("NAMESPACE", "kmm-operator-system")

    # 노드의 커널 버전을 나타내는 라벨 (배포마다 변경 가능)
    KERNEL_LABEL = os.getenv(
        "KERNEL_LABEL", "kmm.node.kubernetes.io/kernel-version.full"
    )

    # Module CRD 관련 설정
    MODULE_API_GROUP = "kmm.sigs.k8s.io"
    MODULE_API_VERSION = "v1beta1"
    MODULE_KIND = "Module"
    MODULE_PLURAL = "modules"

    # 라벨 및 Finalizer
    NODE_LABEL_PREFIX = "kmm.node.kubernetes.io"
    MODULE_NAME_LABEL = "kmm.node.kubernetes.io/module.name"
    DAEMONSET_ROLE_LABEL = "kmm.node.kubernetes.io/role"
    NODE_LABELER_FINALIZER = "kmm.node.kubernetes.io/node-labeler"

    # Pod 스케줄링
    PRIORITY_CLASS_NAME = "system-node-critical"

    # 노드 호스트 경로
    HOST_PATHS = {
        "node-lib-modules": "/lib/modules",
        "node-usr-lib-modules": "/usr/lib/modules",
        "node-var-lib-firmware": "/var/lib/firmware",
        "kubelet-device-plugins": "/var/lib/kubelet/device-plugins",
    }

    # 로깅 설정
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE = os.getenv("LOG_FILE", "")

    @classmethod
    def get_module_api_version(cls) -> str:
        """Module 오브젝트의 apiVersion 문자열을 반환합니다."""
        return f"{cls.MODULE_API_GROUP}/{cls.MODULE_API_VERSION}"

    @classmethod
    def get_host_path(cls, volume_name: str) -> str:
        """볼륨 이름에 해당하는 노드 호스트 경로를 반환합니다."""
        return cls.HOST_PATHS[volume_name]

    @classmethod
    def get_firmware_path(cls, module_name: str) -> str:
        """모듈별 펌웨어 디렉터리 경로를 반환합니다."""
        return f"{cls.HOST_PATHS['node-var-lib-firmware']}/{module_name}"

    @classmethod
    def get_driver_ready_label(cls, module_name: str) -> str:
        """드라이버 준비 완료를 나타내는 노드 라벨 키를 반환합니다."""
        return f"{cls.NODE_LABEL_PREFIX}/{module_name}.ready"

    @classmethod
    def get_device_plugin_ready_label(cls, module_name: str) -> str:
        """Device Plugin 준비 완료를 나타내는 노드 라벨 키를 반환합니다."""
        return f"{cls.NODE_LABEL_PREFIX}/{module_name}.device-plugin-ready"
