"""
Module Model for KMM Controller
Module 커스텀 리소스를 파이썬 데이터 클래스로 변환합니다.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import InvalidInputError

logger = logging.getLogger(__name__)

KERNEL_VERSION_VARIABLE = "${KERNEL_FULL_VERSION}"


@dataclass
class ModprobeArgs:
    """modprobe 로드/언로드 인자"""

    load: List[str] = field(default_factory=list)
    unload: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ModprobeArgs"]:
        if data is None:
            return None
        return cls(
            load=list(data.get("load") or []),
            unload=list(data.get("unload") or []),
        )


@dataclass
class ModprobeSpec:
    """노드에서 모듈을 로드/언로드하는 방법을 기술합니다."""

    module_name: str
    dir_name: str = ""
    firmware_path: str = ""
    parameters: List[str] = field(default_factory=list)
    args: Optional[ModprobeArgs] = None
    raw_args: Optional[ModprobeArgs] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModprobeSpec":
        module_name = data.get("moduleName")
        if not module_name:
            raise InvalidInputError("modprobe.moduleName cannot be empty")

        return cls(
            module_name=module_name,
            dir_name=data.get("dirName") or "",
            firmware_path=data.get("firmwarePath") or "",
            parameters=list(data.get("parameters") or []),
            args=ModprobeArgs.from_dict(data.get("args")),
            raw_args=ModprobeArgs.from_dict(data.get("rawArgs")),
        )


@dataclass
class KernelMapping:
    """커널 버전과 컨테이너 이미지의 매핑"""

    literal: str = ""
    regexp: str = ""
    container_image: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KernelMapping":
        mapping = cls(
            literal=data.get("literal") or "",
            regexp=data.get("regexp") or "",
            container_image=data.get("containerImage") or "",
        )
        if bool(mapping.literal) == bool(mapping.regexp):
            raise InvalidInputError(
                "exactly one of literal or regexp must be set in a kernel mapping"
            )
        return mapping

    def matches(self, kernel_version: str) -> bool:
        """커널 버전이 이 매핑에 해당하는지 확인합니다."""
        if self.literal:
            return self.literal == kernel_version
        return re.fullmatch(self.regexp, kernel_version) is not None


@dataclass
class ModuleLoaderContainerSpec:
    """module-loader 컨테이너 설정"""

    modprobe: ModprobeSpec
    image_pull_policy: Optional[str] = None
    container_image: str = ""
    kernel_mappings: List[KernelMapping] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModuleLoaderContainerSpec":
        if "modprobe" not in data:
            raise InvalidInputError("moduleLoader.container.modprobe is required")

        return cls(
            modprobe=ModprobeSpec.from_dict(data["modprobe"]),
            image_pull_policy=data.get("imagePullPolicy"),
            container_image=data.get("containerImage") or "",
            kernel_mappings=[
                KernelMapping.from_dict(m) for m in data.get("kernelMappings") or []
            ],
        )


@dataclass
class ModuleLoaderSpec:
    """Module Loader 섹션"""

    container: ModuleLoaderContainerSpec
    service_account_name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModuleLoaderSpec":
        if "container" not in data:
            raise InvalidInputError("moduleLoader.container is required")

        return cls(
            container=ModuleLoaderContainerSpec.from_dict(data["container"]),
            service_account_name=data.get("serviceAccountName") or "",
        )


@dataclass
class DevicePluginContainerSpec:
    """device-plugin 컨테이너 설정

    env, resources, volumeMounts는 Kubernetes 매니페스트 형식 그대로 보관합니다.
    """

    image: str
    image_pull_policy: Optional[str] = None
    command: List[str] = field(default_factory=list)
    args: List[str] = field(default_factory=list)
    env: List[Dict[str, Any]] = field(default_factory=list)
    resources: Dict[str, Any] = field(default_factory=dict)
    volume_mounts: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DevicePluginContainerSpec":
        image = data.get("image")
        if not image:
            raise InvalidInputError("devicePlugin.container.image cannot be empty")

        return cls(
            image=image,
            image_pull_policy=data.get("imagePullPolicy"),
            command=list(data.get("command") or []),
            args=list(data.get("args") or []),
            env=list(data.get("env") or []),
            resources=dict(data.get("resources") or {}),
            volume_mounts=list(data.get("volumeMounts") or []),
        )


@dataclass
class DevicePluginSpec:
    """Device Plugin 섹션"""

    container: DevicePluginContainerSpec
    service_account_name: str = ""
    volumes: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["DevicePluginSpec"]:
        if data is None:
            return None
        if "container" not in data:
            raise InvalidInputError("devicePlugin.container is required")

        return cls(
            container=DevicePluginContainerSpec.from_dict(data["container"]),
            service_account_name=data.get("serviceAccountName") or "",
            volumes=list(data.get("volumes") or []),
        )


@dataclass
class ModuleSpec:
    """Module의 spec 섹션"""

    module_loader: ModuleLoaderSpec
    selector: Dict[str, str] = field(default_factory=dict)
    device_plugin: Optional[DevicePluginSpec] = None
    image_repo_secret: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModuleSpec":
        if "moduleLoader" not in data:
            raise InvalidInputError("spec.moduleLoader is required")

        secret = data.get("imageRepoSecret") or {}

        return cls(
            module_loader=ModuleLoaderSpec.from_dict(data["moduleLoader"]),
            selector=dict(data.get("selector") or {}),
            device_plugin=DevicePluginSpec.from_dict(data.get("devicePlugin")),
            image_repo_secret=secret.get("name") or None,
        )


@dataclass
class Module:
    """Module 커스텀 리소스"""

    name: str
    namespace: str
    spec: ModuleSpec
    uid: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any], namespace: str = "") -> "Module":
        """Module 매니페스트(dict)를 Module 객체로 변환합니다.

        매니페스트에 namespace가 없으면 인자로 받은 namespace를 사용합니다.
        """
        metadata = data.get("metadata") or {}
        name = metadata.get("name")
        if not name:
            raise InvalidInputError("module metadata.name cannot be empty")

        if "spec" not in data:
            raise InvalidInputError(f"module {name} has no spec")

        return cls(
            name=name,
            namespace=metadata.get("namespace") or namespace,
            uid=metadata.get("uid") or "",
            spec=ModuleSpec.from_dict(data["spec"]),
        )

    @property
    def modprobe(self) -> ModprobeSpec:
        return self.spec.module_loader.container.modprobe

    def image_for_kernel(self, kernel_version: str) -> Optional[str]:
        """커널 버전에 맞는 module-loader 이미지를 찾습니다.

        첫 번째로 일치하는 Kernel Mapping을 사용하며, 매핑에 이미지가 없으면
        컨테이너 기본 이미지를 사용합니다. 이미지 안의 ${KERNEL_FULL_VERSION}은
        실제 커널 버전으로 치환됩니다. 일치하는 매핑이 없으면 None을 반환합니다.
        """
        container = self.spec.module_loader.container

        for mapping in container.kernel_mappings:
            if not mapping.matches(kernel_version):
                continue

            image = mapping.container_image or container.container_image
            if not image:
                logger.warning(
                    f"Kernel mapping for {kernel_version} in module {self.name} has no image"
                )
                return None

            return image.replace(KERNEL_VERSION_VARIABLE, kernel_version)

        logger.debug(f"No kernel mapping in module {self.name} for {kernel_version}")
        return None
