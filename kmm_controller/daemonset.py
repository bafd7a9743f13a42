"""
DaemonSet Generator for KMM Controller
Module로부터 module-loader / device-plugin DaemonSet의 원하는 상태를 생성하고,
더 이상 유효하지 않은 커널 버전의 DaemonSet을 정리합니다.
"""

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional

from .config import Config
from .errors import DuplicateKernelVersionError, InvalidInputError, StoreError
from .labels import (
    WorkloadRole,
    copy_labels,
    get_driver_container_node_label,
    get_pod_pull_secrets,
    kernel_version_from_labels,
    override_labels,
    readiness_label_for,
    workload_role,
)
from .modprobe import make_load_command, make_unload_command
from .module import Module
from .ownership import set_controller_reference

logger = logging.getLogger(__name__)

KUBELET_DEVICE_PLUGINS_VOLUME = "kubelet-device-plugins"
NODE_LIB_MODULES_VOLUME = "node-lib-modules"
NODE_USR_LIB_MODULES_VOLUME = "node-usr-lib-modules"
NODE_VAR_LIB_FIRMWARE_VOLUME = "node-var-lib-firmware"


def _host_path_volume(name: str, path: str, path_type: str) -> Dict[str, Any]:
    return {"name": name, "hostPath": {"path": path, "type": path_type}}


def _prepare(existing: Optional[Dict[str, Any]], module: Module) -> Dict[str, Any]:
    """기존 오브젝트를 복사하고 apiVersion/kind/namespace를 채웁니다."""
    ds = copy.deepcopy(existing)
    ds["apiVersion"] = "apps/v1"
    ds["kind"] = "DaemonSet"
    metadata = ds.setdefault("metadata", {})
    if not metadata.get("namespace"):
        metadata["namespace"] = module.namespace
    return ds


def _template_metadata(labels: Dict[str, str]) -> Dict[str, Any]:
    return {
        "labels": copy_labels(labels),
        "finalizers": [Config.NODE_LABELER_FINALIZER],
    }


def set_driver_container_as_desired(
    existing: Optional[Dict[str, Any]],
    image: str,
    module: Module,
    kernel_version: str,
    kernel_label: Optional[str] = None,
) -> Dict[str, Any]:
    """module-loader DaemonSet의 원하는 상태를 생성합니다.

    existing은 변경하지 않으며, 완성된 새 DaemonSet 매니페스트를 반환합니다.
    """
    if existing is None:
        raise InvalidInputError("ds cannot be nil")

    if not image:
        raise InvalidInputError("image cannot be empty")

    if not kernel_version:
        raise InvalidInputError("kernelVersion cannot be empty")

    if kernel_label is None:
        kernel_label = Config.KERNEL_LABEL

    container_spec = module.spec.module_loader.container

    standard_labels = {
        Config.MODULE_NAME_LABEL: module.name,
        kernel_label: kernel_version,
        Config.DAEMONSET_ROLE_LABEL: WorkloadRole.MODULE_LOADER.value,
    }

    node_selector = copy_labels(module.spec.selector)
    node_selector[kernel_label] = kernel_version

    container = {
        "name": "module-loader",
        "image": image,
        "command": ["sleep", "infinity"],
        "lifecycle": {
            "postStart": {
                "exec": {"command": make_load_command(module.modprobe, module.name)}
            },
            "preStop": {
                "exec": {"command": make_unload_command(module.modprobe, module.name)}
            },
        },
        "securityContext": {
            "allowPrivilegeEscalation": False,
            "capabilities": {"add": ["SYS_MODULE"]},
            "runAsUser": 0,
            "seLinuxOptions": {"type": "spc_t"},
        },
        "volumeMounts": [
            {
                "name": NODE_LIB_MODULES_VOLUME,
                "mountPath": Config.get_host_path(NODE_LIB_MODULES_VOLUME),
                "readOnly": True,
            },
            {
                "name": NODE_USR_LIB_MODULES_VOLUME,
                "mountPath": Config.get_host_path(NODE_USR_LIB_MODULES_VOLUME),
                "readOnly": True,
            },
        ],
    }
    if container_spec.image_pull_policy:
        container["imagePullPolicy"] = container_spec.image_pull_policy

    volumes = [
        _host_path_volume(
            NODE_LIB_MODULES_VOLUME,
            Config.get_host_path(NODE_LIB_MODULES_VOLUME),
            "Directory",
        ),
        _host_path_volume(
            NODE_USR_LIB_MODULES_VOLUME,
            Config.get_host_path(NODE_USR_LIB_MODULES_VOLUME),
            "Directory",
        ),
    ]

    if module.modprobe.firmware_path:
        module_firmware_path = Config.get_firmware_path(module.name)
        volumes.append(
            _host_path_volume(
                NODE_VAR_LIB_FIRMWARE_VOLUME, module_firmware_path, "DirectoryOrCreate"
            )
        )
        container["volumeMounts"].append(
            {"name": NODE_VAR_LIB_FIRMWARE_VOLUME, "mountPath": module_firmware_path}
        )

    pod_spec = {
        "containers": [container],
        "imagePullSecrets": get_pod_pull_secrets(module.spec.image_repo_secret),
        "nodeSelector": node_selector,
        "priorityClassName": Config.PRIORITY_CLASS_NAME,
        "volumes": volumes,
    }
    if module.spec.module_loader.service_account_name:
        pod_spec["serviceAccountName"] = module.spec.module_loader.service_account_name

    ds = _prepare(existing, module)
    ds["metadata"]["labels"] = override_labels(
        ds["metadata"].get("labels"), standard_labels
    )
    ds["spec"] = {
        "selector": {"matchLabels": copy_labels(standard_labels)},
        "template": {
            "metadata": _template_metadata(standard_labels),
            "spec": pod_spec,
        },
    }

    logger.debug(f"Generated module-loader DaemonSet for {module.name} on kernel {kernel_version}")
    return set_controller_reference(module, ds)


def set_device_plugin_as_desired(
    existing: Optional[Dict[str, Any]], module: Module
) -> Dict[str, Any]:
    """device-plugin DaemonSet의 원하는 상태를 생성합니다.

    Pod는 드라이버 ready 라벨이 붙은 노드에만 스케줄됩니다.
    """
    if existing is None:
        raise InvalidInputError("ds cannot be nil")

    device_plugin = module.spec.device_plugin
    if device_plugin is None:
        raise InvalidInputError("device plugin in module should not be nil")

    dp_container = device_plugin.container

    standard_labels = {
        Config.MODULE_NAME_LABEL: module.name,
        Config.DAEMONSET_ROLE_LABEL: WorkloadRole.DEVICE_PLUGIN.value,
    }

    container = {
        "name": "device-plugin",
        "image": dp_container.image,
        "securityContext": {"privileged": True},
        "volumeMounts": copy.deepcopy(dp_container.volume_mounts)
        + [
            {
                "name": KUBELET_DEVICE_PLUGINS_VOLUME,
                "mountPath": Config.get_host_path(KUBELET_DEVICE_PLUGINS_VOLUME),
            }
        ],
    }
    if dp_container.command:
        container["command"] = list(dp_container.command)
    if dp_container.args:
        container["args"] = list(dp_container.args)
    if dp_container.env:
        container["env"] = copy.deepcopy(dp_container.env)
    if dp_container.image_pull_policy:
        container["imagePullPolicy"] = dp_container.image_pull_policy
    if dp_container.resources:
        container["resources"] = copy.deepcopy(dp_container.resources)

    volumes = [
        _host_path_volume(
            KUBELET_DEVICE_PLUGINS_VOLUME,
            Config.get_host_path(KUBELET_DEVICE_PLUGINS_VOLUME),
            "Directory",
        )
    ] + copy.deepcopy(device_plugin.volumes)

    pod_spec = {
        "containers": [container],
        "imagePullSecrets": get_pod_pull_secrets(module.spec.image_repo_secret),
        "nodeSelector": {get_driver_container_node_label(module.name): ""},
        "priorityClassName": Config.PRIORITY_CLASS_NAME,
        "volumes": volumes,
    }
    if device_plugin.service_account_name:
        pod_spec["serviceAccountName"] = device_plugin.service_account_name

    ds = _prepare(existing, module)
    ds["metadata"]["labels"] = override_labels(
        ds["metadata"].get("labels"), standard_labels
    )
    ds["spec"] = {
        "selector": {"matchLabels": copy_labels(standard_labels)},
        "template": {
            "metadata": _template_metadata(standard_labels),
            "spec": pod_spec,
        },
    }

    logger.debug(f"Generated device-plugin DaemonSet for {module.name}")
    return set_controller_reference(module, ds)


class DaemonSetCreator:
    """Module의 DaemonSet을 조회, 생성, 정리하는 클래스"""

    def __init__(self, k8s_client, kernel_label: Optional[str] = None):
        """DaemonSetCreator를 초기화합니다."""
        self.k8s_client = k8s_client
        self.kernel_label = kernel_label or Config.KERNEL_LABEL

    def _name(self, ds: Dict[str, Any]) -> str:
        return ds.get("metadata", {}).get("name", "")

    def is_device_plugin_daemon_set(self, ds: Dict[str, Any]) -> bool:
        labels = ds.get("metadata", {}).get("labels")
        return workload_role(labels, self.kernel_label) is WorkloadRole.DEVICE_PLUGIN

    def stale_daemon_sets(
        self,
        existing_ds: Dict[Optional[str], Dict[str, Any]],
        valid_kernels: Iterable[str],
    ) -> Dict[str, Dict[str, Any]]:
        """커널 버전이 유효하지 않은 module-loader DaemonSet을 골라냅니다.

        Device Plugin DaemonSet은 절대 포함되지 않습니다.
        """
        valid_kernels = set(valid_kernels)

        return {
            kernel_version: ds
            for kernel_version, ds in existing_ds.items()
            if kernel_version is not None
            and not self.is_device_plugin_daemon_set(ds)
            and kernel_version not in valid_kernels
        }

    def garbage_collect(
        self,
        existing_ds: Dict[Optional[str], Dict[str, Any]],
        valid_kernels: Iterable[str],
    ) -> List[str]:
        """유효하지 않은 커널 버전의 module-loader DaemonSet을 삭제합니다.

        삭제 중 오류가 발생하면 즉시 중단하며, 이미 수행된 삭제는 되돌리지 않습니다.
        """
        deleted = []

        for kernel_version, ds in self.stale_daemon_sets(existing_ds, valid_kernels).items():
            name = self._name(ds)
            namespace = ds.get("metadata", {}).get("namespace", Config.NAMESPACE)
            try:
                self.k8s_client.delete_daemon_set(name, namespace)
            except StoreError as e:
                raise StoreError(f"could not delete DaemonSet {name}: {e}", status=e.status) from e

            logger.info(f"Garbage collected DaemonSet {name} for kernel {kernel_version}")
            deleted.append(name)

        return deleted

    def module_daemon_sets_by_kernel_version(
        self, name: str, namespace: str
    ) -> Dict[Optional[str], Dict[str, Any]]:
        """Module의 DaemonSet들을 커널 버전별로 조회합니다.

        Device Plugin DaemonSet의 키는 None입니다. 같은 커널 버전의 DaemonSet이
        둘 이상이면 DuplicateKernelVersionError가 발생합니다.
        """
        ds_list = self.k8s_client.list_daemon_sets(
            namespace, labels={Config.MODULE_NAME_LABEL: name}
        )

        ds_by_kernel_version = {}

        for ds in ds_list:
            labels = ds.get("metadata", {}).get("labels")
            kernel_version = kernel_version_from_labels(labels, self.kernel_label)

            if kernel_version in ds_by_kernel_version:
                other = ds_by_kernel_version[kernel_version]
                logger.error(
                    f"Multiple DaemonSets found for module {namespace}/{name} "
                    f"and kernel {kernel_version!r}"
                )
                raise DuplicateKernelVersionError(
                    kernel_version, [self._name(other), self._name(ds)]
                )

            ds_by_kernel_version[kernel_version] = ds

        return ds_by_kernel_version

    def set_driver_container_as_desired(
        self, ds: Dict[str, Any], image: str, module: Module, kernel_version: str
    ) -> Dict[str, Any]:
        return set_driver_container_as_desired(
            ds, image, module, kernel_version, self.kernel_label
        )

    def set_device_plugin_as_desired(
        self, ds: Dict[str, Any], module: Module
    ) -> Dict[str, Any]:
        return set_device_plugin_as_desired(ds, module)

    def get_node_label_from_pod(self, pod: Dict[str, Any], module_name: str) -> str:
        """Pod에 해당하는 노드 준비 상태 라벨 키를 반환합니다."""
        labels = pod.get("metadata", {}).get("labels")
        return readiness_label_for(labels, module_name, self.kernel_label)
