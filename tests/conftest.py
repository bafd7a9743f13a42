"""
pytest 공통 설정 및 Fixture 정의
"""

import copy
import os
import sys
from unittest.mock import Mock

import pytest

# 프로젝트 루트를 Python 경로에 추가
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from kmm_controller.config import Config
from kmm_controller.module import Module

KERNEL_LABEL = "kmm.node.kubernetes.io/kernel-version.full"


MODULE_MANIFEST = {
    "apiVersion": "kmm.sigs.k8s.io/v1beta1",
    "kind": "Module",
    "metadata": {
        "name": "kmm-ci-build",
        "namespace": "default",
        "uid": "6d1c5b8e-7a55-4d1f-9f0b-0c2a7e6f1a11",
    },
    "spec": {
        "moduleLoader": {
            "serviceAccountName": "module-loader-sa",
            "container": {
                "modprobe": {"moduleName": "kmm_ci_a"},
                "imagePullPolicy": "Always",
                "kernelMappings": [
                    {
                        "literal": "5.14.0-70.el9.x86_64",
                        "containerImage": "registry.minikube/kmm-kmod:local",
                    },
                    {
                        "regexp": r"^.+\.el8\.x86_64$",
                        "containerImage": "registry.minikube/kmm-kmod:${KERNEL_FULL_VERSION}",
                    },
                ],
            },
        },
        "selector": {"kubernetes.io/hostname": "minikube"},
    },
}


DEVICE_PLUGIN_SECTION = {
    "serviceAccountName": "device-plugin-sa",
    "container": {
        "image": "registry.minikube/kmm-device-plugin:local",
        "imagePullPolicy": "IfNotPresent",
        "command": ["/usr/bin/device-plugin"],
        "args": ["--verbose"],
        "env": [{"name": "DP_MODE", "value": "ci"}],
        "resources": {"limits": {"cpu": "100m"}},
        "volumeMounts": [{"name": "dp-config", "mountPath": "/etc/dp"}],
    },
    "volumes": [{"name": "dp-config", "configMap": {"name": "dp-config"}}],
}


@pytest.fixture
def module_manifest():
    """테스트용 Module 매니페스트"""
    return copy.deepcopy(MODULE_MANIFEST)


@pytest.fixture
def module(module_manifest):
    """기본 Module"""
    return Module.from_dict(module_manifest)


@pytest.fixture
def device_plugin_module(module_manifest):
    """Device Plugin이 설정된 Module"""
    module_manifest["spec"]["devicePlugin"] = copy.deepcopy(DEVICE_PLUGIN_SECTION)
    module_manifest["spec"]["imageRepoSecret"] = {"name": "pull-secret"}
    return Module.from_dict(module_manifest)


@pytest.fixture
def firmware_module(module_manifest):
    """펌웨어를 사용하는 Module"""
    module_manifest["spec"]["moduleLoader"]["container"]["modprobe"] = {
        "moduleName": "kmm_ci_a",
        "firmwarePath": "/firmware",
        "dirName": "/opt",
        "parameters": ["a=1", "b=2"],
    }
    return Module.from_dict(module_manifest)


@pytest.fixture
def mock_store():
    """Mock Kubernetes 오브젝트 저장소"""
    store = Mock()
    store.list_daemon_sets.return_value = []
    return store


def make_daemon_set(name, kernel_version=None, role="module-loader", module_name="kmm-ci-build"):
    """테스트용 DaemonSet 매니페스트를 만듭니다."""
    labels = {
        Config.MODULE_NAME_LABEL: module_name,
        Config.DAEMONSET_ROLE_LABEL: role,
    }
    if kernel_version is not None:
        labels[KERNEL_LABEL] = kernel_version

    return {
        "apiVersion": "apps/v1",
        "kind": "DaemonSet",
        "metadata": {"name": name, "namespace": "default", "labels": labels},
    }


@pytest.fixture(autouse=True)
def reset_config():
    """각 테스트 후 설정 초기화"""
    namespace = Config.NAMESPACE
    kernel_label = Config.KERNEL_LABEL
    log_file = Config.LOG_FILE
    yield
    Config.NAMESPACE = namespace
    Config.KERNEL_LABEL = kernel_label
    Config.LOG_FILE = log_file


# 테스트 마커 등록
def pytest_configure(config):
    """pytest 설정"""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "kubernetes: mark test as requiring kubernetes")
