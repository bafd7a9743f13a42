"""
라벨 유틸리티 및 노드 준비 상태 라벨 테스트
"""

import pytest

from kmm_controller.config import Config
from kmm_controller.labels import (
    WorkloadRole,
    get_device_plugin_kernel_version,
    get_pod_pull_secrets,
    is_device_plugin_kernel_version,
    kernel_version_from_labels,
    override_labels,
    readiness_label_for,
    readiness_label_for_role,
    workload_role,
)

KERNEL_LABEL = "kmm.node.kubernetes.io/kernel-version.full"


class TestOverrideLabels:
    """라벨 병합 테스트"""

    def test_merges_without_mutating_inputs(self):
        base = {"app": "x", "role": "old"}
        overrides = {"role": "new"}

        merged = override_labels(base, overrides)

        assert merged == {"app": "x", "role": "new"}
        assert base == {"app": "x", "role": "old"}
        assert merged is not base

    def test_none_labels(self):
        assert override_labels(None, {"a": "b"}) == {"a": "b"}


class TestPullSecrets:
    """imagePullSecrets 테스트"""

    def test_absent_secret_is_empty_list(self):
        assert get_pod_pull_secrets(None) == []

    def test_secret(self):
        assert get_pod_pull_secrets("pull-secret") == [{"name": "pull-secret"}]


class TestKernelVersion:
    """커널 버전 라벨 해석 테스트"""

    def test_device_plugin_kernel_version(self):
        assert is_device_plugin_kernel_version(get_device_plugin_kernel_version())
        assert not is_device_plugin_kernel_version("5.14")
        assert not is_device_plugin_kernel_version("")

    @pytest.mark.parametrize("labels", [None, {}, {KERNEL_LABEL: ""}])
    def test_absent_or_empty_label_is_none(self, labels):
        assert kernel_version_from_labels(labels, KERNEL_LABEL) is None

    def test_kernel_version(self):
        assert kernel_version_from_labels({KERNEL_LABEL: "5.14"}, KERNEL_LABEL) == "5.14"

    def test_workload_role(self):
        assert (
            workload_role({KERNEL_LABEL: "5.14"}, KERNEL_LABEL)
            is WorkloadRole.MODULE_LOADER
        )
        assert workload_role({}, KERNEL_LABEL) is WorkloadRole.DEVICE_PLUGIN
        assert (
            workload_role(
                {KERNEL_LABEL: "5.14", Config.DAEMONSET_ROLE_LABEL: "device-plugin"},
                KERNEL_LABEL,
            )
            is WorkloadRole.DEVICE_PLUGIN
        )


class TestReadinessLabel:
    """노드 준비 상태 라벨 테스트"""

    def test_label_format(self):
        assert (
            readiness_label_for_role(WorkloadRole.MODULE_LOADER, "kmm-ci")
            == "kmm.node.kubernetes.io/kmm-ci.ready"
        )
        assert (
            readiness_label_for_role(WorkloadRole.DEVICE_PLUGIN, "kmm-ci")
            == "kmm.node.kubernetes.io/kmm-ci.device-plugin-ready"
        )

    @pytest.mark.parametrize("labels", [{}, {KERNEL_LABEL: ""}, None])
    def test_device_plugin_pod(self, labels):
        assert (
            readiness_label_for(labels, "kmm-ci", KERNEL_LABEL)
            == "kmm.node.kubernetes.io/kmm-ci.device-plugin-ready"
        )

    @pytest.mark.parametrize("kernel_version", ["5.14.0-70.el9.x86_64", "6.1", "x"])
    def test_module_loader_pod(self, kernel_version):
        assert (
            readiness_label_for({KERNEL_LABEL: kernel_version}, "kmm-ci", KERNEL_LABEL)
            == "kmm.node.kubernetes.io/kmm-ci.ready"
        )

    def test_default_kernel_label_from_config(self):
        Config.KERNEL_LABEL = "example.com/kernel"
        assert (
            readiness_label_for({"example.com/kernel": "6.1"}, "m")
            == "kmm.node.kubernetes.io/m.ready"
        )
        assert (
            readiness_label_for({KERNEL_LABEL: "6.1"}, "m")
            == "kmm.node.kubernetes.io/m.device-plugin-ready"
        )

    def test_different_modules_do_not_collide(self):
        assert readiness_label_for({}, "a", KERNEL_LABEL) != readiness_label_for(
            {}, "b", KERNEL_LABEL
        )
