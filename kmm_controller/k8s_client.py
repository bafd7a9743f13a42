"""
Kubernetes Client for KMM Controller
Kubernetes API와 상호작용하여 DaemonSet과 Module을 조회/생성/삭제합니다.
"""

import logging
from typing import Any, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from .config import Config
from .errors import StoreError

logger = logging.getLogger(__name__)


class KubernetesClient:
    """Kubernetes API 클라이언트

    모든 오브젝트는 매니페스트 형식의 dict로 주고받습니다.
    API 오류는 StoreError로 감싸서 그대로 전달하며 재시도하지 않습니다.
    """

    def __init__(self):
        """Kubernetes 클라이언트를 초기화합니다."""
        self._init_kubernetes_client()

    def _init_kubernetes_client(self):
        """Kubernetes 클라이언트를 초기화합니다."""
        try:
            if Config.KUBECONFIG_PATH:
                config.load_kube_config(Config.KUBECONFIG_PATH)
                logger.info(f"Kubernetes config loaded from {Config.KUBECONFIG_PATH}")
            else:
                config.load_incluster_config()
                logger.info("Kubernetes config loaded from in-cluster")

            self.api_client = client.ApiClient()
            self.apps_v1 = client.AppsV1Api(self.api_client)
            self.custom_objects = client.CustomObjectsApi(self.api_client)
            logger.info("Kubernetes client initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize Kubernetes client: {e}")
            raise

    def _to_dict(self, obj) -> Dict[str, Any]:
        """API 모델 객체를 매니페스트 형식(camelCase) dict로 변환합니다."""
        if isinstance(obj, dict):
            return obj
        return self.api_client.sanitize_for_serialization(obj)

    def _store_error(self, action: str, name: str, namespace: str, e: ApiException):
        logger.error(f"Failed to {action} DaemonSet {namespace}/{name}: {e}")
        return StoreError(
            f"could not {action} DaemonSet {namespace}/{name}: {e.reason}",
            status=e.status,
        )

    def get_daemon_set(self, name: str, namespace: str) -> Optional[Dict[str, Any]]:
        """DaemonSet을 조회합니다. 존재하지 않으면 None을 반환합니다."""
        try:
            ds = self.apps_v1.read_namespaced_daemon_set(name=name, namespace=namespace)
            return self._to_dict(ds)
        except ApiException as e:
            if e.status == 404:
                return None
            raise self._store_error("get", name, namespace, e) from e

    def list_daemon_sets(
        self, namespace: str, labels: Optional[Dict[str, str]] = None
    ) -> List[Dict[str, Any]]:
        """라벨이 일치하는 DaemonSet 목록을 조회합니다."""
        label_selector = ",".join(f"{k}={v}" for k, v in sorted((labels or {}).items()))
        try:
            ds_list = self.apps_v1.list_namespaced_daemon_set(
                namespace=namespace, label_selector=label_selector
            )
        except ApiException as e:
            logger.error(f"Failed to list DaemonSets in {namespace}: {e}")
            raise StoreError(
                f"could not list DaemonSets in {namespace} "
                f"with selector {label_selector!r}: {e.reason}",
                status=e.status,
            ) from e

        items = [self._to_dict(ds) for ds in ds_list.items]
        logger.debug(f"Found {len(items)} DaemonSets in {namespace} ({label_selector})")
        return items

    def create_daemon_set(self, ds: Dict[str, Any]) -> Dict[str, Any]:
        """DaemonSet을 생성합니다."""
        metadata = ds.get("metadata", {})
        namespace = metadata.get("namespace", Config.NAMESPACE)
        name = metadata.get("name") or metadata.get("generateName", "")
        try:
            created = self.apps_v1.create_namespaced_daemon_set(namespace=namespace, body=ds)
        except ApiException as e:
            raise self._store_error("create", name, namespace, e) from e

        created = self._to_dict(created)
        logger.info(f"Created DaemonSet {namespace}/{created['metadata']['name']}")
        return created

    def update_daemon_set(self, ds: Dict[str, Any]) -> Dict[str, Any]:
        """DaemonSet을 갱신합니다."""
        metadata = ds["metadata"]
        namespace = metadata.get("namespace", Config.NAMESPACE)
        name = metadata["name"]
        try:
            updated = self.apps_v1.replace_namespaced_daemon_set(
                name=name, namespace=namespace, body=ds
            )
        except ApiException as e:
            raise self._store_error("update", name, namespace, e) from e

        logger.info(f"Updated DaemonSet {namespace}/{name}")
        return self._to_dict(updated)

    def apply_daemon_set(self, ds: Dict[str, Any]) -> Dict[str, Any]:
        """DaemonSet이 존재하면 갱신하고, 없으면 생성합니다."""
        name = ds.get("metadata", {}).get("name")
        if name and self.get_daemon_set(name, ds["metadata"].get("namespace", Config.NAMESPACE)):
            return self.update_daemon_set(ds)
        return self.create_daemon_set(ds)

    def delete_daemon_set(self, name: str, namespace: str):
        """DaemonSet을 삭제합니다."""
        try:
            self.apps_v1.delete_namespaced_daemon_set(name=name, namespace=namespace)
        except ApiException as e:
            raise self._store_error("delete", name, namespace, e) from e

        logger.info(f"Deleted DaemonSet {namespace}/{name}")

    def get_module(self, name: str, namespace: str) -> Dict[str, Any]:
        """Module 커스텀 리소스를 조회합니다."""
        try:
            return self.custom_objects.get_namespaced_custom_object(
                group=Config.MODULE_API_GROUP,
                version=Config.MODULE_API_VERSION,
                namespace=namespace,
                plural=Config.MODULE_PLURAL,
                name=name,
            )
        except ApiException as e:
            logger.error(f"Failed to get Module {namespace}/{name}: {e}")
            raise StoreError(
                f"could not get Module {namespace}/{name}: {e.reason}",
                status=e.status,
            ) from e
