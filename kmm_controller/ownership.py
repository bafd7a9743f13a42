"""
Owner Reference Helper for KMM Controller
생성된 DaemonSet이 Module 삭제 시 함께 삭제되도록 Owner Reference를 설정합니다.
"""

import copy
from typing import Any, Dict

from .config import Config
from .errors import OwnershipError
from .module import Module


def _group(api_version: str) -> str:
    return api_version.split("/", 1)[0] if "/" in api_version else ""


def _same_owner(ref: Dict[str, Any], api_version: str, kind: str, name: str) -> bool:
    return (
        _group(ref.get("apiVersion", "")) == _group(api_version)
        and ref.get("kind") == kind
        and ref.get("name") == name
    )


def set_controller_reference(owner: Module, obj: Dict[str, Any]) -> Dict[str, Any]:
    """obj의 복사본에 owner를 컨트롤러로 지정한 Owner Reference를 설정합니다.

    같은 owner를 가리키는 기존 참조는 교체되며, owner에 uid가 없거나, 다른
    컨트롤러가 이미 존재하거나, namespace가 다르면 OwnershipError가 발생합니다.
    """
    if not owner.uid:
        raise OwnershipError(
            f"module {owner.namespace}/{owner.name} has no uid, "
            f"cannot set it as owner of a DaemonSet"
        )

    api_version = Config.get_module_api_version()
    kind = Config.MODULE_KIND

    result = copy.deepcopy(obj)
    metadata = result.setdefault("metadata", {})

    namespace = metadata.get("namespace")
    if namespace and owner.namespace and namespace != owner.namespace:
        raise OwnershipError(
            f"cross-namespace owner references are disallowed, owner's namespace "
            f"{owner.namespace}, obj's namespace {namespace}"
        )

    owner_refs = metadata.get("ownerReferences") or []
    for ref in owner_refs:
        if ref.get("controller") and not _same_owner(ref, api_version, kind, owner.name):
            raise OwnershipError(
                f"object {metadata.get('name') or metadata.get('generateName', '')} "
                f"is already owned by another {ref.get('kind')} controller "
                f"{ref.get('name')}"
            )

    new_ref = {
        "apiVersion": api_version,
        "kind": kind,
        "name": owner.name,
        "uid": owner.uid,
        "controller": True,
        "blockOwnerDeletion": True,
    }

    metadata["ownerReferences"] = [
        ref for ref in owner_refs if not _same_owner(ref, api_version, kind, owner.name)
    ] + [new_ref]

    return result
