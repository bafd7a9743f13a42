"""
Main Entry Point for KMM Controller
Module로부터 DaemonSet을 렌더링/적용하거나 오래된 DaemonSet을 정리합니다.
"""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

import yaml

from . import __version__
from .config import Config
from .daemonset import DaemonSetCreator
from .errors import KMMError
from .k8s_client import KubernetesClient
from .module import Module

logger = logging.getLogger(__name__)


def setup_logging(log_level: Optional[str] = None):
    """로깅을 설정합니다."""
    if log_level is None:
        log_level = Config.LOG_LEVEL

    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    # 렌더링 결과가 stdout으로 나가므로 로그는 stderr로 보냅니다.
    handlers = [logging.StreamHandler(sys.stderr)]
    if Config.LOG_FILE:
        handlers.append(logging.FileHandler(Config.LOG_FILE))

    logging.basicConfig(
        level=numeric_level,
        format=Config.LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def parse_arguments(argv: Optional[List[str]] = None):
    """명령행 인수를 파싱합니다."""
    parser = argparse.ArgumentParser(
        prog="kmm_controller",
        description="Kernel Module Management DaemonSet generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 클러스터의 Module로 커널 버전별 DaemonSet 렌더링
  python -m kmm_controller --module kmm-ci-build --kernel-version 5.14.0-70.el9.x86_64

  # 매니페스트 파일 사용 (metadata.uid 필요)
  python -m kmm_controller --module-file module.yaml --kernel-version 5.14

  # 렌더링한 DaemonSet을 클러스터에 적용
  python -m kmm_controller --module kmm-ci-build --kernel-version 5.14 --apply

  # 유효하지 않은 커널 버전의 DaemonSet 정리 (시뮬레이션)
  python -m kmm_controller --module kmm-ci-build --gc --valid-kernel 5.14 --dry-run
        """,
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=Config.LOG_LEVEL,
        help="로그 레벨 설정 (기본값: INFO)",
    )

    parser.add_argument("--config", type=str, help="설정 파일 경로")

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--module-file", type=str, help="Module 매니페스트 파일 경로")
    source.add_argument(
        "--module", type=str, help="클러스터에서 조회할 Module 이름 (NAMESPACE 기준)"
    )

    parser.add_argument(
        "--kernel-version",
        action="append",
        default=[],
        help="DaemonSet을 생성할 커널 버전 (여러 번 지정 가능)",
    )

    parser.add_argument(
        "--image", type=str, help="Kernel Mapping 대신 사용할 module-loader 이미지"
    )

    parser.add_argument(
        "--apply",
        action="store_true",
        help="렌더링한 DaemonSet을 클러스터에 생성/갱신",
    )

    parser.add_argument(
        "--gc",
        action="store_true",
        help="클러스터에서 유효하지 않은 커널 버전의 DaemonSet을 정리",
    )

    parser.add_argument(
        "--valid-kernel",
        action="append",
        default=[],
        help="GC 시 유지할 커널 버전 (여러 번 지정 가능)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="실제 변경사항을 적용하지 않고 시뮬레이션만 실행",
    )

    parser.add_argument(
        "--version", action="version", version=f"KMM Controller v{__version__}"
    )

    return parser.parse_args(argv)


def load_config_file(config_path: str):
    """설정 파일을 로드합니다."""
    with open(config_path, "r") as f:
        config_data = yaml.safe_load(f) or {}

    # 설정값들을 Config 클래스에 적용
    for key, value in config_data.items():
        if hasattr(Config, key):
            setattr(Config, key, value)
            logger.info(f"Loaded config: {key} = {value}")
        else:
            logger.warning(f"Ignoring unknown config key: {key}")

    logger.info(f"Configuration loaded from {config_path}")


def load_module_file(module_path: str) -> Module:
    """Module 매니페스트 파일을 읽습니다."""
    with open(module_path, "r") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise KMMError(f"{module_path} does not contain a Module manifest")

    return Module.from_dict(data, namespace=Config.NAMESPACE)


def load_module(k8s_client: KubernetesClient, name: str) -> Module:
    """클러스터에서 Module을 조회합니다."""
    data = k8s_client.get_module(name, Config.NAMESPACE)
    return Module.from_dict(data, namespace=Config.NAMESPACE)


def render_desired_state(
    module: Module,
    kernel_versions: List[str],
    creator: DaemonSetCreator,
    image: Optional[str] = None,
    existing: Optional[Dict[Optional[str], Dict[str, Any]]] = None,
) -> List[Dict[str, Any]]:
    """Module의 원하는 DaemonSet 목록을 생성합니다.

    existing에 같은 커널 버전의 DaemonSet이 있으면 그것을 기준으로 생성합니다.
    """
    existing = existing or {}
    desired = []

    for kernel_version in kernel_versions:
        kernel_image = image or module.image_for_kernel(kernel_version)
        if not kernel_image:
            logger.warning(
                f"No image for module {module.name} on kernel {kernel_version}, skipping"
            )
            continue

        ds = existing.get(kernel_version) or {
            "metadata": {"generateName": f"{module.name}-", "namespace": module.namespace}
        }
        desired.append(
            creator.set_driver_container_as_desired(ds, kernel_image, module, kernel_version)
        )

    if module.spec.device_plugin is not None:
        ds = existing.get(None) or {
            "metadata": {
                "name": f"{module.name}-device-plugin",
                "namespace": module.namespace,
            }
        }
        desired.append(creator.set_device_plugin_as_desired(ds, module))

    logger.info(f"Rendered {len(desired)} DaemonSets for module {module.name}")
    return desired


def apply_desired_state(
    module: Module,
    kernel_versions: List[str],
    k8s_client: KubernetesClient,
    image: Optional[str] = None,
    dry_run: bool = False,
) -> List[Dict[str, Any]]:
    """원하는 DaemonSet을 클러스터에 생성하거나 갱신합니다."""
    creator = DaemonSetCreator(k8s_client, Config.KERNEL_LABEL)
    existing = creator.module_daemon_sets_by_kernel_version(module.name, module.namespace)
    desired = render_desired_state(module, kernel_versions, creator, image, existing)

    if dry_run:
        names = [
            ds["metadata"].get("name") or ds["metadata"]["generateName"] for ds in desired
        ]
        logger.warning(f"DRY RUN - would apply DaemonSets: {names}")
        return desired

    return [k8s_client.apply_daemon_set(ds) for ds in desired]


def garbage_collect(
    module: Module,
    valid_kernels: List[str],
    k8s_client: KubernetesClient,
    dry_run: bool = False,
) -> List[str]:
    """클러스터의 DaemonSet을 조회하여 유효하지 않은 것을 정리합니다."""
    creator = DaemonSetCreator(k8s_client, Config.KERNEL_LABEL)
    existing = creator.module_daemon_sets_by_kernel_version(module.name, module.namespace)

    if dry_run:
        stale = [
            ds["metadata"]["name"]
            for ds in creator.stale_daemon_sets(existing, valid_kernels).values()
        ]
        logger.warning(f"DRY RUN - would delete DaemonSets: {stale}")
        return stale

    return creator.garbage_collect(existing, valid_kernels)


def main(argv: Optional[List[str]] = None) -> int:
    """메인 함수"""
    args = parse_arguments(argv)

    setup_logging(args.log_level)

    try:
        if args.config:
            load_config_file(args.config)

        k8s_client = None
        if args.module or args.apply or args.gc:
            k8s_client = KubernetesClient()

        if args.module:
            module = load_module(k8s_client, args.module)
        else:
            module = load_module_file(args.module_file)

        if args.gc:
            deleted = garbage_collect(module, args.valid_kernel, k8s_client, args.dry_run)
            for name in deleted:
                print(name)
            return 0

        if args.apply:
            applied = apply_desired_state(
                module, args.kernel_version, k8s_client, args.image, args.dry_run
            )
            for ds in applied:
                print(ds["metadata"].get("name") or ds["metadata"]["generateName"])
            return 0

        creator = DaemonSetCreator(k8s_client, Config.KERNEL_LABEL)
        desired = render_desired_state(module, args.kernel_version, creator, args.image)
        yaml.safe_dump_all(desired, sys.stdout, default_flow_style=False, sort_keys=False)
        return 0

    except (KMMError, OSError, yaml.YAMLError) as e:
        logger.error(f"{e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
