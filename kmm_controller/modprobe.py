"""
Modprobe Command Builder for KMM Controller
ModprobeSpec을 노드에서 실행할 셸 명령어로 변환합니다.
"""

from typing import List

from .config import Config
from .module import ModprobeSpec

SHELL = ["/bin/sh", "-c"]


def make_load_command(spec: ModprobeSpec, module_name: str) -> List[str]:
    """모듈 로드 명령어를 생성합니다.

    rawArgs.load가 있으면 다른 모든 필드를 무시하고 그대로 modprobe에 전달합니다.
    그렇지 않으면 펌웨어 복사, 인자(기본값 -v), -d 디렉터리, 모듈 이름, 파라미터
    순서로 명령어를 조립합니다.
    """
    command = "modprobe"

    if spec.raw_args is not None and spec.raw_args.load:
        return SHELL + [f"{command} {' '.join(spec.raw_args.load)}"]

    if spec.firmware_path:
        firmware_dir = Config.get_firmware_path(module_name)
        command = f"cp -r {spec.firmware_path} {firmware_dir} && {command}"

    if spec.args is not None and spec.args.load:
        command = f"{command} {' '.join(spec.args.load)}"
    else:
        command = f"{command} -v"

    if spec.dir_name:
        command = f"{command} -d {spec.dir_name}"

    command = f"{command} {spec.module_name}"

    if spec.parameters:
        command = f"{command} {' '.join(spec.parameters)}"

    return SHELL + [command]


def make_unload_command(spec: ModprobeSpec, module_name: str) -> List[str]:
    """모듈 언로드 명령어를 생성합니다.

    rawArgs.unload가 있으면 그대로 사용하고, 아니면 기본 인자 -rv를 사용합니다.
    펌웨어가 설정된 경우 언로드 후 모듈별 펌웨어 디렉터리를 삭제합니다.
    """
    command = "modprobe"

    if spec.raw_args is not None and spec.raw_args.unload:
        return SHELL + [f"{command} {' '.join(spec.raw_args.unload)}"]

    if spec.args is not None and spec.args.unload:
        command = f"{command} {' '.join(spec.args.unload)}"
    else:
        command = f"{command} -rv"

    if spec.dir_name:
        command = f"{command} -d {spec.dir_name}"

    command = f"{command} {spec.module_name}"

    if spec.firmware_path:
        command = f"{command} && rm -rf {Config.get_firmware_path(module_name)}"

    return SHELL + [command]
