"""
args
----

명령/파라미터 해석. 토큰 파싱 자체는 click 이 담당하고,
여기서는 파싱된 옵션에서 실행할 명령을 정확히 하나 고르고
그 명령의 필수 파라미터가 모두 있는지 확인한다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Tuple, Union

from .errors import UsageError
from .logging_utils import get_logger


logger = get_logger(__name__)


OptionValue = Union[str, bool]


@dataclass(frozen=True)
class CommandSpec:
    commands: Tuple[str, ...]
    required: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    optional: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    flags: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    global_flags: Tuple[str, ...] = ()

    def required_for(self, command: str) -> Tuple[str, ...]:
        return tuple(self.required.get(command, ()))

    def accepted_for(self, command: str) -> Tuple[str, ...]:
        return (
            self.required_for(command)
            + tuple(self.optional.get(command, ()))
            + tuple(self.flags.get(command, ()))
            + self.global_flags
        )


COMMAND_SPEC = CommandSpec(
    commands=("init", "targets", "test", "run"),
    required={
        "test": ("module", "target"),
        "run": ("module", "target"),
    },
    optional={
        "test": ("label",),
        "run": ("label",),
    },
    flags={
        "run": ("force",),
    },
    global_flags=("verbose",),
)


class ParsedOptions(Mapping[str, OptionValue]):
    """
    옵션 이름 -> 문자열 값 또는 플래그 존재(True) 매핑.
    한 번 만들어지면 변경할 수 없다.
    """

    def __init__(self, values: Mapping[str, OptionValue] | None = None) -> None:
        self._values = MappingProxyType(dict(values or {}))

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "ParsedOptions":
        """click 이 넘겨준 파라미터에서 값이 없는 항목(None/False/0)을 제외한다."""
        values: Dict[str, OptionValue] = {}
        for name, value in params.items():
            if value is None or value is False:
                continue
            if isinstance(value, bool):
                values[name] = True
            elif isinstance(value, int):
                # count 옵션 (-vv 등) 은 존재 여부만 남긴다
                if value > 0:
                    values[name] = True
            else:
                values[name] = str(value)
        return cls(values)

    def __getitem__(self, key: str) -> OptionValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def flag(self, name: str) -> bool:
        return self._values.get(name) is True

    def value(self, name: str) -> str | None:
        raw = self._values.get(name)
        if raw is None or isinstance(raw, bool):
            return None
        return raw

    def __repr__(self) -> str:
        return f"ParsedOptions({dict(self._values)!r})"


def _format_names(names: Tuple[str, ...]) -> str:
    return ", ".join(f"--{n}" for n in names)


def resolve_command(options: ParsedOptions, spec: CommandSpec = COMMAND_SPEC) -> str:
    """
    옵션에 포함된 명령 플래그를 세어 정확히 하나인 경우 그 명령 이름을 반환한다.

    Raises:
        UsageError: 명령이 0개 또는 2개 이상이거나, 필수 파라미터가 빠진 경우
    """
    selected = [name for name in spec.commands if options.flag(name)]
    if len(selected) != 1:
        raise UsageError(
            f"명령은 정확히 하나만 지정해야 합니다: {_format_names(spec.commands)}"
            + (f" (지정됨: {_format_names(tuple(selected))})" if selected else "")
        )

    command = selected[0]
    missing = tuple(name for name in spec.required_for(command) if name not in options)
    if missing:
        raise UsageError(
            f"--{command} 에 필요한 파라미터가 없습니다: {_format_names(missing)}"
        )

    accepted = set(spec.accepted_for(command)) | set(spec.commands)
    ignored = sorted(name for name in options if name not in accepted)
    if ignored:
        logger.debug("--%s 에서 사용하지 않는 옵션을 무시합니다: %s", command, ignored)

    logger.debug("선택된 명령: %s (%s)", command, options)
    return command
