import dataclasses
import os
import re
from typing import (
    Any,
    Callable,
    Dict,
    IO,
    Mapping,
    Optional,
    Pattern,
    Tuple,
    Type,
    Union,
)

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from aothost.exceptions import HostConfigError
from aothost.host_api import (
    CompilerOptions,
    ModuleKind,
    ModuleResolutionKind,
    ScriptTarget,
)
from aothost.name_rewriter import (
    DEFAULT_VENDOR_PREFIX,
    NameRewriteRule,
    NameRewriter,
    RewriteBacking,
)
from aothost.util import _warn


DEFAULT_COMPILER_OPTIONS = CompilerOptions()


@dataclasses.dataclass(slots=True, frozen=True, kw_only=True)
class HostConfig:
    compiler_options: CompilerOptions = DEFAULT_COMPILER_OPTIONS
    vendor_prefix: str = DEFAULT_VENDOR_PREFIX
    rewrite_rules: Tuple[NameRewriteRule, ...] = tuple()
    lib_file_pattern: Pattern[str] = re.compile(r"^lib(\.[\w.-]+)?\.d\.ts$")
    dts_pattern: Pattern[str] = re.compile(r"\.d\.ts$")
    metadata_suffix: str = ".metadata.json"
    emit_metadata: bool = False
    fallback_to_real_fs: bool = False
    current_directory: str = "/"

    def name_rewriter(self) -> NameRewriter:
        return NameRewriter(self.rewrite_rules)

    def replace(self, **changes: Any) -> "HostConfig":
        return dataclasses.replace(self, **changes)


@dataclasses.dataclass(slots=True, frozen=True, kw_only=True)
class AotHostConfig:
    extension_pattern: Pattern[str] = re.compile(r"(\.ts|\.d\.ts|\.js|\.jsx|\.tsx)$")
    dts_pattern: Pattern[str] = re.compile(r"\.d\.ts$")
    generated_files_pattern: Pattern[str] = re.compile(
        r"\.ngfactory\.ts$|\.ngstyle\.ts$"
    )
    metadata_suffix: str = ".metadata.json"
    declaration_suffix: str = ".d.ts"
    default_containing_file: str = "/index.ts"


DEFAULT_HOST_CONFIG = HostConfig()
DEFAULT_AOT_HOST_CONFIG = AotHostConfig()


def _kebab_to_snake(name: str) -> str:
    return name.replace("-", "_")


def _require(value: Any, expected: Type[Any], path: str) -> Any:
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise HostConfigError(
            f'The value of "{path}" must be of type {expected.__name__},'
            f" but got {type(value).__name__}"
        )
    return value


def _enum_value(enum_type: Type[Any], value: Any, path: str) -> Any:
    if isinstance(value, str):
        for name, member in enum_type.__members__.items():
            if name.lower() == value.lower() or (
                isinstance(member.value, str) and member.value == value.lower()
            ):
                return member
    names = ", ".join(n.lower() for n in enum_type.__members__)
    raise HostConfigError(
        f'Unknown value {value!r} for "{path}".  Valid values are: {names}'
    )


def _regex(value: Any, path: str) -> Pattern[str]:
    try:
        return re.compile(_require(value, str, path))
    except re.error as e:
        raise HostConfigError(f'Invalid regular expression for "{path}": {e}') from e


def _string_tuple(value: Any, path: str) -> Tuple[str, ...]:
    _require(value, list, path)
    return tuple(_require(v, str, f"{path}[{i}]") for i, v in enumerate(value))


_COMPILER_OPTION_PARSERS: Mapping[str, Callable[[Any, str], Any]] = {
    "target": lambda v, p: _enum_value(ScriptTarget, v, p),
    "declaration": lambda v, p: _require(v, bool, p),
    "module": lambda v, p: _enum_value(ModuleKind, v, p),
    "module_resolution": lambda v, p: _enum_value(ModuleResolutionKind, v, p),
    "emit_decorator_metadata": lambda v, p: _require(v, bool, p),
    "experimental_decorators": lambda v, p: _require(v, bool, p),
    "remove_comments": lambda v, p: _require(v, bool, p),
    "no_implicit_any": lambda v, p: _require(v, bool, p),
    "skip_lib_check": lambda v, p: _require(v, bool, p),
    "lib": _string_tuple,
    "types": _string_tuple,
    "trace_resolution": lambda v, p: _require(v, bool, p),
    "base_dir": lambda v, p: _require(v, str, p),
    "gen_dir": lambda v, p: _require(v, str, p),
}


def _parse_compiler_options(data: Any, path: str) -> CompilerOptions:
    _require(data, dict, path)
    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        attr = _kebab_to_snake(str(key))
        parser = _COMPILER_OPTION_PARSERS.get(attr)
        if parser is None:
            _warn(f'Ignoring unknown compiler option "{key}" in "{path}"')
            continue
        kwargs[attr] = parser(value, f"{path}.{key}")
    return CompilerOptions(**kwargs)


def _parse_rewrite_rule(data: Any, path: str) -> NameRewriteRule:
    _require(data, dict, path)
    known = {"prefix", "real-root", "backing"}
    unknown = data.keys() - known
    if unknown:
        raise HostConfigError(
            f'Unknown keys {sorted(unknown)} in "{path}".  Valid keys are: {", ".join(sorted(known))}'
        )
    missing = {"prefix", "real-root"} - data.keys()
    if missing:
        raise HostConfigError(
            f'The following keys were required but not present in "{path}": {", ".join(sorted(missing))}'
        )
    backing = RewriteBacking.EXTERNAL_MODULES
    if "backing" in data:
        backing = _enum_value(RewriteBacking, data["backing"], f"{path}.backing")
    return NameRewriteRule(
        _require(data["prefix"], str, f"{path}.prefix"),
        _require(data["real-root"], str, f"{path}.real-root"),
        backing,
    )


def _parse_rewrite_rules(data: Any, path: str) -> Tuple[NameRewriteRule, ...]:
    _require(data, list, path)
    rules = tuple(
        _parse_rewrite_rule(rule, f"{path}[{idx}]") for idx, rule in enumerate(data)
    )
    # Validates ordering and shadowing
    NameRewriter(rules)
    return rules


_HOST_CONFIG_PARSERS: Mapping[str, Callable[[Any, str], Any]] = {
    "compiler_options": _parse_compiler_options,
    "vendor_prefix": lambda v, p: _require(v, str, p),
    "rewrite_rules": _parse_rewrite_rules,
    "lib_file_pattern": _regex,
    "dts_pattern": _regex,
    "metadata_suffix": lambda v, p: _require(v, str, p),
    "emit_metadata": lambda v, p: _require(v, bool, p),
    "fallback_to_real_fs": lambda v, p: _require(v, bool, p),
    "current_directory": lambda v, p: _require(v, str, p),
}


def parse_host_config(data: Any) -> HostConfig:
    """Build a `HostConfig` from already decoded data (such as a YAML mapping)

    Keys are the kebab-case names of the `HostConfig` attributes. Unknown keys
    are ignored with a warning. Omitted keys keep their defaults.
    """
    if data is None:
        return DEFAULT_HOST_CONFIG
    _require(data, dict, "<root>")
    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        attr = _kebab_to_snake(str(key))
        parser = _HOST_CONFIG_PARSERS.get(attr)
        if parser is None:
            _warn(f'Ignoring unknown host configuration key "{key}"')
            continue
        kwargs[attr] = parser(value, str(key))
    return HostConfig(**kwargs)


def load_host_config(
    fd_or_path: Union[str, "os.PathLike[str]", IO[str]],
) -> HostConfig:
    """Load a `HostConfig` from a YAML document

    Example document:

        emit-metadata: true
        compiler-options:
          target: es2015
          trace-resolution: true
        rewrite-rules:
          - prefix: /node_modules/@angular/
            real-root: /src/angular/packages
          - prefix: /node_modules/rxjs/
            real-root: /src/angular/node_modules/rxjs
            backing: real-filesystem
    """
    yaml = YAML(typ="safe")
    try:
        if isinstance(fd_or_path, (str, os.PathLike)):
            with open(fd_or_path, "rt", encoding="utf-8") as fd:
                data = yaml.load(fd)
        else:
            data = yaml.load(fd_or_path)
    except YAMLError as e:
        raise HostConfigError(f"Could not parse the host configuration: {e}") from e
    return parse_host_config(data)


def resolve_host_config(config: Optional[HostConfig]) -> HostConfig:
    return config if config is not None else DEFAULT_HOST_CONFIG
