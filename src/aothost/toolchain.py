import json
import os
import posixpath
from typing import List, Optional, Sequence, Tuple

from aothost.exceptions import HostConfigError, HostFileNotFoundError
from aothost.host_api import (
    CompilerOptions,
    CompilerToolchain,
    ModuleResolutionHost,
    ModuleResolutionKind,
    ResolvedModule,
    ScriptTarget,
    SourceFile,
)
from aothost.util import normalize_virtual_path

# Order matters: ".d.ts" must be tried after ".ts" and ".tsx"
TYPESCRIPT_EXTENSIONS: Sequence[str] = (".ts", ".tsx", ".d.ts")
DEFAULT_LIB_FILE_NAME = "lib.d.ts"
LIB_DIR_ENVIRONMENT_VARIABLE = "AOTHOST_LIB_DIR"


def _compute_line_starts(text: str) -> Tuple[int, ...]:
    starts = [0]
    for idx, c in enumerate(text):
        if c == "\n":
            starts.append(idx + 1)
        elif c == "\r" and text[idx + 1 : idx + 2] != "\n":
            starts.append(idx + 1)
    return tuple(starts)


def _is_relative_or_rooted(module_name: str) -> bool:
    return (
        module_name.startswith("./")
        or module_name.startswith("../")
        or module_name in (".", "..")
        or module_name.startswith("/")
    )


def _extension_of(file_name: str) -> str:
    for ext in (".d.ts", ".tsx", ".ts"):
        if file_name.endswith(ext):
            return ext
    return posixpath.splitext(file_name)[1]


class BasicToolchain(CompilerToolchain):
    """Minimal compiler services for driving the hosts in tests

    Source files are not parsed beyond recording their line structure.
    Module resolution follows the Node.js lookup rules for TypeScript
    sources: extension probing, "package.json" typings, "index" files and
    "node_modules" directories of every ancestor.
    """

    __slots__ = ("_lib_dir",)

    def __init__(self, lib_dir: Optional[str] = None) -> None:
        if lib_dir is None:
            lib_dir = os.environ.get(LIB_DIR_ENVIRONMENT_VARIABLE)
        self._lib_dir = lib_dir

    @property
    def lib_dir(self) -> Optional[str]:
        return self._lib_dir

    def create_source_file(
        self,
        file_name: str,
        text: str,
        language_version: ScriptTarget,
    ) -> SourceFile:
        return SourceFile(
            file_name,
            text,
            language_version,
            line_starts=_compute_line_starts(text),
        )

    def default_lib_file_path(self, options: CompilerOptions) -> str:
        if self._lib_dir is None:
            raise HostConfigError(
                "No directory for the default library declaration files has been configured."
                f" Pass lib_dir to the toolchain or set {LIB_DIR_ENVIRONMENT_VARIABLE}"
            )
        return os.path.join(self._lib_dir, DEFAULT_LIB_FILE_NAME)

    def resolve_module_name(
        self,
        module_name: str,
        containing_file: str,
        options: CompilerOptions,
        host: ModuleResolutionHost,
    ) -> Optional[ResolvedModule]:
        tracing = options.trace_resolution

        def _trace(msg: str) -> None:
            if tracing:
                host.trace(msg)

        _trace(
            f"======== Resolving module '{module_name}' from '{containing_file}'. ========"
        )
        containing_dir = posixpath.dirname(normalize_virtual_path(containing_file))
        if not containing_dir:
            containing_dir = options.base_dir

        if _is_relative_or_rooted(module_name):
            candidate = normalize_virtual_path(
                posixpath.join(containing_dir, module_name)
            )
            resolved = self._load_as_file_or_directory(candidate, host, _trace)
            is_external = False
        elif options.module_resolution == ModuleResolutionKind.CLASSIC:
            resolved = self._classic_lookup(module_name, containing_dir, host, _trace)
            is_external = False
        else:
            resolved = self._node_modules_lookup(
                module_name, containing_dir, host, _trace
            )
            is_external = resolved is not None

        if resolved is None:
            _trace(f"======== Module name '{module_name}' was not resolved. ========")
            return None
        _trace(
            f"======== Module name '{module_name}' was successfully resolved to '{resolved}'. ========"
        )
        return ResolvedModule(
            resolved,
            _extension_of(resolved),
            is_external_library_import=is_external,
        )

    def _load_as_file_or_directory(
        self,
        candidate: str,
        host: ModuleResolutionHost,
        trace,
    ) -> Optional[str]:
        return self._load_as_file(candidate, host, trace) or self._load_as_directory(
            candidate, host, trace
        )

    def _load_as_file(
        self,
        candidate: str,
        host: ModuleResolutionHost,
        trace,
    ) -> Optional[str]:
        for ext in TYPESCRIPT_EXTENSIONS:
            file_name = candidate + ext
            if host.file_exists(file_name):
                trace(f"File '{file_name}' exist - use it as a name resolution result.")
                return file_name
            trace(f"File '{file_name}' does not exist.")
        return None

    def _load_as_directory(
        self,
        candidate: str,
        host: ModuleResolutionHost,
        trace,
    ) -> Optional[str]:
        package_json = posixpath.join(candidate, "package.json")
        if host.file_exists(package_json):
            trace(f"Found 'package.json' at '{package_json}'.")
            for typings in self._package_typings(package_json, host):
                typings_path = normalize_virtual_path(posixpath.join(candidate, typings))
                if host.file_exists(typings_path):
                    trace(
                        f"'package.json' has 'typings' field '{typings}' that references '{typings_path}'."
                    )
                    return typings_path
                stripped = typings_path
                for ext in (".d.ts", ".ts", ".js"):
                    if stripped.endswith(ext):
                        stripped = stripped[: -len(ext)]
                        break
                resolved = self._load_as_file(stripped, host, trace)
                if resolved is not None:
                    return resolved
        return self._load_as_file(posixpath.join(candidate, "index"), host, trace)

    @staticmethod
    def _package_typings(package_json: str, host: ModuleResolutionHost) -> List[str]:
        try:
            content = json.loads(host.read_file(package_json))
        except (HostFileNotFoundError, ValueError):
            return []
        if not isinstance(content, dict):
            return []
        return [
            content[k]
            for k in ("typings", "types", "main")
            if isinstance(content.get(k), str) and content[k]
        ]

    def _node_modules_lookup(
        self,
        module_name: str,
        containing_dir: str,
        host: ModuleResolutionHost,
        trace,
    ) -> Optional[str]:
        trace(
            f"Loading module '{module_name}' from 'node_modules' folder, target file type 'TypeScript'."
        )
        directory = containing_dir
        while True:
            if posixpath.basename(directory) != "node_modules":
                node_modules = posixpath.join(directory, "node_modules")
                candidate = posixpath.join(node_modules, module_name)
                resolved = self._load_as_file_or_directory(candidate, host, trace)
                if resolved is not None:
                    return resolved
            parent = posixpath.dirname(directory)
            if parent == directory:
                return None
            directory = parent

    def _classic_lookup(
        self,
        module_name: str,
        containing_dir: str,
        host: ModuleResolutionHost,
        trace,
    ) -> Optional[str]:
        directory = containing_dir
        while True:
            resolved = self._load_as_file(
                posixpath.join(directory, module_name), host, trace
            )
            if resolved is not None:
                return resolved
            parent = posixpath.dirname(directory)
            if parent == directory:
                return None
            directory = parent
