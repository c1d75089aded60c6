"""Layered compiler hosts backed by in-memory fixtures

A host answers the file system questions of a compiler pipeline from a
stack of layers.  In order of priority:

 1. overrides installed by the test
 2. files written by a previous compilation
 3. the fixture tree given to the constructor
 4. vendor libraries (only for unrewritten paths beneath the vendor prefix)
 5. the real file system (library declaration files, rewritten paths backed
    by the real file system and, if enabled, any other path)

Paths matching a name rewrite rule skip layers 3 and 4 and are served from
the external module map or the real file system depending on the rule.
"""

import json
import os
import posixpath
from types import MappingProxyType
from typing import (
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
)

from aothost.config import HostConfig, resolve_host_config
from aothost.exceptions import HostFileNotFoundError
from aothost.host_api import (
    CompilerHost,
    CompilerOptions,
    CompilerToolchain,
    MetadataCollector,
    ScriptTarget,
    SourceFile,
    WriteErrorCallback,
    WrittenFile,
)
from aothost.metadata import ExportMetadataCollector
from aothost.name_rewriter import NameRewriter, RewriteBacking, RewriteResult
from aothost.toolchain import BasicToolchain, DEFAULT_LIB_FILE_NAME
from aothost.util import possible_typos
from aothost.virtual_tree import (
    VirtualNode,
    all_file_paths,
    directory_names,
    is_directory,
    read_file,
)


class LayeredCompilerHost(CompilerHost):
    """Base of the layered hosts

    Subclasses decide how names given by the test are mapped before they
    are stored (see `_script_name`).
    """

    def __init__(
        self,
        script_names: Iterable[str],
        data: Optional[VirtualNode] = None,
        external_modules: Optional[Mapping[str, str]] = None,
        libraries: Optional[Sequence[Mapping[str, str]]] = None,
        *,
        config: Optional[HostConfig] = None,
        toolchain: Optional[CompilerToolchain] = None,
        collector: Optional[MetadataCollector] = None,
    ) -> None:
        self._config = resolve_host_config(config)
        self._rewriter: NameRewriter = self._config.name_rewriter()
        self._toolchain = toolchain if toolchain is not None else BasicToolchain()
        self._collector = (
            collector if collector is not None else ExportMetadataCollector()
        )
        self._data = data
        self._external_modules: Mapping[str, str] = (
            external_modules if external_modules is not None else {}
        )
        self._libraries: Sequence[Mapping[str, str]] = (
            tuple(libraries) if libraries is not None else tuple()
        )
        self._overrides: Dict[str, str] = {}
        self._written_files: Dict[str, str] = {}
        self._source_files: Dict[str, SourceFile] = {}
        self._assume_exists: Set[str] = set()
        self._traces: List[str] = []
        self._script_names: List[str] = [self._script_name(f) for f in script_names]

    # Configuration and inspection

    @property
    def config(self) -> HostConfig:
        return self._config

    @property
    def compiler_options(self) -> CompilerOptions:
        return self._config.compiler_options

    @property
    def toolchain(self) -> CompilerToolchain:
        return self._toolchain

    @property
    def collector(self) -> MetadataCollector:
        return self._collector

    @property
    def rewriter(self) -> NameRewriter:
        return self._rewriter

    @property
    def scripts(self) -> List[str]:
        return list(self._script_names)

    @property
    def overrides(self) -> Mapping[str, str]:
        return MappingProxyType(self._overrides)

    @property
    def written(self) -> Mapping[str, str]:
        return MappingProxyType(self._written_files)

    @property
    def traces(self) -> Sequence[str]:
        return tuple(self._traces)

    def get_written_files(self) -> List[WrittenFile]:
        return [WrittenFile(name, content) for name, content in self._written_files.items()]

    def effective_name(self, file_name: str) -> str:
        return self._rewriter.effective_name(file_name)

    def _script_name(self, file_name: str) -> str:
        return file_name

    # Test API

    def override(self, file_name: str, content: Optional[str]) -> None:
        """Install (or with `content=None`, remove) an override for a path

        The override shadows every other layer, including rewritten paths.
        """
        file_name = self._script_name(file_name)
        if content is not None:
            self._overrides[file_name] = content
        else:
            self._overrides.pop(file_name, None)
        self._source_files.pop(file_name, None)

    def add_script(self, file_name: str, content: str) -> None:
        file_name = self._script_name(file_name)
        self._overrides[file_name] = content
        self._script_names.append(file_name)
        self._source_files.pop(file_name, None)

    def assume_file_exists(self, file_name: str) -> None:
        """Make `file_exists` report the path as present without giving it content"""
        self._assume_exists.add(file_name)

    def remove(self, files: Iterable[str]) -> None:
        """Restrict the scripts to `files` and forget their written outputs

        The script list is filtered to the paths that are also listed in
        `files` (order of the scripts is kept).  Written files for every
        path in `files` are discarded.
        """
        file_set = frozenset(files)
        self._script_names = [f for f in self._script_names if f in file_set]
        for f in file_set:
            if self._written_files.pop(f, None) is not None:
                self._source_files.pop(f, None)

    def add_written_file(self, file_name: str, content: str) -> None:
        file_name = self._script_name(file_name)
        self._written_files[file_name] = content
        self._source_files.pop(file_name, None)

    # ModuleResolutionHost

    def file_exists(self, file_name: str) -> bool:
        if (
            file_name in self._overrides
            or file_name in self._written_files
            or file_name in self._assume_exists
        ):
            return True
        rewritten = self._rewriter.rewrite(file_name)
        if not rewritten.is_rewritten:
            if read_file(file_name, self._data) is not None:
                return True
            if self._vendor_library_content(file_name) is not None:
                return True
            if self._config.fallback_to_real_fs:
                return os.path.isfile(file_name)
            return False
        if rewritten.backing == RewriteBacking.REAL_FILESYSTEM:
            return os.path.isfile(rewritten.path)
        return rewritten.path in self._external_modules

    def read_file(self, file_name: str) -> str:
        content = self._file_content(file_name)
        if content is None:
            raise HostFileNotFoundError(self._not_found_message(file_name), file_name)
        return content

    def directory_exists(self, directory_name: str) -> bool:
        rewritten = self._rewriter.rewrite(directory_name)
        if rewritten.is_rewritten:
            return os.path.isdir(rewritten.path) or any(
                p.startswith(rewritten.path.rstrip("/") + "/")
                for p in self._external_modules
            )
        if is_directory(directory_name, self._data):
            return True
        return self._config.fallback_to_real_fs and os.path.isdir(directory_name)

    def get_directories(self, path: str) -> List[str]:
        rewritten = self._rewriter.rewrite(path)
        if rewritten.is_rewritten:
            names = set(_real_subdirectories(rewritten.path))
            names.update(self._external_subdirectories(rewritten.path))
            return sorted(names)
        if is_directory(path, self._data):
            return directory_names(path, self._data)
        if self._config.fallback_to_real_fs:
            return _real_subdirectories(path)
        return []

    def trace(self, message: str) -> None:
        self._traces.append(message)

    # CompilerHost

    def get_source_file(
        self,
        file_name: str,
        language_version: ScriptTarget,
        on_error: Optional[WriteErrorCallback] = None,
    ) -> SourceFile:
        result = self._source_files.get(file_name)
        if result is None:
            content = self._file_content(file_name)
            if content is None:
                raise HostFileNotFoundError(
                    self._not_found_message(file_name), file_name
                )
            result = self._toolchain.create_source_file(
                file_name, content, language_version
            )
            self._source_files[file_name] = result
        return result

    def get_default_lib_file_name(self, options: CompilerOptions) -> str:
        return DEFAULT_LIB_FILE_NAME

    def write_file(
        self,
        file_name: str,
        data: str,
        write_byte_order_mark: bool = False,
        on_error: Optional[WriteErrorCallback] = None,
        source_files: Optional[Sequence[SourceFile]] = None,
    ) -> None:
        self.add_written_file(file_name, data)
        config = self._config
        if config.emit_metadata and source_files and config.dts_pattern.search(file_name):
            metadata_file_name = config.dts_pattern.sub(config.metadata_suffix, file_name)
            metadata = self._collector.get_metadata(source_files[0])
            if metadata:
                self.add_written_file(metadata_file_name, json.dumps(metadata))

    def get_current_directory(self) -> str:
        return self._config.current_directory

    def get_canonical_file_name(self, file_name: str) -> str:
        return file_name

    def use_case_sensitive_file_names(self) -> bool:
        return False

    def get_new_line(self) -> str:
        return "\n"

    # Layer resolution

    def _file_content(self, file_name: str) -> Optional[str]:
        content = self._overrides.get(file_name)
        if content is not None:
            return content
        content = self._written_files.get(file_name)
        if content is not None:
            return content
        basename = posixpath.basename(file_name)
        if self._config.lib_file_pattern.search(basename):
            return self._lib_file_content(basename)
        rewritten = self._rewriter.rewrite(file_name)
        if not rewritten.is_rewritten:
            return self._unrewritten_content(file_name)
        return self._rewritten_content(rewritten)

    def _unrewritten_content(self, file_name: str) -> Optional[str]:
        content = read_file(file_name, self._data)
        if content is not None:
            return content
        content = self._vendor_library_content(file_name)
        if content is not None:
            return content
        if self._config.fallback_to_real_fs:
            return _read_real_file(file_name)
        return None

    def _rewritten_content(self, rewritten: RewriteResult) -> Optional[str]:
        if rewritten.backing == RewriteBacking.REAL_FILESYSTEM:
            return _read_real_file(rewritten.path)
        return self._external_modules.get(rewritten.path)

    def _vendor_library_content(self, file_name: str) -> Optional[str]:
        prefix = self._config.vendor_prefix
        if not self._libraries or not file_name.startswith(prefix):
            return None
        # The key keeps the leading slash: "/node_modules/a/b.ts" -> "/a/b.ts"
        library_path = file_name[len(prefix) - 1 :]
        for library in self._libraries:
            content = library.get(library_path)
            if content is not None:
                return content
        return None

    def _external_subdirectories(self, path: str) -> Iterable[str]:
        prefix = path.rstrip("/") + "/"
        for module_path in self._external_modules:
            if module_path.startswith(prefix):
                child, sep, _ = module_path[len(prefix) :].partition("/")
                # Only paths with a further segment make `child` a directory
                if sep:
                    yield child

    def _lib_file_content(self, basename: str) -> Optional[str]:
        lib_path = self._toolchain.default_lib_file_path(self._config.compiler_options)
        return _read_real_file(os.path.join(os.path.dirname(lib_path), basename))

    def _known_file_names(self) -> Iterable[str]:
        yield from self._overrides
        yield from self._written_files
        yield from all_file_paths(self._data)

    def _not_found_message(self, file_name: str) -> str:
        msg = f"File not found '{file_name}'."
        matches = possible_typos(file_name, self._known_file_names())
        if matches:
            alternatives = ", ".join(f"'{m}'" for m in matches[:3])
            msg += f" Did you mean {alternatives}?"
        return msg


class MockCompilerHost(LayeredCompilerHost):
    """Compiler host serving a fixture tree with test overrides

    :param script_names: The initial scripts under compilation.
    :param data: The fixture tree.
    :param external_modules: Content for paths rewritten by rules backed by
      the external module map (keyed by the rewritten path).
    :param libraries: Vendor libraries consulted for paths beneath the vendor
      prefix that are not in the fixture tree.
    :param config: Host configuration.
    :param toolchain: Compiler services used for parsing.
    :param collector: Metadata collector used for companion metadata files.
    """


class EmittingCompilerHost(LayeredCompilerHost):
    """Compiler host over the real file system that keeps compiler output in memory

    Names given to the host (scripts, overrides and written files) are
    mapped through the name rewriter first, so a test can refer to a
    vendored package by its import name.  Companion metadata files are
    written for declaration outputs unless the configuration says otherwise.
    """

    def __init__(
        self,
        script_names: Iterable[str],
        *,
        mock_data: Optional[VirtualNode] = None,
        emit_metadata: bool = True,
        config: Optional[HostConfig] = None,
        toolchain: Optional[CompilerToolchain] = None,
        collector: Optional[MetadataCollector] = None,
    ) -> None:
        config = resolve_host_config(config).replace(
            emit_metadata=emit_metadata,
            fallback_to_real_fs=True,
        )
        super().__init__(
            script_names,
            mock_data,
            config=config,
            toolchain=toolchain,
            collector=collector,
        )

    def _script_name(self, file_name: str) -> str:
        return self._rewriter.effective_name(file_name)


def _read_real_file(path: str) -> Optional[str]:
    try:
        with open(path, "rt", encoding="utf-8") as fd:
            return fd.read()
    except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
        return None


def _real_subdirectories(path: str) -> List[str]:
    try:
        names = os.listdir(path)
    except (FileNotFoundError, NotADirectoryError):
        return []
    return sorted(n for n in names if os.path.isdir(os.path.join(path, n)))
