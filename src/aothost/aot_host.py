import dataclasses
import json
from typing import List, Optional

from aothost.config import AotHostConfig, DEFAULT_AOT_HOST_CONFIG
from aothost.exceptions import (
    HostFileNotFoundError,
    InvalidRelativeResolutionError,
    ResourceNotFoundError,
)
from aothost.host import LayeredCompilerHost
from aothost.host_api import (
    AotCompilerHost,
    ModuleMetadata,
    ScriptTarget,
    json_metadata_records,
)


class MockAotCompilerHost(AotCompilerHost):
    """Ahead-of-time compiler view of a layered compiler host

    All file access is delegated to the wrapped host.  This class adds the
    interpretation an ahead-of-time compiler needs: metadata is read from
    the companion metadata file of declaration files (or collected from the
    source of other modules), and generated files are not considered to be
    source files.
    """

    __slots__ = ("_ts_host", "_config", "_metadata_visible", "_dts_are_source")

    def __init__(
        self,
        ts_host: LayeredCompilerHost,
        *,
        config: Optional[AotHostConfig] = None,
    ) -> None:
        self._ts_host = ts_host
        self._config = config if config is not None else DEFAULT_AOT_HOST_CONFIG
        self._metadata_visible = True
        self._dts_are_source = True

    @property
    def ts_host(self) -> LayeredCompilerHost:
        return self._ts_host

    def hide_metadata(self) -> None:
        """Ignore companion metadata files of declaration files"""
        self._metadata_visible = False

    def ts_files_only(self) -> None:
        """Stop treating declaration files as source files"""
        self._dts_are_source = False

    def _strip_extension(self, file_name: str) -> str:
        return self._config.extension_pattern.sub("", file_name)

    def get_metadata_for(self, module_path: str) -> Optional[List[ModuleMetadata]]:
        ts_host = self._ts_host
        if not ts_host.file_exists(module_path):
            return None
        dts_pattern = self._config.dts_pattern
        if dts_pattern.search(module_path):
            if self._metadata_visible:
                metadata_path = dts_pattern.sub(self._config.metadata_suffix, module_path)
                if ts_host.file_exists(metadata_path):
                    return json_metadata_records(
                        json.loads(ts_host.read_file(metadata_path))
                    )
            return None
        source_file = ts_host.get_source_file(module_path, ScriptTarget.LATEST)
        metadata = ts_host.collector.get_metadata(source_file)
        return [metadata] if metadata else []

    def module_name_to_file_name(
        self,
        module_name: str,
        containing_file: Optional[str],
    ) -> Optional[str]:
        if not containing_file:
            if module_name.startswith("."):
                raise InvalidRelativeResolutionError(
                    "Resolution of relative paths requires a containing file."
                )
            # Any containing file gives the same result for absolute imports
            containing_file = self._config.default_containing_file
        module_name = self._strip_extension(module_name)
        options = self._ts_host.compiler_options
        resolved = self._ts_host.toolchain.resolve_module_name(
            module_name,
            containing_file.replace("\\", "/"),
            dataclasses.replace(options, base_dir="/", gen_dir="/"),
            self._ts_host,
        )
        return resolved.resolved_file_name if resolved is not None else None

    def file_name_to_module_name(
        self,
        imported_file: str,
        containing_file: str,
    ) -> Optional[str]:
        return self._strip_extension(imported_file)

    def is_source_file(self, file_path: str) -> bool:
        config = self._config
        if config.generated_files_pattern.search(file_path):
            return False
        return self._dts_are_source or not config.dts_pattern.search(file_path)

    def get_output_file_name(self, source_file_path: str) -> str:
        return self._strip_extension(source_file_path) + self._config.declaration_suffix

    def load_summary(self, file_path: str) -> Optional[str]:
        """Read a summary file or return None when no layer provides it

        :raises HostConfigError: When `file_path` names a library declaration
          file (see `HostConfig.lib_file_pattern`) and the toolchain has no
          library directory configured.
        """
        try:
            return self._ts_host.read_file(file_path)
        except HostFileNotFoundError:
            return None

    async def load_resource(self, path: str) -> str:
        ts_host = self._ts_host
        if not ts_host.file_exists(path):
            raise ResourceNotFoundError(f"Resource {path} not found.", path)
        return ts_host.read_file(path)
