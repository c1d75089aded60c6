from typing import Optional

from aothost.host_api import (
    CompilerHost,
    MetadataBundlerHost,
    MetadataCollector,
    ModuleMetadata,
    ScriptTarget,
)
from aothost.metadata import ExportMetadataCollector


class MockMetadataBundlerHost(MetadataBundlerHost):
    """Provide metadata by logical module name (such as "/lib/index")"""

    __slots__ = ("_host", "_collector", "_source_extension")

    def __init__(
        self,
        host: CompilerHost,
        *,
        collector: Optional[MetadataCollector] = None,
        source_extension: str = ".ts",
    ) -> None:
        self._host = host
        self._collector = (
            collector if collector is not None else ExportMetadataCollector()
        )
        self._source_extension = source_extension

    def get_metadata_for(self, module_name: str) -> Optional[ModuleMetadata]:
        source = self._host.get_source_file(
            module_name + self._source_extension, ScriptTarget.LATEST
        )
        return self._collector.get_metadata(source)
