import re
from typing import Any, Dict, List, Optional

from aothost.host_api import MetadataCollector, ModuleMetadata, SourceFile

METADATA_VERSION = 3

_COMMENTS = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)
_DECORATOR = re.compile(r"@(?P<name>[A-Za-z_$][\w$]*)\s*(?:\(|\s)")
_EXPORT = re.compile(
    r"""
    (?P<decorators>(?:@[A-Za-z_$][\w$]*\s*(?:\([^)]*\))?\s*)*)
    \bexport\s+
    (?:default\s+)?
    (?:declare\s+)?
    (?:abstract\s+)?
    (?P<kind>class|function|const|let|var|interface|enum|type)\s+
    (?P<name>[A-Za-z_$][\w$]*)
    """,
    re.VERBOSE,
)
_REEXPORT = re.compile(r"""\bexport\s+\*\s+from\s+(?P<quote>['"])(?P<from>[^'"]+)(?P=quote)""")

_SYMBOLIC_KIND = {
    "class": "class",
    "function": "function",
    "const": "reference",
    "let": "reference",
    "var": "reference",
    "enum": "enum",
    "interface": "interface",
    "type": "interface",
}


class ExportMetadataCollector(MetadataCollector):
    """Extract a coarse metadata summary of the exported declarations

    For each exported declaration, the metadata records its symbolic kind.
    Decorators applied to an exported class are recorded by name.  The
    collector works on the source text only; it does not evaluate
    expressions.

    Declaration files (".d.ts") produce no metadata, as they carry their
    metadata in a companion metadata file.
    """

    __slots__ = ()

    def get_metadata(self, source_file: SourceFile) -> Optional[ModuleMetadata]:
        if source_file.is_declaration_file:
            return None
        text = _COMMENTS.sub("", source_file.text)
        metadata: Dict[str, Any] = {}
        for m in _EXPORT.finditer(text):
            entry: Dict[str, Any] = {"__symbolic": _SYMBOLIC_KIND[m.group("kind")]}
            decorators = self._decorator_names(m.group("decorators"))
            if decorators and m.group("kind") == "class":
                entry["decorators"] = [
                    {"__symbolic": "call", "expression": {"__symbolic": "reference", "name": d}}
                    for d in decorators
                ]
            metadata[m.group("name")] = entry
        exports = [{"from": m.group("from")} for m in _REEXPORT.finditer(text)]
        if not metadata and not exports:
            return None
        result: ModuleMetadata = {
            "__symbolic": "module",
            "version": METADATA_VERSION,
            "metadata": metadata,
        }
        if exports:
            result["exports"] = exports
        return result

    @staticmethod
    def _decorator_names(decorators: str) -> List[str]:
        return [m.group("name") for m in _DECORATOR.finditer(decorators + " ")]
