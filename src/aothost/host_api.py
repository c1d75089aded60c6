import dataclasses
import enum
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
)


class ScriptTarget(enum.IntEnum):
    ES3 = 0
    ES5 = 1
    ES2015 = 2
    ES2016 = 3
    ES2017 = 4
    LATEST = ES2017


class ModuleKind(enum.Enum):
    NONE = "none"
    COMMONJS = "commonjs"
    ES2015 = "es2015"


class ModuleResolutionKind(enum.Enum):
    CLASSIC = "classic"
    NODEJS = "node"


@dataclasses.dataclass(slots=True, frozen=True, kw_only=True)
class CompilerOptions:
    target: ScriptTarget = ScriptTarget.ES5
    declaration: bool = True
    module: ModuleKind = ModuleKind.COMMONJS
    module_resolution: ModuleResolutionKind = ModuleResolutionKind.NODEJS
    emit_decorator_metadata: bool = True
    experimental_decorators: bool = True
    remove_comments: bool = False
    no_implicit_any: bool = False
    skip_lib_check: bool = True
    lib: Tuple[str, ...] = ("lib.es2015.d.ts", "lib.dom.d.ts")
    types: Tuple[str, ...] = tuple()
    trace_resolution: bool = False
    base_dir: str = "/"
    gen_dir: str = "/"


@dataclasses.dataclass(slots=True, frozen=True)
class SourceFile:
    """Parsed representation of a source file

    Produced by `CompilerToolchain.create_source_file`.  The host caches
    these per path until the path is overridden or written to.
    """

    file_name: str
    text: str
    language_version: ScriptTarget
    line_starts: Tuple[int, ...] = tuple()

    @property
    def is_declaration_file(self) -> bool:
        return self.file_name.endswith(".d.ts")

    def line_and_character_of(self, position: int) -> Tuple[int, int]:
        if position < 0 or position > len(self.text):
            raise ValueError(
                f"Position {position} is outside {self.file_name} (length {len(self.text)})"
            )
        starts = self.line_starts or (0,)
        line = 0
        for idx, start in enumerate(starts):
            if start > position:
                break
            line = idx
        return line, position - starts[line]


@dataclasses.dataclass(slots=True, frozen=True)
class ResolvedModule:
    resolved_file_name: str
    extension: str
    is_external_library_import: bool = False


@dataclasses.dataclass(slots=True, frozen=True)
class WrittenFile:
    name: str
    content: str


ModuleMetadata = Dict[str, Any]
WriteErrorCallback = Callable[[str], None]


class ModuleResolutionHost:
    """File system view used for resolving module names"""

    __slots__ = ()

    def file_exists(self, file_name: str) -> bool:
        """Determine whether a file can be resolved

        Never raises.  A path that exists only as a directory is not a file.
        """
        raise NotImplementedError

    def read_file(self, file_name: str) -> str:
        """Read the content of a file

        :raises HostFileNotFoundError: When no layer of the host can provide the file.
        """
        raise NotImplementedError

    def directory_exists(self, directory_name: str) -> bool:
        raise NotImplementedError

    def get_directories(self, path: str) -> List[str]:
        """Names of the immediate subdirectories of `path`"""
        raise NotImplementedError

    def trace(self, message: str) -> None:
        """Record a diagnostic message emitted during module resolution"""
        raise NotImplementedError


class CompilerHost(ModuleResolutionHost):
    """Everything a compiler pipeline requires from its host environment"""

    __slots__ = ()

    def get_source_file(
        self,
        file_name: str,
        language_version: ScriptTarget,
        on_error: Optional[WriteErrorCallback] = None,
    ) -> SourceFile:
        """Return the parsed source of `file_name`

        :raises HostFileNotFoundError: When the file cannot be resolved.
        """
        raise NotImplementedError

    def get_default_lib_file_name(self, options: CompilerOptions) -> str:
        raise NotImplementedError

    def write_file(
        self,
        file_name: str,
        data: str,
        write_byte_order_mark: bool = False,
        on_error: Optional[WriteErrorCallback] = None,
        source_files: Optional[Sequence[SourceFile]] = None,
    ) -> None:
        """Receive an output of the compiler

        :param file_name: The path of the output.
        :param data: The content of the output.
        :param write_byte_order_mark: Whether the compiler requested a BOM.
        :param on_error: Callback for reporting write errors.
        :param source_files: The source files the output was produced from.
        """
        raise NotImplementedError

    def get_current_directory(self) -> str:
        raise NotImplementedError

    def get_canonical_file_name(self, file_name: str) -> str:
        raise NotImplementedError

    def use_case_sensitive_file_names(self) -> bool:
        raise NotImplementedError

    def get_new_line(self) -> str:
        raise NotImplementedError


class AotCompilerHost:
    """Module and metadata resolution needed by an ahead-of-time compiler"""

    __slots__ = ()

    def get_metadata_for(self, module_path: str) -> Optional[List[ModuleMetadata]]:
        """Return the metadata records for a module

        :return: None if the module does not exist (or only has hidden or
          missing metadata for a declaration file).  Otherwise, a (possibly
          empty) list of metadata records.
        """
        raise NotImplementedError

    def module_name_to_file_name(
        self, module_name: str, containing_file: Optional[str]
    ) -> Optional[str]:
        raise NotImplementedError

    def file_name_to_module_name(
        self, imported_file: str, containing_file: str
    ) -> Optional[str]:
        raise NotImplementedError

    def is_source_file(self, file_path: str) -> bool:
        raise NotImplementedError

    def get_output_file_name(self, source_file_path: str) -> str:
        raise NotImplementedError

    def load_summary(self, file_path: str) -> Optional[str]:
        raise NotImplementedError

    async def load_resource(self, path: str) -> str:
        """Load a resource such as a template or a stylesheet

        :raises ResourceNotFoundError: When the resource does not exist.
        """
        raise NotImplementedError


class MetadataBundlerHost:
    __slots__ = ()

    def get_metadata_for(self, module_name: str) -> Optional[ModuleMetadata]:
        raise NotImplementedError


class CompilerToolchain:
    """The compiler services the hosts depend on

    The hosts never parse or resolve on their own; they delegate to an
    implementation of this interface.
    """

    __slots__ = ()

    def create_source_file(
        self,
        file_name: str,
        text: str,
        language_version: ScriptTarget,
    ) -> SourceFile:
        raise NotImplementedError

    def default_lib_file_path(self, options: CompilerOptions) -> str:
        """Path of the default library declaration file on the real file system

        Other library declaration files ("lib.*.d.ts") are expected in the same
        directory.
        """
        raise NotImplementedError

    def resolve_module_name(
        self,
        module_name: str,
        containing_file: str,
        options: CompilerOptions,
        host: ModuleResolutionHost,
    ) -> Optional[ResolvedModule]:
        raise NotImplementedError


class MetadataCollector:
    __slots__ = ()

    def get_metadata(self, source_file: SourceFile) -> Optional[ModuleMetadata]:
        """Extract the metadata of a parsed source file

        :return: The metadata or None if the source file has none.
        """
        raise NotImplementedError


def json_metadata_records(value: Any) -> List[ModuleMetadata]:
    """Normalize a decoded metadata file into a list of records"""
    if isinstance(value, list):
        return value
    return [value]

