import dataclasses
import os
import posixpath
from types import MappingProxyType
from typing import (
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Union,
    IO,
    Any,
)

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from aothost.exceptions import VirtualTreeDefinitionError
from aothost.util import _warn


@dataclasses.dataclass(slots=True, frozen=True)
class VirtualFile:
    content: str

    @property
    def is_file(self) -> bool:
        return True

    @property
    def is_dir(self) -> bool:
        return False


@dataclasses.dataclass(slots=True, frozen=True)
class VirtualDirectory:
    children: Mapping[str, "VirtualNode"] = dataclasses.field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        if not isinstance(self.children, MappingProxyType):
            object.__setattr__(
                self, "children", MappingProxyType(dict(self.children))
            )

    @property
    def is_file(self) -> bool:
        return False

    @property
    def is_dir(self) -> bool:
        return True


VirtualNode = Union[VirtualFile, VirtualDirectory]


@dataclasses.dataclass(slots=True, frozen=True)
class TreeEntry:
    path_name: str
    content: Optional[str] = None


def _check_node(node: object) -> VirtualNode:
    if isinstance(node, (VirtualFile, VirtualDirectory)):
        return node
    raise TypeError(f"Not a virtual tree node: {node!r}")


def _path_segments(path: str) -> List[str]:
    names = path.split("/")
    if names and not names[0]:
        names.pop(0)
    if names and not names[-1]:
        names.pop()
    return names


def find(path: str, tree: Optional[VirtualNode]) -> Optional[VirtualNode]:
    """Locate the node for `path` in `tree`

    The path is split on "/" and a leading empty segment is discarded, so
    "/a/b" and "a/b" are the same lookup. A path cannot descend through a
    file node; such a lookup yields None just like a missing path.

    :param path: The slash-delimited path to look up.
    :param tree: The root of the tree. None is accepted and always yields None.
    :return: The node if found, otherwise None.
    """
    if tree is None:
        return None
    current = _check_node(tree)
    for name in _path_segments(path):
        if current.is_file:
            return None
        child = current.children.get(name)
        if child is None:
            return None
        current = _check_node(child)
    return current


def exists(path: str, tree: Optional[VirtualNode]) -> bool:
    return find(path, tree) is not None


def is_directory(path: str, tree: Optional[VirtualNode]) -> bool:
    node = find(path, tree)
    return node is not None and node.is_dir


def read_file(path: str, tree: Optional[VirtualNode]) -> Optional[str]:
    node = find(path, tree)
    if node is None or not node.is_file:
        return None
    return node.content


def directory_names(path: str, tree: Optional[VirtualNode]) -> List[str]:
    node = find(path, tree)
    if node is None or node.is_file:
        return []
    return [name for name, child in node.children.items() if _check_node(child).is_dir]


def all_file_paths(tree: Optional[VirtualNode], prefix: str = "") -> Iterator[str]:
    """Iterate over the absolute path of every file in the tree

    Directories are visited in tree order and a directory's files are
    produced before the files of its subdirectories are descended into.
    """
    if tree is None:
        return
    node = _check_node(tree)
    if node.is_file:
        yield prefix or "/"
        return
    stack = [(prefix, node)]
    while stack:
        dir_path, current = stack.pop()
        subdirs = []
        for name, child in current.children.items():
            child_path = f"{dir_path}/{name}"
            if _check_node(child).is_file:
                yield child_path
            else:
                subdirs.append((child_path, child))
        stack.extend(reversed(subdirs))


def virtual_tree(data: Mapping[str, Any]) -> VirtualDirectory:
    """Convert a nested mapping into a virtual tree

    Strings become files and mappings become directories. As an example:

        virtual_tree({"app": {"app.ts": "export class App {}"}})

    Existing tree nodes are accepted as values and kept as-is.
    """
    return _convert_directory(data, "")


def _convert_directory(data: Mapping[str, Any], path: str) -> VirtualDirectory:
    children: Dict[str, VirtualNode] = {}
    for name, value in data.items():
        if not isinstance(name, str) or not name or "/" in name:
            raise VirtualTreeDefinitionError(
                f'Invalid name {name!r} in the directory "{path or "/"}".'
                " Names must be non-empty strings without slashes"
            )
        child_path = f"{path}/{name}"
        if isinstance(value, (VirtualFile, VirtualDirectory)):
            children[name] = value
        elif isinstance(value, str):
            children[name] = VirtualFile(value)
        elif isinstance(value, Mapping):
            children[name] = _convert_directory(value, child_path)
        else:
            raise VirtualTreeDefinitionError(
                f'The value for "{child_path}" must be a string (file content) or'
                f" a mapping (directory), but got {type(value).__name__}"
            )
    return VirtualDirectory(children)


def _as_tree_entry(entry: Union[str, TreeEntry]) -> TreeEntry:
    return TreeEntry(entry) if isinstance(entry, str) else entry


def build_virtual_tree(paths: Iterable[Union[str, TreeEntry]]) -> VirtualDirectory:
    """Build a virtual tree from a flat list of paths

    Paths ending with "/" are directories; everything else is a file (with
    empty content unless a `TreeEntry` provides some). Parent directories
    are created as needed.

        build_virtual_tree(["/app/", TreeEntry("/app/main.ts", "main();")])
    """
    directories: Dict[str, Dict[str, Any]] = {"": {}}
    non_directories = set()

    def _ensure_parent_dirs(p: str) -> Dict[str, Any]:
        missing_dirs = []
        current = p
        while True:
            current = posixpath.dirname(current)
            if current == "/":
                current = ""
            if current in directories:
                break
            if current in non_directories:
                raise VirtualTreeDefinitionError(
                    f'Conflicting definition for "{current}".  The path "{p}" wants it as a directory,'
                    ' but it is defined as a non-directory.  (Ensure dirs end with "/")'
                )
            missing_dirs.append(current)
        for dir_path in reversed(missing_dirs):
            parent = directories[posixpath.dirname(dir_path).rstrip("/")]
            d: Dict[str, Any] = {}
            parent[posixpath.basename(dir_path)] = d
            directories[dir_path] = d
        parent_path = posixpath.dirname(p)
        return directories["" if parent_path == "/" else parent_path]

    for entry in (_as_tree_entry(p) for p in paths):
        path = entry.path_name
        is_dir = path.endswith("/")
        if not path.startswith("/"):
            path = "/" + path
        path = path.rstrip("/")
        if not path:
            continue
        if path in directories or path in non_directories:
            raise VirtualTreeDefinitionError(
                f'Duplicate definition of "{path}".  Can be false positive if input is not in'
                ' "correct order" (ensure directories occur before their children)'
            )
        if is_dir and entry.content is not None:
            raise VirtualTreeDefinitionError(
                f'The directory "{path}" cannot have content'
            )
        parent = _ensure_parent_dirs(path)
        name = posixpath.basename(path)
        if is_dir:
            d = {}
            parent[name] = d
            directories[path] = d
        else:
            parent[name] = VirtualFile(entry.content if entry.content is not None else "")
            non_directories.add(path)

    return virtual_tree(directories[""])


def load_virtual_tree(fd_or_path: Union[str, "os.PathLike[str]", IO[str]]) -> VirtualDirectory:
    """Load a nested fixture tree from a YAML document

    The document must be a mapping. String values are file content and
    mappings are directories. An empty (null) value is read as an empty
    directory.
    """
    yaml = YAML(typ="safe")
    try:
        if isinstance(fd_or_path, (str, os.PathLike)):
            with open(fd_or_path, "rt", encoding="utf-8") as fd:
                data = yaml.load(fd)
        else:
            data = yaml.load(fd_or_path)
    except YAMLError as e:
        raise VirtualTreeDefinitionError(
            f"Could not parse the fixture tree: {e}"
        ) from e
    if data is None:
        return VirtualDirectory()
    if not isinstance(data, Mapping):
        raise VirtualTreeDefinitionError(
            "The fixture tree must be a mapping at the top level"
        )
    return virtual_tree(_nulls_as_directories(data, ""))


def _nulls_as_directories(data: Mapping[str, Any], path: str) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for name, value in data.items():
        child_path = f"{path}/{name}"
        if value is None:
            _warn(f'The fixture path "{child_path}" has no value; assuming an empty directory')
            value = {}
        elif isinstance(value, Mapping):
            value = _nulls_as_directories(value, child_path)
        result[name] = value
    return result
