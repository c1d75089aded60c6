import textwrap

import pytest

from aothost.exceptions import HostConfigError
from aothost.host import MockCompilerHost
from aothost.host_api import (
    CompilerOptions,
    ModuleResolutionKind,
    ScriptTarget,
)
from aothost.metadata import ExportMetadataCollector
from aothost.toolchain import BasicToolchain
from aothost.virtual_tree import virtual_tree


@pytest.fixture()
def toolchain() -> BasicToolchain:
    return BasicToolchain("/opt/typescript/lib")


def test_create_source_file(toolchain: BasicToolchain) -> None:
    sf = toolchain.create_source_file("/a.ts", "one\ntwo\r\nthree\rfour", ScriptTarget.ES5)
    assert sf.file_name == "/a.ts"
    assert sf.language_version == ScriptTarget.ES5
    assert sf.line_starts == (0, 4, 9, 15)
    assert sf.line_and_character_of(0) == (0, 0)
    assert sf.line_and_character_of(10) == (2, 1)
    assert sf.line_and_character_of(15) == (3, 0)
    assert not sf.is_declaration_file
    with pytest.raises(ValueError):
        sf.line_and_character_of(100)


def test_default_lib_file_path(toolchain: BasicToolchain, monkeypatch) -> None:
    assert toolchain.default_lib_file_path(CompilerOptions()) == "/opt/typescript/lib/lib.d.ts"
    monkeypatch.setenv("AOTHOST_LIB_DIR", "/from/env")
    assert BasicToolchain().lib_dir == "/from/env"
    monkeypatch.delenv("AOTHOST_LIB_DIR")
    with pytest.raises(HostConfigError):
        BasicToolchain().default_lib_file_path(CompilerOptions())


@pytest.fixture()
def resolution_host() -> MockCompilerHost:
    return MockCompilerHost(
        [],
        virtual_tree(
            {
                "src": {
                    "main.ts": "",
                    "widget.tsx": "",
                    "node_modules": {
                        "local": {"index.ts": ""},
                    },
                    "nested": {"deep.ts": ""},
                },
                "node_modules": {
                    "typed": {
                        "package.json": '{"types": "lib/typed"}',
                        "lib": {"typed.d.ts": ""},
                    },
                    "broken": {
                        "package.json": "{",
                        "index.d.ts": "",
                    },
                    "main-only": {
                        "package.json": '{"main": "./out/index.js"}',
                        "out": {"index.d.ts": ""},
                    },
                    "shared.ts": "",
                },
            }
        ),
    )


@pytest.mark.parametrize(
    "module_name,containing_file,expected,external",
    [
        ("./widget", "/src/main.ts", "/src/widget.tsx", False),
        ("./nested/deep", "/src/main.ts", "/src/nested/deep.ts", False),
        ("/src/main", "/anything.ts", "/src/main.ts", False),
        ("local", "/src/nested/deep.ts", "/src/node_modules/local/index.ts", True),
        ("typed", "/src/main.ts", "/node_modules/typed/lib/typed.d.ts", True),
        ("broken", "/src/main.ts", "/node_modules/broken/index.d.ts", True),
        ("main-only", "/src/main.ts", "/node_modules/main-only/out/index.d.ts", True),
        ("shared", "/src/main.ts", "/node_modules/shared.ts", True),
        ("local", "/main.ts", None, False),
    ],
)
def test_node_module_resolution(
    toolchain: BasicToolchain,
    resolution_host: MockCompilerHost,
    module_name: str,
    containing_file: str,
    expected,
    external: bool,
) -> None:
    resolved = toolchain.resolve_module_name(
        module_name, containing_file, CompilerOptions(), resolution_host
    )
    if expected is None:
        assert resolved is None
        return
    assert resolved is not None
    assert resolved.resolved_file_name == expected
    assert resolved.is_external_library_import == external
    assert expected.endswith(resolved.extension)


def test_classic_module_resolution(
    toolchain: BasicToolchain,
    resolution_host: MockCompilerHost,
) -> None:
    options = CompilerOptions(module_resolution=ModuleResolutionKind.CLASSIC)
    resolved = toolchain.resolve_module_name("main", "/src/nested/deep.ts", options, resolution_host)
    assert resolved is not None
    assert resolved.resolved_file_name == "/src/main.ts"
    assert toolchain.resolve_module_name("local", "/src/main.ts", options, resolution_host) is None


def test_resolution_is_only_traced_on_request(
    toolchain: BasicToolchain,
    resolution_host: MockCompilerHost,
) -> None:
    toolchain.resolve_module_name("./main", "/src/x.ts", CompilerOptions(), resolution_host)
    assert resolution_host.traces == ()
    toolchain.resolve_module_name(
        "./nope", "/src/x.ts", CompilerOptions(trace_resolution=True), resolution_host
    )
    assert resolution_host.traces[0] == (
        "======== Resolving module './nope' from '/src/x.ts'. ========"
    )
    assert "File '/src/nope.ts' does not exist." in resolution_host.traces
    assert resolution_host.traces[-1] == (
        "======== Module name './nope' was not resolved. ========"
    )


def _source(toolchain: BasicToolchain, file_name: str, text: str):
    return toolchain.create_source_file(file_name, textwrap.dedent(text), ScriptTarget.LATEST)


def test_export_metadata_collector(toolchain: BasicToolchain) -> None:
    sf = _source(
        toolchain,
        "/app/mod.ts",
        """\
        // export class Commented {}
        /* export const AlsoCommented = 1; */
        @Injectable()
        export class Service {}

        export abstract class Base {}
        export const VALUE = 1;
        export interface Shape {}
        export enum Color { Red }
        export default function main() {}
        export type Alias = string;
        export * from './other';
        class Private {}
        """,
    )
    metadata = ExportMetadataCollector().get_metadata(sf)
    assert metadata == {
        "__symbolic": "module",
        "version": 3,
        "metadata": {
            "Service": {
                "__symbolic": "class",
                "decorators": [
                    {
                        "__symbolic": "call",
                        "expression": {"__symbolic": "reference", "name": "Injectable"},
                    }
                ],
            },
            "Base": {"__symbolic": "class"},
            "VALUE": {"__symbolic": "reference"},
            "Shape": {"__symbolic": "interface"},
            "Color": {"__symbolic": "enum"},
            "main": {"__symbolic": "function"},
            "Alias": {"__symbolic": "interface"},
        },
        "exports": [{"from": "./other"}],
    }


@pytest.mark.parametrize(
    "file_name,text",
    [
        ("/app/none.ts", "const x = 1;\n"),
        ("/app/decl.d.ts", "export declare class Decl {}\n"),
        ("/app/comment.ts", "// export class X {}\n"),
    ],
)
def test_export_metadata_collector_without_metadata(
    toolchain: BasicToolchain,
    file_name: str,
    text: str,
) -> None:
    assert ExportMetadataCollector().get_metadata(_source(toolchain, file_name, text)) is None
