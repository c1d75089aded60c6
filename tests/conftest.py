import os
import textwrap

import pytest

from aothost.aot_host import MockAotCompilerHost
from aothost.config import HostConfig
from aothost.host import MockCompilerHost
from aothost.name_rewriter import NameRewriteRule, RewriteBacking
from aothost.toolchain import BasicToolchain
from aothost.virtual_tree import VirtualDirectory, virtual_tree

# Keep the test output stable regardless of the terminal running the tests.
os.environ["AOTHOST_COLORS"] = "never"

ANGULAR_SOURCE_ROOT = "/src/angular/packages"


@pytest.fixture(scope="session")
def fixture_tree() -> VirtualDirectory:
    return virtual_tree(
        {
            "app": {
                "app.component.ts": textwrap.dedent(
                    """\
                    import {Component} from '@angular/core';

                    @Component({selector: 'my-app', template: 'hello'})
                    export class AppComponent {}
                    """
                ),
                "app.module.ts": "export class AppModule {}\n",
                "util.ts": "export function helper() { return 1; }\n",
                "plain.ts": "const local = 1;\n",
                "template.html": "<div>hello</div>",
                "lib": {
                    "index.d.ts": "export declare class Lib {}\n",
                    "index.metadata.json": '{"__symbolic": "module", "version": 3, "metadata": {"Lib": {"__symbolic": "class"}}}',
                    "multi.d.ts": "export declare class Multi {}\n",
                    "multi.metadata.json": '[{"__symbolic": "module", "version": 1}, {"__symbolic": "module", "version": 3}]',
                    "broken.d.ts": "export declare const x: number;\n",
                    "broken.metadata.json": "{not json",
                    "nometa.d.ts": "export declare const y: number;\n",
                },
            },
            "node_modules": {
                "dep": {
                    "package.json": '{"typings": "./dist/dep.d.ts"}',
                    "dist": {
                        "dep.d.ts": "export declare const dep: string;\n",
                    },
                },
            },
        }
    )


@pytest.fixture(scope="session")
def angular_modules() -> dict:
    return {
        f"{ANGULAR_SOURCE_ROOT}/core/index.ts": "export class Injectable {}\n",
        f"{ANGULAR_SOURCE_ROOT}/core/src/di.ts": "export const DI = 1;\n",
    }


@pytest.fixture()
def host_config(tmp_path) -> HostConfig:
    return HostConfig(
        rewrite_rules=(
            NameRewriteRule(
                "/node_modules/@angular/",
                ANGULAR_SOURCE_ROOT,
                RewriteBacking.EXTERNAL_MODULES,
            ),
            NameRewriteRule(
                "/node_modules/rxjs/",
                str(tmp_path / "node_modules" / "rxjs"),
                RewriteBacking.REAL_FILESYSTEM,
            ),
        ),
    )


@pytest.fixture()
def lib_dir(tmp_path) -> str:
    d = tmp_path / "typescript-lib"
    d.mkdir()
    (d / "lib.d.ts").write_text("interface Array<T> {}\n")
    (d / "lib.es2015.d.ts").write_text("interface Promise<T> {}\n")
    return str(d)


@pytest.fixture()
def mock_host(fixture_tree, angular_modules, host_config, lib_dir) -> MockCompilerHost:
    return MockCompilerHost(
        ["/app/app.module.ts"],
        fixture_tree,
        angular_modules,
        [{"/vendored/index.d.ts": "export declare const vendored: number;\n"}],
        config=host_config,
        toolchain=BasicToolchain(lib_dir),
    )


@pytest.fixture()
def aot_host(mock_host) -> MockAotCompilerHost:
    return MockAotCompilerHost(mock_host)
