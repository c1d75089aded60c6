import io
import textwrap

import pytest

from aothost.config import (
    DEFAULT_HOST_CONFIG,
    HostConfig,
    load_host_config,
    parse_host_config,
)
from aothost.exceptions import HostConfigError, RewriteRuleConflictError
from aothost.host_api import ModuleKind, ModuleResolutionKind, ScriptTarget
from aothost.name_rewriter import NameRewriteRule, RewriteBacking


def test_load_host_config() -> None:
    document = textwrap.dedent(
        """\
        emit-metadata: true
        vendor-prefix: /node_modules/
        lib-file-pattern: '^lib\\..*\\.d\\.ts$'
        compiler-options:
          target: es2015
          module: commonjs
          module-resolution: node
          trace-resolution: true
          lib:
            - lib.es2017.d.ts
        rewrite-rules:
          - prefix: /node_modules/@angular/
            real-root: /src/angular/packages
          - prefix: /node_modules/rxjs/
            real-root: /src/angular/node_modules/rxjs
            backing: real-filesystem
        """
    )
    config = load_host_config(io.StringIO(document))
    assert config.emit_metadata
    assert not config.fallback_to_real_fs
    assert config.lib_file_pattern.search("lib.es2015.d.ts")
    assert not config.lib_file_pattern.search("lib.d.ts")
    options = config.compiler_options
    assert options.target == ScriptTarget.ES2015
    assert options.module == ModuleKind.COMMONJS
    assert options.module_resolution == ModuleResolutionKind.NODEJS
    assert options.trace_resolution
    assert options.lib == ("lib.es2017.d.ts",)
    assert config.rewrite_rules == (
        NameRewriteRule(
            "/node_modules/@angular/",
            "/src/angular/packages",
            RewriteBacking.EXTERNAL_MODULES,
        ),
        NameRewriteRule(
            "/node_modules/rxjs/",
            "/src/angular/node_modules/rxjs",
            RewriteBacking.REAL_FILESYSTEM,
        ),
    )
    assert config.name_rewriter().effective_name("/node_modules/@angular/core") == (
        "/src/angular/packages/core"
    )


def test_load_host_config_from_path(tmp_path) -> None:
    p = tmp_path / "host.yaml"
    p.write_text("current-directory: /work\n")
    assert load_host_config(p).current_directory == "/work"
    p.write_text("")
    assert load_host_config(str(p)) is DEFAULT_HOST_CONFIG


def test_target_alias() -> None:
    config = parse_host_config({"compiler-options": {"target": "latest"}})
    assert config.compiler_options.target == ScriptTarget.LATEST


def test_unknown_keys_are_ignored_with_a_warning(capsys) -> None:
    config = parse_host_config({"emit-metadta": True, "compiler-options": {"strict": True}})
    assert config == HostConfig()
    err = capsys.readouterr().err
    assert 'Ignoring unknown host configuration key "emit-metadta"' in err
    assert 'Ignoring unknown compiler option "strict"' in err


@pytest.mark.parametrize(
    "data",
    [
        ["not", "a", "mapping"],
        {"emit-metadata": "yes"},
        {"compiler-options": {"target": "es1"}},
        {"compiler-options": {"lib": "lib.d.ts"}},
        {"compiler-options": {"lib": [1]}},
        {"lib-file-pattern": "("},
        {"rewrite-rules": [{"prefix": "/a/"}]},
        {"rewrite-rules": [{"prefix": "/a/", "real-root": "/b", "extra": 1}]},
        {"rewrite-rules": [{"prefix": "/a/", "real-root": "/b", "backing": "network"}]},
        {"rewrite-rules": {"prefix": "/a/"}},
    ],
)
def test_invalid_host_config(data) -> None:
    with pytest.raises(HostConfigError):
        parse_host_config(data)


def test_shadowed_rewrite_rules_in_config() -> None:
    with pytest.raises(RewriteRuleConflictError):
        parse_host_config(
            {
                "rewrite-rules": [
                    {"prefix": "/node_modules/", "real-root": "/a"},
                    {"prefix": "/node_modules/rxjs/", "real-root": "/b"},
                ]
            }
        )


def test_invalid_yaml() -> None:
    with pytest.raises(HostConfigError):
        load_host_config(io.StringIO("emit-metadata: [true\n"))


def test_config_replace_keeps_original() -> None:
    config = HostConfig()
    changed = config.replace(emit_metadata=True)
    assert changed.emit_metadata
    assert not config.emit_metadata
