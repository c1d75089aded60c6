from .version import __version__

from aothost.aot_host import MockAotCompilerHost
from aothost.bundler_host import MockMetadataBundlerHost
from aothost.config import AotHostConfig, HostConfig, load_host_config
from aothost.host import EmittingCompilerHost, MockCompilerHost
from aothost.name_rewriter import (
    NameRewriteRule,
    NameRewriter,
    RewriteBacking,
    vendored_package_rules,
)
from aothost.virtual_tree import (
    VirtualDirectory,
    VirtualFile,
    build_virtual_tree,
    load_virtual_tree,
    virtual_tree,
)

__all__ = [
    "__version__",
    "AotHostConfig",
    "EmittingCompilerHost",
    "HostConfig",
    "MockAotCompilerHost",
    "MockCompilerHost",
    "MockMetadataBundlerHost",
    "NameRewriteRule",
    "NameRewriter",
    "RewriteBacking",
    "VirtualDirectory",
    "VirtualFile",
    "build_virtual_tree",
    "load_host_config",
    "load_virtual_tree",
    "vendored_package_rules",
    "virtual_tree",
]
