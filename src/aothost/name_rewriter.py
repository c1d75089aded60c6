import dataclasses
import enum
import posixpath
from typing import Iterable, Optional, Sequence, Tuple, List

from aothost.exceptions import RewriteRuleConflictError

DEFAULT_VENDOR_PREFIX = "/node_modules/"


class RewriteBacking(enum.Enum):
    """Where content for a rewritten path comes from"""

    EXTERNAL_MODULES = "external-modules"
    """Rewritten paths are looked up in the external module map"""

    REAL_FILESYSTEM = "real-filesystem"
    """Rewritten paths are checked for and read from the real file system"""


@dataclasses.dataclass(slots=True, frozen=True)
class NameRewriteRule:
    prefix: str
    real_root: str
    backing: RewriteBacking = RewriteBacking.EXTERNAL_MODULES

    def matches(self, path: str) -> bool:
        # "/node_modules/pkg" is covered by the "/node_modules/pkg/" prefix
        return path.startswith(self.prefix) or path == self.prefix.rstrip("/")

    def apply(self, path: str) -> str:
        remainder = path[len(self.prefix) :]
        if not remainder or path == self.prefix.rstrip("/"):
            return self.real_root
        return posixpath.join(self.real_root, remainder.lstrip("/"))


@dataclasses.dataclass(slots=True, frozen=True)
class RewriteResult:
    path: str
    rule: Optional[NameRewriteRule] = None

    @property
    def is_rewritten(self) -> bool:
        return self.rule is not None

    @property
    def backing(self) -> Optional[RewriteBacking]:
        return self.rule.backing if self.rule is not None else None


class NameRewriter:
    """Redirect vendored package paths to another root

    Rules are tried in the order given and the first rule with a matching
    prefix is applied. A rule that could never match because an earlier
    rule's prefix already covers its prefix is rejected.
    """

    __slots__ = ("_rules",)

    def __init__(self, rules: Iterable[NameRewriteRule] = tuple()) -> None:
        rules = tuple(rules)
        for idx, rule in enumerate(rules):
            if not rule.prefix:
                raise RewriteRuleConflictError(
                    f"The rewrite rule for {rule.real_root!r} has an empty prefix"
                )
            for earlier in rules[:idx]:
                if rule.prefix.startswith(earlier.prefix):
                    raise RewriteRuleConflictError(
                        f'The rewrite rule for prefix "{rule.prefix}" is shadowed by the earlier'
                        f' rule for "{earlier.prefix}" and would never apply.'
                        " Declare the more specific prefix first."
                    )
        self._rules: Tuple[NameRewriteRule, ...] = rules

    @property
    def rules(self) -> Sequence[NameRewriteRule]:
        return self._rules

    def rewrite(self, path: str) -> RewriteResult:
        for rule in self._rules:
            if rule.matches(path):
                return RewriteResult(rule.apply(path), rule)
        return RewriteResult(path)

    def effective_name(self, path: str) -> str:
        return self.rewrite(path).path


def vendored_package_rules(
    *,
    source_root: Optional[str] = None,
    node_modules_root: Optional[str] = None,
    vendor_prefix: str = DEFAULT_VENDOR_PREFIX,
    scoped_package: str = "@angular",
    real_fs_packages: Sequence[str] = ("rxjs",),
) -> List[NameRewriteRule]:
    """Build the standard rewrite rules for a vendored source checkout

    Paths of the scoped package beneath the vendor prefix (such as
    "/node_modules/@angular/core/index.ts") are mapped into `source_root`
    and served from the external module map.  Paths of the named
    third-party packages (such as "/node_modules/rxjs/Observable.d.ts")
    are mapped into `node_modules_root` and served from the real file system.

    Rules are only produced for the roots that are provided.
    """
    rules = []
    if source_root is not None:
        rules.append(
            NameRewriteRule(
                f"{vendor_prefix}{scoped_package}/",
                source_root,
                RewriteBacking.EXTERNAL_MODULES,
            )
        )
    if node_modules_root is not None:
        for package in real_fs_packages:
            rules.append(
                NameRewriteRule(
                    f"{vendor_prefix}{package}/",
                    posixpath.join(node_modules_root, package),
                    RewriteBacking.REAL_FILESYSTEM,
                )
            )
    return rules
