from typing import cast


class AotHostRuntimeError(RuntimeError):
    @property
    def message(self) -> str:
        return cast("str", self.args[0])


class HostFileNotFoundError(AotHostRuntimeError):
    @property
    def path(self) -> str:
        return cast("str", self.args[1])


class ResourceNotFoundError(HostFileNotFoundError):
    pass


class InvalidRelativeResolutionError(AotHostRuntimeError):
    pass


class HostConfigError(AotHostRuntimeError):
    pass


class VirtualTreeDefinitionError(ValueError):
    @property
    def message(self) -> str:
        return cast("str", self.args[0])


class RewriteRuleConflictError(ValueError):
    @property
    def message(self) -> str:
        return cast("str", self.args[0])
