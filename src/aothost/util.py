import logging
import os
import posixpath
import re
import sys
from typing import (
    Any,
    Iterable,
    List,
    Optional,
    Tuple,
)

import colorlog
from Levenshtein import distance

SLASH_PRUNE = re.compile("//+")

_DEFAULT_LOGGER: Optional[logging.Logger] = None
_STDOUT_HANDLER: Optional[logging.StreamHandler] = None
_STDERR_HANDLER: Optional[logging.StreamHandler] = None
_LOGGING_SET_UP = False


def _warn(msg: str, *, prog: Optional[str] = None) -> None:
    global _DEFAULT_LOGGER
    logger = _DEFAULT_LOGGER
    if logger:
        logger.warning(msg)
    else:
        me = program_name() if prog is None else prog

        print(
            f"{me}: warning: {msg}",
            file=sys.stderr,
        )


def normalize_virtual_path(path: str) -> str:
    """Normalize a slash-delimited virtual path

    Backslashes are converted to forward slashes and repeated slashes are
    collapsed.  "." and ".." segments are resolved lexically.  Absolute paths
    stay absolute; a trailing slash is dropped (except for the root).
    """
    path = path.replace("\\", "/")
    if not path:
        return path
    path = SLASH_PRUNE.sub("/", path)
    if "." in path:
        path = posixpath.normpath(path)
        if path.startswith("//"):
            path = path[1:]
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path


def possible_typos(
    name: str,
    candidates: Iterable[str],
    *,
    max_distance: int = 2,
) -> List[str]:
    """Find candidates that are likely what the caller meant by `name`

    Matches are those within `max_distance` edits of `name`.  The result is
    sorted by edit distance and then by name.
    """
    n_len = len(name)
    matches: List[Tuple[int, str]] = []
    for candidate in candidates:
        if candidate == name or abs(n_len - len(candidate)) > max_distance:
            continue
        d = distance(name, candidate)
        if d > max_distance:
            continue
        matches.append((d, candidate))
    matches.sort()
    return [m for _, m in matches]


def _check_color() -> Tuple[bool, bool, Optional[str]]:
    requested_color = os.environ.get(
        "AOTHOST_COLORS", "never" if "NO_COLOR" in os.environ else "auto"
    )
    bad_request = None
    if requested_color not in {"auto", "always", "never"}:
        bad_request = requested_color
        requested_color = "auto"

    if requested_color == "auto":
        stdout_color = sys.stdout.isatty()
        stderr_color = sys.stderr.isatty()
    else:
        enable = requested_color == "always"
        stdout_color = enable
        stderr_color = enable
    return stdout_color, stderr_color, bad_request


def program_name() -> str:
    name = os.path.basename(sys.argv[0])
    if name.endswith(".py"):
        name = name[:-3]
    if name == "__main__":
        name = os.path.basename(os.path.dirname(sys.argv[0]))
    return name or "aothost"


def setup_logging(
    *, log_only_to_stderr: bool = False, reconfigure_logging: bool = False
) -> logging.Logger:
    global _LOGGING_SET_UP, _DEFAULT_LOGGER, _STDOUT_HANDLER, _STDERR_HANDLER
    if _LOGGING_SET_UP and not reconfigure_logging:
        raise RuntimeError(
            "Logging has already been configured."
            " Use reconfigure_logging=True if you need to reconfigure it"
        )
    stdout_color, stderr_color, bad_request = _check_color()

    if log_only_to_stderr:
        stdout = sys.stderr
        stdout_color = stderr_color
    else:
        stdout = sys.stdout

    class LogLevelFilter(logging.Filter):
        def __init__(self, threshold: int, above: bool):
            super().__init__()
            self.threshold = threshold
            self.above = above

        def filter(self, record: logging.LogRecord) -> bool:
            if self.above:
                return record.levelno >= self.threshold
            else:
                return record.levelno < self.threshold

    color_format = (
        "{bold}{name}{reset}: {bold}{log_color}{levelnamelower}{reset}: {message}"
    )
    colorless_format = "{name}: {levelnamelower}: {message}"

    def _make_handler(stream: Any, use_color: bool) -> logging.StreamHandler:
        if use_color:
            handler = colorlog.StreamHandler(stream)
            handler.setFormatter(
                colorlog.ColoredFormatter(color_format, style="{", force_color=True)
            )
        else:
            handler = logging.StreamHandler(stream)
            handler.setFormatter(logging.Formatter(colorless_format, style="{"))
        return handler

    root_logger = logging.getLogger()
    for existing in (_STDOUT_HANDLER, _STDERR_HANDLER):
        if existing is not None:
            root_logger.removeHandler(existing)

    stdout_handler = _make_handler(stdout, stdout_color)
    stderr_handler = _make_handler(sys.stderr, stderr_color)
    stdout_handler.addFilter(LogLevelFilter(logging.WARN, False))
    stderr_handler.addFilter(LogLevelFilter(logging.WARN, True))
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(stderr_handler)
    _STDOUT_HANDLER = stdout_handler
    _STDERR_HANDLER = stderr_handler

    if not _LOGGING_SET_UP:
        old_factory = logging.getLogRecordFactory()

        def record_factory(
            *args: Any, **kwargs: Any
        ) -> logging.LogRecord:  # pragma: no cover
            record = old_factory(*args, **kwargs)
            record.levelnamelower = record.levelname.lower()
            return record

        logging.setLogRecordFactory(record_factory)

    root_logger.setLevel(logging.INFO)
    _DEFAULT_LOGGER = logging.getLogger(program_name())

    if bad_request:
        _DEFAULT_LOGGER.warning(
            f'Invalid color request for "{bad_request}" in AOTHOST_COLORS.'
            ' Resetting to "auto".'
        )

    _LOGGING_SET_UP = True
    return _DEFAULT_LOGGER
