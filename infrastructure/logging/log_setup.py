from typing import Any, Callable, Optional

from loguru import logger

DEFAULT_FORMAT = "{time:HH:mm:ss.SSS} | {level: <7} | {message} {extra}"


def setup_console_logging(
    level: str = "INFO",
    sink: Optional[Callable[[Any], None]] = None,
    serialize: bool = False,
) -> int:
    logger.remove()
    return logger.add(
        sink or (lambda msg: print(msg, end="")),
        level=level,
        format=DEFAULT_FORMAT,
        serialize=serialize,
    )
