"""日志配置模块。

只配置 "ontomap" 日志器而不改动根日志器，作为库嵌入时不影响宿主程序的日志设置。
控制台输出使用 Rich 并写到标准错误，CLI 以 JSON 输出到标准输出时不会混入日志。
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "ontomap"

logger = logging.getLogger(LOGGER_NAME)


def setup_logging(level: str = "INFO") -> None:
    """配置 ontomap 日志器。

    重复调用时替换此前安装的 RichHandler，日志器上始终只有一个。

    Args:
        level: 日志级别，可选值：DEBUG、INFO、WARNING、ERROR、CRITICAL。
    """
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, markup=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
