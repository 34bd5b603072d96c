"""异步文件操作工具模块。

基于 aiofiles 和 asyncio.to_thread 封装本体文件读取与映射结果写出，
保证在异步上下文中不阻塞事件循环。
"""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Any

import aiofiles
import orjson


async def read_file(file_path: str | Path, encoding: str = "utf-8") -> str:
    """异步读取文件内容。

    Args:
        file_path: 文件路径。
        encoding: 文件编码，默认 utf-8。

    Returns:
        文件内容。

    Raises:
        FileNotFoundError: 文件不存在时抛出。
        OSError: 读取失败时抛出。
    """
    async with aiofiles.open(file_path, encoding=encoding) as f:
        return await f.read()


async def atomic_write_file(file_path: str | Path, content: str, encoding: str = "utf-8") -> None:
    """原子写入文件。

    先写入同目录下的临时文件，再重命名为目标文件；
    写入失败时目标文件保持原状。

    Args:
        file_path: 目标文件路径，父目录不存在时自动创建。
        content: 写入内容。
        encoding: 文件编码，默认 utf-8。

    Raises:
        OSError: 写入或重命名失败时抛出。
    """
    file_path = Path(file_path)
    directory = file_path.parent
    await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)

    fd, temp_path = await asyncio.to_thread(tempfile.mkstemp, dir=directory, text=True)
    try:
        # mkstemp 返回的描述符需先关闭，aiofiles 按路径重新打开
        await asyncio.to_thread(os.close, fd)

        async with aiofiles.open(temp_path, mode="w", encoding=encoding) as f:
            await f.write(content)
            await f.flush()
            await asyncio.to_thread(os.fsync, f.fileno())

        await asyncio.to_thread(os.replace, temp_path, file_path)
    except Exception:
        if await file_exists(temp_path):
            await asyncio.to_thread(os.unlink, temp_path)
        raise


async def write_json(file_path: str | Path, data: Any, *, indent: bool = True) -> None:
    """以原子方式写出 JSON 文件。

    Args:
        file_path: 目标文件路径。
        data: 可被 orjson 序列化的数据。
        indent: 是否缩进两格输出。
    """
    option = orjson.OPT_INDENT_2 if indent else 0
    content = orjson.dumps(data, option=option).decode("utf-8")
    await atomic_write_file(file_path, content)


async def file_exists(file_path: str | Path) -> bool:
    """异步判断路径是否为已存在的文件。"""
    return await asyncio.to_thread(os.path.isfile, file_path)
