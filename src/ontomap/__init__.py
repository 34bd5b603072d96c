"""OntoMap - 表格列到本体的映射引擎。

本模块提供列映射的核心功能，包括：
- 名称规范化与本体索引
- 基于命名启发式的列匹配
- 多工作表上下文推断
- 映射快照的持久化与过期检测
"""

from importlib.metadata import version

__version__ = version("ontomap")
