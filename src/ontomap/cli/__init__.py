"""CLI 工具模块。

提供基于 typer 的命令行工具实现，
将列映射能力暴露为 CLI 命令。

使用方式：
    ```bash
    # 计算映射并写出 JSON
    ontomap match ontology.yaml data.xlsx --output mappings.json

    # 保存审核后的映射
    ontomap save ontology.yaml data.xlsx -O crm --mappings mappings.json

    # 显示版本
    ontomap version
    ```
"""

from ontomap.cli.onto_typer import OntoTyper

__all__ = ["OntoTyper", "app", "main"]

app = OntoTyper()


def main() -> None:
    """CLI 入口函数。

    用于 pyproject.toml 中的 project.scripts 注册。
    """
    app()
