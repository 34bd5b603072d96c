"""异常定义模块。

本模块定义了 OntoMap 项目中使用的所有自定义异常类，
采用层级化设计便于异常捕获和处理。
"""


class OntoMapError(Exception):
    """OntoMap 基础异常类。

    所有 OntoMap 自定义异常的基类，可用于统一捕获所有项目异常。
    """

    pass


class ConfigurationError(OntoMapError):
    """配置相关异常。

    当配置文件格式错误或验证失败时抛出。
    """

    pass


class OntologyLoadError(OntoMapError):
    """本体加载异常。

    当本体文件不存在、格式错误或结构不合法时抛出。
    """

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to load ontology from '{source}': {reason}")


class WorkbookLoadError(OntoMapError):
    """工作簿加载异常。

    当数据文件无法读取或缺少表头时抛出。
    """

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to load workbook from '{source}': {reason}")


class StoreError(OntoMapError):
    """映射存储异常。

    当映射快照的读写失败时抛出。调用方应将其视为缓存未命中。
    """

    pass


class SnapshotCorruptError(StoreError):
    """快照损坏异常。

    当存储中的快照记录无法解析时抛出。
    """

    def __init__(self, ontology_id: str, workspace_id: str, reason: str):
        self.ontology_id = ontology_id
        self.workspace_id = workspace_id
        self.reason = reason
        super().__init__(
            f"Corrupt mapping snapshot for ontology '{ontology_id}' "
            f"in workspace '{workspace_id}': {reason}"
        )
