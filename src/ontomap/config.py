"""配置管理模块。

本模块负责管理 OntoMap 的配置，包括：
- 匹配启发式阈值（模糊匹配、表头重叠、后缀剥离）
- 映射存储配置
- 日志级别配置
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ontomap.constants import (
    CONFIG_FILE_NAME,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_HISTORY,
    DEFAULT_SAMPLE_SIZE,
    DEFAULT_STORE_PATH,
    FUZZY_MATCH_THRESHOLD,
    HEADER_OVERLAP_THRESHOLD,
    MIN_SUFFIX_MATCH_LENGTH,
    VALID_LOG_LEVELS,
)
from ontomap.exceptions import ConfigurationError


class MatchingConfig(BaseModel):
    """匹配启发式配置。

    这些阈值会实质性地改变匹配结果，因此以具名参数暴露而非内联常量。

    Attributes:
        fuzzy_threshold: 模糊词元匹配的最低归一化得分，默认 0.5。
        overlap_threshold: 复用已保存映射所需的最低表头重叠率，默认 0.3。
        min_suffix_length: 触发 id 后缀剥离匹配的最短列名长度，默认 4。
    """

    fuzzy_threshold: float = FUZZY_MATCH_THRESHOLD
    overlap_threshold: float = HEADER_OVERLAP_THRESHOLD
    min_suffix_length: int = Field(default=MIN_SUFFIX_MATCH_LENGTH, ge=1)

    @field_validator("fuzzy_threshold", "overlap_threshold")
    @classmethod
    def validate_ratio(cls, v: float) -> float:
        """验证比例型阈值。

        Args:
            v: 待验证的阈值。

        Returns:
            验证通过的阈值。

        Raises:
            ValueError: 阈值不在 (0, 1] 区间时抛出。
        """
        if not 0 < v <= 1:
            raise ValueError("threshold must be in (0, 1]")
        return v


class StoreConfig(BaseModel):
    """映射存储配置。

    Attributes:
        path: DuckDB 数据库文件路径。
        max_history: 每个（本体, 工作区）保留的快照版本数。
    """

    path: Path = Path(DEFAULT_STORE_PATH)
    max_history: int = Field(default=DEFAULT_MAX_HISTORY, ge=1)

    @field_validator("path", mode="before")
    @classmethod
    def validate_path(cls, v: str | Path) -> Path:
        """将字符串路径转换为 Path 并展开 ~。"""
        return Path(v).expanduser()


class AppConfig(BaseModel):
    """应用配置模型。

    Attributes:
        log_level: 日志级别，默认为 INFO。
        sample_size: 加载工作簿时每个工作表保留的样本行数。
        matching: 匹配启发式配置。
        store: 映射存储配置。
    """

    log_level: str = DEFAULT_LOG_LEVEL
    sample_size: int = Field(default=DEFAULT_SAMPLE_SIZE, ge=0)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """验证日志级别。

        Args:
            v: 待验证的日志级别字符串。

        Returns:
            验证通过的大写日志级别。

        Raises:
            ValueError: 日志级别无效时抛出。
        """
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {sorted(VALID_LOG_LEVELS)}")
        return v_upper

    @classmethod
    def from_yaml(cls, config_path: Path | None = None) -> "AppConfig":
        """从 YAML 配置文件加载应用配置。

        Args:
            config_path: 配置文件路径，默认为当前目录下的 ontomap.yaml。

        Returns:
            加载的 AppConfig 实例，若配置文件不存在则返回默认配置。

        Raises:
            ConfigurationError: 配置文件格式错误或验证失败时抛出。
        """
        config_path = config_path or Path(CONFIG_FILE_NAME)
        if not config_path.exists():
            return cls()

        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config root must be a mapping: {config_path}")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid config {config_path}: {e}") from e
