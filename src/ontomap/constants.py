"""全局常量定义模块。

本模块定义了 OntoMap 项目中使用的所有全局常量，包括：
- 匹配启发式阈值
- 快照存储限制
- 日志级别配置
"""

FUZZY_MATCH_THRESHOLD = 0.5
HEADER_OVERLAP_THRESHOLD = 0.3
MIN_SUFFIX_MATCH_LENGTH = 4
MIN_FK_TOKEN_LENGTH = 4

FUZZY_EXACT_TOKEN_SCORE = 2
FUZZY_PREFIX_TOKEN_SCORE = 1
GENERIC_ID_TOKEN = "id"
HAS_PROPERTY_PREFIX = "has"

SHEET_KEY_SEPARATOR = ":"
DEFAULT_LITERAL_RANGE = "string"
DEFAULT_BASE_IRI = "http://example.org/ontology#"
DEFAULT_SAMPLE_SIZE = 5
DEFAULT_PRIMARY_LABEL = "Record"
PREVIEW_ENTITY_IRI = "example:entity/0"

DEFAULT_STORE_PATH = ".ontomap/mappings.duckdb"
DEFAULT_MAX_HISTORY = 20
DEFAULT_HISTORY_LIMIT = 10

DEFAULT_LOG_LEVEL = "INFO"
CONFIG_FILE_NAME = "ontomap.yaml"

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

OBJECT_KIND_ALIASES = {"object", "objectproperty", "owl:objectproperty"}
DATA_KIND_ALIASES = {"data", "datatypeproperty", "dataproperty", "owl:datatypeproperty"}
