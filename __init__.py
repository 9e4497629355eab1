"""
PostgreSQL查询导出工具 - 执行SQL文件中的查询并将结果导出为CSV

模块化设计，可以独立使用或集成到其他应用。
"""

__version__ = "0.1.0"

from .core.config import ConnectionParams, ExportSettings, load_connection_params, load_export_settings
from .core.query_loader import read_query
from .core.db_query import DBQuery
from .core.csv_export import CSVExporter
from .core.value_format import ValueKind, classify_value, render_value
from .core.errors import (ExportError, ConfigError, QueryFileError, DBConnectionError,
                          QueryExecutionError, OutputError, ValueRenderError, RowShapeError)

__all__ = [
    "ConnectionParams", "ExportSettings", "load_connection_params", "load_export_settings",
    "read_query", "DBQuery", "CSVExporter",
    "ValueKind", "classify_value", "render_value",
    "ExportError", "ConfigError", "QueryFileError", "DBConnectionError",
    "QueryExecutionError", "OutputError", "ValueRenderError", "RowShapeError",
]
