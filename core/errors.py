"""
异常定义 - 导出流程中每个阶段的错误类型

所有错误都继承自 ExportError，由 cli.main 统一记录日志并以非零状态退出。
"""


class ExportError(RuntimeError):
    """导出流程的基础异常"""


class ConfigError(ExportError):
    """配置文件（.env 或 TOML）缺失或格式错误"""


class QueryFileError(ExportError):
    """查询文件无法打开或读取"""


class DBConnectionError(ExportError):
    """数据库连接失败"""


class QueryExecutionError(ExportError):
    """SQL执行失败或遍历结果集时出错"""


class OutputError(ExportError):
    """输出文件无法创建或写入"""


class ValueRenderError(OutputError):
    """单元格值无法转换为文本"""


class RowShapeError(OutputError):
    """行的字段数与表头列数不一致"""

    def __init__(self, row_number: int, expected: int, actual: int):
        self.row_number = row_number
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Row {row_number} has {actual} fields, header has {expected} columns"
        )
