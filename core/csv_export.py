"""
CSV导出模块 - 将查询结果逐行写入CSV文件
"""

import csv
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence
import logging

from .config import ExportSettings
from .errors import OutputError, RowShapeError
from .value_format import render_value

logger = logging.getLogger(__name__)


class CSVExporter:
    """CSV导出器"""

    def __init__(self, settings: Optional[ExportSettings] = None):
        """
        初始化导出器

        Args:
            settings: 导出配置，为None时使用默认配置
        """
        self.settings = settings or ExportSettings()

    def render_row(self, row: Sequence[Any]) -> List[str]:
        """
        将一行结果转换为字符串列表

        Args:
            row: 单行结果

        Returns:
            字段文本列表
        """
        null_value = self.settings.null_value
        return [render_value(value, null_value) for value in row]

    def fit_row(self, fields: List[str], width: int, row_number: int) -> List[str]:
        """
        按配置的策略处理字段数与表头不一致的行

        Args:
            fields: 已转换的字段列表
            width: 表头列数
            row_number: 数据行号（从1开始），用于错误信息

        Returns:
            字段数等于表头列数的列表

        Raises:
            RowShapeError: 字段数不一致且策略无法处理（fail；pad 遇到多余字段；
                truncate 遇到缺少字段）
        """
        if len(fields) == width:
            return fields

        policy = self.settings.mismatch
        if policy == "pad" and len(fields) < width:
            return fields + [self.settings.null_value] * (width - len(fields))
        if policy == "truncate" and len(fields) > width:
            return fields[:width]
        # pad 不截断，truncate 不补齐
        raise RowShapeError(row_number, width, len(fields))

    def export(self, columns: Sequence[str], rows: Iterable[Sequence[Any]],
               output_path: str) -> int:
        """
        将查询结果导出为CSV文件

        Args:
            columns: 列名列表，写入第一行
            rows: 结果行，按顺序逐行写入
            output_path: 输出文件路径（已存在则覆盖）

        Returns:
            写入的数据行数（不含表头）

        Raises:
            OutputError: 文件无法创建、写入失败或行无法转换
        """
        settings = self.settings
        width = len(columns)
        count = 0

        self.ensure_parent_dir(output_path)
        try:
            with open(output_path, 'w', newline='', encoding=settings.encoding) as f:
                writer = csv.writer(
                    f,
                    delimiter=settings.delimiter,
                    quotechar=settings.quotechar,
                    lineterminator=settings.lineterminator,
                    quoting=csv.QUOTE_MINIMAL,
                )
                writer.writerow(columns)

                for row in rows:
                    count += 1
                    fields = self.fit_row(self.render_row(row), width, count)
                    writer.writerow(fields)

                    if count % 10000 == 0:
                        logger.debug(f"已写入 {count:,} 行")
        except OSError as e:
            raise OutputError(f"Failed to write CSV {output_path}: {e}") from e
        except (csv.Error, UnicodeEncodeError) as e:
            raise OutputError(f"Failed to write row {count} to {output_path}: {e}") from e

        logger.info(f"Exported {count} rows to {output_path}")
        return count

    @staticmethod
    def ensure_parent_dir(output_path: str) -> None:
        """
        确保输出目录存在

        Args:
            output_path: 输出文件路径
        """
        parent = Path(output_path).parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputError(f"Cannot create output directory {parent}: {e}") from e
