#!/usr/bin/env python3
"""
命令行接口 - 执行SQL文件中的查询并将结果导出为CSV
"""

import argparse
import sys
from typing import List, Optional
import logging

from . import __version__
from .core.config import (DEFAULT_ENV_FILE, ExportSettings,
                          load_connection_params, load_export_settings)
from .core.csv_export import CSVExporter
from .core.db_query import DBQuery
from .core.query_loader import read_query

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def run_export(query_path: str, output_path: str,
               env_file: str = DEFAULT_ENV_FILE,
               settings: Optional[ExportSettings] = None,
               keep_line_comments: bool = False) -> int:
    """
    执行完整的导出流程：读取配置 -> 读取查询 -> 连接 -> 执行 -> 写CSV

    输出文件只在查询成功执行后才会创建。

    Args:
        query_path: SQL查询文件路径
        output_path: 输出CSV文件路径
        env_file: .env 文件路径
        settings: CSV导出配置
        keep_line_comments: 保留 "--" 行注释后的换行

    Returns:
        导出的数据行数

    Raises:
        ExportError: 任一阶段失败
    """
    params = load_connection_params(env_file)
    query = read_query(query_path, keep_line_comments=keep_line_comments)

    with DBQuery(params) as db_query:
        logger.info("执行查询...")
        columns, rows = db_query.execute_query(query)
        return CSVExporter(settings).export(columns, rows, output_path)


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        prog="pg2csv",
        description="PostgreSQL查询导出工具 - 执行SQL文件中的查询并将结果导出为CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
连接参数从 .env 文件读取:
  PG_HOSTNAME, PG_PORT, PG_DBNAME, PG_USERNAME, PG_PASSWORD, SSL_MODE

示例:
  # 使用默认文件 input.dat -> output.csv
  %(prog)s

  # 指定查询文件和输出文件
  %(prog)s --query reports/users.sql --output users.csv
        """
    )

    parser.add_argument("--output", default="output.csv",
                        help="输出CSV文件路径 (默认: output.csv)")
    parser.add_argument("--query", default="input.dat",
                        help="SQL查询文件路径 (默认: input.dat)")
    parser.add_argument("--env-file", default=DEFAULT_ENV_FILE,
                        help="连接配置文件路径 (默认: .env)")
    parser.add_argument("--export-config",
                        help="CSV导出配置文件路径 (默认: 当前目录下的 csv_export_config.toml，如存在)")
    parser.add_argument("--keep-line-comments", action="store_true",
                        help="含 -- 注释的行保留换行，避免注释吞掉下一行")
    parser.add_argument("-v", "--verbose", action="store_true", help="详细输出")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        settings = load_export_settings(args.export_config)
        count = run_export(
            query_path=args.query,
            output_path=args.output,
            env_file=args.env_file,
            settings=settings,
            keep_line_comments=args.keep_line_comments,
        )
        logger.info(f"导出完成，共 {count} 条记录")
    except KeyboardInterrupt:
        logger.info("用户中断")
        sys.exit(1)
    except Exception as e:
        logger.error(f"错误: {e}", exc_info=args.verbose)
        sys.exit(1)

    print(f"Data exported to {args.output}")


if __name__ == "__main__":
    main()
