"""
数据库查询模块 - 连接PostgreSQL并执行SQL查询

返回结果集的语句（SELECT / WITH / VALUES / TABLE）使用服务端命名游标，
每次从服务器取 FETCH_SIZE 行，结果集不会一次性加载到内存。其他语句使用普通游标。
整个查询在一个事务中执行，导出成功后提交，失败时回滚。
"""

import itertools
import re
import uuid
from typing import Any, Iterator, List, Optional, Sequence, Tuple
import logging

import psycopg2
import psycopg2.errors

from .config import ConnectionParams
from .errors import DBConnectionError, QueryExecutionError

logger = logging.getLogger(__name__)

FETCH_SIZE = 2000

# 跳过开头的空白、注释和括号，取第一个关键字
_LEADING_KEYWORD = re.compile(r"(?:\s|--[^\n]*(?:\n|$)|/\*.*?\*/|\()*(\w+)", re.S)

ROW_KEYWORDS = ("select", "with", "values", "table")


def leading_keyword(sql: str) -> Optional[str]:
    """
    获取SQL语句的第一个关键字（小写）

    Args:
        sql: SQL语句

    Returns:
        关键字；空语句返回None
    """
    m = _LEADING_KEYWORD.match(sql)
    return m.group(1).lower() if m else None


class DBQuery:
    """数据库查询类，持有一个PostgreSQL连接"""

    def __init__(self, params: ConnectionParams, fetch_size: int = FETCH_SIZE):
        """
        初始化数据库查询器

        Args:
            params: 连接参数
            fetch_size: 服务端游标每次获取的行数
        """
        self.params = params
        self.fetch_size = fetch_size
        self.conn = None
        self.cursor = None

    def connect(self) -> None:
        """
        连接到数据库

        Raises:
            DBConnectionError: 连接字符串无效或服务器不可达
        """
        logger.info(f"连接数据库: {self.params.redacted_dsn()}")
        try:
            self.conn = psycopg2.connect(self.params.to_dsn())
        except psycopg2.Error as e:
            raise DBConnectionError(f"Database connection failed: {_error_text(e)}") from e
        logger.info(f"Connected to {self.params.host or 'default host'}")

    def execute_query(self, sql: str) -> Tuple[List[str], Iterator[Sequence[Any]]]:
        """
        执行SQL查询

        Args:
            sql: SQL查询语句

        Returns:
            (columns, rows) 元组
            - columns: 列名列表
            - rows: 按数据库返回顺序逐行产生结果的迭代器

        Raises:
            QueryExecutionError: SQL语法错误、对象不存在或执行失败

        Warning:
            此方法直接执行SQL语句，不做任何校验。
        """
        if self.conn is None:
            raise QueryExecutionError("Not connected to database")

        if leading_keyword(sql) in ROW_KEYWORDS:
            try:
                return self._execute_streaming(sql)
            except QueryExecutionError as e:
                # WITH 中包含 INSERT/UPDATE/DELETE 时不能用 DECLARE CURSOR
                if not isinstance(e.__cause__, psycopg2.errors.FeatureNotSupported):
                    raise
                logger.info("Statement cannot run in a server-side cursor, using a plain cursor")
                self.cursor = None
                needs_rollback = True
        else:
            needs_rollback = False

        try:
            if needs_rollback:
                self.conn.rollback()
            self.cursor = self.conn.cursor()
            self.cursor.execute(sql)
        except psycopg2.Error as e:
            raise QueryExecutionError(f"SQL query failed: {_error_text(e)}") from e

        if self.cursor.description is None:
            # 不返回结果集的语句（如 UPDATE）
            logger.warning("Query returned no result set")
            return [], iter(())

        columns = [description[0] for description in self.cursor.description]
        logger.debug(f"Result columns: {columns}")
        return columns, self._iter_rows()

    def _execute_streaming(self, sql: str) -> Tuple[List[str], Iterator[Sequence[Any]]]:
        name = f"pg2csv_{uuid.uuid4().hex[:12]}"
        try:
            self.cursor = self.conn.cursor(name=name)
            self.cursor.itersize = self.fetch_size
            self.cursor.execute(sql)
            # 命名游标在第一次 FETCH 之后才有 description
            first = self.cursor.fetchmany(self.fetch_size)
        except psycopg2.Error as e:
            raise QueryExecutionError(f"SQL query failed: {_error_text(e)}") from e

        if self.cursor.description is None:
            logger.warning("Query returned no result set")
            return [], iter(())

        columns = [description[0] for description in self.cursor.description]
        logger.debug(f"Result columns: {columns} (server-side cursor {name})")
        return columns, itertools.chain(first, self._iter_rows())

    def _iter_rows(self) -> Iterator[Sequence[Any]]:
        try:
            for row in self.cursor:
                yield row
        except psycopg2.Error as e:
            raise QueryExecutionError(f"Error reading query results: {_error_text(e)}") from e

    def commit(self) -> None:
        """
        关闭游标并提交事务

        Raises:
            QueryExecutionError: 提交失败
        """
        if self.conn is None:
            return
        try:
            self._close_cursor()
            self.conn.commit()
        except psycopg2.Error as e:
            raise QueryExecutionError(f"Commit failed: {_error_text(e)}") from e

    def _close_cursor(self):
        cursor, self.cursor = self.cursor, None
        if cursor is not None:
            cursor.close()

    def close(self):
        """关闭游标和数据库连接（未提交的事务被回滚）"""
        try:
            self._close_cursor()
        finally:
            if self.conn is not None:
                conn, self.conn = self.conn, None
                conn.close()
                logger.info("Database connection closed")

    def __enter__(self):
        """上下文管理器入口"""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """上下文管理器出口，正常退出时提交事务"""
        try:
            if exc_type is None:
                self.commit()
            elif self.conn is not None:
                # 关闭连接时服务端游标和未提交的事务一起被丢弃
                self.cursor = None
                logger.warning("Transaction rolled back")
        finally:
            self.close()

    def __repr__(self) -> str:
        return (f"DBQuery(host={self.params.host}, port={self.params.port}, "
                f"dbname={self.params.dbname})")


def _error_text(error: Exception) -> str:
    """将 psycopg2 的多行错误信息（含 DETAIL/HINT）合并为一行"""
    text = str(error).strip()
    return " ".join(line.strip() for line in text.splitlines() if line.strip()) or type(error).__name__
