"""
查询文件读取模块 - 将多行SQL文件合并为一条查询语句
"""

import logging
from typing import Optional, Tuple

from .errors import QueryFileError

logger = logging.getLogger(__name__)


def read_query(path: str, keep_line_comments: bool = False) -> str:
    """
    读取SQL文件，将所有行用单个空格拼接（最后一行后也带一个空格）

    Args:
        path: 查询文件路径
        keep_line_comments: 为True时，含有 "--" 行注释的行以换行符结尾，
            避免注释吞掉下一行内容

    Returns:
        查询字符串；空文件返回空字符串

    Raises:
        QueryFileError: 文件无法打开或读取
    """
    parts = []
    quote = None
    try:
        with open(path, 'r', encoding='utf-8', newline='\n') as f:
            for line in f:
                line = strip_line_ending(line)
                has_comment, quote = scan_line(line, quote)
                if keep_line_comments and has_comment:
                    parts.append(line + "\n")
                else:
                    parts.append(line + " ")
    except OSError as e:
        raise QueryFileError(f"Cannot open query file {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise QueryFileError(f"Cannot read query file {path}: {e}") from e

    query = "".join(parts)
    logger.debug(f"Loaded {len(parts)} lines from {path}")
    return query


def strip_line_ending(line: str) -> str:
    """去掉行尾的 "\\n" 或 "\\r\\n"（只去掉一个）"""
    if line.endswith('\n'):
        line = line[:-1]
        if line.endswith('\r'):
            line = line[:-1]
    return line


def has_line_comment(line: str) -> bool:
    """判断单独一行中是否存在不在字符串常量或带引号标识符内的 "--" 注释"""
    return scan_line(line)[0]


def scan_line(line: str, quote: Optional[str] = None) -> Tuple[bool, Optional[str]]:
    """
    扫描一行SQL，查找 "--" 行注释，并跟踪跨行的引号状态

    支持 '...'、"..." 和 E'...'（反斜杠转义）。不识别 $$...$$ 美元引号
    和 /* */ 块注释，其中的 "--" 会被当作行注释。

    Args:
        line: 单行SQL（不含换行符）
        quote: 上一行结束时未闭合的引号状态，None 表示不在引号内

    Returns:
        (是否含有行注释, 行尾的引号状态)
    """
    i = 0
    while i < len(line):
        ch = line[i]
        if quote == "E":
            if ch == "\\":
                i += 1
            elif ch == "'":
                quote = None
        elif quote:
            # '' 和 "" 是转义，两次切换后状态不变
            if ch == quote:
                quote = None
        elif ch == "'":
            quote = "E" if _is_escape_prefix(line, i) else "'"
        elif ch == '"':
            quote = ch
        elif ch == '-' and line.startswith('--', i):
            return True, None
        i += 1
    return False, quote


def _is_escape_prefix(line: str, i: int) -> bool:
    """引号前是独立的 E / e（不是标识符的一部分）"""
    if i == 0 or line[i - 1] not in "Ee":
        return False
    return i == 1 or not (line[i - 2].isalnum() or line[i - 2] in "_$")
