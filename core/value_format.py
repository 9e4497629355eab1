"""
单元格值格式化模块 - 将数据库驱动返回的值转换为CSV文本

psycopg2 返回的值按类型分类（ValueKind），每种类型有固定的文本规则：

    NULL      -> null_value（默认空字符串）
    TEXT      -> 原样输出
    BOOLEAN   -> "true" / "false"
    INTEGER   -> 十进制数字
    DECIMAL   -> 定点表示，不使用科学计数法
    FLOAT     -> 最短往返表示（repr），NaN / Infinity / -Infinity
    DATETIME  -> ISO 8601，日期和时间之间用空格分隔
    DATE      -> YYYY-MM-DD
    TIME      -> HH:MM:SS[.ffffff][+HH:MM]
    INTERVAL  -> str(timedelta)
    BINARY    -> \\x 加小写十六进制（与 PostgreSQL bytea 的 hex 格式一致）
    UUID      -> 带连字符的标准形式
    JSON      -> 紧凑的 JSON 文本（dict / list，例如 json、jsonb 和数组列），
                 其中的元素按上述规则转换，数值保持为 JSON 数字，
                 非有限数值和其他类型输出为 JSON 字符串
    OTHER     -> str()
"""

import datetime
import decimal
import enum
import json
import math
import uuid
from typing import Any

from .errors import ValueRenderError


class ValueKind(enum.Enum):
    NULL = "null"
    TEXT = "text"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    DECIMAL = "decimal"
    FLOAT = "float"
    DATETIME = "datetime"
    DATE = "date"
    TIME = "time"
    INTERVAL = "interval"
    BINARY = "binary"
    UUID = "uuid"
    JSON = "json"
    OTHER = "other"


def classify_value(value: Any) -> ValueKind:
    """
    判断值的类型

    Args:
        value: 驱动返回的单元格值

    Returns:
        ValueKind
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, str):
        return ValueKind.TEXT
    # bool 是 int 的子类，必须先判断
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, decimal.Decimal):
        return ValueKind.DECIMAL
    if isinstance(value, float):
        return ValueKind.FLOAT
    # datetime 是 date 的子类
    if isinstance(value, datetime.datetime):
        return ValueKind.DATETIME
    if isinstance(value, datetime.date):
        return ValueKind.DATE
    if isinstance(value, datetime.time):
        return ValueKind.TIME
    if isinstance(value, datetime.timedelta):
        return ValueKind.INTERVAL
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ValueKind.BINARY
    if isinstance(value, uuid.UUID):
        return ValueKind.UUID
    if isinstance(value, (dict, list)):
        return ValueKind.JSON
    return ValueKind.OTHER


def _render_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return repr(value)


def _render_decimal(value: decimal.Decimal) -> str:
    if value.is_nan():
        return "NaN"
    if value.is_infinite():
        return "Infinity" if value > 0 else "-Infinity"
    return format(value, "f")


def _render_json(value: Any) -> str:
    """
    递归生成紧凑的 JSON 文本，数组和对象中的元素同样按类型规则输出：
    NULL -> null，BOOLEAN -> true/false，有限的 INTEGER / DECIMAL / FLOAT -> JSON 数字，
    非有限数值 -> "NaN" / "Infinity" 字符串，其他类型 -> render_value 结果的 JSON 字符串
    """
    kind = classify_value(value)
    if kind is ValueKind.NULL:
        return "null"
    if kind is ValueKind.JSON:
        if isinstance(value, dict):
            items = (json.dumps(str(k), ensure_ascii=False) + ":" + _render_json(v)
                     for k, v in value.items())
            return "{" + ",".join(items) + "}"
        return "[" + ",".join(_render_json(v) for v in value) + "]"
    if kind in (ValueKind.BOOLEAN, ValueKind.INTEGER):
        return _RENDERERS[kind](value)
    if kind is ValueKind.FLOAT and math.isfinite(value):
        return _render_float(value)
    if kind is ValueKind.DECIMAL and value.is_finite():
        return _render_decimal(value)
    return json.dumps(render_value(value), ensure_ascii=False)


_RENDERERS = {
    ValueKind.TEXT: lambda v: v,
    ValueKind.BOOLEAN: lambda v: "true" if v else "false",
    ValueKind.INTEGER: lambda v: str(int(v)),
    ValueKind.DECIMAL: _render_decimal,
    ValueKind.FLOAT: _render_float,
    ValueKind.DATETIME: lambda v: v.isoformat(sep=" "),
    ValueKind.DATE: lambda v: v.isoformat(),
    ValueKind.TIME: lambda v: v.isoformat(),
    ValueKind.INTERVAL: str,
    ValueKind.BINARY: lambda v: "\\x" + bytes(v).hex(),
    ValueKind.UUID: str,
    ValueKind.JSON: _render_json,
    ValueKind.OTHER: str,
}


def render_value(value: Any, null_value: str = "") -> str:
    """
    将单元格值转换为CSV字段文本

    Args:
        value: 驱动返回的单元格值
        null_value: NULL 的输出文本

    Returns:
        字段文本

    Raises:
        ValueRenderError: 值无法转换
    """
    kind = classify_value(value)
    if kind is ValueKind.NULL:
        return null_value
    try:
        return _RENDERERS[kind](value)
    except Exception as e:
        raise ValueRenderError(
            f"Cannot render {kind.value} value of type {type(value).__name__}: {e}"
        ) from e
