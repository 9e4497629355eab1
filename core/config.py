"""
配置加载模块 - 读取数据库连接参数和CSV导出配置
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Mapping, Optional, Any
import logging

import toml
from dotenv import dotenv_values
from dotenv.parser import parse_stream
from psycopg2.extensions import make_dsn

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE = ".env"
DEFAULT_EXPORT_CONFIG = "csv_export_config.toml"

# 环境变量名 -> ConnectionParams 字段
ENV_KEYS = {
    "PG_HOSTNAME": "host",
    "PG_PORT": "port",
    "PG_DBNAME": "dbname",
    "PG_USERNAME": "user",
    "PG_PASSWORD": "password",
    "SSL_MODE": "sslmode",
}

MISMATCH_POLICIES = ("fail", "pad", "truncate")


@dataclass(frozen=True)
class ConnectionParams:
    """数据库连接参数（不做非空校验，缺失值为空字符串）"""

    host: str = ""
    port: str = ""
    dbname: str = ""
    user: str = ""
    password: str = ""
    sslmode: str = ""

    def _dsn_kwargs(self) -> Dict[str, str]:
        return {
            "user": self.user,
            "dbname": self.dbname,
            "host": self.host,
            "password": self.password,
            "port": self.port,
            "sslmode": self.sslmode,
        }

    def to_dsn(self) -> str:
        """
        生成 libpq 格式的连接字符串

        Returns:
            "user=... dbname=... host=... password=... port=... sslmode=..."
        """
        return make_dsn(**self._dsn_kwargs())

    def redacted_dsn(self) -> str:
        """生成用于日志输出的连接字符串，密码被屏蔽"""
        kwargs = self._dsn_kwargs()
        if kwargs["password"]:
            kwargs["password"] = "***"
        return make_dsn(**kwargs)

    def __repr__(self) -> str:
        return (f"ConnectionParams(host={self.host}, port={self.port}, "
                f"dbname={self.dbname}, user={self.user}, sslmode={self.sslmode})")


@dataclass
class ExportSettings:
    """CSV导出配置"""

    delimiter: str = ","
    quotechar: str = '"'
    lineterminator: str = "\n"
    encoding: str = "utf-8"
    null_value: str = ""
    mismatch: str = "fail"


def load_connection_params(env_file: str = DEFAULT_ENV_FILE,
                           environ: Optional[Mapping[str, str]] = None) -> ConnectionParams:
    """
    从 .env 文件和进程环境变量加载连接参数

    进程环境中已存在的变量优先于文件中的值。

    Args:
        env_file: .env 文件路径
        environ: 环境变量映射，默认为 os.environ

    Returns:
        ConnectionParams 实例

    Raises:
        ConfigError: .env 文件不存在、无法读取或包含无法解析的行
    """
    if environ is None:
        environ = os.environ

    env_path = Path(env_file)
    if not env_path.is_file():
        raise ConfigError(f"Error loading {env_file} file: file not found")

    try:
        with open(env_path, "r", encoding="utf-8") as f:
            bad_lines = [binding.original.line for binding in parse_stream(f) if binding.error]
        if bad_lines:
            raise ConfigError(
                f"Error loading {env_file} file: cannot parse line "
                f"{', '.join(str(n) for n in bad_lines)}"
            )
        file_values = dotenv_values(env_path, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Error loading {env_file} file: {e}") from e

    values = {}
    for env_key, attr in ENV_KEYS.items():
        if env_key in environ:
            values[attr] = environ[env_key]
        else:
            # dotenv_values 对没有 "=" 的行返回 None
            values[attr] = file_values.get(env_key) or ""

    missing = [k for k, attr in ENV_KEYS.items() if not values[attr]]
    if missing:
        logger.debug(f"Empty connection settings: {', '.join(missing)}")

    logger.info(f"已加载连接配置: {env_file}")
    return ConnectionParams(**values)


def load_export_settings(config_path: Optional[str] = None) -> ExportSettings:
    """
    加载CSV导出配置文件

    Args:
        config_path: 配置文件路径。为None时尝试当前目录下的
            csv_export_config.toml，不存在则使用默认配置

    Returns:
        ExportSettings 实例

    Raises:
        ConfigError: 指定的文件不存在、TOML格式错误或配置值非法
    """
    explicit = config_path is not None
    config_file = Path(config_path if explicit else DEFAULT_EXPORT_CONFIG)

    if not config_file.exists():
        if explicit:
            raise ConfigError(f"配置文件不存在: {config_file}")
        logger.warning(f"配置文件不存在: {config_file}，使用默认配置")
        return ExportSettings()

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = toml.load(f)
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigError(f"加载配置文件失败: {config_file}: {e}") from e

    logger.info(f"已加载配置文件: {config_file}")
    return _settings_from_dict(data)


def _settings_from_dict(data: Dict[str, Any]) -> ExportSettings:
    known = {f.name for f in fields(ExportSettings)}
    values = {}
    for section in ("csv", "rows"):
        table = data.get(section, {})
        if not isinstance(table, dict):
            raise ConfigError(f"[{section}] must be a table")
        for key, value in table.items():
            if key not in known:
                logger.warning(f"Unknown export setting ignored: {section}.{key}")
                continue
            if not isinstance(value, str):
                raise ConfigError(f"{section}.{key} must be a string")
            values[key] = value

    settings = ExportSettings(**values)

    if len(settings.delimiter) != 1:
        raise ConfigError(f"delimiter must be a single character: {settings.delimiter!r}")
    if len(settings.quotechar) != 1:
        raise ConfigError(f"quotechar must be a single character: {settings.quotechar!r}")
    if settings.mismatch not in MISMATCH_POLICIES:
        raise ConfigError(
            f"mismatch must be one of {', '.join(MISMATCH_POLICIES)}: {settings.mismatch!r}"
        )
    try:
        "".encode(settings.encoding)
    except LookupError as e:
        raise ConfigError(f"unknown encoding: {settings.encoding}") from e

    return settings
