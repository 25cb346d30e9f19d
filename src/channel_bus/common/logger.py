"""
日志系统模块

此模块提供消息总线统一的日志记录功能，支持控制台、文件和Loki输出，
并通过JSON格式方便地记录结构化信息。
"""
import logging
import os
import sys
import socket
from logging.handlers import RotatingFileHandler

from pythonjsonlogger import jsonlogger

# Loki支持（可选）
try:
    import logging_loki
    LOKI_AVAILABLE = True
except ImportError:
    LOKI_AVAILABLE = False

# 默认日志格式
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# 默认日志级别
DEFAULT_LOG_LEVEL = logging.INFO

# 默认日志文件
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "channel-bus.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 5

# 全局标记，确保只初始化一次
_logging_configured = False


def _configure_logging(
    log_level=DEFAULT_LOG_LEVEL,
    log_to_console=True,
    log_to_file=False,
    log_dir=DEFAULT_LOG_DIR,
    log_file_name=DEFAULT_LOG_FILE,
    log_file_max_size=DEFAULT_MAX_BYTES,
    log_file_backup_count=DEFAULT_BACKUP_COUNT,
    use_json_formatter=False,
    enable_loki=False,
    loki_url=None,
):
    """
    配置日志系统

    Args:
        log_level: 日志级别
        log_to_console: 是否输出到控制台
        log_to_file: 是否输出到文件
        log_dir: 日志文件目录
        log_file_name: 日志文件名
        log_file_max_size: 日志文件最大大小（字节）
        log_file_backup_count: 日志文件备份数量
        use_json_formatter: 是否使用JSON格式
        enable_loki: 是否启用Loki日志输出
        loki_url: Loki服务URL
    """
    global _logging_configured

    if _logging_configured:
        return

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # 清除已有处理器
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if use_json_formatter:
        formatter = jsonlogger.JsonFormatter(DEFAULT_JSON_FORMAT)
    else:
        formatter = logging.Formatter(DEFAULT_LOG_FORMAT)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_to_file:
        os.makedirs(log_dir, exist_ok=True)
        log_file_path = os.path.join(log_dir, log_file_name)

        file_handler = RotatingFileHandler(
            log_file_path,
            maxBytes=log_file_max_size,
            backupCount=log_file_backup_count,
            encoding="utf-8"
        )

        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # 配置Loki输出（如果启用）
    if enable_loki and LOKI_AVAILABLE and loki_url:
        try:
            app_name = os.environ.get("SERVICE_NAME", "channel-bus")
            hostname = socket.gethostname()

            loki_handler = logging_loki.LokiHandler(
                url=loki_url,
                tags={"application": app_name, "hostname": hostname},
                version="1",
            )
            loki_handler.setLevel(log_level)
            root_logger.addHandler(loki_handler)
            root_logger.info(f"成功配置Loki日志处理器: {loki_url}")
        except Exception as e:
            root_logger.warning(f"配置Loki日志处理器失败: {str(e)}")
    elif enable_loki and not LOKI_AVAILABLE:
        root_logger.warning("logging_loki 模块不可用，跳过Loki日志配置")

    _logging_configured = True


def _logging_options(logging_config):
    """把配置文件中的 logging 段转换为 _configure_logging 的参数"""
    level_name = str(logging_config.get('level', 'INFO')).upper()
    return {
        'log_level': getattr(logging, level_name, DEFAULT_LOG_LEVEL),
        'log_to_file': bool(logging_config.get('to_file', False)),
        'log_dir': logging_config.get('dir', DEFAULT_LOG_DIR),
        'log_file_name': logging_config.get('file', DEFAULT_LOG_FILE),
        'log_file_max_size': int(logging_config.get('max_bytes', DEFAULT_MAX_BYTES)),
        'log_file_backup_count': int(logging_config.get('backup_count', DEFAULT_BACKUP_COUNT)),
        'use_json_formatter': bool(logging_config.get('use_json', False)),
        'enable_loki': str(logging_config.get('enable_loki', 'false')).lower() == 'true',
        'loki_url': logging_config.get('loki_url') or None,
    }


def _initialize_logging():
    """初始化日志系统，基于配置文件的 logging 段进行一次性配置"""
    try:
        # 延迟导入避免循环依赖
        from .config import get_logging_config
        _configure_logging(**_logging_options(get_logging_config() or {}))
    except Exception as e:
        _configure_logging()
        logging.getLogger("channel_bus.logger").warning(f"加载日志配置失败，使用默认配置: {e}")


def get_logger(name):
    """
    获取指定名称的日志记录器

    Args:
        name: 日志记录器名称

    Returns:
        配置好的日志记录器
    """
    return logging.getLogger(name)


# 导入时进行一次性初始化
_initialize_logging()
