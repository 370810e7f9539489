"""
日志模块
"""
import logging
import os
import sys


# Log level mapping from string to logging constant
LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level_from_env() -> int:
    """Get log level from environment variable CATALOG_INDEX_LOG_LEVEL or LOG_LEVEL."""
    level_str = os.environ.get("CATALOG_INDEX_LOG_LEVEL") or os.environ.get("LOG_LEVEL") or "INFO"
    return LOG_LEVEL_MAP.get(level_str.upper(), logging.INFO)


def get_log_file_from_env() -> str | None:
    """Optional log file path from CATALOG_INDEX_LOG_FILE."""
    path = (os.environ.get("CATALOG_INDEX_LOG_FILE") or "").strip()
    return path or None


def setup_logger(name="catalog_index", level=None, log_file=None):
    """配置并返回日志记录器

    Args:
        name: Logger name
        level: Log level (if None, read from environment variable)
        log_file: Log file path (if None, read from environment; console only when unset)
    """
    if level is None:
        level = get_log_level_from_env()

    if log_file is None:
        log_file = get_log_file_from_env()

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # 防止重复添加处理器
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # 文件处理器
    if log_file:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # 控制台处理器
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


logger = setup_logger()
