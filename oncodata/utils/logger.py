# 日志配置模块
"""
基于 structlog 的结构化日志系统

- 开发环境: 彩色控制台输出
- 生产环境: JSON 行输出，便于日志采集
"""

import logging
import sys
from typing import Any

import structlog

_configured = False


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """配置结构化日志

    可重复调用: 应用启动时会用配置文件中的级别和格式覆盖默认配置。

    Args:
        log_level: 日志级别
        log_format: 输出格式，console 或 json
    """
    global _configured
    
    level = getattr(logging, log_level.upper(), logging.INFO)
    
    # 配置标准日志
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
        force=True,
    )
    
    if log_format == "json":
        exc_processor: Any = structlog.processors.format_exc_info
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        exc_processor = structlog.dev.set_exc_info
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    
    # 配置 structlog
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            exc_processor,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
    
    _configured = True


def get_logger(name: str = __name__) -> Any:
    """获取日志记录器"""
    if not _configured:
        setup_logging()
    return structlog.get_logger(name)
