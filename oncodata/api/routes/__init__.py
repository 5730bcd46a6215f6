# API 路由
from . import scraping

__all__ = ["scraping"]
