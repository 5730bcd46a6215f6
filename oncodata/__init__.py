# oncodata 肿瘤药物与临床研究数据平台
"""
oncodata: 肿瘤药物与临床试验公开数据的定时抓取与规范化存储

主要功能:
- 多源数据抓取 (openFDA 药品说明书 / ClinicalTrials.gov)
- 字段提取与治疗类别归一化
- 按自然键去重合并写入 (Neo4j)
- 抓取日志与管理接口
"""

__version__ = "0.1.0"
__author__ = "oncodata Team"
