"""
Study Recap - 学习资料转录与摘要服务
"""

__version__ = "1.0.0"
