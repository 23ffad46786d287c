"""
Date Bucket Organizer

Утилита раскладки файлов по каталогам вида YYYY/MM_MonthName[/ext]
по дате последнего изменения.
"""

__version__ = "1.0.0"
__author__ = "Date Bucket Team"
__description__ = "Utility for organizing files into year/month buckets by modification date"
