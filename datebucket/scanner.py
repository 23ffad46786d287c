"""
Модуль обхода исходных каталогов.

Рекурсивно обходит каждый исходный каталог и собирает метаданные обычных
файлов, дата изменения которых попадает в заданный диапазон. Ошибки
обхода не прерывают работу: они собираются с привязкой к каталогу и пути.
"""

import os
import stat
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import List, Optional

try:
    from .config_loader import RunConfig
    from .logger import DateBucketLogger
    from .models import FileRecord
except ImportError:
    from config_loader import RunConfig
    from logger import DateBucketLogger
    from models import FileRecord


class DiscoveryError(Exception):
    """Ошибка обхода: недоступный исходный каталог или сбой stat."""

    def __init__(self, root: Path, path: Path, error: Exception):
        self.root = Path(root)
        self.path = Path(path)
        self.error = error
        super().__init__(f"{self.path}: {error}")


@dataclass
class DiscoveryResult:
    """Результат обхода: найденные файлы в порядке обхода и ошибки."""
    records: List[FileRecord] = field(default_factory=list)
    errors: List[DiscoveryError] = field(default_factory=list)


class DateRange:
    """Включительный диапазон дат; верхняя граница действует до конца дня."""

    def __init__(self, date_from: Optional[date] = None, date_to: Optional[date] = None):
        self.start = datetime.combine(date_from, time.min) if date_from else None
        self.end = datetime.combine(date_to, time.max) if date_to else None

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment > self.end:
            return False
        return True


class FolderScanner:
    """Обходит исходные каталоги и собирает FileRecord."""

    def __init__(self, config: RunConfig, logger: DateBucketLogger):
        """
        Args:
            config: Конфигурация запуска
            logger: Логгер
        """
        self.config = config
        self.logger = logger
        self.date_range = DateRange(config.date_from, config.date_to)
        self.destination = Path(config.destination).resolve()

    def scan(self) -> DiscoveryResult:
        """
        Обходит все исходные каталоги по порядку.

        Returns:
            DiscoveryResult: Найденные файлы и ошибки обхода
        """
        result = DiscoveryResult()
        for root in self.config.sources:
            self._scan_root(Path(root), result)

        self.logger.log_discovery_result(len(result.records), len(result.errors))
        return result

    def _scan_root(self, root: Path, result: DiscoveryResult) -> None:
        """
        Обходит один исходный каталог.

        Символические ссылки на каталоги не раскрываются, каталог назначения
        внутри источника пропускается.
        """
        if not root.is_dir():
            error = DiscoveryError(root, root, NotADirectoryError(
                f"Исходный каталог не найден или не является каталогом: {root}"))
            self._add_error(result, error)
            return

        def on_error(os_error: OSError) -> None:
            self._add_error(result, DiscoveryError(root, os_error.filename or root, os_error))

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error, followlinks=False):
            # Каталог назначения внутри источника не обходим
            for dirname in list(dirnames):
                subdir = Path(dirpath) / dirname
                if subdir.resolve() == self.destination:
                    self.logger.log_debug(f"Пропущен каталог назначения: {subdir}")
                    dirnames.remove(dirname)

            for filename in filenames:
                path = Path(dirpath) / filename
                try:
                    st = path.lstat()
                except OSError as e:
                    self._add_error(result, DiscoveryError(root, path, e))
                    continue

                if not stat.S_ISREG(st.st_mode):
                    self.logger.log_debug(f"Пропущен не обычный файл: {path}")
                    continue

                mod_time = datetime.fromtimestamp(st.st_mtime)
                if not self.date_range.contains(mod_time):
                    continue

                result.records.append(FileRecord(
                    source_path=path,
                    relative_path=path.relative_to(root),
                    size=st.st_size,
                    mod_time=mod_time,
                    extension=path.suffix.lower()
                ))

    def _add_error(self, result: DiscoveryResult, error: DiscoveryError) -> None:
        result.errors.append(error)
        self.logger.log_root_error(error.root, error)


def discover(config: RunConfig, logger: DateBucketLogger) -> DiscoveryResult:
    """
    Удобная функция для обхода исходных каталогов.

    Args:
        config: Конфигурация запуска
        logger: Логгер

    Returns:
        DiscoveryResult: Найденные файлы и ошибки обхода
    """
    return FolderScanner(config, logger).scan()
