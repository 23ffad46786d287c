"""
Модуль управления запуском раскладки.

Последовательно выполняет обход, планирование и применение плана,
собирает статистику и ошибки всех этапов с привязкой к путям.
"""

from datetime import datetime
from typing import Dict, List, Optional, TextIO

try:
    from .config_loader import RunConfig
    from .logger import DateBucketLogger
    from .file_ops import DestinationCollisionError, FileOps, PartialMoveError, apply_plan, create_file_ops
    from .models import PlanEntry
    from .planner import analyze, build_plan
    from .scanner import discover
except ImportError:
    from config_loader import RunConfig
    from logger import DateBucketLogger
    from file_ops import DestinationCollisionError, FileOps, PartialMoveError, apply_plan, create_file_ops
    from models import PlanEntry
    from planner import analyze, build_plan
    from scanner import discover


class RunStats:
    """Класс для хранения статистики запуска."""

    def __init__(self):
        self.total_files = 0
        self.processed_files = 0
        self.successful_files = 0
        self.failed_files = 0
        self.skipped_files = 0
        self.partial_files = 0
        self.discovery_errors = 0
        self.start_time = None
        self.end_time = None
        self.errors = []

    def add_error(self, path, stage: str, kind: str, error: Exception):
        """Добавляет ошибку в список."""
        self.errors.append({
            'path': str(path),
            'stage': stage,
            'kind': kind,
            'error': str(error),
            'timestamp': datetime.now()
        })

    def get_duration(self) -> Optional[float]:
        """Возвращает продолжительность запуска в секундах."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    def get_success_rate(self) -> float:
        """Возвращает процент успешно обработанных файлов."""
        if self.processed_files == 0:
            return 0.0
        return (self.successful_files / self.processed_files) * 100

    def has_failures(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> Dict:
        """Преобразует статистику в словарь."""
        return {
            'total_files': self.total_files,
            'processed_files': self.processed_files,
            'successful_files': self.successful_files,
            'failed_files': self.failed_files,
            'skipped_files': self.skipped_files,
            'partial_files': self.partial_files,
            'discovery_errors': self.discovery_errors,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration_seconds': self.get_duration(),
            'success_rate': self.get_success_rate(),
            'error_count': len(self.errors)
        }


class Organizer:
    """Основной класс раскладки файлов."""

    def __init__(self, config: RunConfig, logger: DateBucketLogger, file_ops: Optional[FileOps] = None):
        """
        Инициализация.

        Args:
            config: Конфигурация запуска
            logger: Логгер для записи операций
            file_ops: Операции с файлами (по умолчанию создаются)
        """
        self.config = config
        self.logger = logger
        self.file_ops = file_ops or create_file_ops(logger)
        self.stats = RunStats()

    def plan(self) -> List[PlanEntry]:
        """
        Обходит источники и строит план, не изменяя файловую систему.

        Ошибки обхода попадают в статистику.
        """
        discovery = discover(self.config, self.logger)
        for error in discovery.errors:
            self.stats.discovery_errors += 1
            self.stats.add_error(error.path, 'discovery', 'walk', error.error)

        plan = build_plan(self.config, discovery.records)
        self.stats.total_files = len(plan)
        if not plan:
            self.logger.log_system_info("Нет файлов, подходящих под условия отбора")

        analysis = analyze(discovery.records, plan)
        self.logger.log_analysis(analysis.count, analysis.bytes, analysis.by_extension)
        for warning in analysis.warnings:
            self.logger.log_collision(warning)
        return plan

    def run(self, out: Optional[TextIO] = None) -> RunStats:
        """
        Выполняет полный проход: обход, план, применение.

        Args:
            out: Поток для строк dry-run (по умолчанию stdout)

        Returns:
            RunStats: Статистика запуска
        """
        self.stats.start_time = datetime.now()
        self.logger.log_run_start(
            self.config.action.value, self.config.sources, self.config.destination, self.config.dry_run
        )

        plan = self.plan()
        result = apply_plan(self.config, plan, self.file_ops, out)

        self.stats.processed_files = len(plan)
        self.stats.successful_files = len(result.applied)
        for error in result.errors:
            if isinstance(error, PartialMoveError):
                self.stats.partial_files += 1
            elif isinstance(error, DestinationCollisionError):
                self.stats.skipped_files += 1
            else:
                self.stats.failed_files += 1
            self.stats.add_error(error.path, 'apply', error.kind, error)

        self.stats.end_time = datetime.now()
        self.logger.log_run_end(
            processed_files=self.stats.processed_files,
            successful_files=self.stats.successful_files,
            failed_files=self.stats.failed_files + self.stats.partial_files
        )
        return self.stats


def create_organizer(config: RunConfig, logger: DateBucketLogger) -> Organizer:
    """
    Удобная функция для создания объекта раскладки.

    Args:
        config: Конфигурация запуска
        logger: Логгер

    Returns:
        Organizer: Объект раскладки
    """
    return Organizer(config, logger)
