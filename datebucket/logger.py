"""
Модуль для настройки и управления логированием приложения.

Обеспечивает централизованную настройку логирования с ротацией файлов
и цветным выводом в консоль. Весь диагностический вывод идет в stderr,
stdout остается за строками предварительного просмотра.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime

try:
    from .config_loader import LoggingConfig
except ImportError:
    from config_loader import LoggingConfig


LOGGER_NAME = 'datebucket'
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Форматтер с цветным выводом для консоли."""

    # Цветовые коды ANSI
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record):
        """Форматирует запись лога с цветом, не портя запись для других обработчиков."""
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class DateBucketLogger:
    """Класс для управления логированием приложения."""

    def __init__(self, config: LoggingConfig):
        """
        Инициализация логгера.

        Args:
            config: Конфигурация логирования
        """
        self.config = config
        self.logger: Optional[logging.Logger] = None
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Настраивает логгер с консольным и, если задан файл, файловым выводом."""
        level = getattr(logging, self.config.level.upper())

        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(level)
        self.logger.propagate = False

        # Очищаем существующие обработчики
        for handler in self.logger.handlers[:]:
            handler.close()
            self.logger.removeHandler(handler)

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(ColoredFormatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        console_handler.setLevel(level)
        self.logger.addHandler(console_handler)

        if self.config.log_file:
            log_file_path = Path(self.config.log_file)
            log_file_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file_path,
                maxBytes=self.config.max_log_size * 1024 * 1024,  # MB -> байты
                backupCount=self.config.backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
            file_handler.setLevel(level)
            self.logger.addHandler(file_handler)

        self.logger.debug(f"Логирование настроено: уровень {self.config.level.upper()}")

    def get_logger(self) -> logging.Logger:
        """
        Возвращает настроенный логгер.

        Returns:
            logging.Logger: Настроенный логгер
        """
        if self.logger is None:
            raise RuntimeError("Логгер не инициализирован")
        return self.logger

    def close(self) -> None:
        """Закрывает все обработчики логгера."""
        for handler in self.logger.handlers[:]:
            handler.close()
            self.logger.removeHandler(handler)

    def log_run_start(self, mode: str, sources, destination: Path, dry_run: bool) -> None:
        """
        Логирует начало запуска.

        Args:
            mode: Режим (move или copy)
            sources: Исходные каталоги
            destination: Каталог назначения
            dry_run: Режим предварительного просмотра
        """
        self.logger.info(f"🚀 Начало раскладки файлов ({mode}{', dry-run' if dry_run else ''})")
        self.logger.info(f"📂 Источники: {', '.join(str(s) for s in sources)}")
        self.logger.info(f"📁 Назначение: {destination}")
        self.logger.info(f"⏰ Время начала: {datetime.now().strftime(LOG_DATE_FORMAT)}")

    def log_run_end(self, processed_files: int, successful_files: int, failed_files: int) -> None:
        """
        Логирует завершение запуска.

        Args:
            processed_files: Обработано файлов
            successful_files: Успешно
            failed_files: Ошибок
        """
        self.logger.info(f"✅ Раскладка завершена")
        self.logger.info(f"📊 Статистика:")
        self.logger.info(f"   • Обработано: {processed_files}")
        self.logger.info(f"   • Успешно: {successful_files}")
        self.logger.info(f"   • Ошибок: {failed_files}")
        self.logger.info(f"⏰ Время завершения: {datetime.now().strftime(LOG_DATE_FORMAT)}")

    def log_discovery_result(self, found: int, errors: int) -> None:
        """Логирует итог обхода исходных каталогов."""
        self.logger.info(f"🔍 Найдено файлов: {found}, ошибок обхода: {errors}")

    def log_analysis(self, count: int, total_bytes: int, by_extension: dict) -> None:
        """Логирует сводку по плану."""
        self.logger.info(f"📦 В плане: {count} файлов, {total_bytes:,} байт")
        for ext, ext_count in sorted(by_extension.items()):
            self.logger.debug(f"   • {ext}: {ext_count}")

    def log_root_error(self, root: Path, error: Exception) -> None:
        """
        Логирует ошибку обхода исходного каталога.

        Args:
            root: Исходный каталог
            error: Исключение
        """
        self.logger.error(f"📂 Ошибка обхода {root}: {error}")

    def log_file_applied(self, action: str, source_path: Path, target_path: Path) -> None:
        """
        Логирует успешно выполненное действие над файлом.

        Args:
            action: Действие (move или copy)
            source_path: Исходный путь
            target_path: Целевой путь
        """
        self.logger.info(f"📁 {action.upper()}: {source_path} → {target_path}")

    def log_file_error(self, path: Path, error: Exception) -> None:
        """
        Логирует ошибку при обработке файла.

        Args:
            path: Путь к файлу
            error: Исключение
        """
        self.logger.error(f"❌ Ошибка при обработке файла {path}: {error}")

    def log_collision(self, warning: str) -> None:
        """Логирует совпадение путей назначения у нескольких файлов."""
        self.logger.warning(f"⚠️ Коллизия: {warning}")

    def log_config_loaded(self, config_path: str) -> None:
        """
        Логирует успешную загрузку конфигурации.

        Args:
            config_path: Путь к файлу конфигурации
        """
        self.logger.info(f"⚙️ Конфигурация загружена из {config_path}")

    def log_system_info(self, info: str) -> None:
        """
        Логирует системную информацию.

        Args:
            info: Информационное сообщение
        """
        self.logger.info(f"ℹ️ {info}")

    def log_debug(self, message: str) -> None:
        self.logger.debug(message)

    def log_warning(self, message: str) -> None:
        """
        Логирует предупреждение.

        Args:
            message: Сообщение предупреждения
        """
        self.logger.warning(f"⚠️ {message}")

    def log_critical_error(self, message: str, error: Exception = None) -> None:
        """
        Логирует критическую ошибку.

        Args:
            message: Сообщение об ошибке
            error: Исключение (опционально)
        """
        if error:
            self.logger.critical(f"💥 {message}: {error}")
        else:
            self.logger.critical(f"💥 {message}")


def setup_logger(config: LoggingConfig) -> logging.Logger:
    """
    Удобная функция для быстрой настройки логгера.

    Args:
        config: Конфигурация логирования

    Returns:
        logging.Logger: Настроенный логгер
    """
    return DateBucketLogger(config).get_logger()


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Получает логгер по имени.

    Args:
        name: Имя логгера

    Returns:
        logging.Logger: Логгер
    """
    return logging.getLogger(name)
