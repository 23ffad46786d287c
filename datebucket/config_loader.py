"""
Модуль для загрузки и валидации конфигурации приложения.

Обеспечивает загрузку настроек логирования из config/settings.ini
и построение неизменяемой конфигурации запуска из аргументов командной строки.
"""

import configparser
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Optional, Tuple

try:
    from .models import Action
except ImportError:
    from models import Action


DEFAULT_CONFIG_PATH = "config/settings.ini"
DATE_FORMAT = "%Y-%m-%d"
VALID_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


class ConfigError(ValueError):
    """Исключение для ошибок конфигурации и аргументов запуска."""
    pass


@dataclass
class LoggingConfig:
    """Конфигурация логирования."""
    level: str = 'INFO'
    log_file: Optional[Path] = None
    max_log_size: int = 10
    backup_count: int = 5


@dataclass
class AppSettings:
    """Настройки приложения из файла конфигурации."""
    logging: LoggingConfig = field(default_factory=LoggingConfig)


@dataclass(frozen=True)
class RunConfig:
    """Параметры одного запуска. После создания не изменяются."""
    move: bool
    copy: bool
    sources: Tuple[Path, ...]
    destination: Path
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    group_by_extension: bool = False
    dry_run: bool = False

    def __post_init__(self):
        if self.move == self.copy:
            raise ConfigError("Нужно указать ровно один режим: -m (перемещение) или -c (копирование)")
        if not self.sources:
            raise ConfigError("Нужен хотя бы один исходный каталог")
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ConfigError("Начальная дата не может быть больше конечной")

    @property
    def action(self) -> Action:
        return Action.MOVE if self.move else Action.COPY


class ConfigLoader:
    """Класс для загрузки и валидации файла настроек."""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        """
        Инициализация загрузчика конфигурации.

        Args:
            config_path: Путь к файлу конфигурации
        """
        self.config_path = Path(config_path)
        self._settings: Optional[AppSettings] = None

    def load_config(self) -> AppSettings:
        """
        Загружает настройки из файла.

        Returns:
            AppSettings: Объект настроек

        Raises:
            FileNotFoundError: Если файл конфигурации не найден
            ConfigError: Если конфигурация некорректна
        """
        if not self.config_path.exists():
            raise FileNotFoundError(f"Файл конфигурации не найден: {self.config_path}")

        config_parser = configparser.ConfigParser()
        config_parser.read(self.config_path, encoding='utf-8')

        try:
            self._settings = AppSettings(logging=self._load_logging_config(config_parser))
            self._validate_config()
            return self._settings
        except (configparser.Error, ValueError) as e:
            self._settings = None
            raise ConfigError(f"Ошибка загрузки конфигурации: {e}")

    def _load_logging_config(self, parser: configparser.ConfigParser) -> LoggingConfig:
        """Загружает конфигурацию логирования."""
        section = 'logging'

        if not parser.has_section(section):
            return LoggingConfig()

        log_file = parser.get(section, 'log_file', fallback='').strip()

        return LoggingConfig(
            level=parser.get(section, 'level', fallback='INFO'),
            log_file=Path(log_file) if log_file else None,
            max_log_size=parser.getint(section, 'max_log_size', fallback=10),
            backup_count=parser.getint(section, 'backup_count', fallback=5)
        )

    def _validate_config(self) -> None:
        """Валидирует загруженную конфигурацию."""
        logging_config = self._settings.logging

        if logging_config.level.upper() not in VALID_LEVELS:
            raise ConfigError(f"Некорректный уровень логирования: {logging_config.level}")

        if logging_config.max_log_size <= 0:
            raise ConfigError("Размер файла лога должен быть больше 0")

        if logging_config.backup_count < 0:
            raise ConfigError("Количество архивных логов не может быть отрицательным")

    def get_config(self) -> AppSettings:
        """
        Возвращает загруженные настройки.

        Raises:
            ConfigError: Если настройки не загружены
        """
        if self._settings is None:
            raise ConfigError("Конфигурация не загружена. Вызовите load_config() сначала.")
        return self._settings


def load_config(config_path: Optional[str] = None) -> AppSettings:
    """
    Удобная функция для загрузки настроек.

    Файл по умолчанию необязателен: если его нет, используются
    настройки по умолчанию. Явно указанный файл должен существовать.

    Args:
        config_path: Путь к файлу конфигурации

    Returns:
        AppSettings: Объект настроек
    """
    if config_path is None:
        if not Path(DEFAULT_CONFIG_PATH).exists():
            return AppSettings()
        config_path = DEFAULT_CONFIG_PATH

    loader = ConfigLoader(config_path)
    return loader.load_config()


def with_log_overrides(settings: AppSettings, log_file: Optional[str] = None,
                       verbose: bool = False) -> AppSettings:
    """Применяет параметры логирования из командной строки поверх файла настроек."""
    logging_config = settings.logging
    if log_file:
        logging_config = replace(logging_config, log_file=Path(log_file))
    if verbose:
        logging_config = replace(logging_config, level='DEBUG')
    return AppSettings(logging=logging_config)


def parse_date(value: Optional[str], option: str = "date") -> Optional[date]:
    """
    Разбирает дату в формате YYYY-MM-DD.

    Raises:
        ConfigError: Если дата не разбирается
    """
    if not value:
        return None
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise ConfigError(f"Некорректная дата {option}: '{value}' (ожидается YYYY-MM-DD)")


def build_run_config(paths: Iterable[str], move: bool = False, copy: bool = False,
                     date_from: Optional[str] = None, date_to: Optional[str] = None,
                     group_by_extension: bool = False, dry_run: bool = False) -> RunConfig:
    """
    Строит конфигурацию запуска из позиционных путей и флагов.

    Последний путь считается каталогом назначения, остальные - источниками.

    Args:
        paths: Исходные каталоги и каталог назначения
        move: Режим перемещения
        copy: Режим копирования
        date_from: Нижняя граница даты изменения (включительно)
        date_to: Верхняя граница даты изменения (включительно, до конца дня)
        group_by_extension: Раскладывать дополнительно по расширению
        dry_run: Только показать план

    Returns:
        RunConfig: Проверенная конфигурация запуска

    Raises:
        ConfigError: Если аргументы некорректны
    """
    paths = list(paths)
    if len(paths) < 2:
        raise ConfigError("Недостаточно аргументов: нужно SOURCE... DEST")
    if not paths[-1].strip():
        raise ConfigError("Не указан каталог назначения")

    return RunConfig(
        move=move,
        copy=copy,
        sources=tuple(Path(p) for p in paths[:-1]),
        destination=Path(paths[-1]),
        date_from=parse_date(date_from, "--from"),
        date_to=parse_date(date_to, "--to"),
        group_by_extension=group_by_extension,
        dry_run=dry_run
    )
