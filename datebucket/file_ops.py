"""
Модуль для операций с файловой системой.

Выполняет план раскладки: создает каталоги назначения, копирует и
перемещает файлы с сохранением прав доступа и времени изменения.
При неудачном переименовании перемещение выполняется как копирование
с последующим удалением источника.
"""

import os
import shutil
import stat
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Set, TextIO

try:
    from .config_loader import RunConfig
    from .logger import DateBucketLogger
    from .models import Action, FileMetadata, PlanEntry
except ImportError:
    from config_loader import RunConfig
    from logger import DateBucketLogger
    from models import Action, FileMetadata, PlanEntry


class FileOperationError(Exception):
    """Исключение для ошибок операций с файлами."""

    kind = "file-operation"

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class DirectoryCreationError(FileOperationError):
    """Не удалось создать каталог назначения."""
    kind = "mkdir"


class CopyError(FileOperationError):
    """Не удалось скопировать файл."""
    kind = "copy"


class MoveError(FileOperationError):
    """Не удалось ни переименовать файл, ни скопировать его."""
    kind = "move"


class PartialMoveError(FileOperationError):
    """Файл скопирован в назначение, но источник удалить не удалось: файл теперь в двух местах."""
    kind = "partial-move"


class DestinationCollisionError(FileOperationError):
    """Путь назначения уже занят другим файлом этого же запуска."""
    kind = "collision"


@dataclass
class ApplyResult:
    """Итог выполнения плана."""
    applied: List[PlanEntry] = field(default_factory=list)
    errors: List[FileOperationError] = field(default_factory=list)

    @property
    def partial(self) -> List[FileOperationError]:
        return [e for e in self.errors if isinstance(e, PartialMoveError)]


class FileOps:
    """Класс для операций с файловой системой."""

    def __init__(self, logger: DateBucketLogger):
        """
        Args:
            logger: Логгер для записи операций
        """
        self.logger = logger

    def read_metadata(self, path: Path) -> FileMetadata:
        """
        Получает метаданные файла: размер, права, время изменения и доступа.

        Если платформа не сообщает время доступа, используется текущее время.
        """
        st = os.stat(path)
        return FileMetadata(
            size=st.st_size,
            mode=st.st_mode,
            mod_time_ns=st.st_mtime_ns,
            access_time_ns=getattr(st, "st_atime_ns", None)
        )

    def ensure_directory(self, directory: Path) -> Path:
        """
        Создает каталог со всеми родителями; повторный вызов безопасен.

        Raises:
            DirectoryCreationError: Если каталог создать не удалось
        """
        try:
            Path(directory).mkdir(parents=True, exist_ok=True)
            return Path(directory)
        except OSError as e:
            raise DirectoryCreationError(f"Ошибка создания каталога {directory}: {e}", directory)

    def copy_file(self, source_path: Path, target_path: Path) -> Path:
        """
        Копирует содержимое, права доступа и время изменения файла.

        Файл назначения создается с правами по умолчанию (или усекается,
        если уже есть), затем получает все биты прав источника. Время доступа
        выставляется в момент копирования, время изменения берется у источника.

        Raises:
            CopyError: Если копирование не удалось
        """
        try:
            metadata = self.read_metadata(source_path)
            shutil.copyfile(source_path, target_path)
            os.chmod(target_path, stat.S_IMODE(metadata.mode))
            os.utime(target_path, ns=(time.time_ns(), metadata.mod_time_ns))
        except OSError as e:
            raise CopyError(f"Ошибка копирования {source_path} -> {target_path}: {e}", source_path)
        return Path(target_path)

    def move_file(self, source_path: Path, target_path: Path) -> Path:
        """
        Перемещает файл.

        Сначала пробует атомарное переименование. Любая ошибка переименования
        (не только переход между устройствами) приводит к копированию
        с последующим удалением источника.

        Raises:
            MoveError: Если не удались ни переименование, ни копирование
            PartialMoveError: Если копия создана, а источник удалить не удалось
        """
        try:
            os.rename(source_path, target_path)
            return Path(target_path)
        except OSError as rename_error:
            self.logger.log_debug(
                f"Переименование {source_path} не удалось ({rename_error}), копирование с удалением")

        try:
            self.copy_file(source_path, target_path)
        except CopyError as e:
            raise MoveError(f"Ошибка перемещения {source_path}: {e}", source_path)

        try:
            os.remove(source_path)
        except OSError as e:
            raise PartialMoveError(
                f"Файл скопирован в {target_path}, но источник {source_path} не удален: {e}",
                source_path
            )
        return Path(target_path)

    def apply_entry(self, entry: PlanEntry) -> Path:
        """
        Выполняет одну запись плана: создает каталог и перемещает или копирует файл.

        Raises:
            FileOperationError: При любой ошибке выполнения
        """
        self.ensure_directory(Path(entry.destination_path).parent)

        if entry.action == Action.MOVE:
            return self.move_file(entry.source_path, entry.destination_path)
        if entry.action == Action.COPY:
            return self.copy_file(entry.source_path, entry.destination_path)
        raise FileOperationError(f"Неподдерживаемое действие: {entry.action}", entry.source_path)


def apply_plan(config: RunConfig, plan: Sequence[PlanEntry], file_ops: FileOps,
               out: Optional[TextIO] = None) -> ApplyResult:
    """
    Выполняет план по порядку.

    В режиме dry-run только печатает строки "источник -> назначение" и не
    трогает файловую систему. Иначе ошибки отдельных файлов не прерывают
    выполнение: они собираются в результат. Если несколько записей ведут
    в один путь, применяется первая успешная, остальные отклоняются
    как коллизии, их источники не затрагиваются.

    Args:
        config: Конфигурация запуска
        plan: План
        file_ops: Операции с файлами
        out: Поток для строк dry-run (по умолчанию stdout)

    Returns:
        ApplyResult: Выполненные записи и ошибки
    """
    result = ApplyResult()

    if config.dry_run:
        if out is None:
            out = sys.stdout
        for entry in plan:
            out.write(entry.describe() + "\n")
            result.applied.append(entry)
        return result

    claimed: Set[Path] = set()
    for entry in plan:
        if entry.destination_path in claimed:
            error = DestinationCollisionError(
                f"Путь назначения {entry.destination_path} уже занят файлом этого запуска",
                entry.source_path
            )
            file_ops.logger.log_file_error(entry.source_path, error)
            result.errors.append(error)
            continue

        try:
            file_ops.apply_entry(entry)
        except PartialMoveError as e:
            claimed.add(entry.destination_path)
            file_ops.logger.log_warning(str(e))
            result.errors.append(e)
            continue
        except FileOperationError as e:
            e.path = entry.source_path
            file_ops.logger.log_file_error(entry.source_path, e)
            result.errors.append(e)
            continue

        claimed.add(entry.destination_path)
        file_ops.logger.log_file_applied(entry.action.value, entry.source_path, entry.destination_path)
        result.applied.append(entry)

    return result


def create_file_ops(logger: DateBucketLogger) -> FileOps:
    """
    Удобная функция для создания объекта операций с файлами.

    Args:
        logger: Логгер

    Returns:
        FileOps: Объект операций с файлами
    """
    return FileOps(logger)
