"""
Модели данных конвейера раскладки файлов.

Записи создаются один раз и дальше не изменяются: сканер порождает
FileRecord, планировщик превращает их в PlanEntry, исполнитель
потребляет PlanEntry.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional


class Action(str, Enum):
    """Действие над файлом."""
    MOVE = "move"
    COPY = "copy"
    # Зарезервировано под дедупликацию по содержимому, планировщик их не выдает
    SKIP_DUPLICATE = "skip-duplicate"
    RENAME = "rename"


@dataclass(frozen=True)
class FileRecord:
    """Метаданные одного найденного обычного файла."""
    source_path: Path
    relative_path: Path
    size: int
    mod_time: datetime
    extension: str
    content_digest: Optional[str] = None


@dataclass(frozen=True)
class PlanEntry:
    """Одно запланированное действие: откуда, куда и что сделать."""
    source_path: Path
    destination_path: Path
    action: Action

    def describe(self) -> str:
        """Строка для предварительного просмотра (dry-run)."""
        return f"{self.source_path} -> {self.destination_path}"


@dataclass(frozen=True)
class FileMetadata:
    """Метаданные файла, нужные для копирования с сохранением атрибутов."""
    size: int
    mode: int
    mod_time_ns: int
    access_time_ns: Optional[int] = None

    @property
    def mod_time(self) -> datetime:
        return datetime.fromtimestamp(self.mod_time_ns / 1e9)

    @property
    def access_time(self) -> datetime:
        """Время доступа; если платформа его не сообщает - текущее время."""
        if self.access_time_ns is None:
            return datetime.now()
        return datetime.fromtimestamp(self.access_time_ns / 1e9)


@dataclass
class AnalysisResult:
    """Сводка по плану до его выполнения."""
    count: int = 0
    bytes: int = 0
    by_extension: Dict[str, int] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
