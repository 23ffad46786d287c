"""
Модуль построения плана раскладки.

Чистые функции без обращения к файловой системе: по записям FileRecord
и конфигурации запуска вычисляют пути назначения и действия.
"""

from collections import OrderedDict
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Sequence

try:
    from .config_loader import RunConfig
    from .models import AnalysisResult, FileRecord, PlanEntry
except ImportError:
    from config_loader import RunConfig
    from models import AnalysisResult, FileRecord, PlanEntry


# Не зависит от локали, в отличие от calendar.month_name
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

UNKNOWN_EXTENSION = "unknown"


def extension_segment(extension: str) -> str:
    """Имя каталога для расширения: без точки, в нижнем регистре, 'unknown' для пустого."""
    segment = extension.lower().lstrip(".")
    return segment or UNKNOWN_EXTENSION


def month_segment(moment: datetime) -> str:
    """Имя каталога месяца, например '03_March'."""
    return f"{moment.month:02d}_{MONTH_NAMES[moment.month - 1]}"


def destination_directory(destination_root: Path, mod_time: datetime, extension: str,
                          group_by_extension: bool) -> Path:
    """
    Вычисляет каталог назначения: root/YYYY/MM_MonthName[/ext].

    Args:
        destination_root: Корневой каталог назначения
        mod_time: Время изменения файла
        extension: Расширение файла
        group_by_extension: Добавлять ли каталог расширения

    Returns:
        Path: Каталог назначения
    """
    directory = Path(destination_root) / f"{mod_time.year:04d}" / month_segment(mod_time)
    if group_by_extension:
        directory = directory / extension_segment(extension)
    return directory


def build_plan(config: RunConfig, records: Sequence[FileRecord]) -> List[PlanEntry]:
    """
    Строит план: по одной записи PlanEntry на каждый FileRecord, в том же порядке.

    Имя файла сохраняется как есть, коллизии здесь не разрешаются
    (см. find_collisions).
    """
    action = config.action
    return [
        PlanEntry(
            source_path=record.source_path,
            destination_path=destination_directory(
                config.destination, record.mod_time, record.extension, config.group_by_extension
            ) / Path(record.source_path).name,
            action=action
        )
        for record in records
    ]


def find_collisions(plan: Sequence[PlanEntry]) -> Dict[Path, List[PlanEntry]]:
    """
    Находит пути назначения, на которые претендует больше одного файла.

    Returns:
        Dict[Path, List[PlanEntry]]: Путь назначения -> записи плана в порядке плана
    """
    by_destination: Dict[Path, List[PlanEntry]] = OrderedDict()
    for entry in plan:
        by_destination.setdefault(entry.destination_path, []).append(entry)
    return OrderedDict(
        (destination, entries)
        for destination, entries in by_destination.items()
        if len(entries) > 1
    )


def analyze(records: Sequence[FileRecord], plan: Sequence[PlanEntry]) -> AnalysisResult:
    """Сводка по плану: количество, объем, распределение по расширениям, предупреждения."""
    result = AnalysisResult()
    for record in records:
        result.count += 1
        result.bytes += record.size
        segment = extension_segment(record.extension)
        result.by_extension[segment] = result.by_extension.get(segment, 0) + 1

    for destination, entries in find_collisions(plan).items():
        result.warnings.append(
            f"{len(entries)} файлов претендуют на {destination} "
            f"({', '.join(str(e.source_path) for e in entries)}), будет применен только первый"
        )
    return result
