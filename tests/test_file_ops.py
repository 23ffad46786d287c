"""
Тесты для модуля file_ops.py
"""

import errno
import io
import os
import shutil
import stat
import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from datebucket.config_loader import RunConfig
from datebucket.file_ops import (
    ApplyResult,
    CopyError,
    DestinationCollisionError,
    DirectoryCreationError,
    FileOperationError,
    FileOps,
    MoveError,
    PartialMoveError,
    apply_plan,
    create_file_ops,
)
from datebucket.logger import DateBucketLogger
from datebucket.models import Action, PlanEntry


OLD_TIME = datetime(2020, 5, 17, 8, 15, 30)


def make_file(path: Path, content: bytes = b"payload", mode: int = None, when: datetime = OLD_TIME) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    if mode is not None:
        path.chmod(mode)
    ts = when.timestamp()
    os.utime(path, (ts, ts))
    return path


def snapshot(root: Path) -> dict:
    """Снимок дерева: относительный путь -> (содержимое, права, mtime) или None для каталогов."""
    tree = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root)
        if path.is_dir():
            tree[rel] = None
        else:
            st = path.stat()
            tree[rel] = (path.read_bytes(), stat.S_IMODE(st.st_mode), st.st_mtime_ns)
    return tree


def make_config(move: bool = False, dry_run: bool = False, destination: Path = Path("dest")) -> RunConfig:
    return RunConfig(move=move, copy=not move, sources=(Path("src"),), destination=destination, dry_run=dry_run)


class TestFileOps:
    """Тесты для класса FileOps."""

    @pytest.fixture
    def temp_dir(self):
        """Создает временную директорию для тестов."""
        temp_path = tempfile.mkdtemp()
        yield Path(temp_path)
        shutil.rmtree(temp_path, ignore_errors=True)

    @pytest.fixture
    def mock_logger(self):
        """Создает мок логгера."""
        return Mock(spec=DateBucketLogger)

    @pytest.fixture
    def file_ops(self, mock_logger):
        """Создает объект FileOps для тестов."""
        return FileOps(mock_logger)

    def test_read_metadata(self, file_ops, temp_dir):
        """Тест получения метаданных файла."""
        path = make_file(temp_dir / "a.txt", b"12345", mode=0o640)

        metadata = file_ops.read_metadata(path)

        assert metadata.size == 5
        assert stat.S_IMODE(metadata.mode) == 0o640
        assert metadata.mod_time == OLD_TIME
        assert metadata.access_time is not None

    def test_ensure_directory_is_idempotent(self, file_ops, temp_dir):
        """Тест повторного создания каталога."""
        target = temp_dir / "2023" / "03_March" / "jpg"

        assert file_ops.ensure_directory(target) == target
        assert file_ops.ensure_directory(target) == target
        assert target.is_dir()

    def test_ensure_directory_failure(self, file_ops, temp_dir):
        """Тест ошибки создания каталога, когда на пути лежит файл."""
        blocker = make_file(temp_dir / "2023")

        with pytest.raises(DirectoryCreationError) as exc_info:
            file_ops.ensure_directory(blocker / "03_March")

        assert exc_info.value.kind == "mkdir"

    def test_copy_file_preserves_content_mode_and_mtime(self, file_ops, temp_dir):
        """Тест копирования: содержимое, права и время изменения сохраняются, источник не меняется."""
        source = make_file(temp_dir / "src" / "photo.jpg", b"\x00\x01binary", mode=0o640)
        before = snapshot(temp_dir / "src")
        target = temp_dir / "dest" / "photo.jpg"
        target.parent.mkdir()

        file_ops.copy_file(source, target)

        assert target.read_bytes() == b"\x00\x01binary"
        assert stat.S_IMODE(target.stat().st_mode) == 0o640
        assert target.stat().st_mtime_ns == source.stat().st_mtime_ns
        assert snapshot(temp_dir / "src") == before

    def test_copy_file_sets_access_time_to_now(self, file_ops, temp_dir):
        """Тест: время доступа копии выставляется в момент копирования."""
        source = make_file(temp_dir / "a.txt")
        target = temp_dir / "b.txt"

        started = datetime.now().timestamp()
        file_ops.copy_file(source, target)

        assert target.stat().st_atime >= started - 1
        assert target.stat().st_atime > OLD_TIME.timestamp()

    def test_copy_file_truncates_existing(self, file_ops, temp_dir):
        """Тест: существующий файл назначения перезаписывается."""
        source = make_file(temp_dir / "a.txt", b"short")
        target = make_file(temp_dir / "b.txt", b"a much longer previous content")

        file_ops.copy_file(source, target)

        assert target.read_bytes() == b"short"

    def test_copy_file_missing_source(self, file_ops, temp_dir):
        """Тест копирования несуществующего файла."""
        with pytest.raises(CopyError) as exc_info:
            file_ops.copy_file(temp_dir / "missing.txt", temp_dir / "out.txt")

        assert exc_info.value.path == temp_dir / "missing.txt"
        assert not (temp_dir / "out.txt").exists()

    def test_move_file_rename(self, file_ops, temp_dir):
        """Тест перемещения переименованием: права и время изменения сохраняются."""
        source = make_file(temp_dir / "src" / "a.txt", b"content", mode=0o600)
        source_mtime = source.stat().st_mtime_ns
        target = temp_dir / "dest" / "a.txt"
        target.parent.mkdir()

        assert file_ops.move_file(source, target) == target

        assert not source.exists()
        assert target.read_bytes() == b"content"
        assert stat.S_IMODE(target.stat().st_mode) == 0o600
        assert target.stat().st_mtime_ns == source_mtime

    def test_move_file_fallback_on_rename_failure(self, file_ops, temp_dir):
        """Тест: при ошибке переименования файл копируется и источник удаляется."""
        source = make_file(temp_dir / "a.txt", b"cross-device", mode=0o644)
        target = temp_dir / "b.txt"

        with patch("datebucket.file_ops.os.rename", side_effect=OSError(errno.EXDEV, "Invalid cross-device link")):
            file_ops.move_file(source, target)

        assert not source.exists()
        assert target.read_bytes() == b"cross-device"
        assert stat.S_IMODE(target.stat().st_mode) == 0o644
        assert target.stat().st_mtime == pytest.approx(OLD_TIME.timestamp())

    def test_move_file_fallback_on_any_rename_error(self, file_ops, temp_dir):
        """Тест: запасной путь срабатывает при любой ошибке переименования."""
        source = make_file(temp_dir / "a.txt")
        target = temp_dir / "b.txt"

        with patch("datebucket.file_ops.os.rename", side_effect=PermissionError("denied")):
            file_ops.move_file(source, target)

        assert target.exists()
        assert not source.exists()

    def test_move_file_both_fail(self, file_ops, temp_dir):
        """Тест: не удалось ни переименовать, ни скопировать."""
        with pytest.raises(MoveError) as exc_info:
            file_ops.move_file(temp_dir / "missing.txt", temp_dir / "b.txt")

        assert exc_info.value.kind == "move"
        assert not (temp_dir / "b.txt").exists()

    def test_move_file_partial(self, file_ops, temp_dir):
        """Тест: копия создана, источник удалить не удалось - файл в двух местах."""
        source = make_file(temp_dir / "a.txt", b"twice")
        target = temp_dir / "b.txt"

        with patch("datebucket.file_ops.os.rename", side_effect=OSError(errno.EXDEV, "cross-device")), \
                patch("datebucket.file_ops.os.remove", side_effect=PermissionError("read-only source")):
            with pytest.raises(PartialMoveError) as exc_info:
                file_ops.move_file(source, target)

        assert exc_info.value.kind == "partial-move"
        assert exc_info.value.path == source
        assert source.read_bytes() == b"twice"
        assert target.read_bytes() == b"twice"

    def test_apply_entry_creates_directory(self, file_ops, temp_dir):
        source = make_file(temp_dir / "a.txt")
        target = temp_dir / "dest" / "2020" / "05_May" / "a.txt"

        file_ops.apply_entry(PlanEntry(source, target, Action.COPY))

        assert target.exists()
        assert source.exists()

    def test_apply_entry_reserved_action(self, file_ops, temp_dir):
        """Тест: зарезервированные действия не выполняются."""
        source = make_file(temp_dir / "a.txt")

        with pytest.raises(FileOperationError, match="Неподдерживаемое действие"):
            file_ops.apply_entry(PlanEntry(source, temp_dir / "dest" / "a.txt", Action.SKIP_DUPLICATE))

        assert source.exists()


class TestApplyPlan:
    """Тесты выполнения плана."""

    @pytest.fixture
    def temp_dir(self):
        temp_path = tempfile.mkdtemp()
        yield Path(temp_path)
        shutil.rmtree(temp_path, ignore_errors=True)

    @pytest.fixture
    def file_ops(self):
        return FileOps(Mock(spec=DateBucketLogger))

    def test_dry_run_prints_and_does_not_touch_filesystem(self, file_ops, temp_dir):
        """Тест dry-run: строки "источник -> назначение", файловая система не меняется."""
        a = make_file(temp_dir / "src" / "a.txt")
        b = make_file(temp_dir / "src" / "b.txt")
        dest = temp_dir / "dest"
        plan = [
            PlanEntry(a, dest / "2020" / "05_May" / "a.txt", Action.MOVE),
            PlanEntry(b, dest / "2020" / "05_May" / "b.txt", Action.MOVE),
        ]
        before = snapshot(temp_dir)
        out = io.StringIO()

        result = apply_plan(make_config(move=True, dry_run=True, destination=dest), plan, file_ops, out)

        assert out.getvalue().splitlines() == [
            f"{a} -> {dest / '2020' / '05_May' / 'a.txt'}",
            f"{b} -> {dest / '2020' / '05_May' / 'b.txt'}",
        ]
        assert snapshot(temp_dir) == before
        assert not dest.exists()
        assert result.applied == plan
        assert result.errors == []

    def test_continue_on_error(self, file_ops, temp_dir):
        """Тест: ошибка одного файла не останавливает остальные."""
        good = make_file(temp_dir / "src" / "good.txt")
        dest = temp_dir / "dest"
        plan = [
            PlanEntry(temp_dir / "src" / "gone.txt", dest / "gone.txt", Action.COPY),
            PlanEntry(good, dest / "good.txt", Action.COPY),
        ]

        result = apply_plan(make_config(destination=dest), plan, file_ops)

        assert result.applied == [plan[1]]
        assert len(result.errors) == 1
        assert isinstance(result.errors[0], CopyError)
        assert result.errors[0].path == temp_dir / "src" / "gone.txt"
        assert (dest / "good.txt").exists()
        file_ops.logger.log_file_error.assert_called_once()
        file_ops.logger.log_file_applied.assert_called_once()

    def test_directory_error_attributed_to_source(self, file_ops, temp_dir):
        """Тест: ошибка создания каталога относится к исходному файлу."""
        source = make_file(temp_dir / "src" / "a.txt")
        blocker = make_file(temp_dir / "dest")

        result = apply_plan(make_config(destination=blocker), [PlanEntry(source, blocker / "2020" / "a.txt", Action.COPY)],
                            file_ops)

        assert isinstance(result.errors[0], DirectoryCreationError)
        assert result.errors[0].path == source

    def test_collision_first_wins(self, file_ops, temp_dir):
        """Тест коллизии при перемещении: применяется первая запись, вторая отклоняется."""
        first = make_file(temp_dir / "src" / "a" / "report.txt", b"first")
        second = make_file(temp_dir / "src" / "b" / "report.txt", b"second")
        target = temp_dir / "dest" / "2020" / "05_May" / "report.txt"
        plan = [PlanEntry(first, target, Action.MOVE), PlanEntry(second, target, Action.MOVE)]

        result = apply_plan(make_config(move=True, destination=temp_dir / "dest"), plan, file_ops)

        assert target.read_bytes() == b"first"
        assert not first.exists()
        assert second.read_bytes() == b"second"
        assert result.applied == [plan[0]]
        assert len(result.errors) == 1
        assert isinstance(result.errors[0], DestinationCollisionError)
        assert result.errors[0].path == second

    def test_collision_after_failed_entry(self, file_ops, temp_dir):
        """Тест: если первая запись не выполнена, путь может занять следующая."""
        second = make_file(temp_dir / "src" / "b" / "report.txt", b"second")
        target = temp_dir / "dest" / "report.txt"
        plan = [
            PlanEntry(temp_dir / "src" / "a" / "report.txt", target, Action.COPY),
            PlanEntry(second, target, Action.COPY),
        ]

        result = apply_plan(make_config(destination=temp_dir / "dest"), plan, file_ops)

        assert target.read_bytes() == b"second"
        assert result.applied == [plan[1]]
        assert isinstance(result.errors[0], CopyError)

    def test_partial_move_reported_as_warning(self, file_ops, temp_dir):
        source = make_file(temp_dir / "src" / "a.txt")
        target = temp_dir / "dest" / "a.txt"

        with patch("datebucket.file_ops.os.rename", side_effect=OSError(errno.EXDEV, "cross-device")), \
                patch("datebucket.file_ops.os.remove", side_effect=PermissionError("locked")):
            result = apply_plan(make_config(move=True, destination=temp_dir / "dest"),
                                [PlanEntry(source, target, Action.MOVE)], file_ops)

        assert result.applied == []
        assert len(result.partial) == 1
        file_ops.logger.log_warning.assert_called_once()
        assert source.exists() and target.exists()


class TestCreateFileOps:
    """Тесты для функции create_file_ops."""

    def test_create_file_ops(self):
        mock_logger = Mock(spec=DateBucketLogger)

        file_ops = create_file_ops(mock_logger)

        assert isinstance(file_ops, FileOps)
        assert file_ops.logger is mock_logger

    def test_apply_result_defaults(self):
        result = ApplyResult()

        assert result.applied == []
        assert result.errors == []
        assert result.partial == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
