"""
Главный модуль CLI интерфейса утилиты раскладки файлов.

Разбирает аргументы командной строки, проверяет их до любого обращения
к файловой системе и запускает раскладку.
"""

import argparse
import sys
from typing import List, Optional

try:
    from .config_loader import ConfigError, build_run_config, load_config, with_log_overrides
    from .logger import DateBucketLogger
    from .organizer import RunStats, create_organizer
except ImportError:
    from config_loader import ConfigError, build_run_config, load_config, with_log_overrides
    from logger import DateBucketLogger
    from organizer import RunStats, create_organizer


EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIG_ERROR = 2

MAX_REPORTED_ERRORS = 20


class DateBucketCLI:
    """Класс для обработки команд CLI."""

    def __init__(self):
        self.run_config = None
        self.settings = None
        self.logger = None
        self.organizer = None

    def setup(self, args) -> bool:
        """
        Проверяет аргументы, загружает настройки и создает логгер.

        Args:
            args: Аргументы командной строки

        Returns:
            bool: True если инициализация успешна
        """
        try:
            self.run_config = build_run_config(
                args.paths,
                move=args.move,
                copy=args.copy,
                date_from=args.date_from,
                date_to=args.date_to,
                group_by_extension=args.ext,
                dry_run=args.dry_run
            )
            self.settings = with_log_overrides(load_config(args.config), args.log_file, args.verbose)
            self.logger = DateBucketLogger(self.settings.logging)
        except (ConfigError, OSError) as e:
            print(f"❌ Ошибка конфигурации: {e}", file=sys.stderr)
            return False

        if args.config:
            self.logger.log_config_loaded(args.config)
        self.organizer = create_organizer(self.run_config, self.logger)
        return True

    def cmd_run(self, args) -> int:
        """
        Выполняет раскладку.

        Args:
            args: Аргументы командной строки

        Returns:
            int: Код возврата (0 - успех, 1 - были ошибки обхода или применения)
        """
        try:
            stats = self.organizer.run()
        except Exception as e:
            self.logger.log_critical_error("Раскладка прервана", e)
            raise
        finally:
            self.logger.close()

        self._print_report(stats)
        return EXIT_FAILURES if stats.has_failures() else EXIT_OK

    def _print_report(self, stats: RunStats) -> None:
        """Печатает итоговую статистику и сводный список ошибок в stderr."""
        if not self.run_config.dry_run:
            print(f"📊 Статистика:", file=sys.stderr)
            print(f"   • Обработано: {stats.processed_files}", file=sys.stderr)
            print(f"   • Успешно: {stats.successful_files}", file=sys.stderr)
            print(f"   • Ошибок: {stats.failed_files}", file=sys.stderr)
            if stats.partial_files:
                print(f"   • Скопировано без удаления источника: {stats.partial_files}", file=sys.stderr)
            if stats.skipped_files:
                print(f"   • Пропущено из-за коллизий: {stats.skipped_files}", file=sys.stderr)

        if stats.errors:
            print(f"\n⚠️ Обнаружено {len(stats.errors)} ошибок:", file=sys.stderr)
            for error in stats.errors[:MAX_REPORTED_ERRORS]:
                print(f"   • [{error['stage']}/{error['kind']}] {error['path']}: {error['error']}",
                      file=sys.stderr)
            if len(stats.errors) > MAX_REPORTED_ERRORS:
                print(f"   ... и еще {len(stats.errors) - MAX_REPORTED_ERRORS} ошибок", file=sys.stderr)


def create_parser() -> argparse.ArgumentParser:
    """
    Создает парсер аргументов командной строки.

    Returns:
        argparse.ArgumentParser: Настроенный парсер
    """
    parser = argparse.ArgumentParser(
        prog="datebucket",
        usage="datebucket SOURCE... DEST {-m|-c} [OPTIONS]",
        description="Раскладка файлов по каталогам YYYY/MM_MonthName по дате изменения",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры использования:

  # Скопировать фото за март, разложив по расширениям
  datebucket ~/camera ~/archive -c --from 2023-03-01 --to 2023-03-31 --ext

  # Переместить файлы из двух каталогов
  datebucket ~/Downloads ~/Desktop ~/sorted -m

  # Посмотреть план без изменений
  datebucket ~/Downloads ~/sorted -m --dry-run
        """
    )

    parser.add_argument(
        'paths',
        nargs='+',
        metavar='PATH',
        help='Исходные каталоги и последним - каталог назначения'
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument('-m', dest='move', action='store_true', help='Перемещать файлы')
    mode.add_argument('-c', dest='copy', action='store_true', help='Копировать файлы')

    parser.add_argument(
        '--from',
        dest='date_from',
        metavar='YYYY-MM-DD',
        help='Начальная дата изменения (включительно)'
    )
    parser.add_argument(
        '--to',
        dest='date_to',
        metavar='YYYY-MM-DD',
        help='Конечная дата изменения (включительно, до конца дня)'
    )
    parser.add_argument(
        '--ext',
        action='store_true',
        help='Дополнительно раскладывать по расширению файла'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Показать план "источник -> назначение" без изменений'
    )

    # Общие аргументы
    parser.add_argument(
        '--config',
        help='Путь к файлу настроек (по умолчанию: config/settings.ini, если есть)'
    )
    parser.add_argument(
        '--log-file',
        help='Файл лога (перекрывает значение из настроек)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Подробный вывод'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Главная функция CLI."""
    parser = create_parser()
    try:
        args = parser.parse_intermixed_args(argv)
    except SystemExit as e:
        # argparse завершает работу с кодом 2 при ошибке и 0 при --help
        return e.code if isinstance(e.code, int) else EXIT_CONFIG_ERROR

    cli = DateBucketCLI()
    if not cli.setup(args):
        return EXIT_CONFIG_ERROR

    try:
        return cli.cmd_run(args)
    except KeyboardInterrupt:
        print("\n⚠️ Операция прервана пользователем", file=sys.stderr)
        return EXIT_FAILURES
    except Exception as e:
        print(f"❌ Неожиданная ошибка: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return EXIT_FAILURES


if __name__ == "__main__":
    sys.exit(main())
