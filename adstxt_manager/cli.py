# === FILE: adstxt_manager/cli.py ===
#!/usr/bin/env python3
"""
Точка входа AdsTxtManager для командной строки.

Команды:
  optimize FILE   Оптимизировать ads.txt и вывести/сохранить результат
  sellers DOMAIN  Метаданные sellers.json домена и поиск seller_id
  fetch TYPE DOM  Получить ads.txt / sellers.json через кэш
  refresh TYPE    Перезагрузить устаревшие записи кэша
  config          Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml)
  --db PATH           Файл SQLite-кэша (override db_path)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stderr, если не указан)
  --log-format FORMAT Формат логирования

Пример:
  adstxt-manager optimize ads.txt --domain example.com --json report.json
"""
import asyncio
import json
import sys
from datetime import timedelta
from pathlib import Path

import click

from adstxt_manager import __version__
from adstxt_manager.config import load_config
from adstxt_manager.engine import start_fetch, start_optimize, start_refresh, start_sellers_lookup
from adstxt_manager.errors import InvalidContentError
from adstxt_manager.logger import init_logging
from adstxt_manager.models import ResourceType
from adstxt_manager.report.html_report import render_html
from adstxt_manager.report.json_report import render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='AdsTxtManager, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--db', 'db_path',
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help='Файл SQLite-кэша (override db_path)'
)
@click.option(
    '--log-level', 'log_level',
    default='WARNING', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stderr, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, db_path, log_level, log_file, log_format):
    """Группа команд AdsTxtManager CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format,
        stream=sys.stderr,
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    if db_path is not None:
        cfg = cfg.model_copy(update={'db_path': str(db_path)})
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('optimize', context_settings=CONTEXT_SETTINGS)
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--domain', '-d', 'publisher_domain', default=None, help='Домен издателя (OWNERDOMAIN)')
@click.option(
    '--level', '-l', 'level',
    default='level2', show_default=True,
    type=click.Choice(['level1', 'level2']),
    help='level1: только нормализация, level2: сверка с sellers.json'
)
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.option(
    '--html', '-h', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-отчёт в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с Jinja2-шаблонами (по умолчанию встроенная)'
)
@click.option(
    '--timeout', 'optimize_timeout',
    type=float,
    default=None,
    help='Таймаут всей оптимизации (секунд)'
)
@click.pass_context
def optimize(ctx, input_file, publisher_domain, level, json_output, html_output, template_dir,
             optimize_timeout):
    """Оптимизировать ads.txt и напечатать результат."""
    cfg = ctx.obj['config']
    content = input_file.read_text(encoding='utf-8')
    try:
        if optimize_timeout:
            result = asyncio.run(
                asyncio.wait_for(start_optimize(cfg, content, publisher_domain, level),
                                 timeout=optimize_timeout)
            )
        else:
            result = asyncio.run(start_optimize(cfg, content, publisher_domain, level))
    except asyncio.TimeoutError:
        print_error(f'Оптимизация не завершена за {optimize_timeout} секунд')
    except InvalidContentError as e:
        print_error(f'Некорректный ads.txt: {e}')
    except Exception as e:
        print_error(f'Ошибка при оптимизации: {e}')

    # Если не сохраняем в файл, печатаем оптимизированный текст
    if not json_output and not html_output:
        click.echo(result.optimized_content, nl=False)
        return

    if json_output:
        try:
            saved_json = render_json(result, json_output)
            click.echo(f'JSON report: {saved_json}')
        except Exception as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(result, template_dir, html_output)
            click.echo(f'HTML report: {saved_html}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('sellers', context_settings=CONTEXT_SETTINGS)
@click.argument('domain')
@click.option('--seller-id', '-s', 'seller_ids', multiple=True, help='seller_id для поиска (можно несколько)')
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.pass_context
def sellers(ctx, domain, seller_ids, pretty):
    """Показать метаданные sellers.json и найденных продавцов."""
    cfg = ctx.obj['config']
    try:
        data = asyncio.run(start_sellers_lookup(cfg, domain, list(seller_ids)))
    except Exception as e:
        print_error(f'Ошибка при запросе sellers.json: {e}')
    click.echo(json.dumps(data, ensure_ascii=False, indent=2 if pretty else None))


@cli.command('fetch', context_settings=CONTEXT_SETTINGS)
@click.argument('resource_type', type=click.Choice([t.value for t in ResourceType]))
@click.argument('domain')
@click.option('--content', 'show_content', is_flag=True, help='Печатать тело ресурса')
@click.pass_context
def fetch(ctx, resource_type, domain, show_content):
    """Получить ресурс домена через кэш и показать его статус."""
    cfg = ctx.obj['config']
    try:
        record = asyncio.run(start_fetch(cfg, ResourceType(resource_type), domain))
    except Exception as e:
        print_error(f'Ошибка при загрузке: {e}')
    data = {
        'domain': record.domain,
        'resource_type': record.resource_type.value,
        'status': record.status.value,
        'status_code': record.status_code,
        'error_message': record.error_message,
        'url': record.url,
        'updated_at': record.updated_at.isoformat(),
    }
    if show_content:
        data['content'] = record.content
    click.echo(json.dumps(data, ensure_ascii=False, indent=2))


@cli.command('refresh', context_settings=CONTEXT_SETTINGS)
@click.argument('resource_type', type=click.Choice([t.value for t in ResourceType]))
@click.option('--limit', '-n', 'limit', type=click.IntRange(min=1), default=100, show_default=True,
              help='Сколько самых старых записей обновить')
@click.option('--max-age', 'max_age_hours', type=click.FloatRange(min=0, min_open=True), default=None,
              help='Возраст записи в часах, после которого она устарела (default: cache_ttl_hours)')
@click.pass_context
def refresh(ctx, resource_type, limit, max_age_hours):
    """Перезагрузить устаревшие записи кэша."""
    cfg = ctx.obj['config']
    ttl = timedelta(hours=max_age_hours) if max_age_hours is not None else None
    try:
        results = asyncio.run(start_refresh(cfg, ResourceType(resource_type), ttl, limit))
    except Exception as e:
        print_error(f'Ошибка при обновлении кэша: {e}')
    data = {
        'resource_type': resource_type,
        'processed': len(results),
        'results': [
            {
                'domain': r.domain,
                'status': r.value.status.value if r.ok else None,
                'error': None if r.ok else str(r.error),
            }
            for r in results
        ],
    }
    click.echo(json.dumps(data, ensure_ascii=False, indent=2))


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
