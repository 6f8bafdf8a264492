# adstxt_manager/report/json_report.py

"""
Генерация JSON-отчёта для AdsTxtManager.

Сериализация OptimizationResult в файл.
"""
import json
from pathlib import Path

from adstxt_manager.optimizer import OptimizationResult


def render_json(result: OptimizationResult, output_path: Path | str) -> Path:
    """
    Сохраняет результат оптимизации в формате JSON по указанному пути.

    :param result: объект OptimizationResult
    :param output_path: путь к JSON-файлу
    :return: Path сохранённого файла

    Пример:
    ```python
    from adstxt_manager.report.json_report import render_json
    report_path = render_json(result, 'reports/optimized.json')
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open('w', encoding='utf-8') as f:
        json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)

    return output
