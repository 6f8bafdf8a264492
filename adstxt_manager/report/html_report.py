# File: adstxt_manager/report/html_report.py
"""adstxt_manager.report.html_report: Генерация HTML-отчёта с помощью Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from adstxt_manager.optimizer import OptimizationResult

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


def render_html(
    result: OptimizationResult,
    template_dir: Optional[Union[Path, str]],
    output_path: Union[Path, str],
) -> Path:
    """Рендерит HTML-отчёт об оптимизации и сохраняет его по указанному пути.

    Args:
        result: объект OptimizationResult.
        template_dir: директория с Jinja2-шаблонами (None: встроенный шаблон).
        output_path: путь к итоговому HTML-файлу.

    Returns:
        Path до сохранённого HTML-файла.
    """
    template_dir = Path(template_dir) if template_dir else DEFAULT_TEMPLATE_DIR
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    template = env.get_template("report.html.j2")

    reduction = result.original_length - result.optimized_length
    context: dict[str, Any] = {
        "level": result.optimization_level,
        "original_length": result.original_length,
        "optimized_length": result.optimized_length,
        "reduction": reduction,
        "reduction_pct": (reduction / result.original_length * 100) if result.original_length else 0.0,
        "categories": result.categories or {},
        "content": result.optimized_content,
    }

    output_path.write_text(template.render(**context), encoding="utf-8")
    return output_path
