"""adstxt_manager.report: сохранение результата оптимизации в JSON и HTML."""

from .html_report import DEFAULT_TEMPLATE_DIR, render_html
from .json_report import render_json

__all__ = ["DEFAULT_TEMPLATE_DIR", "render_html", "render_json"]
