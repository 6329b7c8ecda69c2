from .html_report import generate_html_report
from .static_figures import generate_figures

__all__ = ["generate_html_report", "generate_figures"]
