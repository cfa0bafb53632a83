"""Summary reporting over a finished run."""

from .summary import build_summary, print_summary, render_html, write_artifacts

__all__ = ["build_summary", "print_summary", "render_html", "write_artifacts"]
