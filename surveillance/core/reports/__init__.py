"""
Report Generation - PDF surveillance trend reports.
"""
from .trend_report import TrendReportGenerator

__all__ = ["TrendReportGenerator"]
