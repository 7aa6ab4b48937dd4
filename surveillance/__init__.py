"""
Regional Surveillance Correlation Service

Correlates public-health surveillance data with a clinical presentation and
produces ranked findings, alerts, prompt context and PDF reports.
"""
__version__ = "1.0.0"
