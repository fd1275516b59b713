"""
Generation Calculator - report ingestion and aggregation for power generators.

This package watches a directory for generation report XML files, computes
revenue totals, daily max emission generators and coal heat rates, and writes
the results to a single output XML file.
"""

__version__ = "0.1.0"
