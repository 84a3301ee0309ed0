"""Report exports -- CSV, JSON, and PDF renderings of financial reports.

tables.py flattens each report into titled tables, renderers.py writes those
tables as CSV or PDF (JSON dumps the report model directly), and service.py
picks the renderer, media type, and download filename.
"""
