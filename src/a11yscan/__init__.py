"""
a11yscan: accessibility auditing of web pages and small sites.

Entry points live in ``a11yscan.api`` (``scan_page``, ``crawl_site``) and the
command line in ``a11yscan.cli``.
"""

__title__ = "a11yscan"
__version__ = "1.0.0"
