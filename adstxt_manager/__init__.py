# adstxt_manager/__init__.py
"""
AdsTxtManager package initializer.
Defines package version; the CLI lives in :mod:`adstxt_manager.cli`.
"""
__version__ = "0.1.0"
