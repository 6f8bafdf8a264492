"""adstxt_manager.parser: разбор ads.txt."""

from .ads_txt_parser import VARIABLE_TYPES, parse_ads_txt, parse_line

__all__ = ["VARIABLE_TYPES", "parse_ads_txt", "parse_line"]
