"""
Script context modules: log and print capture.
"""

from shapescript.engines.script.modules.log import PrintCollector, make_log_module

__all__ = [
    "PrintCollector",
    "make_log_module",
]
