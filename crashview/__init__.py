"""
crashview: diagnostic error pages for Python web applications.

Copyright (c) 2025 Graziano Labs Corp.
"""

from .config import DebugConfig, get_default_config
from .models import Document, ErrorDescriptor, RawRequest, Report, RequestSnapshot
from .render.renderer import ReportRenderer

__version__ = "0.1.0"

__all__ = [
    "DebugConfig",
    "Document",
    "ErrorDescriptor",
    "RawRequest",
    "Report",
    "ReportRenderer",
    "RequestSnapshot",
    "get_default_config",
]
