"""Infocraftic - turn freeform text into laid-out infographic elements."""

__version__ = "0.1.0"

from .content_extractor import ContentExtractor
from .element_renderer import ElementRenderer
from .layout_engine import LayoutEngine
from .models import ElementType, LayoutConfig, StructuredContent
from .session import InfographicSession
