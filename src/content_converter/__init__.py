"""Content rendering for wiki pages.

This module provides the MarkdownRenderer interface and a PandocRenderer
that renders page markdown to HTML.
"""

from .errors import ConversionError
from .markdown_renderer import MarkdownRenderer, PandocRenderer

__all__ = ['ConversionError', 'MarkdownRenderer', 'PandocRenderer']
