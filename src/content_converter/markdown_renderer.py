"""Markdown to HTML rendering using Pandoc.

The page store treats rendering as a black box: it hands a renderer the raw
markdown, the culture and the page name, and stores whatever HTML comes
back in the page snapshot.
"""

import logging
import shutil
import subprocess
from typing import Optional, Protocol

from src.content_converter.errors import ConversionError

logger = logging.getLogger(__name__)

# Pandoc timeout in seconds
PANDOC_TIMEOUT = 10


class MarkdownRenderer(Protocol):
    """Anything able to turn page markdown into HTML."""

    def render_to_html(self, markdown: str, culture: Optional[str], page_name: str) -> str:
        ...


class PandocRenderer:
    """Renders markdown to HTML with the ``pandoc`` executable.

    Example:
        >>> renderer = PandocRenderer()
        >>> renderer.render_to_html("# Hello", None, "Home")
        '<h1 id="hello">Hello</h1>\\n'
    """

    def __init__(self, pandoc_path: str = "pandoc"):
        """Initialize the renderer and verify Pandoc is available.

        Raises:
            ConversionError: If Pandoc is not found on system PATH
        """
        self.pandoc_path = pandoc_path
        if shutil.which(pandoc_path) is None:
            raise ConversionError(
                "Pandoc not found. Install: brew install pandoc (macOS) or "
                "apt-get install pandoc (Linux) or download from "
                "https://pandoc.org/installing.html"
            )

    def render_to_html(self, markdown: str, culture: Optional[str], page_name: str) -> str:
        """Convert markdown to an HTML fragment.

        Args:
            markdown: Page content, front matter included
            culture: Culture of the page (sets the document language)
            page_name: Page being rendered, used in error messages

        Returns:
            HTML fragment

        Raises:
            ConversionError: If conversion fails or times out
        """
        if not markdown:
            return ""

        command = [self.pandoc_path, "-f", "markdown", "-t", "html"]
        if culture:
            command.extend(["--metadata", f"lang={culture}"])

        try:
            result = subprocess.run(
                command,
                input=markdown,
                text=True,
                capture_output=True,
                check=True,
                timeout=PANDOC_TIMEOUT
            )
        except subprocess.CalledProcessError as e:
            raise ConversionError(f"Pandoc conversion of {page_name} failed: {e.stderr}")
        except subprocess.TimeoutExpired:
            raise ConversionError(
                f"Pandoc conversion of {page_name} timed out (>{PANDOC_TIMEOUT}s)"
            )

        logger.debug(f"Rendered {page_name} ({len(result.stdout)} bytes of HTML)")
        return result.stdout
