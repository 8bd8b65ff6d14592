"""Loading and normalising the text that infographic content is extracted from."""

import logging
import re
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


class ContentProcessor:
    """Reads source text from files or strings and normalises it."""

    def __init__(self, max_characters: int = 60000):
        """
        Initialize the content processor.

        Args:
            max_characters: Longest text forwarded to the completion endpoint
        """
        self.supported_extensions = {'.txt', '.md'}
        self.max_characters = max_characters

    def load_text(self, source: Union[str, Path]) -> str:
        """
        Load text from a path or use a string as-is, then normalise it.

        Args:
            source: Path to a ``.txt`` / ``.md`` file, or raw text

        Returns:
            Normalised text

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file type is not supported
        """
        if isinstance(source, Path):
            return self.normalize(self._read_file(source))
        return self.normalize(source)

    def _read_file(self, path: Path) -> str:
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        if path.suffix.lower() not in self.supported_extensions:
            raise ValueError(
                f"Unsupported file type: {path.suffix}. "
                f"Supported types: {', '.join(sorted(self.supported_extensions))}"
            )

        try:
            content = path.read_text(encoding='utf-8')
        except UnicodeDecodeError:
            logger.warning(f"UTF-8 failed, trying latin-1 encoding for {path}")
            content = path.read_text(encoding='latin-1')

        logger.info(f"Read {len(content)} characters from {path}")
        return content

    def normalize(self, text: str) -> str:
        """
        Collapse runs of spaces, keep paragraph breaks and cap the length.

        Args:
            text: Raw text

        Returns:
            Normalised text, empty for blank input
        """
        if not text or not text.strip():
            return ""

        text = text.replace('\r\n', '\n').replace('\r', '\n')
        text = re.sub(r'[ \t\f\v]+', ' ', text)
        text = re.sub(r' *\n *', '\n', text)
        text = re.sub(r'\n{3,}', '\n\n', text)
        text = text.strip()

        if len(text) > self.max_characters:
            logger.warning(f"Truncating input from {len(text)} to {self.max_characters} characters")
            text = text[:self.max_characters].rstrip()

        return text
