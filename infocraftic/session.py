"""Generation session tying extraction to element rendering."""

import logging
from typing import List, Optional

from .content_extractor import ContentExtractor
from .element_renderer import ElementRenderer
from .models import ElementType, RenderResult, StructuredContent

logger = logging.getLogger(__name__)


class InfographicSession:
    """Holds the content of the latest generation request and adds elements from it."""

    def __init__(self, extractor: ContentExtractor, renderer: ElementRenderer):
        self.extractor = extractor
        self.renderer = renderer
        self.content: Optional[StructuredContent] = None

    def generate(self, text: str) -> StructuredContent:
        """
        Extract new content, discarding the previous result first.

        Extraction errors propagate unchanged and leave no content behind.
        """
        self.content = None
        self.content = self.extractor.extract(text)
        return self.content

    async def generate_async(self, text: str) -> StructuredContent:
        """Asynchronous version of ``generate``."""
        self.content = None
        self.content = await self.extractor.extract_async(text)
        return self.content

    def load(self, content: StructuredContent) -> None:
        """Use previously extracted content instead of calling the extractor."""
        self.content = content

    def available_elements(self) -> List[ElementType]:
        """Return the elements that can be added for the current content."""
        if self.content is None:
            return []
        elements = [ElementType.TITLE, ElementType.OVERVIEW]
        if self.content.has_statistics:
            elements.append(ElementType.STATISTICS)
        if self.content.has_flowchart:
            elements.append(ElementType.FLOWCHART)
        return elements

    def add_element(self, element_type: ElementType) -> RenderResult:
        """
        Draw one element of the current content.

        Raises:
            ValueError: If nothing was generated or the element is unavailable
            DrawFailed: If a drawing primitive fails
        """
        element_type = self._check_available(element_type)
        return self.renderer.add_element(element_type, self.content.get_element_content(element_type))

    async def add_element_async(self, element_type: ElementType) -> RenderResult:
        """Asynchronous version of ``add_element``."""
        element_type = self._check_available(element_type)
        return await self.renderer.add_element_async(
            element_type, self.content.get_element_content(element_type)
        )

    def _check_available(self, element_type: ElementType) -> ElementType:
        element_type = ElementType(element_type)
        if self.content is None:
            raise ValueError("No infographic content generated yet")
        if element_type not in self.available_elements():
            raise ValueError(f"Element '{element_type.value}' is not available for this content")
        return element_type
