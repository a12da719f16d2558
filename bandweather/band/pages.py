"""Tile, page layout and page data types exchanged with the band SDK.

A tile registers its page *layouts* once, when it is added. Every sync then
replaces the page *data*: for each page, a layout index plus content blocks
keyed by the element ids the layout declares.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Tuple, Union
from uuid import UUID


# ---------------------------------------------------------------------------
# Page data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextBlockData:
    element_id: int
    text: str


@dataclass(frozen=True)
class WrappedTextBlockData:
    element_id: int
    text: str


@dataclass(frozen=True)
class IconData:
    element_id: int
    icon_index: int


BlockData = Union[TextBlockData, WrappedTextBlockData, IconData]


@dataclass(frozen=True)
class PageData:
    """One screen of tile content."""
    page_id: UUID
    layout_index: int
    blocks: Tuple[BlockData, ...]
    kind: str = ""

    def block(self, element_id: int) -> Optional[BlockData]:
        """Return the block for `element_id`, if the page has one."""
        for b in self.blocks:
            if b.element_id == element_id:
                return b
        return None


# ---------------------------------------------------------------------------
# Page layouts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PageRect:
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class Margins:
    left: int = 0
    top: int = 0
    right: int = 0
    bottom: int = 0


@dataclass(frozen=True)
class BandColor:
    r: int
    g: int
    b: int


class ColorSource(str, Enum):
    CUSTOM = "custom"
    BAND_HIGHLIGHT = "band_highlight"
    BAND_SECONDARY_TEXT = "band_secondary_text"


class TextFont(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    EXTRA_LARGE_NUMBERS = "extra_large_numbers"


class Orientation(str, Enum):
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


class VerticalAlignment(str, Enum):
    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"


@dataclass(frozen=True)
class TextBlock:
    element_id: int
    rect: PageRect
    color: Optional[BandColor] = None
    color_source: ColorSource = ColorSource.CUSTOM
    font: TextFont = TextFont.SMALL
    margins: Margins = Margins()
    auto_width: bool = False
    baseline: int = 0
    absolute_baseline: bool = False


@dataclass(frozen=True)
class WrappedTextBlock:
    element_id: int
    rect: PageRect
    color_source: ColorSource = ColorSource.CUSTOM
    auto_height: bool = False


@dataclass(frozen=True)
class Icon:
    element_id: int
    rect: PageRect
    color: Optional[BandColor] = None
    margins: Margins = Margins()
    vertical_alignment: VerticalAlignment = VerticalAlignment.TOP


@dataclass(frozen=True)
class FlowPanel:
    elements: Tuple["LayoutElement", ...]
    rect: PageRect
    orientation: Orientation = Orientation.VERTICAL


LayoutElement = Union[TextBlock, WrappedTextBlock, Icon, FlowPanel]

# Which data block each layout element accepts.
_ACCEPTS = {
    TextBlock: TextBlockData,
    WrappedTextBlock: WrappedTextBlockData,
    Icon: IconData,
}


@dataclass(frozen=True)
class PageLayout:
    root: FlowPanel

    def elements(self) -> Iterator[LayoutElement]:
        """Walk every addressable element, depth first."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            if isinstance(node, FlowPanel):
                stack.extend(reversed(node.elements))
            else:
                yield node

    def element_types(self) -> dict[int, type]:
        """Map element id to the data block type that may fill it."""
        return {e.element_id: _ACCEPTS[type(e)] for e in self.elements()}

    def accepts(self, page: PageData) -> bool:
        """True if every block in `page` targets a matching element."""
        expected = self.element_types()
        return all(expected.get(b.element_id) is type(b) for b in page.blocks)


# ---------------------------------------------------------------------------
# Tile
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BandIcon:
    """A tile icon bitmap (PNG bytes)."""
    name: str
    data: bytes


@dataclass
class BandTile:
    tile_id: UUID
    name: str
    tile_icon: BandIcon
    small_icon: BandIcon
    additional_icons: list[BandIcon] = field(default_factory=list)
    page_layouts: list[PageLayout] = field(default_factory=list)

    @property
    def icons(self) -> list[BandIcon]:
        """Icons in index order as referenced by IconData."""
        return [self.tile_icon, self.small_icon, *self.additional_icons]
