"""Page layouts and the tile definition registered when the tile is added."""
from __future__ import annotations

from pathlib import Path
from uuid import UUID

from bandweather import constants
from bandweather.band.pages import (
    BandColor,
    BandIcon,
    BandTile,
    ColorSource,
    FlowPanel,
    Icon,
    Margins,
    Orientation,
    PageLayout,
    PageRect,
    TextBlock,
    TextFont,
    VerticalAlignment,
    WrappedTextBlock,
)

ASSETS_DIR = Path(__file__).resolve().parent / "assets"

WHITE = BandColor(0xFF, 0xFF, 0xFF)
SPACER_GREY = BandColor(0x77, 0x77, 0x77)
SUBTITLE_GREY = BandColor(0x7C, 0x7C, 0x7C)


def _header() -> FlowPanel:
    """Title | subtitle row shared by the current and day layouts."""
    common = dict(rect=PageRect(0, 0, 0, 35), auto_width=True, baseline=30, absolute_baseline=True)
    return FlowPanel(
        (
            TextBlock(constants.TITLE_ID, color_source=ColorSource.BAND_HIGHLIGHT, **common),
            TextBlock(constants.SPACER_ID, color=SPACER_GREY, margins=Margins(5, 0, 5, 0), **common),
            TextBlock(constants.SECONDARY_TITLE_ID, color=SUBTITLE_GREY, **common),
        ),
        rect=PageRect(0, 0, 230, 40),
        orientation=Orientation.HORIZONTAL,
    )


def _content(font: TextFont) -> TextBlock:
    return TextBlock(
        constants.CONTENT_ID,
        rect=PageRect(0, 0, 0, 78),
        color=WHITE,
        font=font,
        auto_width=True,
        baseline=113,
        absolute_baseline=True,
    )


def current_layout() -> PageLayout:
    """Header, thermometer icon and a large temperature."""
    icon = Icon(
        constants.ICON_ID,
        rect=PageRect(0, 0, 48, 48),
        color=WHITE,
        margins=Margins(0, 25, 10, 0),
        vertical_alignment=VerticalAlignment.BOTTOM,
    )
    body = FlowPanel(
        (icon, _content(TextFont.EXTRA_LARGE_NUMBERS)),
        rect=PageRect(0, 0, 230, 78),
        orientation=Orientation.HORIZONTAL,
    )
    return PageLayout(FlowPanel((_header(), body), rect=PageRect(15, 0, 230, 113)))


def day_layout() -> PageLayout:
    """Header and a high/low line."""
    body = FlowPanel(
        (_content(TextFont.LARGE),),
        rect=PageRect(0, 0, 230, 78),
        orientation=Orientation.HORIZONTAL,
    )
    return PageLayout(FlowPanel((_header(), body), rect=PageRect(15, 0, 230, 113)))


def updated_layout() -> PageLayout:
    """A single wrapped text block."""
    block = WrappedTextBlock(
        constants.UPDATE_ID,
        rect=PageRect(0, 10, 230, 0),
        color_source=ColorSource.BAND_SECONDARY_TEXT,
        auto_height=True,
    )
    return PageLayout(FlowPanel((block,), rect=PageRect(15, 0, 230, 113)))


def generate_page_layouts() -> list[PageLayout]:
    """Layouts in layout-index order (current, day, updated)."""
    return [current_layout(), day_layout(), updated_layout()]


def load_icon(name: str, assets_dir: Path = ASSETS_DIR) -> BandIcon:
    """Read a bundled PNG icon."""
    path = Path(assets_dir) / name
    return BandIcon(name=path.stem, data=path.read_bytes())


def build_tile(tile_id: UUID = constants.TILE_ID, assets_dir: Path = ASSETS_DIR) -> BandTile:
    """The tile definition: name, icons and the three page layouts."""
    return BandTile(
        tile_id=tile_id,
        name=constants.TITLE,
        tile_icon=load_icon("TileLarge.png", assets_dir),
        small_icon=load_icon("TileSmall.png", assets_dir),
        additional_icons=[load_icon("thermometer.png", assets_dir)],
        page_layouts=generate_page_layouts(),
    )
