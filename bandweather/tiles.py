"""Turn a forecast into the ordered page data shown on the band tile."""
from __future__ import annotations

import datetime as dt
import uuid
from typing import List, Optional

from bandweather import constants
from bandweather.band.pages import IconData, PageData, TextBlockData, WrappedTextBlockData
from bandweather.data_sources.wunderground_client import ForecastData


def format_temperature(value) -> str:
    """Render a temperature without a trailing ".0" for whole numbers."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value}{constants.DEGREE}"


def format_updated(now: dt.datetime) -> str:
    """MM/dd h:mm tt, e.g. "03/07 4:05 PM"."""
    hour = now.hour % 12 or 12
    return f"{now:%m/%d} {hour}:{now:%M %p}"


def _page_id(tile_id: uuid.UUID, index: int) -> uuid.UUID:
    return uuid.uuid5(tile_id, f"page-{index}")


def generate_page_data(
    data: ForecastData,
    *,
    now: Optional[dt.datetime] = None,
    tile_id: uuid.UUID = constants.TILE_ID,
) -> List[PageData]:
    """Build the tile pages for `data`.

    Pages are assembled as current conditions, one page per day, then the
    "updated" page, and the whole list is reversed before it is returned:
    ``[updated, day_N, ..., day_1, current]``. The band shows pages in this
    order; keep it.

    Text is passed through untruncated; the firmware clips what does not fit.
    """
    if data is None:
        raise ValueError("forecast data is required")
    now = now or dt.datetime.now()

    pages: List[PageData] = []

    def add(layout_index: int, kind: str, *blocks) -> None:
        pages.append(PageData(_page_id(tile_id, len(pages)), layout_index, tuple(blocks), kind=kind))

    add(
        constants.CURRENT_LAYOUT,
        "current",
        TextBlockData(constants.TITLE_ID, constants.NOW_TITLE),
        TextBlockData(constants.SPACER_ID, constants.SPACER_TEXT),
        TextBlockData(constants.SECONDARY_TITLE_ID, data.weather),
        IconData(constants.ICON_ID, constants.THERMOMETER_ICON_INDEX),
        TextBlockData(constants.CONTENT_ID, format_temperature(data.temp)),
    )

    for day in data.days:
        add(
            constants.DAY_LAYOUT,
            "day",
            TextBlockData(constants.TITLE_ID, day.day),
            TextBlockData(constants.SPACER_ID, constants.SPACER_TEXT),
            TextBlockData(constants.SECONDARY_TITLE_ID, day.weather),
            TextBlockData(
                constants.CONTENT_ID,
                f"{format_temperature(day.high)}/{format_temperature(day.low)}",
            ),
        )

    description = f"{constants.UPDATED_TITLE}\n{format_updated(now)}\n{data.city}\n"
    add(constants.UPDATED_LAYOUT, "updated", WrappedTextBlockData(constants.UPDATE_ID, description))

    pages.reverse()
    return pages
