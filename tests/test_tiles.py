import datetime as dt
import unittest
import uuid

from bandweather import constants
from bandweather.band.pages import IconData, TextBlockData, WrappedTextBlockData
from bandweather.data_sources.wunderground_client import DayData, ForecastData
from bandweather.layouts import generate_page_layouts
from bandweather.tiles import format_temperature, format_updated, generate_page_data

NOW = dt.datetime(2016, 3, 7, 16, 5)


def _austin(days=1):
    names = ["Mon", "Tue", "Wed", "Thu", "Fri"]
    return ForecastData(
        city="Austin",
        temp=72.0,
        weather="Clear",
        days=tuple(DayData(names[i], "Sunny", str(80 + i), str(60 + i)) for i in range(days)),
    )


class TestFormatting(unittest.TestCase):
    def test_whole_float_drops_decimal(self):
        self.assertEqual(format_temperature(72.0), "72º")

    def test_fractional_float_kept(self):
        self.assertEqual(format_temperature(72.5), "72.5º")

    def test_string_passed_through(self):
        self.assertEqual(format_temperature("80"), "80º")

    def test_updated_uses_twelve_hour_clock(self):
        self.assertEqual(format_updated(NOW), "03/07 4:05 PM")
        self.assertEqual(format_updated(dt.datetime(2016, 3, 7, 0, 9)), "03/07 12:09 AM")


class TestGeneratePageData(unittest.TestCase):
    def test_austin_forecast_pages(self):
        pages = generate_page_data(_austin(), now=NOW)
        self.assertEqual(len(pages), 3)
        updated, day, current = pages

        self.assertEqual(current.kind, "current")
        self.assertEqual(current.layout_index, constants.CURRENT_LAYOUT)
        self.assertEqual(current.block(constants.TITLE_ID).text, "Now")
        self.assertEqual(current.block(constants.SPACER_ID).text, "|")
        self.assertEqual(current.block(constants.SECONDARY_TITLE_ID).text, "Clear")
        self.assertEqual(current.block(constants.ICON_ID), IconData(constants.ICON_ID, 2))
        self.assertEqual(current.block(constants.CONTENT_ID).text, "72º")

        self.assertEqual(day.kind, "day")
        self.assertEqual(day.layout_index, constants.DAY_LAYOUT)
        self.assertEqual(day.block(constants.TITLE_ID).text, "Mon")
        self.assertEqual(day.block(constants.SECONDARY_TITLE_ID).text, "Sunny")
        self.assertEqual(day.block(constants.CONTENT_ID).text, "80º/60º")

        self.assertEqual(updated.kind, "updated")
        self.assertEqual(updated.layout_index, constants.UPDATED_LAYOUT)
        block = updated.block(constants.UPDATE_ID)
        self.assertIsInstance(block, WrappedTextBlockData)
        self.assertEqual(block.text, "Updated\n03/07 4:05 PM\nAustin\n")

    def test_page_count_and_order(self):
        pages = generate_page_data(_austin(days=5), now=NOW)
        self.assertEqual(len(pages), 7)
        self.assertEqual(pages[0].kind, "updated")
        self.assertEqual(pages[-1].kind, "current")
        titles = [p.block(constants.TITLE_ID).text for p in pages[1:-1]]
        self.assertEqual(titles, ["Fri", "Thu", "Wed", "Tue", "Mon"])

    def test_no_days(self):
        pages = generate_page_data(_austin(days=0), now=NOW)
        self.assertEqual([p.kind for p in pages], ["updated", "current"])

    def test_deterministic(self):
        first = generate_page_data(_austin(days=3), now=NOW)
        second = generate_page_data(_austin(days=3), now=NOW)
        self.assertEqual(first, second)
        self.assertEqual(len({p.page_id for p in first}), len(first))

    def test_page_ids_scoped_to_tile(self):
        other = uuid.uuid4()
        a = generate_page_data(_austin(), now=NOW)
        b = generate_page_data(_austin(), now=NOW, tile_id=other)
        self.assertNotEqual(a[0].page_id, b[0].page_id)

    def test_long_text_not_truncated(self):
        data = ForecastData(city="Llanfairpwllgwyngyll", temp=50.0, weather="Scattered Thunderstorms Later")
        pages = generate_page_data(data, now=NOW)
        self.assertEqual(pages[-1].block(constants.SECONDARY_TITLE_ID).text, "Scattered Thunderstorms Later")

    def test_none_rejected(self):
        with self.assertRaises(ValueError):
            generate_page_data(None)

    def test_pages_match_layouts(self):
        layouts = generate_page_layouts()
        for page in generate_page_data(_austin(days=2), now=NOW):
            self.assertTrue(layouts[page.layout_index].accepts(page), page.kind)

    def test_text_blocks_use_plain_text_type(self):
        current = generate_page_data(_austin(), now=NOW)[-1]
        self.assertIsInstance(current.block(constants.CONTENT_ID), TextBlockData)


if __name__ == "__main__":
    unittest.main()
