"""Constants shared by the sync workflow, the background tasks and the controller."""

from uuid import UUID

TITLE = "Band Weather"
VERSION = "1.0.0"

# The band tile this application owns.
TILE_ID = UUID("B44411D6-4FF8-4B29-AB81-10E73106B9E3")

# Background task registration names.
TIMER_TASK_NAME = "BandWeatherTimerTask"
SYSTEM_TASK_NAME = "BandWeatherSystemTask"

# Local settings keys.
LAST_SYNC_KEY = "lastsync"
USE_ALTERNATE_SOURCE_KEY = "UseAlternateSource"

# Element ids understood by the band firmware; must match the page layouts.
TITLE_ID = 1
SPACER_ID = 2
SECONDARY_TITLE_ID = 3
ICON_ID = 4
CONTENT_ID = 5
UPDATE_ID = 6

# Layout indexes, in registration order.
CURRENT_LAYOUT = 0
DAY_LAYOUT = 1
UPDATED_LAYOUT = 2

# Index into the tile icon list: 0 = tile icon, 1 = small icon, 2 = thermometer.
THERMOMETER_ICON_INDEX = 2

DEGREE = "º"
SPACER_TEXT = "|"
NOW_TITLE = "Now"
UPDATED_TITLE = "Updated"

CONDITIONS_PATH = "/api/{key}/conditions/hourly/forecast10day/q/{query}.json"
