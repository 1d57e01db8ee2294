"""Internal constants shared across the library."""

DRONES_URL = "https://assignments.reaktor.com/birdnest/drones"
PILOTS_URL = "https://assignments.reaktor.com/birdnest/pilots"
USER_AGENT = "ndzwatch/1"

# ------------------------------------------------------------------
# No-drone zone geometry
# ------------------------------------------------------------------

NDZ_CENTER_X = 250000.0
NDZ_CENTER_Y = 250000.0

#: Feed positions are divided by this before comparing against the radius.
#: The radius is expressed in the converted unit (km), so 100 here means
#: a 100 000 native-unit exclusion circle.
UNITS_PER_DISTANCE = 1000.0
NDZ_RADIUS = 100.0

# ------------------------------------------------------------------
# Polling cadence / retention
# ------------------------------------------------------------------

POLL_INTERVAL_SECONDS = 2.0
STALE_AFTER_SECONDS = 10 * 60.0
