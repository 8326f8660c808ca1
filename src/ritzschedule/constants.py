from zoneinfo import ZoneInfo


LOCAL_TZ = ZoneInfo("Australia/Sydney")

# Day-labels the listings site understands besides weekday names.
TODAY_LABEL = "today"
TOMORROW_LABEL = "tomorrow"
ALL_DAYS_LABEL = "all"
