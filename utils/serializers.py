from datetime import date, datetime


# Dates go out as ISO-8601 strings
def iso(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value
