import datetime

def utcnow() -> datetime.datetime:
    # Naive UTC at millisecond precision, matching what pymongo hands back for stored datetimes
    now = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)
