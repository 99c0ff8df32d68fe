from datetime import datetime



# Simply returns the current local time as an ISO8601 string with timezone offset.
def now_iso():
    return datetime.now().astimezone().isoformat()


# Elapsed values can come out negative from clock skew or out-of-order events. Those count as no time at all.
def clamp0(seconds):
    return seconds if seconds > 0 else 0.0
