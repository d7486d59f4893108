"""Force UTC for every process that imports the application.

Job timestamps are stored as naive UTC datetimes, so the local zone must never
leak into `created_at` / `completed_at` or the rate limit window.
"""

import os
import time

os.environ["TZ"] = "UTC"

if hasattr(time, "tzset"):
    time.tzset()
