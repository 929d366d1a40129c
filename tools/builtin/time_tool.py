"""Current date and time tool."""

import json
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..base import Tool
from ..schema import ObjectParam, StringParam


class GetCurrentTimeTool(Tool):
    """Returns the current moment, optionally in a given timezone."""

    name = "get_current_time"
    description = """Returns the current date and time.
Use this when the user asks what time it is, today's date, or anything related to the current moment."""

    parameters = ObjectParam(
        properties={
            "timezone": StringParam(
                description='IANA timezone string (e.g. "Europe/Berlin", "America/New_York"). '
                            "Defaults to the system timezone if omitted."
            )
        }
    )

    async def execute(self, timezone: str = None) -> str:
        if timezone:
            try:
                tz = ZoneInfo(timezone)
            except (ZoneInfoNotFoundError, ValueError):
                return json.dumps({
                    "error": f'Invalid timezone: "{timezone}". Use an IANA timezone like "Europe/Berlin".'
                })
            now = datetime.now(tz)
        else:
            now = datetime.now().astimezone()

        return json.dumps({
            "iso": now.isoformat(),
            "formatted": now.strftime("%A, %B %d, %Y, %I:%M:%S %p %Z"),
            "timezone": timezone or now.tzname(),
            "unix": int(now.timestamp()),
        })
