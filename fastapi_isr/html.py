"""Reading and annotating rendered html."""

import re
from datetime import datetime
from datetime import timezone
from logging import getLogger

import orjson
from fastapi import Request

from .types import RouteISRData

logger = getLogger(__name__)

ISR_STATE_PATTERN = re.compile(
    r'<script id="isr-state" type="application/json">(?P<state>.*?)</script>',
    re.DOTALL,
)


def get_route_isr_data_from_html(html: str) -> RouteISRData:
    """Extract the ISR state a page embedded while rendering.

    Pages declare their revalidate time, and any error met while rendering,
    in a json script tag::

        <script id="isr-state" type="application/json">
          {"revalidate": 60, "errors": []}
        </script>

    Missing or malformed state yields an empty RouteISRData.
    """
    match = ISR_STATE_PATTERN.search(html)
    if match is None:
        return RouteISRData()

    try:
        state = orjson.loads(match.group("state"))
    except orjson.JSONDecodeError:
        logger.warning("Ignoring malformed isr-state script in rendered html")
        return RouteISRData()
    if not isinstance(state, dict):
        return RouteISRData()

    revalidate = state.get("revalidate")
    if not isinstance(revalidate, int) or isinstance(revalidate, bool):
        revalidate = None
    errors = [str(error) for error in state.get("errors") or []]
    return RouteISRData(revalidate=revalidate, errors=errors or None)


def default_modify_generated_html(
    request: Request, html: str, revalidate: int | None
) -> str:
    """Append a comment telling when the page was cached and refreshes next."""
    now = datetime.now(timezone.utc).isoformat(timespec="seconds")
    msg = f"<!--\nISR: Served from cache!\nLast updated: {now}."
    if revalidate:
        msg += f"\nNext refresh is after {revalidate} seconds."
    msg += "\n-->"
    return html + msg
