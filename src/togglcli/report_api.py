"""Toggl Reports API v3 client."""

from datetime import datetime
from typing import List, Optional

from .errors import JsonError
from .models import ReportDetail
from .ranges import DATE_FORMAT, Range
from .toggl_api import CREATED_WITH, TogglHTTP

NEXT_ROW_HEADER = "X-Next-Row-Number"


class TogglReportAPI(TogglHTTP):
    """Client for the detailed report search."""

    BASE_URL = "https://api.track.toggl.com/reports/api/v3/"
    SERVICE_NAME = "Toggl Reports"

    def search_time_entries(
        self, workspace_id: int, time_range: Range, now: Optional[datetime] = None
    ) -> List[ReportDetail]:
        """Fetch every page of the detailed report for a range.

        The API returns at most one page per call and announces the next page
        through the ``X-Next-Row-Number`` header.
        """
        start, end = time_range.as_range(now)
        results: List[ReportDetail] = []
        next_row: Optional[int] = None

        while True:
            body = {
                "start_date": start.strftime(DATE_FORMAT),
                "end_date": end.strftime(DATE_FORMAT),
                "user_agent": CREATED_WITH,
                "first_row_number": next_row,
            }
            response = self._make_request(
                "POST", f"workspace/{workspace_id}/search/time_entries", json=body
            )
            data = self._decode_json(response)
            if data is None:
                data = []
            if not isinstance(data, list):
                raise JsonError("JSON error: expected a list of report rows")
            results.extend(ReportDetail.from_dict(row) for row in data)

            header = response.headers.get(NEXT_ROW_HEADER)
            if not header or not header.strip().isdigit():
                break
            next_row = int(header)
            self.logger.debug(f"Fetching report page starting at row {next_row}")

        return results
