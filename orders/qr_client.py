import time
import uuid
from typing import Dict, List, Optional

import requests


class SubmissionDebounced(Exception):
    """Raised locally when a submission follows the previous one too closely"""


class QrOrderError(Exception):
    """The server refused the submission"""

    # HTTP status -> error name used by the server's taxonomy
    NAMES = {
        400: 'ValidationError',
        404: 'NotFoundError',
        409: 'DuplicateError',
        429: 'RateLimitError',
    }

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.name = self.NAMES.get(status_code, 'ServerError')
        super().__init__(message)


class QrOrderClient:
    """
    Client used by the customer's QR ordering page.

    Besides the server side rate limit, the client refuses to send a second
    submission within ``min_interval`` seconds of the previous one, which
    absorbs accidental double taps without a network round trip.
    """

    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 min_interval: float = 2.0, clock=time.monotonic, timeout: float = 10.0):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.min_interval = min_interval
        self.clock = clock
        self.timeout = timeout
        self._last_submission = None

    def submit(self, table_number: str, items: List[Dict], client_request_id: Optional[str] = None) -> Dict:
        """
        Submit an order for a table

        Args:
            table_number: Table number from the QR code
            items: List of {menu_item_id, quantity, notes?, modifiers?}
            client_request_id: Id for this submission; generated when omitted

        Returns:
            Response body with success and orderNumber
        """
        now = self.clock()
        if self._last_submission is not None and now - self._last_submission < self.min_interval:
            raise SubmissionDebounced(
                f"Please wait {self.min_interval:g} seconds between orders"
            )
        self._last_submission = now

        payload = {
            'tableNumber': str(table_number),
            'items': items,
            'clientRequestId': client_request_id or str(uuid.uuid4()),
        }
        response = self.session.post(f"{self.base_url}/api/orders/", json=payload, timeout=self.timeout)

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code != 200:
            message = body.get('error') if isinstance(body, dict) else None
            raise QrOrderError(response.status_code, message or 'Order could not be submitted')
        return body
