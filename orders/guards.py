import redis
from django.conf import settings


def get_redis_client():
    return redis.Redis(
        host=settings.REDIS_HOST,
        port=int(settings.REDIS_PORT),
        db=int(settings.REDIS_DB),
        decode_responses=True
    )


class QrSubmissionGuard:
    """
    Idempotency and rate limit checks for anonymous QR submissions.

    State lives in Redis so every backend process sees the same keys. Keys
    carry a TTL and Redis expires them in the background; nothing is cleaned
    up on the request path.
    """

    REQUEST_KEY = "qr_request:{}"
    RATE_KEY = "qr_rate:{}:{}"

    def __init__(self, redis_client=None):
        self.redis_client = redis_client or get_redis_client()

    def claim_request_id(self, client_request_id: str) -> bool:
        """
        Record a client request id unless it was seen recently

        Args:
            client_request_id: Id generated by the customer's device

        Returns:
            True if this is the first use within the TTL, False for a replay
        """
        cache_key = self.REQUEST_KEY.format(client_request_id)
        # SET NX is the atomic check-and-set; two racing replays cannot both win
        return bool(self.redis_client.set(
            cache_key, 1, nx=True, ex=settings.QR_REQUEST_ID_TTL_SECONDS
        ))

    def hit_rate_limit(self, source_ip: str, table_number: str) -> bool:
        """
        Count a submission against the (IP, table) window

        Args:
            source_ip: Caller address
            table_number: Table the order is for

        Returns:
            True if the submission is within the limit, False if rejected
        """
        cache_key = self.RATE_KEY.format(source_ip, table_number)
        pipe = self.redis_client.pipeline(transaction=True)
        # The window starts with the first hit and is never extended by INCR
        pipe.set(cache_key, 0, nx=True, ex=settings.QR_RATE_WINDOW_SECONDS)
        pipe.incr(cache_key)
        _, count = pipe.execute()
        return int(count) <= settings.QR_RATE_LIMIT

    def window_remaining(self, source_ip: str, table_number: str) -> int:
        """Seconds until the rate window for this caller resets (0 when no window is open)."""
        ttl = self.redis_client.ttl(self.RATE_KEY.format(source_ip, table_number))
        return max(int(ttl), 0)
