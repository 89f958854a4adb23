import logging
import time
import uuid

logger = logging.getLogger("lab.request")


class RequestLogMiddleware:
    """Log one structured line per request on ``lab.request``."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        start = time.time()
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.request_id = request_id

        response = self.get_response(request)

        duration = f"{time.time() - start:.3f}"
        forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
        real_ip = forwarded.split(",")[0].strip() if forwarded else request.META.get("REMOTE_ADDR")

        # DRF copies the authenticated user back onto the Django request
        user = getattr(request, "user", None)
        user_info = "-"
        if user is not None and user.is_authenticated:
            user_info = f"{user.pk}:{getattr(user, 'role', '')}"

        logger.info({
            "remote_addr": request.META.get("REMOTE_ADDR", "-"),
            "real_ip": real_ip,
            "request": f"{request.method} {request.get_full_path()}",
            "status": str(response.status_code),
            "request_time": duration,
            "request_id": request_id,
            "user": user_info,
            "http_user_agent": request.META.get("HTTP_USER_AGENT", "-"),
        })
        response["X-Request-ID"] = request_id
        return response
