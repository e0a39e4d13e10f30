import logging

logger = logging.getLogger("auth")


def log_auth_event(action: str, request, user=None, status: str = "success", extra: dict | None = None):
    """Emit a structured auth event with action, user, ip, and status."""
    payload = {
        "event": f"auth.{action}",
        "ip": request.META.get("REMOTE_ADDR"),
        "status": status,
    }
    if user is not None:
        payload["user_id"] = getattr(user, "id", None)
        payload["is_staff"] = bool(getattr(user, "is_staff", False))
    if extra:
        payload.update(extra)
    logger.info(payload["event"], extra=payload)
