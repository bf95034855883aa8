import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Empty means auto-detect in create_app
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    # Draft
    TURN_DURATION_SEC = int(os.environ.get("TURN_DURATION_SEC", "10"))
    DRAFT_QUOTA = int(os.environ.get("DRAFT_QUOTA", "5"))
    MIN_MEMBERS = int(os.environ.get("MIN_MEMBERS", "2"))
    NAME_MAX_LENGTH = int(os.environ.get("NAME_MAX_LENGTH", "20"))

    # Reconnection
    RECONNECT_GRACE_SEC = int(os.environ.get("RECONNECT_GRACE_SEC", "300"))
    REAPER_INTERVAL_SEC = int(os.environ.get("REAPER_INTERVAL_SEC", "60"))
