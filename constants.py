import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3000))

MAX_PARTICIPANTS = int(os.getenv("MAX_PARTICIPANTS", 4))
CHAT_MAX_LENGTH = 800

ALLOWED_USERNAMES = frozenset(
    name.strip().lower()
    for name in os.getenv(
        "ALLOWED_USERNAMES", "chaittnyapqr,shradha2424,chaittnya1414,shradhapqr"
    ).split(",")
    if name.strip()
)

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "http://localhost:8081").split(",") if origin.strip()]

STATIC_DIR = os.getenv("STATIC_DIR", "public")

# STUN only; NAT traversal is left to the browser's ICE agent
ICE_SERVERS = [url.strip() for url in os.getenv("ICE_SERVERS", "stun:stun.l.google.com:19302").split(",") if url.strip()]

# Frames queued for one connection before new ones are dropped
OUTBOX_MAX_SIZE = int(os.getenv("OUTBOX_MAX_SIZE", 256))
