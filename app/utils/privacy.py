"""
app/utils/privacy.py
Dérivation de champs de provenance stockables à partir des en-têtes bruts :
IP hachée, user-agent et referrer nettoyés, UTM, type d'appareil et navigateur.

Aucune fonction ne lève d'exception sur une entrée absente.
"""
import hashlib
import logging
import re
from typing import Dict, Mapping, Optional
from urllib.parse import SplitResult, urlsplit, parse_qs

from app.config import settings

logger = logging.getLogger(__name__)

DEFAULT_IP_SALT = "landing-default-salt"
UNKNOWN_IP = "0.0.0.0"

MAX_USER_AGENT_LENGTH = 500
MAX_REFERRER_LENGTH = 500
MAX_UTM_LENGTH = 100

UTM_PARAMS = ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")

_EMAIL_RE = re.compile(r"\b[\w.-]+@[\w.-]+\.\w+\b")
_IPV4_RE = re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b")
_UNSAFE_CHARS_RE = re.compile(r"[<>\"'&]")

_warned_default_salt = False


def get_client_ip(headers: Optional[Mapping[str, str]]) -> str:
    """IP du client : X-Forwarded-For (premier élément), X-Real-IP, CF-Connecting-IP."""
    if not headers:
        return UNKNOWN_IP

    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    cf_ip = headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip.strip()

    return UNKNOWN_IP


def _resolve_salt(salt: Optional[str]) -> str:
    global _warned_default_salt
    if salt:
        return salt
    if settings.IP_HASH_SALT:
        return settings.IP_HASH_SALT
    if not _warned_default_salt:
        logger.warning("IP_HASH_SALT not set, falling back to the default salt")
        _warned_default_salt = True
    return DEFAULT_IP_SALT


def hash_ip(ip: Optional[str], salt: Optional[str] = None) -> str:
    """SHA-256 hex de ip + sel. Déterministe pour un même sel."""
    value = (ip or UNKNOWN_IP) + _resolve_salt(salt)
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def sanitize_user_agent(user_agent: Optional[str]) -> Optional[str]:
    if not user_agent:
        return None
    ua = user_agent[:MAX_USER_AGENT_LENGTH]
    ua = _EMAIL_RE.sub("[email]", ua)
    return _IPV4_RE.sub("[ip]", ua)


def _origin_host(parts: SplitResult) -> str:
    # netloc garderait user:password@
    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    try:
        port = parts.port
    except ValueError:
        port = None
    return f"{host}:{port}" if port else host


def sanitize_referrer(referrer: Optional[str]) -> Optional[str]:
    """Garde scheme://host/path, sans query string ni fragment."""
    if not referrer:
        return None
    try:
        parts = urlsplit(referrer)
    except ValueError:
        parts = None
    if parts is not None and parts.scheme and parts.hostname:
        return f"{parts.scheme}://{_origin_host(parts)}{parts.path}"[:MAX_REFERRER_LENGTH]
    return _UNSAFE_CHARS_RE.sub("", referrer[:MAX_REFERRER_LENGTH])


def sanitize_utm_value(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    cleaned = _UNSAFE_CHARS_RE.sub("", value[:MAX_UTM_LENGTH]).strip()
    return cleaned or None


def extract_utm_params(url: Optional[str]) -> Dict[str, Optional[str]]:
    """Les cinq paramètres utm_* d'une URL ; absents ou vides -> None."""
    result: Dict[str, Optional[str]] = {param: None for param in UTM_PARAMS}
    if not url:
        return result
    try:
        query = urlsplit(url).query
    except ValueError:
        return result
    params = parse_qs(query, keep_blank_values=False)
    for param in UTM_PARAMS:
        values = params.get(param)
        if values:
            result[param] = sanitize_utm_value(values[0])
    return result


def detect_device_type(user_agent: Optional[str]) -> str:
    if not user_agent:
        return "unknown"
    ua = user_agent.lower()
    if "mobile" in ua or "android" in ua:
        return "mobile"
    if "tablet" in ua or "ipad" in ua:
        return "tablet"
    return "desktop"


# Ordre significatif : Chrome avant Safari (l'UA de Chrome contient "safari")
BROWSER_PATTERNS = (
    ("chrome", "Chrome"),
    ("firefox", "Firefox"),
    ("safari", "Safari"),
    ("edge", "Edge"),
    ("opera", "Opera"),
)


def extract_browser(user_agent: Optional[str]) -> Optional[str]:
    if not user_agent:
        return None
    ua = user_agent.lower()
    for needle, name in BROWSER_PATTERNS:
        if needle in ua:
            return name
    return "Other"
