"""
User-Agent classification.

Turns a raw User-Agent header into the three dimensions the dashboards
break scans down by. Pure and total: anything unrecognised falls back to
Desktop / Unknown / Unknown instead of raising.
"""

import re
from typing import NamedTuple, Optional

DESKTOP = "Desktop"
MOBILE = "Mobile"
TABLET = "Tablet"
BOT = "Bot"
UNKNOWN = "Unknown"


class DeviceInfo(NamedTuple):
    device_class: str
    os: str
    browser: str


DEFAULT_DEVICE = DeviceInfo(DESKTOP, UNKNOWN, UNKNOWN)

# Named crawlers first so the bot's own name becomes its "browser"
_NAMED_BOTS = [
    ("Googlebot", re.compile(r"googlebot", re.I)),
    ("Bingbot", re.compile(r"bingbot", re.I)),
    ("YandexBot", re.compile(r"yandex(bot|images)", re.I)),
    ("DuckDuckBot", re.compile(r"duckduckbot", re.I)),
    ("Baiduspider", re.compile(r"baiduspider", re.I)),
    ("facebookexternalhit", re.compile(r"facebookexternalhit|facebot", re.I)),
    ("Twitterbot", re.compile(r"twitterbot", re.I)),
    ("Slackbot", re.compile(r"slackbot", re.I)),
    ("WhatsApp", re.compile(r"whatsapp", re.I)),
    ("curl", re.compile(r"^curl/", re.I)),
    ("Wget", re.compile(r"^wget/", re.I)),
    ("python-requests", re.compile(r"python-requests|python-urllib|aiohttp|httpx", re.I)),
    ("HeadlessChrome", re.compile(r"headlesschrome", re.I)),
]
_GENERIC_BOT = re.compile(
    r"\bbot\b|bot[/;)]|crawl|spider|slurp|scrap|preview|monitor|checker|fetcher", re.I
)

_TABLET = re.compile(r"ipad|tablet|kindle|silk/|playbook|nexus (7|9|10)|sm-t\d", re.I)
_ANDROID = re.compile(r"android", re.I)
_MOBILE = re.compile(
    r"mobi|iphone|ipod|windows phone|iemobile|blackberry|bb10|opera mini|webos", re.I
)

_WINDOWS_VERSIONS = {
    "10.0": "Windows 10",
    "6.3": "Windows 8.1",
    "6.2": "Windows 8",
    "6.1": "Windows 7",
    "6.0": "Windows Vista",
    "5.1": "Windows XP",
}

# Order matters: several browsers embed "Chrome" and "Safari" tokens
_BROWSERS = [
    ("Edge", re.compile(r"edg(e|a|ios)?/", re.I)),
    ("Opera", re.compile(r"opr/|opera", re.I)),
    ("Samsung Internet", re.compile(r"samsungbrowser/", re.I)),
    ("Firefox", re.compile(r"firefox/|fxios/", re.I)),
    ("Chrome", re.compile(r"chrome/|crios/", re.I)),
    ("Safari", re.compile(r"version/[\d.]+.*safari/", re.I)),
    ("Internet Explorer", re.compile(r"msie |trident/", re.I)),
]


def _detect_os(ua: str) -> str:
    windows = re.search(r"windows nt (\d+\.\d+)", ua, re.I)
    if windows:
        return _WINDOWS_VERSIONS.get(windows.group(1), "Windows")
    if re.search(r"windows phone", ua, re.I):
        return "Windows Phone"
    if re.search(r"iphone|ipad|ipod", ua, re.I):
        return "iOS"
    if _ANDROID.search(ua):
        return "Android"
    if re.search(r"\bCrOS\b", ua):
        return "ChromeOS"
    if re.search(r"mac os x|macintosh", ua, re.I):
        return "macOS"
    if re.search(r"linux|x11", ua, re.I):
        return "Linux"
    return UNKNOWN


def _detect_browser(ua: str) -> str:
    for name, pattern in _BROWSERS:
        if pattern.search(ua):
            return name
    return UNKNOWN


def _detect_bot(ua: str) -> Optional[str]:
    for name, pattern in _NAMED_BOTS:
        if pattern.search(ua):
            return name
    if _GENERIC_BOT.search(ua):
        return "Bot"
    return None


def _detect_device_class(ua: str) -> str:
    if _TABLET.search(ua):
        return TABLET
    # Android tablets omit the "Mobile" token
    if _ANDROID.search(ua) and not re.search(r"mobile", ua, re.I):
        return TABLET
    if _MOBILE.search(ua):
        return MOBILE
    return DESKTOP


def classify(raw_user_agent: Optional[str]) -> DeviceInfo:
    """
    Classify a raw User-Agent header.

    Precedence when several signals match: Bot > Tablet > Mobile > Desktop.
    """
    ua = (raw_user_agent or "").strip()
    if not ua:
        return DEFAULT_DEVICE

    bot_name = _detect_bot(ua)
    if bot_name is not None:
        return DeviceInfo(BOT, _detect_os(ua), bot_name)

    return DeviceInfo(_detect_device_class(ua), _detect_os(ua), _detect_browser(ua))
