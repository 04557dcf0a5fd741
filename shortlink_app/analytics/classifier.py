"""
User-agent classification.

classify() is a pure function: same input, same output, no I/O. Every
field has an explicit unknown value, so aggregation keys form a closed
set plus one "Unknown" bucket per dimension.
"""

from enum import Enum
from typing import NamedTuple

from user_agents import parse


UNKNOWN = "Unknown"

# Families the parser reports when it recognises nothing
_UNRECOGNISED_FAMILIES = {"", "Other"}


class DeviceType(str, Enum):
    DESKTOP = "desktop"
    MOBILE = "mobile"
    TABLET = "tablet"


class UserAgentInfo(NamedTuple):
    browser: str
    os: str
    device_type: DeviceType


UNKNOWN_AGENT = UserAgentInfo(browser=UNKNOWN, os=UNKNOWN, device_type=DeviceType.DESKTOP)


def _family(name: str) -> str:
    name = (name or "").strip()
    return UNKNOWN if name in _UNRECOGNISED_FAMILIES else name


def classify(raw_user_agent: str) -> UserAgentInfo:
    """
    Split a raw User-Agent header into browser, OS and device class.

    Anything that is not clearly a phone or a tablet counts as desktop,
    which matches what unparsed traffic usually is.
    """
    if not raw_user_agent or not raw_user_agent.strip():
        return UNKNOWN_AGENT

    agent = parse(raw_user_agent)

    if agent.is_tablet:
        device_type = DeviceType.TABLET
    elif agent.is_mobile:
        device_type = DeviceType.MOBILE
    else:
        device_type = DeviceType.DESKTOP

    return UserAgentInfo(
        browser=_family(agent.browser.family),
        os=_family(agent.os.family),
        device_type=device_type,
    )
