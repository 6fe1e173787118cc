"""Client context captured for every visit."""

from dataclasses import dataclass
from typing import Optional

from ua_parser import parse

UNKNOWN = "unknown"


@dataclass(frozen=True)
class ClientInfo:
    device_type: str = UNKNOWN
    os: str = UNKNOWN
    browser: str = UNKNOWN


@dataclass(frozen=True)
class VisitRequest:
    """Everything the policy evaluator needs to know about one request."""

    host: str
    code: str
    password: Optional[str] = None
    ticket_timestamp: Optional[str] = None
    ticket_signature: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None


def _with_version(family: Optional[str], *parts: Optional[str]) -> str:
    if not family:
        return UNKNOWN
    version = ".".join(part for part in parts if part)
    return f"{family} {version}" if version else family


def parse_user_agent(user_agent: Optional[str]) -> ClientInfo:
    """Derive device, OS and browser names from a User-Agent header."""
    if not user_agent:
        return ClientInfo()

    result = parse(user_agent)
    if result is None:
        return ClientInfo()

    device = result.device.family if result.device and result.device.family else UNKNOWN
    os_name = UNKNOWN
    if result.os:
        os_name = _with_version(result.os.family, result.os.major, result.os.minor, result.os.patch)
    browser = UNKNOWN
    if result.user_agent:
        browser = _with_version(result.user_agent.family, result.user_agent.major, result.user_agent.minor)

    return ClientInfo(device_type=device, os=os_name, browser=browser)
