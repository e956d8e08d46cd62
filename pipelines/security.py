"""Security utilities for Sitescribe pipelines.

Provides SSRF protection so that user-supplied URLs never point the crawler
or the estimator at loopback, link-local, private or cloud-metadata hosts.
The check is local and synchronous; DNS resolution is opt-in.
"""

import ipaddress
import logging
import re
import socket
from typing import Optional, Set, Tuple
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

# Private IP ranges as defined by RFC 1918, RFC 4193, and others
PRIVATE_IP_RANGES = [
    ipaddress.ip_network('10.0.0.0/8'),        # RFC 1918
    ipaddress.ip_network('172.16.0.0/12'),     # RFC 1918
    ipaddress.ip_network('192.168.0.0/16'),    # RFC 1918
    ipaddress.ip_network('127.0.0.0/8'),       # Loopback
    ipaddress.ip_network('169.254.0.0/16'),    # Link-local
    ipaddress.ip_network('0.0.0.0/8'),         # "This" network
    ipaddress.ip_network('100.64.0.0/10'),     # Carrier-grade NAT
    ipaddress.ip_network('::1/128'),           # IPv6 loopback
    ipaddress.ip_network('fc00::/7'),          # IPv6 unique local
    ipaddress.ip_network('fe80::/10'),         # IPv6 link-local
]

METADATA_HOSTS = {
    'metadata',
    'metadata.google.internal',
    'metadata.azure.com',
    'metadata.packet.net',
    '169.254.169.254',
    'fd00:ec2::254',
}

LOCALHOST_NAMES = {'localhost', 'localhost.localdomain', 'ip6-localhost', 'ip6-loopback'}

ALLOWED_SCHEMES = {'http', 'https'}

# Dotted, decimal, hex and octal IPv4 spellings the system resolver accepts
NUMERIC_HOST = re.compile(r'^(0x[0-9a-f]*|[0-9]+)(\.(0x[0-9a-f]*|[0-9]+)){0,3}$')


class SSRFError(Exception):
    """Raised when SSRF protection blocks a URL."""
    pass


def is_private_ip(ip_str: str) -> bool:
    """Check if an IP address is loopback, link-local or in a private range."""
    try:
        ip = ipaddress.ip_address(ip_str)
    except ValueError:
        return False
    mapped = getattr(ip, 'ipv4_mapped', None)
    if mapped is not None:
        ip = mapped
    return any(ip in network for network in PRIVATE_IP_RANGES if ip.version == network.version)


def canonical_ipv4(hostname: str) -> Optional[str]:
    """Dotted-quad form of a short, decimal, hex or octal IPv4 host, as inet_aton reads it."""
    try:
        return str(ipaddress.IPv4Address(socket.inet_aton(hostname)))
    except (OSError, ValueError):
        return None


def resolve_hostname(hostname: str) -> Set[str]:
    """Resolve hostname to IP addresses.

    Raises:
        SSRFError: If resolution fails or returns private IPs
    """
    try:
        addr_info = socket.getaddrinfo(hostname, None)
    except socket.gaierror as e:
        raise SSRFError(f"Failed to resolve hostname {hostname}: {e}")

    ips = {info[4][0] for info in addr_info}
    private_ips = [ip for ip in ips if is_private_ip(ip)]
    if private_ips:
        raise SSRFError(f"Hostname {hostname} resolves to private IP(s): {private_ips}")
    return ips


def validate_url_security(url: str, resolve_dns: bool = False) -> Tuple[bool, Optional[str]]:
    """Validate URL for SSRF protection.

    Args:
        url: URL to validate
        resolve_dns: Also resolve the hostname and reject private answers

    Returns:
        Tuple of (is_safe, error_message)
    """
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError as e:
        return False, f"Malformed URL: {e}"

    scheme = (parsed.scheme or '').lower()
    if scheme not in ALLOWED_SCHEMES:
        return False, f"Scheme '{parsed.scheme}' not allowed. Only http and https are permitted."

    if not hostname:
        return False, "URL must have a valid hostname."

    hostname = hostname.lower().rstrip('.')

    if hostname in LOCALHOST_NAMES or hostname.endswith('.localhost'):
        return False, f"Localhost hostname '{hostname}' is blocked."

    if hostname in METADATA_HOSTS:
        return False, f"Cloud metadata hostname '{hostname}' is blocked."

    try:
        ipaddress.ip_address(hostname)
        is_ip = True
    except ValueError:
        is_ip = False

    if is_ip:
        if is_private_ip(hostname):
            return False, f"Private IP address '{hostname}' is blocked."
    elif NUMERIC_HOST.match(hostname):
        canonical = canonical_ipv4(hostname)
        if canonical is None:
            return False, f"Unparseable numeric host '{hostname}' is blocked."
        if is_private_ip(canonical):
            return False, f"Private IP address '{hostname}' ({canonical}) is blocked."
    elif resolve_dns:
        try:
            resolve_hostname(hostname)
        except SSRFError as e:
            return False, str(e)

    return True, None


def check_url_ssrf(url: str, resolve_dns: bool = False) -> None:
    """Check URL for SSRF vulnerabilities and raise exception if unsafe.

    Raises:
        SSRFError: If URL is deemed unsafe
    """
    is_safe, error_msg = validate_url_security(url, resolve_dns=resolve_dns)
    if not is_safe:
        logger.warning(f"SSRF protection blocked URL: {url} - {error_msg}")
        raise SSRFError(f"URL blocked by SSRF protection: {error_msg}")


def normalize_target_url(url: str) -> str:
    """Add a scheme when missing and strip query/fragment, then SSRF-check."""
    candidate = (url or '').strip()
    if candidate and '://' not in candidate:
        candidate = 'https://' + candidate
    check_url_ssrf(candidate)
    parsed = urlparse(candidate)
    path = parsed.path or ''
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}{path}"
