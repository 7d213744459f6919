"""Utility functions for the voice dictation service."""

import logging
import netrc
import os
from typing import Optional
from urllib.parse import urlparse

from .constants import NETRC_LOGIN

logger = logging.getLogger(__name__)


def get_endpoint_host(endpoint: str) -> str:
    """Extract the hostname from an endpoint URL.

    Raises:
        ValueError: If the URL has no hostname
    """
    host = urlparse(endpoint).hostname
    if not host:
        raise ValueError(
            f"Could not detect hostname in endpoint: {endpoint}. "
            "Verify that it is a valid URL with a protocol and hostname."
        )
    return host


def lookup_netrc_credential(
    host: str, login: str = NETRC_LOGIN, path: Optional[str] = None
) -> Optional[str]:
    """Look up a password in a netrc file.

    Args:
        host: Machine name to match
        login: Login the entry must carry
        path: netrc file (defaults to ~/.netrc)

    Returns:
        The password, or None if there is no matching entry
    """
    try:
        entries = netrc.netrc(path)
    except FileNotFoundError:
        return None
    except (netrc.NetrcParseError, OSError) as e:
        logger.warning(f"Could not read netrc: {e}", extra={"path": path})
        return None

    auth = entries.authenticators(host)
    if not auth:
        return None
    entry_login, _, password = auth
    if entry_login != login:
        logger.debug(
            "netrc entry has a different login",
            extra={"host": host, "login": entry_login},
        )
        return None
    return password or None


def lookup_credential(
    endpoint: str, configured: str = "", netrc_path: Optional[str] = None
) -> Optional[str]:
    """Resolve the credential for an endpoint.

    The configured value wins; otherwise the netrc entry for the endpoint's
    host with the fixed login is used.
    """
    if configured:
        return configured
    try:
        host = get_endpoint_host(endpoint)
    except ValueError as e:
        logger.warning(str(e))
        return None
    return lookup_netrc_credential(host, path=netrc_path or os.getenv("NETRC"))

