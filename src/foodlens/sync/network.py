"""Connectivity state consulted before a sync pass."""

import logging
from dataclasses import dataclass
from typing import Optional

import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkState:
    connected: bool = False
    # None means reachability has not been determined
    internet_reachable: Optional[bool] = None

    @property
    def is_online(self) -> bool:
        """Connected, and the remote is reachable or not known to be down."""
        if not self.connected:
            return False
        if self.internet_reachable is None:
            return True
        return bool(self.internet_reachable)


def probe_network_state(url: str, timeout: float = 5) -> NetworkState:
    """Probe ``url`` with a HEAD request.

    Any HTTP response counts as online. A timeout means a link exists
    but the remote is unreachable. A connection failure or any other
    request error, such as a malformed URL, means offline.
    """
    if not url:
        return NetworkState(connected=True, internet_reachable=None)
    try:
        requests.head(url, timeout=timeout)
    except requests.Timeout:
        return NetworkState(connected=True, internet_reachable=False)
    except requests.ConnectionError:
        return NetworkState(connected=False, internet_reachable=False)
    except requests.RequestException as e:
        logger.warning(f"Network check against {url} failed: {e}")
        return NetworkState(connected=False, internet_reachable=False)
    return NetworkState(connected=True, internet_reachable=True)
