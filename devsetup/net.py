"""
HTTP helpers: connectivity check, JSON API calls and streamed downloads.
"""

from pathlib import Path
from typing import Any, Dict, Sequence

import requests

from devsetup.errors import StepFailure
from devsetup.logging_utils import get_logger

CONNECTIVITY_HOSTS = ("google.com", "8.8.8.8", "1.1.1.1", "wikipedia.org")


def has_internet_connection(
    hosts: Sequence[str] = CONNECTIVITY_HOSTS, timeout: int = 10
) -> bool:
    logger = get_logger()
    for host in hosts:
        try:
            requests.head(f"http://{host}", timeout=timeout, allow_redirects=True)
        except requests.RequestException:
            logger.debug(f"Connectivity check against {host} failed")
            continue
        logger.info(f"Internet connectivity verified via {host}")
        return True
    return False


def fetch_json(url: str, timeout: int = 60) -> Dict[str, Any]:
    """GET a JSON object; any transport or decoding problem is a StepFailure."""
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise StepFailure(f"Request to {url} failed: {e}")
    try:
        payload = response.json()
    except ValueError:
        raise StepFailure(f"Failed to parse JSON response from {url}", response.text)
    if not isinstance(payload, dict):
        raise StepFailure(f"Unexpected JSON response from {url}", response.text)
    return payload


def download_file(url: str, dest: Path, timeout: int = 600) -> None:
    """
    Stream `url` into `dest`.

    A partial or empty file is removed and the error re-raised.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
    except (requests.RequestException, OSError):
        if dest.exists():
            dest.unlink()
        raise
    if dest.stat().st_size == 0:
        dest.unlink()
        raise OSError(f"Downloaded file is empty: {dest.name}")
