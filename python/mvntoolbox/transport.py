"""HTTP transport for Maven repositories.

Downloads are done through a ``requests`` session. In corporate environments
with SSL inspection (e.g., Netskope) the session trusts the inspection
proxy's certificate bundle and relaxes OpenSSL 3.x key usage checks.
"""

import logging
import os
import ssl
import tempfile
from pathlib import Path
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.ssl_ import create_urllib3_context

from .errors import TransportError

logger = logging.getLogger(__name__)

# Known corporate SSL inspection cert bundle locations
CORPORATE_CERT_PATHS = [
    "/Library/Application Support/Netskope/STAgent/data/netskope-cert-bundle.pem",  # Netskope macOS
    "/etc/netskope/cert-bundle.pem",  # Netskope Linux
]

CHUNK_SIZE = 64 * 1024


def get_corporate_cert_path() -> Optional[str]:
    """Find the corporate SSL certificate bundle if present."""
    for path in CORPORATE_CERT_PATHS:
        if os.path.exists(path):
            return path
    return None


class CorporateSSLAdapter(HTTPAdapter):
    """HTTP adapter trusting a corporate inspection bundle with relaxed verify flags."""

    def __init__(self, cert_path: Optional[str] = None, **kwargs):
        self.cert_path = cert_path or get_corporate_cert_path()
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        ctx = create_urllib3_context()
        if self.cert_path and os.path.exists(self.cert_path):
            ctx.load_verify_locations(self.cert_path)
            logger.debug(f"Loaded corporate cert bundle from {self.cert_path}")
        ctx.verify_flags = ssl.VERIFY_DEFAULT
        kwargs['ssl_context'] = ctx
        return super().init_poolmanager(*args, **kwargs)


def create_session(user_agent: str) -> requests.Session:
    """Create a requests session for repository access."""
    session = requests.Session()
    session.headers.update({
        "Accept": "*/*",
        "User-Agent": user_agent,
    })

    cert_path = get_corporate_cert_path()
    if cert_path:
        logger.info(f"Detected corporate SSL environment, using {cert_path}")
        session.mount('https://', CorporateSSLAdapter(cert_path=cert_path))

    return session


class RepositoryTransport:
    """Fetches files from repository URLs into local paths."""

    def __init__(self, session: requests.Session, timeout: float = 30):
        self.session = session
        self.timeout = timeout

    def download(self, url: str, dest: Path) -> bool:
        """
        Download ``url`` into ``dest``.

        Returns:
            True when the file was downloaded, False when the server reports
            it does not exist

        Raises:
            TransportError: On any other HTTP status or connection failure
        """
        logger.debug(f"Downloading {url}")
        try:
            with self.session.get(url, timeout=self.timeout, stream=True) as response:
                if response.status_code in (404, 410):
                    logger.debug(f"Not found: {url}")
                    return False
                if response.status_code != 200:
                    raise TransportError(url, status=response.status_code)

                dest.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(dir=str(dest.parent), prefix=".part-")
                try:
                    with os.fdopen(fd, 'wb') as out:
                        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                            if chunk:
                                out.write(chunk)
                    os.replace(tmp_name, dest)
                except BaseException:
                    if os.path.exists(tmp_name):
                        os.unlink(tmp_name)
                    raise
        except requests.RequestException as e:
            raise TransportError(url, cause=e) from e

        logger.debug(f"Downloaded {url} to {dest}")
        return True

    def close(self) -> None:
        self.session.close()
