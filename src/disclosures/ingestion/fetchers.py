# src/disclosures/ingestion/fetchers.py
import logging
from dataclasses import dataclass

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from disclosures.config import settings
from disclosures.ingestion.storage import BlobStore
from disclosures.models import FilingIdentity

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404


class FetchError(RuntimeError):
    """Raised when a remote document or its fingerprint cannot be retrieved."""


class _TransientHTTPError(requests.HTTPError):
    """5xx / 429 responses worth retrying."""


@dataclass(frozen=True)
class StoredResponse:
    location: str  # blob URI the body was written to
    fingerprint: str | None  # ETag of the fetched version


class HouseDisclosureClient:
    """HTTP access to the House Clerk's public disclosure site.

    Bodies are written straight to the blob store; callers only see the
    storage location and the ETag.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        base_url: str = settings.DISCLOSURE_BASE_URL,
        user_agent: str = settings.USER_AGENT,
        timeout: float = settings.HTTP_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.blob_store = blob_store
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {"User-Agent": user_agent, "Accept": "*/*", "Accept-Encoding": "gzip, deflate"}
        )

    def ptr_url(self, identity: FilingIdentity) -> str:
        return f"{self.base_url}/ptr-pdfs/{identity.year}/{identity.doc_id}.pdf"

    def filing_list_url(self, year: int) -> str:
        return f"{self.base_url}/financial-pdfs/{year}FD.zip"

    def probe_ptr_fingerprint(self, identity: FilingIdentity) -> str | None:
        """ETag of the PTR as currently published, or None if it has none or does not exist."""
        return self._probe(self.ptr_url(identity))

    def probe_filing_list_fingerprint(self, year: int) -> str | None:
        return self._probe(self.filing_list_url(year))

    def fetch_ptr(self, identity: FilingIdentity, location: str) -> StoredResponse | None:
        """Download a PTR PDF into ``location``. Returns None when the Clerk has no such PDF.

        Some filings listed as PTRs are published elsewhere (e.g. as FDR files)
        and 404 at the PTR URL.
        """
        response = self._get_or_none(self.ptr_url(identity))
        if response is None:
            logger.warning(
                "Failed to fetch PTR document %s for year %s", identity.doc_id, identity.year
            )
            return None
        return self._store(location, response)

    def fetch_filing_list(self, year: int, location: str) -> StoredResponse:
        response = self._get_or_none(self.filing_list_url(year))
        if response is None:
            raise FetchError(f"Failed to fetch filing list for year {year}")
        return self._store(location, response)

    def _store(self, location: str, response: requests.Response) -> StoredResponse:
        self.blob_store.put(location, response.content)
        return StoredResponse(location=location, fingerprint=response.headers.get("ETag"))

    def _probe(self, url: str) -> str | None:
        try:
            response = self._request("HEAD", url)
        except requests.RequestException as e:
            raise FetchError(f"Could not probe {url}: {e}") from e
        if response.status_code == HTTP_NOT_FOUND:
            return None
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise FetchError(f"Could not probe {url}: {e}") from e
        return response.headers.get("ETag")

    def _get_or_none(self, url: str) -> requests.Response | None:
        try:
            response = self._request("GET", url)
        except requests.RequestException as e:
            raise FetchError(f"Error fetching {url}: {e}") from e
        if response.status_code == HTTP_NOT_FOUND:
            return None
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            logger.warning("HTTP error fetching %s: %s", url, e)
            return None
        return response

    @retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout, _TransientHTTPError)),
    )
    def _request(self, method: str, url: str) -> requests.Response:
        logger.debug("%s %s", method, url)
        response = self.session.request(method, url, timeout=self.timeout, allow_redirects=True)
        if response.status_code == 429 or response.status_code >= 500:
            raise _TransientHTTPError(f"{response.status_code} for {url}", response=response)
        return response
