"""
HTTP adapter for the destination photo service.

Creates albums, fetches remote item content and uploads items into albums.
Every failure is surfaced as one of the importer's typed exceptions so the
coordinator can record it against the album or item that caused it.
"""
import io
import logging
from typing import BinaryIO, Dict, Optional

import requests

from album_chain_importer.exceptions import (
    ContentFetchFailure,
    RemoteCreationFailure,
    UploadFailure,
)
from album_chain_importer.models import AlbumCreation, SourceItem, UploadHandle
from album_chain_importer.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

TRANSIENT_EXCEPTIONS = (requests.ConnectionError, requests.Timeout)
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class TransientResponseError(requests.HTTPError):
    """A response the service asks us to retry (throttling or 5xx)."""
    pass


def _check_response(response: requests.Response) -> None:
    if response.status_code in RETRYABLE_STATUS_CODES:
        raise TransientResponseError(
            f"{response.status_code} from {response.url}", response=response
        )
    response.raise_for_status()


def _json_object(response: requests.Response) -> Dict:
    body = response.json()
    if not isinstance(body, dict):
        raise ValueError(f"expected a JSON object, got {type(body).__name__}")
    return body


def _section(body: Dict, name: str) -> Dict:
    value = body.get(name)
    return value if isinstance(value, dict) else {}


class RemoteAlbumService:
    """Client for the destination service's album and upload endpoints."""

    def __init__(self, api_base_url: str, access_token: Optional[str] = None,
                 upload_url: Optional[str] = None, timeout_seconds: float = 60.0,
                 max_retries: int = 3, session: Optional[requests.Session] = None):
        """
        Initialize the remote service client.

        Args:
            api_base_url: Base URL of the destination API
            access_token: Bearer token sent with every request
            upload_url: Upload endpoint (defaults to ``<api_base_url>/upload``)
            timeout_seconds: Per-request timeout
            max_retries: Retries for transient transport failures
            session: Optional pre-configured requests session
        """
        if not api_base_url:
            raise ValueError("api_base_url is required")
        self.api_base_url = api_base_url.rstrip('/')
        self.upload_url = upload_url or f"{self.api_base_url}/upload"
        self.timeout = timeout_seconds
        self.max_retries = max_retries

        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/json'})
        if access_token:
            self.session.headers['Authorization'] = f"Bearer {access_token}"

    @retry_with_backoff(exceptions=TRANSIENT_EXCEPTIONS + (TransientResponseError,))
    def _post_album(self, payload: Dict) -> Dict:
        response = self.session.post(
            f"{self.api_base_url}/albums", json=payload, timeout=self.timeout
        )
        _check_response(response)
        return _json_object(response)

    def create_album(self, name: str, description: Optional[str] = None) -> AlbumCreation:
        """
        Create an album on the destination service.

        Returns:
            AlbumCreation with the album's URI and its descriptor

        Raises:
            RemoteCreationFailure: If the service could not create the album
        """
        payload = {'Name': name}
        if description:
            payload['Description'] = description

        try:
            body = self._post_album(payload)
        except requests.RequestException as e:
            status = getattr(getattr(e, 'response', None), 'status_code', None)
            raise RemoteCreationFailure(
                f"Failed to create album '{name}': {e}", album_name=name, status_code=status
            ) from e
        except ValueError as e:
            raise RemoteCreationFailure(
                f"Invalid response creating album '{name}': {e}", album_name=name
            ) from e

        album = _section(body, 'Album')
        uri = body.get('Uri') or album.get('Uri')
        if not uri:
            raise RemoteCreationFailure(
                f"Album '{name}' created without a URI in the response", album_name=name
            )

        descriptor = {
            'name': album.get('Name', name),
            'description': album.get('Description', description),
            'uri': uri,
        }
        if album.get('AlbumKey'):
            descriptor['album_key'] = album['AlbumKey']

        logger.info(f"Created album: {descriptor['name']} ({uri})")
        return AlbumCreation(remote_uri=uri, album_descriptor=descriptor)

    @retry_with_backoff(exceptions=TRANSIENT_EXCEPTIONS + (TransientResponseError,))
    def _get_content(self, locator: str) -> bytes:
        response = self.session.get(locator, timeout=self.timeout)
        _check_response(response)
        return response.content

    def fetch_content(self, locator: str) -> BinaryIO:
        """
        Download an item's content from its remote URL.

        Raises:
            ContentFetchFailure: If the content could not be downloaded
        """
        try:
            return io.BytesIO(self._get_content(locator))
        except requests.RequestException as e:
            raise ContentFetchFailure(
                f"Failed to fetch {locator}: {e}", locator=locator
            ) from e

    def upload_item(self, item: SourceItem, destination_uri: str,
                    content: BinaryIO) -> UploadHandle:
        """
        Upload one item into a destination album.

        The content is read fully before sending so a transport retry can
        resend it.

        Raises:
            UploadFailure: If the service rejected or failed the upload
        """
        data = content.read()
        headers = {
            'X-Upload-AlbumUri': destination_uri,
            'X-Upload-Title': item.title,
            'X-Upload-FileName': item.title or item.data_id,
            'Content-Length': str(len(data)),
        }
        if item.description:
            headers['X-Upload-Caption'] = item.description
        if item.media_type:
            headers['Content-Type'] = item.media_type

        try:
            body = self._post_upload(data, headers)
        except requests.RequestException as e:
            status = getattr(getattr(e, 'response', None), 'status_code', None)
            raise UploadFailure(
                f"Failed to upload {item.key} into {destination_uri}: {e}",
                destination_uri=destination_uri, status_code=status
            ) from e
        except ValueError as e:
            raise UploadFailure(
                f"Invalid upload response for {item.key}: {e}",
                destination_uri=destination_uri
            ) from e

        image = _section(body, 'Image')
        uri = image.get('ImageUri') or body.get('Uri')
        if not uri:
            raise UploadFailure(
                f"Upload of {item.key} returned no image URI", destination_uri=destination_uri
            )

        logger.debug(f"Uploaded {item.key} -> {uri}")
        return UploadHandle(uri=uri, album_uri=image.get('AlbumImageUri') or destination_uri, raw=body)

    @retry_with_backoff(exceptions=TRANSIENT_EXCEPTIONS + (TransientResponseError,))
    def _post_upload(self, data: bytes, headers: Dict[str, str]) -> Dict:
        response = self.session.post(
            self.upload_url, data=data, headers=headers, timeout=self.timeout
        )
        _check_response(response)
        return _json_object(response)
