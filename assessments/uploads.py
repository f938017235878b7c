import logging
from dataclasses import dataclass

import requests
from django.conf import settings

from cores.exceptions import UploadServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredFile:
    reference_id: str
    url: str
    size_bytes: int


class UploadServiceClient:
    """
    Talks to the external file store. Only the returned reference is kept
    by the exam apps; the bytes never touch our database.
    """

    def __init__(self, base_url=None, token=None, timeout=None):
        base_url = base_url or getattr(settings, 'UPLOAD_SERVICE_URL', '')
        if not base_url:
            logger.error("UPLOAD_SERVICE_URL missing in settings.")
            raise UploadServiceError("Server misconfiguration: missing upload service URL")
        self.base_url = base_url.rstrip('/')
        self.token = token if token is not None else getattr(settings, 'UPLOAD_SERVICE_TOKEN', '')
        self.timeout = timeout or getattr(settings, 'UPLOAD_SERVICE_TIMEOUT', 20)

    def _headers(self):
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _call(self, method, url, **kwargs):
        try:
            # Timeout is crucial to prevent the request worker hanging
            return requests.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            raise UploadServiceError("Upload timed out. Please try again.")
        except requests.exceptions.ConnectionError:
            raise UploadServiceError("Network error. Could not connect to the upload service.")

    def store(self, file):
        resp = self._call(
            'POST',
            f"{self.base_url}/files/",
            files={'file': (file.name, file, getattr(file, 'content_type', None) or 'application/octet-stream')},
        )
        if resp.status_code >= 400:
            logger.error("Upload service rejected %s: HTTP %s", file.name, resp.status_code)
            raise UploadServiceError("The upload service rejected the file.")

        try:
            data = resp.json()
            return StoredFile(
                reference_id=str(data['referenceId']),
                url=data['url'],
                size_bytes=int(data['sizeBytes']),
            )
        except (ValueError, KeyError, TypeError):
            logger.error("Unexpected upload service response: %s", resp.text[:200])
            raise UploadServiceError("The upload service returned an unexpected response.")

    def delete(self, reference_id):
        resp = self._call('DELETE', f"{self.base_url}/files/{reference_id}/")
        # Already gone is as good as deleted
        if resp.status_code >= 400 and resp.status_code != 404:
            logger.error("Could not delete upload %s: HTTP %s", reference_id, resp.status_code)
            raise UploadServiceError("The upload service could not delete the file.")
