import logging

import requests
from django.conf import settings
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

logger = logging.getLogger(__name__)


# Unsplash stock photo API
# This file (services.py) wraps the Unsplash REST API behind a small
# class so views never deal with raw responses or credentials.


class UnsplashAPIError(Exception):
    def __init__(self, status_code, message):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


# Only transport failures are retried; HTTP errors are returned to the caller as-is
transient_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_fixed(2),
    retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
    reraise=True,
)


class UnsplashAPI:
    """
    Handles communication with the Unsplash API for stock photo search and download.
    """

    BASE_URL = "https://api.unsplash.com"

    def __init__(self, access_key=None):
        self.access_key = access_key if access_key is not None else settings.UNSPLASH_ACCESS_KEY
        if not self.access_key:
            raise UnsplashAPIError(503, "Unsplash API key not configured")

    @property
    def headers(self):
        return {
            "Authorization": f"Client-ID {self.access_key}",
            "Accept-Version": "v1",
        }

    @staticmethod
    def normalize_photo(photo):
        urls = photo.get("urls", {})
        user = photo.get("user", {})
        return {
            "id": photo.get("id"),
            "description": photo.get("description") or photo.get("alt_description") or "",
            "url": urls.get("regular"),
            "thumbnail": urls.get("thumb"),
            "photographer": user.get("name"),
            "photographerUrl": user.get("links", {}).get("html"),
        }

    @transient_retry
    def _get(self, path, params=None):
        response = requests.get(f"{self.BASE_URL}{path}", params=params, headers=self.headers, timeout=15)

        if response.status_code >= 400:
            try:
                errors = response.json().get("errors") or []
            except ValueError:
                errors = []
            message = "; ".join(errors) or f"Unsplash request failed with status {response.status_code}"
            logger.error(f"[UnsplashAPI] {path} -> {response.status_code}: {message}")
            raise UnsplashAPIError(response.status_code, message)

        return response.json()

    def search_photos(self, query, page=1, per_page=20, orientation="landscape"):
        """
        Returns:
            dict: {results: [normalized photo], total, totalPages}
        """
        data = self._get("/search/photos", params={
            "query": query,
            "page": page,
            "per_page": per_page,
            "orientation": orientation,
        })
        return {
            "results": [self.normalize_photo(p) for p in data.get("results", [])],
            "total": data.get("total", 0),
            "totalPages": data.get("total_pages", 0),
        }

    def random_photos(self, query=None, orientation="landscape", count=1):
        """Always returns a list, even for count=1."""
        params = {"orientation": orientation, "count": count}
        if query:
            params["query"] = query

        data = self._get("/photos/random", params=params)
        if isinstance(data, dict):
            data = [data]
        return [self.normalize_photo(p) for p in data]

    def get_photo(self, photo_id):
        return self._get(f"/photos/{photo_id}")

    @transient_retry
    def _fetch_bytes(self, url):
        response = requests.get(url, timeout=30)
        if response.status_code >= 400:
            raise UnsplashAPIError(response.status_code, f"Photo download failed with status {response.status_code}")
        return response.content, response.headers.get("Content-Type", "image/jpeg")

    def download_photo(self, photo_id):
        """
        Downloads a photo and registers the download with Unsplash,
        as their API guidelines require.

        Returns:
            tuple: (content_bytes, content_type, raw_photo)
        """
        photo = self.get_photo(photo_id)

        download_location = photo.get("links", {}).get("download_location")
        if download_location:
            try:
                self._get(download_location.replace(self.BASE_URL, ""))
            except UnsplashAPIError as e:
                logger.warning(f"[UnsplashAPI] Download tracking failed for {photo_id}: {e.message}")

        url = photo.get("urls", {}).get("regular") or photo.get("urls", {}).get("full")
        if not url:
            raise UnsplashAPIError(502, "Photo has no downloadable URL")

        content, content_type = self._fetch_bytes(url)
        logger.info(f"[UnsplashAPI] Downloaded photo {photo_id} ({len(content)} bytes)")
        return content, content_type, photo
