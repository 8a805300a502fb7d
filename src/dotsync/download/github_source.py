"""
GitHub Release Source

Fetches the release list of a repository through the HTTP response cache and picks
the newest installable release.
"""

import json
from typing import Any, List, Optional

import requests  # type: ignore[import-untyped]

from dotsync.constants import GITHUB_RELEASES_URL_TEMPLATE
from dotsync.exceptions import (
    CacheError,
    CacheNotFoundError,
    EmptyReleasesError,
    GitHubError,
    NetworkError,
    ValidReleaseNotFoundError,
)
from dotsync.log_utils import logger
from dotsync.utils import make_github_api_request

from .cache import HttpCache
from .interfaces import Release
from .version import versions_differ


class GithubReleaseResolver:
    """
    Resolves the latest installable release of a GitHub repository.

    Each lookup:
    1. Loads the cached "list releases" response, if one exists and is fresh
    2. Otherwise fetches from the GitHub API and overwrites the cache entry
    3. Parses the releases, keeping API order (newest first)

    A failed fetch is never answered from a stale cache entry.
    """

    def __init__(
        self,
        cache: Optional[HttpCache] = None,
        github_token: Optional[str] = None,
        allow_env_token: bool = True,
    ):
        """
        Parameters:
            cache (Optional[HttpCache]): Response cache; a default cache is created when omitted.
            github_token (Optional[str]): Explicit API token; falls back to GITHUB_TOKEN when allowed.
            allow_env_token (bool): Whether the GITHUB_TOKEN environment variable may be used.
        """
        self.cache = cache or HttpCache()
        self.github_token = github_token
        self.allow_env_token = allow_env_token

    @staticmethod
    def releases_url(owner: str, repo: str) -> str:
        return GITHUB_RELEASES_URL_TEMPLATE.format(owner=owner, repo=repo)

    def _load_fresh_body(self, url: str) -> Optional[bytes]:
        try:
            cached = self.cache.load(url)
        except CacheNotFoundError:
            logger.debug("Cache miss for %s", url)
            return None
        if cached.is_stale():
            logger.debug("Cached response for %s is stale", url)
            return None
        try:
            body = cached.read_body()
        except CacheNotFoundError:
            return None
        logger.debug("Using cached response for %s", url)
        return body

    def _fetch_body(self, url: str) -> bytes:
        try:
            response = make_github_api_request(
                url,
                self.github_token,
                allow_env_token=self.allow_env_token,
            )
        except requests.RequestException as e:
            raise NetworkError(
                f"Unable to fetch {url}", url=url, details=str(e)
            ) from e

        try:
            self.cache.store(url, response)
        except CacheError as e:
            logger.warning(f"Could not cache response for {url}: {e}")
        return response.content

    @staticmethod
    def _parse_releases(body: bytes, owner: str, repo: str) -> List[Release]:
        try:
            payload: Any = json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            raise GitHubError(
                f"Invalid releases payload for {owner}/{repo}", owner, repo, str(e)
            ) from e
        if not isinstance(payload, list):
            raise GitHubError(
                f"Unexpected releases payload for {owner}/{repo}",
                owner,
                repo,
                f"expected list, got {type(payload).__name__}",
            )

        releases: List[Release] = []
        for release_data in payload:
            if not isinstance(release_data, dict):
                logger.warning(
                    "Skipping malformed release entry for %s/%s: expected dict, got %s",
                    owner,
                    repo,
                    type(release_data).__name__,
                )
                continue
            release = Release.from_github_data(release_data)
            if release is not None:
                releases.append(release)
        return releases

    def fetch_releases(self, owner: str, repo: str) -> List[Release]:
        """
        Fetch the releases of a repository, using the cache when it is fresh.

        Returns:
            List[Release]: Releases in API order.

        Raises:
            NetworkError: If the live request fails.
            GitHubError: If the payload cannot be parsed as a release list.
        """
        url = self.releases_url(owner, repo)
        body = self._load_fresh_body(url)
        if body is not None:
            try:
                return self._parse_releases(body, owner, repo)
            except GitHubError as e:
                logger.debug("Discarding unusable cached releases for %s: %s", url, e)

        body = self._fetch_body(url)
        return self._parse_releases(body, owner, repo)

    def latest_release(self, owner: str, repo: str) -> Release:
        """
        Return the first installable release in API order.

        Raises:
            EmptyReleasesError: If the repository has no releases.
            ValidReleaseNotFoundError: If no release is installable.
            NetworkError: If the releases cannot be fetched.
        """
        releases = self.fetch_releases(owner, repo)
        if not releases:
            raise EmptyReleasesError(owner, repo)
        for release in releases:
            if release.is_installable:
                return release
        raise ValidReleaseNotFoundError(owner, repo)

    def release_versus_current(
        self, current: str, owner: str, repo: str
    ) -> Optional[Release]:
        """
        Return the latest release if its version differs from `current`.

        Both versions are compared without leading non-digit characters, so "v1.2.3"
        equals "1.2.3". Any resolution error is logged and yields None.
        """
        try:
            release = self.latest_release(owner, repo)
        except GitHubError as e:
            logger.info(f"{owner}/{repo}: {e}")
            return None
        except NetworkError as e:
            logger.warning(f"Unable to check latest release for {owner}/{repo}: {e}")
            return None

        if versions_differ(current, release.tag_name):
            return release
        return None
