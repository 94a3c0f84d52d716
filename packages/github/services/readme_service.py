"""Fetches repository READMEs from the GitHub REST API."""

import base64
import re
from typing import Optional

import httpx

from common.core.config import settings
from common.core.exceptions import (
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.github.models.domain.readme import Readme, RepositoryRef

logger = get_logger(__name__)

GITHUB_URL_PATTERN = re.compile(r"github\.com/([^/]+)/([^/?#]+)")


def parse_repository_url(url: str) -> RepositoryRef:
    """
    Extract owner and repo from a github.com URL.

    Anything after the repo segment is ignored; a trailing .git is stripped.
    """
    match = GITHUB_URL_PATTERN.search(url or "")
    if not match:
        raise ValidationError(
            "Invalid repository URL. Expected a GitHub URL like https://github.com/owner/repo"
        )

    owner = match.group(1)
    repo = re.sub(r"\.git$", "", match.group(2))
    if not repo:
        raise ValidationError(
            "Invalid repository URL. Expected a GitHub URL like https://github.com/owner/repo"
        )
    return RepositoryRef(owner=owner, repo=repo)


class ReadmeService:
    """Service for reading repository READMEs."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self._http_client = http_client

    def _headers(self) -> dict:
        return {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": settings.github_user_agent,
        }

    async def _request(self, path: str) -> httpx.Response:
        url = f"{settings.github_api_url}{path}"
        if self._http_client:
            return await self._http_client.get(url, headers=self._headers())
        async with httpx.AsyncClient(timeout=settings.github_timeout_seconds) as client:
            return await client.get(url, headers=self._headers())

    @trace_span
    async def get_readme(self, url: str) -> Readme:
        """Fetch and decode the README of the repository at url."""
        ref = parse_repository_url(url)

        try:
            response = await self._request(f"/repos/{ref.owner}/{ref.repo}/readme")
        except httpx.HTTPError as e:
            logger.error(f"Error fetching README for {ref.full_name}: {e!r}")
            raise ExternalServiceError("Failed to fetch README from GitHub")

        if response.status_code == 404:
            raise NotFoundError("Repository not found or README not available")
        if response.status_code != 200:
            logger.error(
                f"GitHub API error {response.status_code} for {ref.full_name}",
                extra={"repository": ref.full_name, "status": response.status_code},
            )
            raise ExternalServiceError("Failed to fetch README from GitHub")

        data = response.json()
        content = base64.b64decode(data.get("content", "")).decode(
            "utf-8", errors="replace"
        )
        logger.info(f"Fetched README for {ref.full_name} ({data.get('size')} bytes)")

        return Readme(
            content=content,
            encoding=data.get("encoding"),
            name=data["name"],
            path=data["path"],
            sha=data["sha"],
            size=data["size"],
            url=data.get("html_url"),
        )
