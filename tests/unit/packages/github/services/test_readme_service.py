import base64

import httpx
import pytest

from common.core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from packages.github.services.readme_service import ReadmeService, parse_repository_url

README_TEXT = "# requests\n\nHTTP for Humans."


def _readme_payload():
    return {
        "name": "README.md",
        "path": "README.md",
        "sha": "abc123",
        "size": len(README_TEXT),
        "encoding": "base64",
        "content": base64.b64encode(README_TEXT.encode()).decode(),
        "html_url": "https://github.com/psf/requests/blob/main/README.md",
    }


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestParseRepositoryUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/psf/requests",
            "https://github.com/psf/requests/",
            "https://github.com/psf/requests.git",
            "https://github.com/psf/requests/tree/main/docs",
            "github.com/psf/requests?tab=readme",
        ],
    )
    def test_valid_urls(self, url):
        ref = parse_repository_url(url)
        assert ref.owner == "psf"
        assert ref.repo == "requests"
        assert ref.full_name == "psf/requests"

    @pytest.mark.parametrize(
        "url", ["", "https://gitlab.com/psf/requests", "https://github.com/psf"]
    )
    def test_invalid_urls(self, url):
        with pytest.raises(ValidationError):
            parse_repository_url(url)


@pytest.mark.asyncio
class TestReadmeService:
    async def test_get_readme_decodes_content(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["accept"] = request.headers.get("accept")
            return httpx.Response(200, json=_readme_payload())

        service = ReadmeService(http_client=_client(handler))
        readme = await service.get_readme("https://github.com/psf/requests")

        assert seen["path"] == "/repos/psf/requests/readme"
        assert seen["accept"] == "application/vnd.github.v3+json"
        assert readme.content == README_TEXT
        assert readme.name == "README.md"
        assert readme.sha == "abc123"
        assert readme.url.endswith("README.md")

    async def test_missing_repository(self):
        service = ReadmeService(
            http_client=_client(lambda request: httpx.Response(404, json={}))
        )

        with pytest.raises(NotFoundError):
            await service.get_readme("https://github.com/psf/nope")

    async def test_upstream_error(self):
        service = ReadmeService(
            http_client=_client(lambda request: httpx.Response(500, text="boom"))
        )

        with pytest.raises(ExternalServiceError):
            await service.get_readme("https://github.com/psf/requests")

    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        service = ReadmeService(http_client=_client(handler))

        with pytest.raises(ExternalServiceError):
            await service.get_readme("https://github.com/psf/requests")

    async def test_invalid_url_makes_no_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=_readme_payload())

        service = ReadmeService(http_client=_client(handler))

        with pytest.raises(ValidationError):
            await service.get_readme("not a url")
        assert calls == []
