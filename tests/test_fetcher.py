import httpx
import pytest

from mgnrega_api.services.fetcher import FetchStatus, GovDataClient

URL = "https://api.example.test/resource/abc"


def _client(handler, timeout=20.0):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GovDataClient(URL, api_key="secret", timeout=timeout, default_limit=5000, client=http)


@pytest.mark.asyncio
async def test_fetch_builds_filtered_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        seen["path"] = request.url.path
        return httpx.Response(200, json={"records": [{"district_code": "0501"}]})

    client = _client(handler)
    result = await client.fetch({"state_name": "BIHAR", "district_code": "0501", "fin_year": None})
    await client.aclose()

    assert result.status is FetchStatus.OK
    assert result.records == [{"district_code": "0501"}]
    assert seen["path"] == "/resource/abc"
    assert seen["params"] == {
        "api-key": "secret",
        "format": "json",
        "limit": "5000",
        "filters[state_name]": "BIHAR",
        "filters[district_code]": "0501",
    }


@pytest.mark.asyncio
async def test_fetch_explicit_limit():
    seen = {}

    def handler(request):
        seen["limit"] = request.url.params["limit"]
        return httpx.Response(200, json={"records": [{"a": 1}]})

    client = _client(handler)
    await client.fetch({}, limit=1000)
    assert seen["limit"] == "1000"


@pytest.mark.asyncio
async def test_fetch_empty_records_is_no_data():
    client = _client(lambda request: httpx.Response(200, json={"records": []}))
    result = await client.fetch({"district_code": "9999"})
    assert result.status is FetchStatus.NO_DATA
    assert result.records == []


@pytest.mark.asyncio
async def test_fetch_accepts_bare_list():
    client = _client(lambda request: httpx.Response(200, json=[{"month": "Dec"}]))
    result = await client.fetch({})
    assert result.ok
    assert result.records == [{"month": "Dec"}]


@pytest.mark.asyncio
async def test_fetch_error_status_is_unavailable():
    client = _client(lambda request: httpx.Response(503, text="down"))
    result = await client.fetch({"district_code": "0501"})
    assert result.status is FetchStatus.UNAVAILABLE
    assert "503" in result.error


@pytest.mark.asyncio
async def test_fetch_timeout_is_unavailable():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(handler, timeout=0.5)
    result = await client.fetch({"district_code": "0501"})
    assert result.status is FetchStatus.UNAVAILABLE
    assert "0.5" in result.error


@pytest.mark.asyncio
async def test_fetch_invalid_json_is_unavailable():
    client = _client(lambda request: httpx.Response(200, text="<html>oops</html>"))
    result = await client.fetch({})
    assert result.status is FetchStatus.UNAVAILABLE


@pytest.mark.asyncio
async def test_fetch_only_calls_once_on_failure():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    result = await client.fetch({})
    assert result.status is FetchStatus.UNAVAILABLE
    assert len(calls) == 1
