try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import httpx
import pytest

from app.clients.bing_image import BingImageClient
from app.web import pages

pytestmark = pytest.mark.anyio("asyncio")


async def test_image_of_the_day_builds_absolute_url():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["format"] == "js"
        return httpx.Response(200, json={"images": [{"url": "/th?id=OHR.Example.jpg"}]})

    client = BingImageClient(transport=httpx.MockTransport(handler))

    assert await client.image_of_the_day() == "https://www.bing.com/th?id=OHR.Example.jpg"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500),
        httpx.Response(200, json={"images": []}),
        httpx.Response(200, json=["unexpected"]),
        httpx.Response(200, json={"images": ["x"]}),
        httpx.Response(200, json={"images": 3}),
        httpx.Response(200, json={"images": [{"url": None}]}),
        httpx.Response(200, text="not json"),
    ],
)
async def test_image_of_the_day_is_best_effort(response: httpx.Response):
    client = BingImageClient(transport=httpx.MockTransport(lambda request: response))

    assert await client.image_of_the_day() is None


def test_pages_escape_user_supplied_values():
    html = pages.account_page(
        login_state="state",
        account_keys=['<script>alert(1)</script>@example.com'],
    )

    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;" in html
    assert "<script>" not in pages.error_page("<script>")
