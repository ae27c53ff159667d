try:
    from . import _bootstrap  # noqa: F401
    from ._tokens import token_expiring_in
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401
    from _tokens import token_expiring_in  # type: ignore

import copy
import json
import re
from urllib.parse import parse_qs

import httpx
import pytest

from app.clients import LoginStateEncoder, OaiFreeClient, SQLiteStore, UpstreamProxy
from app.core.config import SecuritySettings, ServiceSettings, ShareTokenSettings
from app.main import app
from app.services import (
    CredentialStore,
    LoginService,
    OAuthRedirectResolver,
    ShareTokenMinter,
    TokenRefresher,
)

LOGIN_URL = "https://chat.example.com/auth/login_share?token=one-time"

pytestmark = pytest.mark.anyio("asyncio")


class FakeTokenServices:
    """Answers the refresh, register and oauth_token endpoints."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.fresh_token = token_expiring_in(3600)
        self.register_payload: dict = {"token_key": "fk-share"}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "token.oaifree.com":
            return httpx.Response(200, json={"access_token": self.fresh_token})
        if request.url.host == "chat.oaifree.com":
            return httpx.Response(200, json=self.register_payload)
        if request.url.path == "/api/auth/oauth_token":
            return httpx.Response(200, json={"login_url": LOGIN_URL})
        return httpx.Response(404)

    def calls_to(self, host: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.host == host]


class FakeUpstream:
    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(
            201,
            content=b"upstream-body:" + request.content,
            headers={"x-upstream": "yes", "content-type": "text/plain"},
        )


@pytest.fixture()
def gateway(tmp_path):
    from app import dependencies
    from app.core.config import get_settings

    kv = SQLiteStore(str(tmp_path / "gateway.db"))
    kv.put("SITE_PASSWORD", "secret")
    kv.put("ALLOWED_USERS", "alice,bob")
    kv.put("YOUR_DOMAIN", "chat.example.com")
    kv.put(
        "team@example.com",
        json.dumps({"access_token": token_expiring_in(-30), "refresh_token": "rt-team"}),
    )
    kv.put(
        "solo@example.com",
        json.dumps({"access_token": token_expiring_in(3600), "refresh_token": "rt-solo"}),
    )

    services = FakeTokenServices()
    upstream = FakeUpstream()
    service_settings = ServiceSettings()
    client = OaiFreeClient(service_settings, transport=httpx.MockTransport(services))
    credentials = CredentialStore(kv)
    login_service = LoginService(
        config_store=kv,
        credentials=credentials,
        refresher=TokenRefresher(credentials, client),
        minter=ShareTokenMinter(client, ShareTokenSettings()),
        resolver=OAuthRedirectResolver(client),
        state_encoder=LoginStateEncoder(secret_key="route-secret"),
        security=SecuritySettings(LOGIN_STATE_SECRET="route-secret"),
    )
    proxy = UpstreamProxy(service_settings, transport=httpx.MockTransport(upstream))
    settings = copy.deepcopy(get_settings())
    settings.direct_login_enabled = True

    app.dependency_overrides.update(
        {
            dependencies.get_login_service: lambda: login_service,
            dependencies.get_upstream_proxy: lambda: proxy,
            dependencies.get_background_image_client: lambda: None,
            dependencies.get_app_settings: lambda: settings,
        }
    )

    yield kv, services, upstream, settings

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


def _login_state(page: str) -> str:
    match = re.search(r'name="login_state" value="([^"]+)"', page)
    assert match, page
    return match.group(1)


async def test_get_root_renders_login_form(gateway):
    kv, _, _, _ = gateway
    kv.put("TURNSTILE_SITE_KEY", "0x-site-key")

    async with _client() as client:
        response = await client.get("/")

    assert response.status_code == 200
    assert 'name="unique_name"' in response.text
    assert 'data-sitekey="0x-site-key"' in response.text


async def test_valid_credentials_list_account_keys(gateway):
    async with _client() as client:
        response = await client.post("/", data={"unique_name": "alice", "site_password": "secret"})

    assert response.status_code == 200
    assert "team@example.com" in response.text
    assert "solo@example.com" in response.text
    assert "SITE_PASSWORD" not in response.text
    assert _login_state(response.text)


async def test_wrong_password_renders_401_error_page(gateway):
    async with _client() as client:
        response = await client.post("/", data={"unique_name": "alice", "site_password": "wrong"})

    assert response.status_code == 401
    assert "密码错误" in response.text


async def test_user_outside_allow_list_is_rejected(gateway):
    async with _client() as client:
        response = await client.post("/", data={"unique_name": "Alice", "site_password": "secret"})

    assert response.status_code == 401
    assert "白名单" in response.text


async def test_account_selection_refreshes_once_and_redirects(gateway):
    kv, services, _, _ = gateway

    async with _client() as client:
        page = await client.post("/", data={"unique_name": "alice", "site_password": "secret"})
        response = await client.post(
            "/accounts",
            data={"login_state": _login_state(page.text), "account_key": "team@example.com"},
        )

    assert response.status_code == 302
    assert response.headers["location"] == LOGIN_URL

    assert len(services.calls_to("token.oaifree.com")) == 1
    stored = json.loads(kv.get("team@example.com"))
    assert stored["access_token"] == services.fresh_token
    assert stored["refresh_token"] == "rt-team"

    register = services.calls_to("chat.oaifree.com")[0]
    form = parse_qs(register.content.decode())
    assert form["unique_name"] == ["alice"]
    assert form["access_token"] == [services.fresh_token]

    oauth = services.calls_to("chat.example.com")[0]
    assert oauth.headers["origin"] == "https://chat.example.com"
    assert json.loads(oauth.content) == {"share_token": "fk-share"}


async def test_account_selection_with_valid_token_skips_refresh(gateway):
    kv, services, _, _ = gateway
    kv.put("TOKEN_PREFIX", "team-")

    async with _client() as client:
        page = await client.post("/", data={"unique_name": "bob", "site_password": "secret"})
        response = await client.post(
            "/accounts",
            data={"login_state": _login_state(page.text), "account_key": "solo@example.com"},
        )

    assert response.status_code == 302
    assert services.calls_to("token.oaifree.com") == []
    form = parse_qs(services.calls_to("chat.oaifree.com")[0].content.decode())
    assert form["unique_name"] == ["team-bob"]


async def test_account_selection_requires_login_state(gateway):
    _, services, _, _ = gateway

    async with _client() as client:
        response = await client.post(
            "/accounts",
            data={"login_state": "forged", "account_key": "team@example.com"},
        )

    assert response.status_code == 401
    assert services.requests == []


async def test_mint_failure_renders_error_page(gateway):
    _, services, _, _ = gateway
    services.register_payload = {"detail": "access token invalid"}

    async with _client() as client:
        page = await client.post("/", data={"unique_name": "alice", "site_password": "secret"})
        response = await client.post(
            "/accounts",
            data={"login_state": _login_state(page.text), "account_key": "solo@example.com"},
        )

    assert response.status_code == 500
    assert "token获取失败" in response.text
    assert services.calls_to("chat.example.com") == []


async def test_unknown_account_renders_404(gateway):
    async with _client() as client:
        page = await client.post("/", data={"unique_name": "alice", "site_password": "secret"})
        response = await client.post(
            "/accounts",
            data={"login_state": _login_state(page.text), "account_key": "ghost@example.com"},
        )

    assert response.status_code == 404


async def test_direct_login_with_query_parameter_redirects(gateway):
    kv, services, _, _ = gateway
    kv.put("DEFAULT_ACCOUNT", "solo@example.com")

    async with _client() as client:
        response = await client.get("/", params={"un": "bob"})

    assert response.status_code == 302
    assert response.headers["location"] == LOGIN_URL
    form = parse_qs(services.calls_to("chat.oaifree.com")[0].content.decode())
    assert form["unique_name"] == ["bob"]


async def test_direct_login_post_to_root_with_query_parameter(gateway):
    kv, services, upstream, _ = gateway
    kv.put("DEFAULT_ACCOUNT", "solo@example.com")

    async with _client() as client:
        response = await client.post("/?un=mallory", data={"username": "bob"})

    assert response.status_code == 302
    assert response.headers["location"] == LOGIN_URL
    form = parse_qs(services.calls_to("chat.oaifree.com")[0].content.decode())
    assert form["unique_name"] == ["bob"]
    assert upstream.requests == []


async def test_direct_login_form_submission(gateway):
    async with _client() as client:
        welcome = await client.get("/auth/login")
        accepted = await client.post("/auth/login_auth0", data={"username": "  alice "})
        rejected = await client.post("/auth/login", data={"username": "mallory"})

    assert welcome.status_code == 200
    assert "Welcome back!" in welcome.text
    assert accepted.status_code == 302
    assert rejected.status_code == 401
    assert "Invalid user name, please retry" in rejected.text


async def test_unmatched_path_is_forwarded_unchanged(gateway):
    _, services, upstream, _ = gateway

    async with _client() as client:
        response = await client.post(
            "/backend-api/conversation",
            content=b'{"hello":"world"}',
            headers={"x-custom": "kept", "content-type": "application/json"},
        )

    assert response.status_code == 201
    assert response.content == b'upstream-body:{"hello":"world"}'
    assert response.headers["x-upstream"] == "yes"

    forwarded = upstream.requests[0]
    assert forwarded.method == "POST"
    assert str(forwarded.url) == "https://new.oaifree.com/backend-api/conversation"
    assert forwarded.headers["x-custom"] == "kept"
    assert forwarded.headers["host"] == "new.oaifree.com"
    assert services.requests == []


async def test_direct_login_paths_pass_through_when_disabled(gateway):
    _, services, upstream, settings = gateway
    settings.direct_login_enabled = False

    async with _client() as client:
        login_path = await client.get("/auth/login", params={"un": "alice"})
        root_get = await client.get("/", params={"un": "alice"})
        root_post = await client.post("/?un=alice", data={"username": "alice"})

    assert [r.status_code for r in (login_path, root_get, root_post)] == [201, 201, 201]
    assert [str(request.url) for request in upstream.requests] == [
        "https://new.oaifree.com/auth/login?un=alice",
        "https://new.oaifree.com/?un=alice",
        "https://new.oaifree.com/?un=alice",
    ]
    assert upstream.requests[2].method == "POST"
    assert upstream.requests[2].content == b"username=alice"
    assert services.requests == []


async def test_encoded_path_segments_are_forwarded_verbatim(gateway):
    _, _, upstream, _ = gateway

    async with _client() as client:
        response = await client.get("/files/a%2Fb%20c")

    assert response.status_code == 201
    forwarded = upstream.requests[0]
    assert forwarded.url.raw_path == b"/files/a%2Fb%20c"
    assert forwarded.url.host == "new.oaifree.com"


async def test_upstream_transport_error_renders_502(gateway):
    from app import dependencies

    def broken(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    proxy = UpstreamProxy(ServiceSettings(), transport=httpx.MockTransport(broken))
    app.dependency_overrides[dependencies.get_upstream_proxy] = lambda: proxy

    async with _client() as client:
        response = await client.get("/backend-api/models")

    assert response.status_code == 502
