"""
FastAPI routes for the share login gateway.

``/`` and ``/accounts`` implement the password login, ``?un=`` and
``/auth/login`` the direct login, and every other request is relayed to the
upstream host unchanged.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any

import httpx
from fastapi import APIRouter, Depends, Form, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse

from app.clients.oaifree import TokenExchangeError
from app.dependencies import (
    get_app_settings,
    get_background_image_client,
    get_login_service,
    get_upstream_proxy,
)
from app.services import AccountNotFoundError, AuthError, LoginService
from app.web import pages

router = APIRouter()
logger = logging.getLogger(__name__)

_PASSTHROUGH_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _html(content: str, status_code: int = HTTPStatus.OK) -> HTMLResponse:
    return HTMLResponse(content=content, status_code=status_code)


def _error(message: str, status_code: int) -> HTMLResponse:
    return _html(pages.error_page(message), status_code=status_code)


def _has_direct_login_name(request: Request) -> bool:
    return bool(request.query_params.get("un"))


async def _redirect_to_login(
    login_service: LoginService, request: Request, *, unique_name: str, account_key: str
) -> Response:
    """Run the token exchange chain and redirect, or render the failure."""
    try:
        login_url = await login_service.login_url_for(
            unique_name, account_key, request_host=request.url.netloc
        )
    except AccountNotFoundError as exc:
        logger.warning("Login for %r failed: %s", unique_name, exc)
        return _error("账户不存在", HTTPStatus.NOT_FOUND)
    except TokenExchangeError as exc:
        logger.warning("Token exchange for %r failed: %s", unique_name, exc)
        return _error(str(exc), HTTPStatus.INTERNAL_SERVER_ERROR)
    except httpx.HTTPError as exc:
        logger.error("Token service request failed: %s", exc)
        return _error("上游服务不可用", HTTPStatus.BAD_GATEWAY)

    return RedirectResponse(url=login_url, status_code=HTTPStatus.FOUND)


async def _direct_login(request: Request, login_service: LoginService) -> Response:
    """Log an allow-listed name straight in with the default account."""
    user_name = request.query_params.get("un") or ""
    if request.method == "POST":
        form = await request.form()
        submitted = str(form.get("username") or "").strip()
        if submitted:
            user_name = submitted

    if not user_name:
        return _html(pages.direct_login_page("Welcome back!"))

    try:
        login_service.authorize_direct(user_name)
        account_key = login_service.default_account()
    except AuthError as exc:
        return _html(pages.direct_login_page(str(exc)), HTTPStatus.UNAUTHORIZED)
    except AccountNotFoundError as exc:
        logger.error("Direct login unavailable: %s", exc)
        return _error("账户不存在", HTTPStatus.NOT_FOUND)

    return await _redirect_to_login(
        login_service, request, unique_name=user_name, account_key=account_key
    )


async def _forward(request: Request, proxy: Any) -> Response:
    try:
        return await proxy.forward(request)
    except httpx.HTTPError as exc:
        logger.error("Upstream request %s %s failed: %s", request.method, request.url.path, exc)
        return _error("上游服务不可用", HTTPStatus.BAD_GATEWAY)


@router.get("/_gateway/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/", response_class=HTMLResponse)
async def show_login_form(
    request: Request,
    settings: Annotated[Any, Depends(get_app_settings)],
    login_service: Annotated[LoginService, Depends(get_login_service)],
    background_client: Annotated[Any, Depends(get_background_image_client)],
    proxy: Annotated[Any, Depends(get_upstream_proxy)],
) -> Response:
    """Render the password login form."""
    if _has_direct_login_name(request):
        if settings.direct_login_enabled:
            return await _direct_login(request, login_service)
        return await _forward(request, proxy)

    config = login_service.site_config()
    background_url = None
    if background_client is not None:
        background_url = await background_client.image_of_the_day()
    return _html(
        pages.login_page(
            turnstile_site_key=config.turnstile_site_key,
            background_url=background_url,
        )
    )


@router.post("/", response_class=HTMLResponse)
async def submit_credentials(
    request: Request,
    settings: Annotated[Any, Depends(get_app_settings)],
    login_service: Annotated[LoginService, Depends(get_login_service)],
    proxy: Annotated[Any, Depends(get_upstream_proxy)],
) -> Response:
    """Validate password and allow-list, then offer the account choice."""
    if _has_direct_login_name(request):
        if settings.direct_login_enabled:
            return await _direct_login(request, login_service)
        return await _forward(request, proxy)

    form = await request.form()
    unique_name = str(form.get("unique_name") or "")
    site_password = str(form.get("site_password") or "")
    try:
        user = login_service.authenticate(unique_name, site_password)
    except AuthError as exc:
        return _error(str(exc), HTTPStatus.UNAUTHORIZED)

    return _html(
        pages.account_page(
            login_state=login_service.issue_login_state(user),
            account_keys=login_service.list_accounts(),
        )
    )


@router.post("/accounts")
async def select_account(
    request: Request,
    login_service: Annotated[LoginService, Depends(get_login_service)],
    login_state: Annotated[str, Form()] = "",
    account_key: Annotated[str, Form()] = "",
) -> Response:
    """Exchange the chosen account's tokens for a login redirect."""
    try:
        user = login_service.verify_login_state(login_state)
    except AuthError as exc:
        return _error(str(exc), HTTPStatus.UNAUTHORIZED)

    return await _redirect_to_login(
        login_service, request, unique_name=user, account_key=account_key
    )


@router.api_route("/auth/login", methods=["GET", "POST"])
@router.api_route("/auth/login_auth0", methods=["GET", "POST"])
async def direct_login(
    request: Request,
    settings: Annotated[Any, Depends(get_app_settings)],
    login_service: Annotated[LoginService, Depends(get_login_service)],
    proxy: Annotated[Any, Depends(get_upstream_proxy)],
) -> Response:
    """Username-only login; relayed upstream when the variant is disabled."""
    if settings.direct_login_enabled:
        return await _direct_login(request, login_service)
    return await _forward(request, proxy)


@router.api_route("/{path:path}", methods=_PASSTHROUGH_METHODS)
async def passthrough(
    request: Request,
    path: str,
    settings: Annotated[Any, Depends(get_app_settings)],
    login_service: Annotated[LoginService, Depends(get_login_service)],
    proxy: Annotated[Any, Depends(get_upstream_proxy)],
) -> Response:
    """Relay anything outside the login flow to the upstream host."""
    if settings.direct_login_enabled and _has_direct_login_name(request):
        return await _direct_login(request, login_service)
    return await _forward(request, proxy)


__all__ = ["router"]
