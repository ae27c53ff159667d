"""HTML pages rendered by the login routes."""

from __future__ import annotations

import html as html_mod
from typing import Optional, Sequence

_BASE_STYLE = """
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
            display: flex; justify-content: center; align-items: center;
            min-height: 100vh; margin: 0; background: #f4f5f7 center / cover fixed; }
        .card { background: rgba(255, 255, 255, 0.9); border-radius: 12px; padding: 2rem;
            max-width: 360px; width: 90%; text-align: center;
            box-shadow: 0 4px 12px rgba(0, 0, 0, 0.15); }
        h1 { font-size: 1.4rem; color: #2d333a; margin: 0 0 1rem 0; }
        input, select { width: 100%; box-sizing: border-box; height: 44px; padding: 0 12px;
            border: 1px solid #c2c8d0; border-radius: 6px; margin-bottom: 1rem; font-size: 1rem; }
        button { width: 100%; height: 48px; border: none; border-radius: 6px;
            background: #10a37f; color: #fff; font-size: 1rem; cursor: pointer; }
        button:hover { background: #0d8c6d; }
        .message { color: #e53e3e; margin-bottom: 1.2rem; }
"""


def _page(title: str, body: str, *, extra_head: str = "", body_style: str = "") -> str:
    style_attr = f' style="{body_style}"' if body_style else ""
    return f"""<!DOCTYPE html>
<html lang="zh-CN">
<head>
    <meta charset="UTF-8">
    <title>{html_mod.escape(title)}</title>
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>{_BASE_STYLE}    </style>
{extra_head}</head>
<body{style_attr}>
    <div class="card">
{body}
    </div>
</body>
</html>
"""


def login_page(*, turnstile_site_key: str = "", background_url: Optional[str] = None) -> str:
    turnstile = ""
    head = ""
    if turnstile_site_key:
        safe_key = html_mod.escape(turnstile_site_key, quote=True)
        turnstile = f"""            <div class="cf-turnstile" data-sitekey="{safe_key}"></div>
"""
        head = '    <script src="https://challenges.cloudflare.com/turnstile/v0/api.js" async defer></script>\n'
    body_style = ""
    if background_url:
        body_style = f"background-image: url('{html_mod.escape(background_url, quote=True)}')"

    body = f"""        <h1>欢迎使用</h1>
        <form method="POST" action="/">
            <input type="text" name="unique_name" placeholder="用户名" required>
            <input type="password" name="site_password" placeholder="口令">
{turnstile}            <button type="submit">点击登录</button>
        </form>"""
    return _page("欢迎使用ChatGPT", body, extra_head=head, body_style=body_style)


def account_page(*, login_state: str, account_keys: Sequence[str]) -> str:
    options = "\n".join(
        f'                <option value="{html_mod.escape(key, quote=True)}">{html_mod.escape(key)}</option>'
        for key in account_keys
    )
    body = f"""        <h1>选择账户</h1>
        <form method="POST" action="/accounts">
            <input type="hidden" name="login_state" value="{html_mod.escape(login_state, quote=True)}">
            <select name="account_key">
{options}
            </select>
            <button type="submit">开始使用</button>
        </form>"""
    return _page("选择账户", body)


def direct_login_page(message: str) -> str:
    body = f"""        <h1>{html_mod.escape(message)}</h1>
        <form method="POST" action="/auth/login">
            <input type="text" name="username" placeholder="Enter your username here"
                autocomplete="username" autocapitalize="none" spellcheck="false" required>
            <button type="submit">Continue</button>
        </form>"""
    return _page("Login", body)


def error_page(message: str) -> str:
    body = f"""        <h1>登录错误</h1>
        <p class="message">{html_mod.escape(message)}</p>
        <a href="/">返回登录</a>"""
    return _page("登录错误", body)


__all__ = ["account_page", "direct_login_page", "error_page", "login_page"]
