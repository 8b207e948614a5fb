"""Interactive login for Telegram user-account instances.

Bot instances log in with their token and never need this; user sessions
are authorized once here and reused from the session file afterwards.
"""

from __future__ import annotations

from getpass import getpass
import logging
import os

from dotenv import load_dotenv
import qrcode
from telethon import TelegramClient, errors

LOGGER = logging.getLogger(__name__)


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _resolve_2fa_password() -> str:
    load_dotenv()
    password = os.getenv("TG_2FA_PASSWORD")
    if password:
        return password
    return getpass("2FA password: ")


async def _authorize_with_qr(client: TelegramClient) -> None:
    login = await client.qr_login()
    _print_qr(login.url)
    await login.wait(timeout=120)


async def _authorize_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    code = input("Login code: ").strip()
    await client.sign_in(phone=phone, code=code)


def _pick_login_method() -> str:
    method = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in {"qr", "phone"}:
        return method
    while True:
        choice = input("Login with [1] QR code or [2] phone code? ").strip()
        if choice == "1":
            return "qr"
        if choice == "2":
            return "phone"
        print("Please choose 1 or 2.")


async def authorize(client: TelegramClient) -> None:
    """Authorize a user session if the session file is not logged in yet."""

    if not client.is_connected():
        await client.connect()
    if await client.is_user_authorized():
        return

    try:
        if _pick_login_method() == "phone":
            await _authorize_with_phone(client)
        else:
            await _authorize_with_qr(client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())

    me = await client.get_me()
    LOGGER.info("Logged in as %s", me.id)
